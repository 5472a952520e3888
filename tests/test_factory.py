# tests/test_factory.py
import pytest

from meet_sync.core.config import Settings
from meet_sync.core.exceptions import ConfigurationError
from meet_sync.services.factory import build_pipeline


def _settings(**overrides) -> Settings:
    values = {
        "GOOGLE_ACCESS_TOKEN": "google-token",
        "TINYBIRD_TOKEN": "tb-token",
        "TINYBIRD_DATA_SOURCE": "google_meet_events",
        "CALENDAR_MAX_CONCURRENCY": 3,
        "CALENDAR_LOOKUP_TIMEOUT_SECONDS": 4.0,
        "BACKFILL_DEFAULT_DAYS": 30,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_build_pipeline_wires_settings_into_components():
    pipeline = build_pipeline(_settings())

    assert pipeline.enricher.max_concurrency == 3
    assert pipeline.enricher.lookup_timeout_seconds == 4.0
    assert pipeline.default_backfill_days == 30
    # One filter instance shared by the participant and invitee sides
    assert pipeline.enricher.bot_filter is pipeline.bot_filter


def test_build_pipeline_requires_google_token():
    with pytest.raises(ConfigurationError):
        build_pipeline(_settings(GOOGLE_ACCESS_TOKEN=None))


def test_missing_tinybird_config_is_deferred_to_push():
    pipeline = build_pipeline(_settings(TINYBIRD_TOKEN=None))

    assert pipeline.ingestor is not None
