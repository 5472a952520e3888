# meet_sync/services/factory.py
from __future__ import annotations

from meet_sync.core.config import Settings
from meet_sync.core.exceptions import ConfigurationError
from meet_sync.services.activity_fetcher import RawActivityFetcher
from meet_sync.services.activity_normalizer import ActivityNormalizer
from meet_sync.services.bot_filter import BotHeuristicFilter
from meet_sync.services.calendar_enricher import CalendarEnricher
from meet_sync.services.conference_aggregator import ConferenceAggregator
from meet_sync.services.google_client import GoogleApiClient
from meet_sync.services.meet_pipeline import MeetActivityPipeline
from meet_sync.services.tinybird_ingestor import TinybirdIngestor


def build_google_client(settings: Settings) -> GoogleApiClient:
    if not settings.GOOGLE_ACCESS_TOKEN:
        raise ConfigurationError(
            "GOOGLE_ACCESS_TOKEN must be configured to query the Reports and Calendar APIs."
        )
    return GoogleApiClient(
        access_token=settings.GOOGLE_ACCESS_TOKEN,
        base_url=settings.GOOGLE_API_BASE_URL,
        timeout_seconds=settings.GOOGLE_API_TIMEOUT_SECONDS,
    )


def build_ingestor(settings: Settings) -> TinybirdIngestor:
    # Missing token / data source is reported on first push, not here.
    return TinybirdIngestor(
        token=settings.TINYBIRD_TOKEN,
        data_source=settings.TINYBIRD_DATA_SOURCE,
        url=settings.TINYBIRD_URL,
        timeout_seconds=settings.TINYBIRD_TIMEOUT_SECONDS,
    )


def build_pipeline(settings: Settings) -> MeetActivityPipeline:
    """
    Wire every pipeline component from application settings.

    This is the only place settings are read; components get plain
    constructor arguments.
    """
    google_client = build_google_client(settings)
    bot_filter = BotHeuristicFilter()

    return MeetActivityPipeline(
        fetcher=RawActivityFetcher(google_client),
        normalizer=ActivityNormalizer(),
        bot_filter=bot_filter,
        enricher=CalendarEnricher(
            google_client,
            bot_filter,
            max_concurrency=settings.CALENDAR_MAX_CONCURRENCY,
            lookup_timeout_seconds=settings.CALENDAR_LOOKUP_TIMEOUT_SECONDS,
        ),
        aggregator=ConferenceAggregator(),
        ingestor=build_ingestor(settings),
        default_backfill_days=settings.BACKFILL_DEFAULT_DAYS,
    )
