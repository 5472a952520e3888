# tests/test_internal_auth_dependency.py
from http import HTTPStatus

from meet_sync.api.dependencies import internal_auth as auth_module
from meet_sync.schemas.ingestion import IngestionSummary


class DummySettingsProd:
    APP_ENV = "prod"
    INTERNAL_API_KEY = "supersecret"


class DummySettingsProdNoKey:
    APP_ENV = "prod"
    INTERNAL_API_KEY = None


def test_internal_endpoint_401_when_key_missing_in_prod(monkeypatch, client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    resp = client.post("/internal/fetch-range?days=1")
    assert resp.status_code == HTTPStatus.UNAUTHORIZED
    assert "invalid or missing" in resp.json()["detail"].lower()


def test_internal_endpoint_401_when_key_wrong_in_prod(monkeypatch, client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    resp = client.post(
        "/internal/fetch-range?days=1",
        headers={"X-Internal-Api-Key": "wrong-key"},
    )
    assert resp.status_code == HTTPStatus.UNAUTHORIZED


def test_internal_endpoint_200_when_key_correct_in_prod(monkeypatch, client, fake_pipeline):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())
    fake_pipeline.result = IngestionSummary(message="ok", total_activities=0)

    resp = client.post(
        "/internal/fetch-range?days=1",
        headers={"X-Internal-Api-Key": "supersecret"},
    )
    assert resp.status_code == HTTPStatus.OK


def test_internal_endpoint_500_when_key_not_configured_in_prod(monkeypatch, client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProdNoKey())

    resp = client.post("/internal/fetch-range?days=1")
    assert resp.status_code == HTTPStatus.INTERNAL_SERVER_ERROR


class DummySettingsLocalWithKey:
    APP_ENV = "local"
    INTERNAL_API_KEY = "localsecret"


def test_configured_key_is_enforced_in_local(monkeypatch, client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsLocalWithKey())

    resp = client.post("/internal/fetch-range?days=1")
    assert resp.status_code == HTTPStatus.UNAUTHORIZED
    assert "x-internal-api-key" in resp.json()["detail"].lower()


def test_misconfigured_environment_names_the_missing_key(monkeypatch, client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProdNoKey())

    resp = client.post("/internal/fetch-range?days=1")
    assert resp.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert "INTERNAL_API_KEY" in resp.json()["detail"]
