import pytest

from mailcraft.errors import NotFoundError, UnauthorizedError, ValidationError
from mailcraft.services import esp_backend
from mailcraft.services.campaign_metrics import fetch_campaign_metrics, normalize_newsletter_ids


@pytest.fixture()
def metrics_calls(monkeypatch):
    calls = []

    def fake_fetch(*, client_id, newsletter_ids):
        calls.append({"client_id": client_id, "newsletter_ids": list(newsletter_ids)})
        return {"clientId": client_id, "metrics": {nid: {"opens": 3} for nid in newsletter_ids}}

    monkeypatch.setattr(esp_backend, "fetch_newsletter_metrics", fake_fetch)
    return calls


def test_normalize_newsletter_ids():
    assert normalize_newsletter_ids(["a", None, " ", 42, ""]) == ["a", "42"]
    assert normalize_newsletter_ids("a,b") == []
    assert normalize_newsletter_ids(None) == []


@pytest.mark.parametrize("newsletter_ids", [[], ["", "  "], None, "n1"])
def test_empty_ids_short_circuit_without_backend_call(db_session, seed_data, metrics_calls, newsletter_ids):
    result = fetch_campaign_metrics(
        db_session,
        requester_id=seed_data["owner"].id,
        client_id=seed_data["client"].id,
        newsletter_ids=newsletter_ids,
    )

    assert result == {"clientId": seed_data["client"].id, "metrics": {}}
    assert metrics_calls == []


def test_metrics_forwarded_for_valid_ids(db_session, seed_data, metrics_calls):
    result = fetch_campaign_metrics(
        db_session,
        requester_id=seed_data["owner"].id,
        client_id=seed_data["client"].id,
        newsletter_ids=["n1", 7],
    )

    assert metrics_calls == [{"client_id": "client_connected", "newsletter_ids": ["n1", "7"]}]
    assert result["metrics"] == {"n1": {"opens": 3}, "7": {"opens": 3}}


def test_metrics_no_content_maps_to_empty_metrics(db_session, seed_data, monkeypatch):
    monkeypatch.setattr(esp_backend, "fetch_newsletter_metrics", lambda **_: None)

    result = fetch_campaign_metrics(
        db_session,
        requester_id=seed_data["owner"].id,
        client_id=seed_data["client"].id,
        newsletter_ids=["n1"],
    )

    assert result == {"clientId": seed_data["client"].id, "metrics": {}}


def test_metrics_require_requester(db_session, seed_data, metrics_calls):
    with pytest.raises(UnauthorizedError):
        fetch_campaign_metrics(db_session, requester_id=None, client_id="client_connected", newsletter_ids=["n1"])

    assert metrics_calls == []


@pytest.mark.parametrize("client_id", [None, "", 12])
def test_metrics_require_client_id(db_session, seed_data, metrics_calls, client_id):
    with pytest.raises(ValidationError) as exc_info:
        fetch_campaign_metrics(
            db_session,
            requester_id=seed_data["owner"].id,
            client_id=client_id,
            newsletter_ids=["n1"],
        )

    assert exc_info.value.message == "clientId is required"


def test_metrics_hide_other_users_clients(db_session, seed_data, metrics_calls):
    with pytest.raises(NotFoundError):
        fetch_campaign_metrics(
            db_session,
            requester_id=seed_data["stranger"].id,
            client_id=seed_data["client"].id,
            newsletter_ids=["n1"],
        )

    assert metrics_calls == []


def test_metrics_do_not_require_connected_integration(db_session, seed_data, metrics_calls):
    fetch_campaign_metrics(
        db_session,
        requester_id=seed_data["owner"].id,
        client_id=seed_data["bare_client"].id,
        newsletter_ids=["n1"],
    )

    assert metrics_calls[0]["client_id"] == "client_bare"
