import json

import pytest

from mailcraft.config import settings
from mailcraft.errors import BackendError, FetchError
from mailcraft.llm.client import LLMClient
from mailcraft.main import app
from mailcraft.routers.generation import get_llm_client
from mailcraft.services import esp_backend, scraper
from mailcraft.services.extractor import EXTRACTION_SYSTEM_INSTRUCTION
from mailcraft.services.image_ranker import RANKING_SYSTEM_INSTRUCTION


PRODUCT_URL = "https://shop.example.com/products/linen-shirt"
PRODUCT_HTML = """
<html><body>
  <img src="/assets/logo.png">
  <h1>Linen Shirt</h1>
  <img src="/images/front.jpg">
  <img src="/images/back.jpg">
</body></html>
"""

OWNER_HEADERS = {"X-User-Id": "user_owner"}


def _publish_body(**overrides):
    body = {
        "subject": "Summer drop",
        "preheader": "New linen",
        "sendDate": "2026-07-01T09:00:00Z",
        "baseCountry": "US",
        "emailTemplate": {"html": "<html>hi</html>"},
        "countryResults": {"US": {"html": "<html>hi</html>"}},
    }
    body.update(overrides)
    return body


@pytest.fixture()
def product_page(monkeypatch):
    monkeypatch.setattr(scraper, "_fetch_html", lambda url: PRODUCT_HTML)


def _pipeline_responder(ranking_answer="1"):
    def respond(system, user, _params):
        if system == EXTRACTION_SYSTEM_INSTRUCTION:
            return json.dumps({"title": "Linen Shirt", "description": "Breathable.", "price": "$49"})
        if system == RANKING_SYSTEM_INSTRUCTION:
            return ranking_answer
        if "bold" in system:
            return json.dumps({"subject": "BOLD", "html": "<html>bold</html>"})
        return json.dumps({"subject": "minimal", "html": "<html>minimal</html>"})

    return respond


def test_health(api_client):
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_active_prompts_lists_defaults_first(api_client, seed_prompts):
    response = api_client.get("/prompts/active")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [prompt["id"] for prompt in body["prompts"]] == ["prompt_bold", "prompt_minimal"]
    assert body["prompts"][0]["isDefault"] is True


def test_scrape_generates_one_template_per_active_prompt(api_client, seed_prompts, product_page, fake_llm):
    fake_llm.responder = _pipeline_responder()

    response = api_client.post("/scrape", json={"url": PRODUCT_URL})

    assert response.status_code == 200
    body = response.json()
    assert body["productInfo"] == {
        "title": "Linen Shirt",
        "description": "Breathable.",
        "price": "$49",
        "images": ["https://shop.example.com/images/front.jpg", "https://shop.example.com/images/back.jpg"],
        "bestImageUrl": "https://shop.example.com/images/back.jpg",
    }
    assert body["imageRankingDegraded"] is False
    assert [template["promptId"] for template in body["templates"]] == ["prompt_bold", "prompt_minimal"]
    assert body["templates"][0]["subject"] == "BOLD"


def test_scrape_can_select_prompts(api_client, seed_prompts, product_page, fake_llm):
    fake_llm.responder = _pipeline_responder()

    response = api_client.post("/scrape", json={"url": PRODUCT_URL, "promptIds": ["prompt_minimal", "prompt_retired"]})

    assert response.status_code == 200
    assert [template["promptId"] for template in response.json()["templates"]] == ["prompt_minimal"]


def test_scrape_flags_degraded_image_ranking(api_client, seed_prompts, product_page, fake_llm):
    fake_llm.responder = _pipeline_responder(ranking_answer="nine")

    response = api_client.post("/scrape", json={"url": PRODUCT_URL})

    body = response.json()
    assert body["imageRankingDegraded"] is True
    assert body["productInfo"]["bestImageUrl"] == "https://shop.example.com/images/front.jpg"


def test_scrape_requires_url(api_client, fake_llm):
    response = api_client.post("/scrape", json={})

    assert response.status_code == 400
    assert response.json() == {"detail": "URL is required"}
    assert fake_llm.calls == []


def test_scrape_fetch_failure_is_gateway_error(api_client, monkeypatch, fake_llm):
    def failing_fetch(url):
        raise FetchError(f"Fetching {url} failed with status 503")

    monkeypatch.setattr(scraper, "_fetch_html", failing_fetch)

    response = api_client.post("/scrape", json={"url": PRODUCT_URL})

    assert response.status_code == 502
    assert fake_llm.calls == []


def test_publish_campaign_accepted(api_client, seed_data, monkeypatch):
    sent = []

    def fake_schedule(payload):
        sent.append(payload)
        return {"campaignId": "cmp_1"}

    monkeypatch.setattr(esp_backend, "schedule_campaign", fake_schedule)

    response = api_client.post("/clients/client_connected/campaigns", json=_publish_body(), headers=OWNER_HEADERS)

    assert response.status_code == 202
    assert response.json() == {"status": "accepted", "campaign": {"campaignId": "cmp_1"}}
    assert sent[0]["clientId"] == "client_connected"


@pytest.mark.parametrize(
    ("client_id", "headers", "body", "expected_status"),
    [
        ("client_connected", {}, _publish_body(), 401),
        ("client_connected", {"X-User-Id": "user_stranger"}, _publish_body(), 404),
        ("client_missing", OWNER_HEADERS, _publish_body(), 404),
        ("client_pending", OWNER_HEADERS, _publish_body(), 400),
        ("client_connected", OWNER_HEADERS, _publish_body(emailTemplate={}), 400),
        ("client_connected", OWNER_HEADERS, ["not", "an", "object"], 400),
    ],
)
def test_publish_campaign_gate_failures(api_client, seed_data, monkeypatch, client_id, headers, body, expected_status):
    sent = []
    monkeypatch.setattr(esp_backend, "schedule_campaign", lambda payload: sent.append(payload))

    response = api_client.post(f"/clients/{client_id}/campaigns", json=body, headers=headers)

    assert response.status_code == expected_status
    assert "detail" in response.json()
    assert sent == []


def test_publish_campaign_backend_failure_is_gateway_error(api_client, seed_data, monkeypatch):
    def failing_schedule(payload):
        raise BackendError("ESP backend request failed with 500: boom", upstream_status=500, body="boom")

    monkeypatch.setattr(esp_backend, "schedule_campaign", failing_schedule)

    response = api_client.post("/clients/client_connected/campaigns", json=_publish_body(), headers=OWNER_HEADERS)

    assert response.status_code == 502
    assert response.json() == {"detail": "ESP backend request failed with 500: boom"}


def test_publish_campaign_unconfigured_backend(api_client, seed_data, monkeypatch):
    monkeypatch.setattr(esp_backend.settings, "ESP_BACKEND_BASE_URL", None)

    response = api_client.post("/clients/client_connected/campaigns", json=_publish_body(), headers=OWNER_HEADERS)

    assert response.status_code == 500
    assert "ESP_BACKEND_BASE_URL" in response.json()["detail"]


def test_campaign_metrics_short_circuit(api_client, seed_data, monkeypatch):
    calls = []
    monkeypatch.setattr(esp_backend, "fetch_newsletter_metrics", lambda **kwargs: calls.append(kwargs))

    response = api_client.post(
        "/campaigns/metrics",
        json={"clientId": "client_connected", "newsletterIds": ["", "  "]},
        headers=OWNER_HEADERS,
    )

    assert response.status_code == 200
    assert response.json() == {"clientId": "client_connected", "metrics": {}}
    assert calls == []


def test_campaign_metrics_requires_client_id(api_client, seed_data):
    response = api_client.post("/campaigns/metrics", json={"newsletterIds": ["n1"]}, headers=OWNER_HEADERS)

    assert response.status_code == 400
    assert response.json() == {"detail": "clientId is required"}


def test_campaign_metrics_unauthenticated(api_client, seed_data):
    response = api_client.post("/campaigns/metrics", json={"clientId": "client_connected", "newsletterIds": ["n1"]})

    assert response.status_code == 401


def test_campaign_metrics_proxied(api_client, seed_data, monkeypatch):
    monkeypatch.setattr(
        esp_backend,
        "fetch_newsletter_metrics",
        lambda *, client_id, newsletter_ids: {"clientId": client_id, "metrics": {"n1": {"opens": 10}}},
    )

    response = api_client.post(
        "/campaigns/metrics",
        json={"clientId": "client_connected", "newsletterIds": ["n1"]},
        headers=OWNER_HEADERS,
    )

    assert response.status_code == 200
    assert response.json() == {"clientId": "client_connected", "metrics": {"n1": {"opens": 10}}}


@pytest.fixture()
def cron_secret(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "cron_secret")
    return "cron_secret"


def test_cron_push_requires_bearer(api_client, cron_secret):
    response = api_client.post("/internal/cron/push-scheduled")

    assert response.status_code == 401


def test_cron_push_rejects_wrong_secret(api_client, cron_secret):
    response = api_client.post("/internal/cron/push-scheduled", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 403


def test_cron_push_unconfigured_secret(api_client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)

    response = api_client.post("/internal/cron/push-scheduled", headers={"Authorization": "Bearer anything"})

    assert response.status_code == 500


def test_cron_push_forwards_to_backend(api_client, cron_secret, monkeypatch):
    calls = []

    def fake_push():
        calls.append(True)
        return None

    monkeypatch.setattr(esp_backend, "push_scheduled_campaigns", fake_push)

    response = api_client.post(
        "/internal/cron/push-scheduled",
        headers={"Authorization": f"Bearer {cron_secret}"},
    )

    assert response.status_code == 202
    assert response.json() == {"status": "accepted", "result": None}
    assert calls == [True]


TOTE_URL = "https://shop.example.com/products/canvas-tote"
TOTE_HTML = '<body><h1>Canvas Tote</h1><img src="/images/tote.jpg"></body>'


@pytest.fixture()
def two_product_pages(monkeypatch):
    pages = {PRODUCT_URL: PRODUCT_HTML, TOTE_URL: TOTE_HTML}
    monkeypatch.setattr(scraper, "_fetch_html", lambda url: pages[url])


@pytest.mark.parametrize("field", ["urls", "url"])
def test_scrape_multiple_urls_returns_product_list(api_client, seed_prompts, two_product_pages, fake_llm, field):
    fake_llm.responder = _pipeline_responder(ranking_answer="0")

    response = api_client.post("/scrape", json={field: [PRODUCT_URL, TOTE_URL], "promptIds": ["prompt_bold"]})

    assert response.status_code == 200
    body = response.json()
    assert body["productUrls"] == [PRODUCT_URL, TOTE_URL]
    assert [product["bestImageUrl"] for product in body["productInfo"]] == [
        "https://shop.example.com/images/front.jpg",
        "https://shop.example.com/images/tote.jpg",
    ]
    assert body["imageRankingDegraded"] is False
    assert body["degradedImageIndexes"] == []
    assert [template["promptId"] for template in body["templates"]] == ["prompt_bold"]


def test_scrape_multiple_urls_rejects_bad_entry(api_client, two_product_pages, fake_llm):
    response = api_client.post("/scrape", json={"urls": [PRODUCT_URL, "http://[::1/p"]})

    assert response.status_code == 400
    assert response.json() == {"detail": "URL must be an absolute http(s) URL"}
    assert fake_llm.calls == []


def test_scrape_missing_provider_key_is_server_error(api_client, seed_prompts, product_page, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setattr(settings, "LLM_EXTRACTION_MODEL", "gpt-4o-mini")
    app.dependency_overrides[get_llm_client] = lambda: LLMClient()

    response = api_client.post("/scrape", json={"url": PRODUCT_URL})

    assert response.status_code == 500
    assert response.json() == {"detail": "OPENAI_API_KEY not configured"}
