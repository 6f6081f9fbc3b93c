from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import urljoin

import httpx

from mailcraft.config import settings
from mailcraft.errors import BackendError, ConfigurationError

logger = logging.getLogger(__name__)


def _require_backend_config() -> tuple[str, str]:
    # Process-wide static config; re-checked per call so a misconfigured deploy fails fast.
    if not settings.ESP_BACKEND_BASE_URL:
        raise ConfigurationError(
            "ESP backend is not configured. Set ESP_BACKEND_BASE_URL and restart the service."
        )
    if not settings.ESP_BACKEND_SERVICE_TOKEN:
        raise ConfigurationError(
            "ESP backend auth is not configured. Set ESP_BACKEND_SERVICE_TOKEN and restart the service."
        )
    return settings.ESP_BACKEND_BASE_URL, settings.ESP_BACKEND_SERVICE_TOKEN


def build_backend_url(base_url: str, path: str) -> str:
    return urljoin(base_url, path)


def _clean_params(params: Optional[Mapping[str, Any]]) -> Optional[dict[str, Any]]:
    if not params:
        return None
    cleaned = {key: value for key, value in params.items() if value is not None}
    return cleaned or None


def backend_request(
    *,
    method: str,
    path: str,
    json_body: Any = None,
    params: Optional[Mapping[str, Any]] = None,
) -> Any:
    base_url, service_token = _require_backend_config()
    url = build_backend_url(base_url, path)
    headers = {
        "Authorization": f"Bearer {service_token}",
        "Content-Type": "application/json",
    }

    try:
        with httpx.Client(timeout=settings.ESP_BACKEND_TIMEOUT_SECONDS) as client:
            response = client.request(
                method,
                url,
                headers=headers,
                json=json_body,
                params=_clean_params(params),
            )
    except httpx.RequestError as exc:
        logger.warning("ESP backend request failed", extra={"method": method, "path": path})
        raise BackendError(f"ESP backend request failed: {exc}") from exc

    if not response.is_success:
        body = response.text
        logger.warning(
            "ESP backend returned error status",
            extra={"method": method, "path": path, "status_code": response.status_code},
        )
        raise BackendError(
            f"ESP backend request failed with {response.status_code}: {body}",
            upstream_status=response.status_code,
            body=body,
        )

    if response.status_code == 204:
        return None

    try:
        return response.json()
    except ValueError as exc:
        raise BackendError(
            "ESP backend returned invalid JSON.",
            upstream_status=response.status_code,
            body=response.text,
        ) from exc


def _provider_path(suffix: str) -> str:
    return f"/integrations/{settings.esp_provider_slug}/{suffix}"


def schedule_campaign(payload: Mapping[str, Any]) -> Any:
    return backend_request(method="POST", path=_provider_path("campaigns"), json_body=dict(payload))


def fetch_newsletter_metrics(*, client_id: str, newsletter_ids: Sequence[str]) -> Any:
    return backend_request(
        method="POST",
        path=_provider_path("metrics"),
        json_body={"clientId": client_id, "newsletterIds": list(newsletter_ids)},
    )


def push_scheduled_campaigns() -> Any:
    return backend_request(method="POST", path=_provider_path("push-scheduled"))
