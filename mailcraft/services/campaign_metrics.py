from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from mailcraft.auth.access import require_client_access
from mailcraft.errors import UnauthorizedError, ValidationError
from mailcraft.services import esp_backend

logger = logging.getLogger(__name__)


def normalize_newsletter_ids(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    ids: list[str] = []
    for value in raw:
        if value is None:
            continue
        text = str(value)
        if text.strip():
            ids.append(text)
    return ids


def fetch_campaign_metrics(
    session: Session,
    *,
    requester_id: Optional[str],
    client_id: Any,
    newsletter_ids: Any,
) -> dict[str, Any]:
    if not requester_id:
        raise UnauthorizedError("Unauthorized")
    if not isinstance(client_id, str) or not client_id:
        raise ValidationError("clientId is required")

    grant = require_client_access(session, requester_id=requester_id, client_id=client_id)
    ids = normalize_newsletter_ids(newsletter_ids)
    if not ids:
        return {"clientId": grant.client_id, "metrics": {}}

    result = esp_backend.fetch_newsletter_metrics(client_id=grant.client_id, newsletter_ids=ids)
    if result is None:
        logger.info("ESP backend returned no metrics body", extra={"client_id": grant.client_id})
        return {"clientId": grant.client_id, "metrics": {}}
    return result
