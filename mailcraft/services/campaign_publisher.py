from __future__ import annotations

import logging
import math
import re
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from mailcraft.auth.access import require_client_access
from mailcraft.config import settings
from mailcraft.db.enums import IntegrationStatusEnum, provider_from_slug
from mailcraft.db.repositories.integrations import IntegrationsRepository
from mailcraft.domain.campaigns import CampaignPublishRequest, ImageOverrides, freeze_mapping
from mailcraft.errors import ConfigurationError, IntegrationNotConnectedError, ValidationError
from mailcraft.services import esp_backend

logger = logging.getLogger(__name__)

_PRODUCT_INDEX_RE = re.compile(r"\d+")

PUBLISH_STATUS_ACCEPTED = "accepted"


def _as_non_negative_int(value: Any) -> Optional[int]:
    # bool is an int subclass; JSON true/false is never an index.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and math.isfinite(value) and value.is_integer() and value >= 0:
        return int(value)
    return None


def _parse_product_index(key: Any) -> Optional[int]:
    if isinstance(key, int) and not isinstance(key, bool):
        return key if key >= 0 else None
    if isinstance(key, str) and _PRODUCT_INDEX_RE.fullmatch(key.strip()):
        return int(key.strip())
    return None


def normalize_image_overrides(raw: Any) -> Optional[ImageOverrides]:
    """Drop every invalid entry; an override with nothing left is treated as absent."""
    if not isinstance(raw, Mapping):
        return None

    single_index = _as_non_negative_int(raw.get("singleImageIndex"))

    selections: dict[int, int] = {}
    raw_selections = raw.get("multiImageSelections")
    if isinstance(raw_selections, Mapping):
        for key, candidate in raw_selections.items():
            product_index = _parse_product_index(key)
            image_index = _as_non_negative_int(candidate)
            if product_index is None or image_index is None:
                continue
            selections[product_index] = image_index

    if single_index is None and not selections:
        return None
    return ImageOverrides(
        single_image_index=single_index,
        multi_image_selections=freeze_mapping(selections) if selections else None,
    )


def normalize_mailing_list_overrides(
    raw: Any,
    country_results: Mapping[str, Any],
) -> Optional[Mapping[str, str]]:
    """Keep countryCode -> mailingListId pairs for countries being published."""
    if not isinstance(raw, Mapping):
        return None
    overrides: dict[str, str] = {}
    for country_code, list_id in raw.items():
        if not isinstance(country_code, str) or not isinstance(list_id, str):
            continue
        code = country_code.strip()
        if code not in country_results or not list_id.strip():
            continue
        overrides[code] = list_id.strip()
    return freeze_mapping(overrides) if overrides else None


def parse_publish_request(client_id: str, raw: Any) -> CampaignPublishRequest:
    """Turn the loose request body into an immutable, validated publish request.

    Structural mistakes are rejected; only the optional scalar fields are coerced.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("Request body must be a JSON object")

    email_template = raw.get("emailTemplate")
    if email_template is None or not isinstance(email_template, Mapping):
        raise ValidationError("emailTemplate payload is required")
    html = email_template.get("html")
    if not isinstance(html, str) or not html:
        raise ValidationError("emailTemplate.html must be provided")

    country_results = raw.get("countryResults")
    if country_results is None or not isinstance(country_results, Mapping):
        raise ValidationError("countryResults must be an object keyed by country code")

    subject = raw.get("subject")
    preheader = raw.get("preheader")
    send_date = raw.get("sendDate")
    base_country = raw.get("baseCountry")

    return CampaignPublishRequest(
        client_id=client_id,
        base_country=base_country.strip() if isinstance(base_country, str) and base_country.strip() else None,
        subject=subject if isinstance(subject, str) else "",
        preheader=preheader if isinstance(preheader, str) else "",
        send_date=send_date if isinstance(send_date, str) and send_date.strip() else None,
        email_template=freeze_mapping(email_template),
        country_results=freeze_mapping(country_results),
        image_overrides=normalize_image_overrides(raw.get("imageOverrides")),
        mailing_list_overrides=normalize_mailing_list_overrides(
            raw.get("mailingListOverrides"), country_results
        ),
    )


def require_connected_integration(session: Session, client_id: str) -> None:
    try:
        provider = provider_from_slug(settings.esp_provider_slug)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    integration = IntegrationsRepository(session).get(client_id, provider)
    if integration is None or integration.status != IntegrationStatusEnum.CONNECTED:
        raise IntegrationNotConnectedError(
            f"{provider.value.title()} integration is not connected for this client"
        )


def publish_campaign(
    session: Session,
    *,
    requester_id: Optional[str],
    client_id: str,
    payload: Any,
) -> dict[str, Any]:
    """Validate access, integration state and payload, then hand off to the ESP.

    The ESP schedules asynchronously; returning means the request was accepted,
    not that anything was sent.
    """
    grant = require_client_access(session, requester_id=requester_id, client_id=client_id)
    require_connected_integration(session, grant.client_id)
    request = parse_publish_request(grant.client_id, payload)

    result = esp_backend.schedule_campaign(request.to_payload())
    logger.info(
        "Campaign accepted by ESP backend",
        extra={
            "client_id": grant.client_id,
            "requester_id": grant.requester_id,
            "country_count": len(request.country_results),
            "has_image_overrides": request.image_overrides is not None,
        },
    )
    return {"status": PUBLISH_STATUS_ACCEPTED, "campaign": result}
