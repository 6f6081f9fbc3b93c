from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class CampaignMetricsRequest(BaseModel):
    # Loosely typed on purpose: the service coerces ids and rejects a missing clientId.
    clientId: Any = None
    newsletterIds: Any = None


class CampaignAcceptedResponse(BaseModel):
    status: Literal["accepted"]
    campaign: Any = None


class ScheduledPushResponse(BaseModel):
    status: Literal["accepted"]
    result: Any = None
