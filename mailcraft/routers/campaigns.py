from typing import Any

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from mailcraft.auth.dependencies import get_requester_id
from mailcraft.db.deps import get_session
from mailcraft.schemas.campaigns import CampaignAcceptedResponse, CampaignMetricsRequest
from mailcraft.services.campaign_metrics import fetch_campaign_metrics
from mailcraft.services.campaign_publisher import publish_campaign

router = APIRouter(tags=["campaigns"])


@router.post(
    "/clients/{client_id}/campaigns",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=CampaignAcceptedResponse,
)
def publish_client_campaign(
    client_id: str,
    payload: Any = Body(default=None),
    requester_id: str | None = Depends(get_requester_id),
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    return publish_campaign(session, requester_id=requester_id, client_id=client_id, payload=payload)


@router.post("/campaigns/metrics")
def campaign_metrics(
    payload: CampaignMetricsRequest,
    requester_id: str | None = Depends(get_requester_id),
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    return fetch_campaign_metrics(
        session,
        requester_id=requester_id,
        client_id=payload.clientId,
        newsletter_ids=payload.newsletterIds,
    )
