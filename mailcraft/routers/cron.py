import logging
from typing import Any

from fastapi import APIRouter, Depends, status

from mailcraft.auth.dependencies import require_cron_secret
from mailcraft.schemas.campaigns import ScheduledPushResponse
from mailcraft.services import esp_backend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/cron", tags=["cron"])


@router.post(
    "/push-scheduled",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ScheduledPushResponse,
    dependencies=[Depends(require_cron_secret)],
)
def push_scheduled_campaigns() -> dict[str, Any]:
    result = esp_backend.push_scheduled_campaigns()
    logger.info("Scheduled campaign push forwarded to ESP backend")
    return {"status": "accepted", "result": result}
