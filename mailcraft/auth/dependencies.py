import hmac
import logging

from fastapi import Header, HTTPException, status

from mailcraft.config import settings

logger = logging.getLogger("auth.deps")


def get_requester_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str | None:
    # Sessions are issued upstream; the gateway forwards the authenticated user id.
    if x_user_id is None:
        return None
    requester_id = x_user_id.strip()
    return requester_id or None


def require_cron_secret(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> None:
    if not settings.CRON_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Scheduled push trigger is not configured. Set CRON_SECRET and restart the service.",
        )
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer authorization header",
        )
    token = authorization[7:].strip()
    if not hmac.compare_digest(token, settings.CRON_SECRET):
        logger.warning("Rejected scheduled push trigger with invalid secret")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid cron secret",
        )
