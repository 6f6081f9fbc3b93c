from dataclasses import dataclass
import logging

from sqlalchemy.orm import Session

from mailcraft.db.repositories.clients import ClientsRepository
from mailcraft.db.repositories.users import UsersRepository
from mailcraft.errors import NotFoundError, UnauthorizedError

logger = logging.getLogger("auth.access")


@dataclass(frozen=True)
class ClientAccessGrant:
    requester_id: str
    client_id: str
    is_admin: bool


def require_client_access(
    session: Session,
    *,
    requester_id: str | None,
    client_id: str,
) -> ClientAccessGrant:
    """Resolve whether the requester may act on the client.

    Admins skip the ownership filter but never see archived or missing clients.
    Nothing is cached; every call re-reads the user and client rows.
    """
    if not requester_id:
        raise UnauthorizedError("Unauthorized")

    is_admin = UsersRepository(session).is_admin(requester_id)
    owner_filter = None if is_admin else requester_id
    client = ClientsRepository(session).get_accessible(client_id, owner_id=owner_filter)
    if client is None:
        logger.info(
            "Client access denied",
            extra={"requester_id": requester_id, "client_id": client_id, "is_admin": is_admin},
        )
        raise NotFoundError("Client not found")

    return ClientAccessGrant(requester_id=requester_id, client_id=client.id, is_admin=is_admin)
