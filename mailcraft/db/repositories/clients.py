from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from mailcraft.db.models import Client


class ClientsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_accessible(self, client_id: str, owner_id: Optional[str] = None) -> Optional[Client]:
        """Return a non-archived client, optionally restricted to one owner."""
        stmt = select(Client).where(Client.id == client_id, Client.is_archived.is_(False))
        if owner_id is not None:
            stmt = stmt.where(Client.user_id == owner_id)
        return self.session.scalars(stmt).first()
