from sqlalchemy import select
from sqlalchemy.orm import Session

from mailcraft.db.models import User


class UsersRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def is_admin(self, user_id: str) -> bool:
        stmt = select(User.is_admin).where(User.id == user_id)
        return bool(self.session.scalars(stmt).first())
