from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from mailcraft.db.enums import PromptStatusEnum
from mailcraft.db.models import Prompt


class PromptsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_active(self, prompt_ids: Optional[Sequence[str]] = None) -> List[Prompt]:
        stmt = (
            select(Prompt)
            .where(Prompt.status == PromptStatusEnum.ACTIVE)
            .order_by(Prompt.is_default.desc(), Prompt.name.asc())
        )
        if prompt_ids is not None:
            stmt = stmt.where(Prompt.id.in_(list(prompt_ids)))
        return list(self.session.scalars(stmt).all())
