from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from mailcraft.db.enums import IntegrationProviderEnum
from mailcraft.db.models import ClientIntegration


class IntegrationsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, client_id: str, provider: IntegrationProviderEnum) -> Optional[ClientIntegration]:
        stmt = select(ClientIntegration).where(
            ClientIntegration.client_id == client_id,
            ClientIntegration.provider == provider,
        )
        return self.session.scalars(stmt).first()
