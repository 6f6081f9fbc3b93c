import os
import sys
import threading
from pathlib import Path
from typing import Callable, Optional

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_mailcraft.db")
os.environ.setdefault("ESP_PROVIDER", "squalomail")
os.environ.setdefault("ESP_BACKEND_BASE_URL", "https://esp-bridge.example.com")
os.environ.setdefault("ESP_BACKEND_SERVICE_TOKEN", "service_token")
os.environ.setdefault("CRON_SECRET", "cron_secret")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import delete  # noqa: E402

from mailcraft.db.base import SessionLocal, init_db  # noqa: E402
from mailcraft.db.deps import get_session  # noqa: E402
from mailcraft.db.enums import (  # noqa: E402
    IntegrationProviderEnum,
    IntegrationStatusEnum,
    PromptStatusEnum,
)
from mailcraft.db.models import Client, ClientIntegration, Prompt, User  # noqa: E402
from mailcraft.llm.client import LLMGenerationParams  # noqa: E402
from mailcraft.main import app  # noqa: E402
from mailcraft.routers.generation import get_llm_client  # noqa: E402


class FakeLLM:
    """Stands in for LLMClient; `responder` decides each answer from the call."""

    def __init__(self, responder: Optional[Callable[[str, str, LLMGenerationParams], str]] = None) -> None:
        self.responder = responder or (lambda _system, _user, _params: "{}")
        self.calls: list[tuple[str, str, LLMGenerationParams]] = []
        self._lock = threading.Lock()

    def complete(self, system_instruction, user_instruction, params=None):
        with self._lock:
            self.calls.append((system_instruction, user_instruction, params))
        return self.responder(system_instruction, user_instruction, params)


def _clear_tables(session) -> None:
    session.execute(delete(ClientIntegration))
    session.execute(delete(Client))
    session.execute(delete(Prompt))
    session.execute(delete(User))
    session.commit()


@pytest.fixture()
def db_session():
    init_db()
    session = SessionLocal()
    _clear_tables(session)
    try:
        yield session
    finally:
        session.rollback()
        _clear_tables(session)
        session.close()


@pytest.fixture()
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture()
def api_client(db_session, fake_llm):
    def get_session_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def seed_data(db_session):
    owner = User(id="user_owner", email="owner@example.com", is_admin=False)
    admin = User(id="user_admin", email="admin@example.com", is_admin=True)
    stranger = User(id="user_stranger", email="stranger@example.com", is_admin=False)
    db_session.add_all([owner, admin, stranger])
    db_session.commit()

    client = Client(id="client_connected", user_id=owner.id, name="Connected Shop")
    pending_client = Client(id="client_pending", user_id=owner.id, name="Pending Shop")
    bare_client = Client(id="client_bare", user_id=owner.id, name="No Integration Shop")
    archived_client = Client(id="client_archived", user_id=owner.id, name="Archived Shop", is_archived=True)
    db_session.add_all([client, pending_client, bare_client, archived_client])
    db_session.commit()

    db_session.add_all(
        [
            ClientIntegration(
                client_id=client.id,
                provider=IntegrationProviderEnum.SQUALOMAIL,
                status=IntegrationStatusEnum.CONNECTED,
            ),
            ClientIntegration(
                client_id=pending_client.id,
                provider=IntegrationProviderEnum.SQUALOMAIL,
                status=IntegrationStatusEnum.PENDING,
            ),
            ClientIntegration(
                client_id=archived_client.id,
                provider=IntegrationProviderEnum.SQUALOMAIL,
                status=IntegrationStatusEnum.CONNECTED,
            ),
        ]
    )
    db_session.commit()

    return {
        "owner": owner,
        "admin": admin,
        "stranger": stranger,
        "client": client,
        "pending_client": pending_client,
        "bare_client": bare_client,
        "archived_client": archived_client,
    }


@pytest.fixture()
def seed_prompts(db_session):
    prompts = [
        Prompt(
            id="prompt_minimal",
            name="Minimal",
            system_prompt="You write minimal emails.",
            user_prompt="Write a minimal email for {{product_name}} at {{product_link}}.",
        ),
        Prompt(
            id="prompt_bold",
            name="Bold",
            system_prompt="You write bold emails.",
            user_prompt="Write a bold email for {{product_name}} with {{image_url}}.",
            is_default=True,
        ),
        Prompt(
            id="prompt_retired",
            name="Retired",
            system_prompt="Unused.",
            user_prompt="Unused.",
            status=PromptStatusEnum.INACTIVE,
        ),
    ]
    db_session.add_all(prompts)
    db_session.commit()
    return prompts
