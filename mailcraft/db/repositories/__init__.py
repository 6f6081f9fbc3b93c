from mailcraft.db.repositories.clients import ClientsRepository
from mailcraft.db.repositories.integrations import IntegrationsRepository
from mailcraft.db.repositories.prompts import PromptsRepository
from mailcraft.db.repositories.users import UsersRepository

__all__ = [
    "ClientsRepository",
    "IntegrationsRepository",
    "PromptsRepository",
    "UsersRepository",
]
