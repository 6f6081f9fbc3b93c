from enum import Enum


class IntegrationProviderEnum(str, Enum):
    SQUALOMAIL = "SQUALOMAIL"


class IntegrationStatusEnum(str, Enum):
    CONNECTED = "CONNECTED"
    PENDING = "PENDING"
    DISCONNECTED = "DISCONNECTED"
    ERROR = "ERROR"


class PromptStatusEnum(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


def provider_from_slug(slug: str) -> IntegrationProviderEnum:
    try:
        return IntegrationProviderEnum(slug.strip().upper())
    except ValueError as exc:
        raise ValueError(f"Unsupported ESP provider: {slug!r}") from exc
