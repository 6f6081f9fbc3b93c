from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load env values for components that read os.environ directly (e.g., the LLM client).
_project_root = Path(__file__).resolve().parents[1]
load_dotenv(_project_root / ".env", override=False)


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"

    DATABASE_URL: str = "sqlite:///./mailcraft.db"
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    # External ESP bridge. Optional at startup; the backend proxy checks them on every call.
    ESP_PROVIDER: str = "squalomail"
    ESP_BACKEND_BASE_URL: str | None = None
    ESP_BACKEND_SERVICE_TOKEN: str | None = None
    ESP_BACKEND_TIMEOUT_SECONDS: float = 20.0

    SCRAPER_TIMEOUT_SECONDS: float = 15.0
    SCRAPER_USER_AGENT: str = "Mozilla/5.0 (compatible; MailcraftBot/1.0)"
    SCRAPER_PAGE_TEXT_MAX_CHARS: int = 12000
    SCRAPER_MAX_URLS: int = 10
    SCRAPER_MAX_CONCURRENCY: int = 4

    TEMPLATE_GENERATION_MAX_CONCURRENCY: int = 4
    LLM_EXTRACTION_MODEL: str = "gpt-4o-mini"
    LLM_TEMPLATE_MODEL: str = "gpt-4o-mini"

    CRON_SECRET: str | None = None

    @field_validator("BACKEND_CORS_ORIGINS")
    @classmethod
    def normalize_origins(cls, value: str) -> str:
        origins = [origin.strip() for origin in value.split(",") if origin.strip()]
        return ",".join(origins)

    @field_validator("TEMPLATE_GENERATION_MAX_CONCURRENCY", "SCRAPER_MAX_CONCURRENCY", "SCRAPER_MAX_URLS")
    @classmethod
    def validate_positive(cls, value: int, info: ValidationInfo) -> int:
        if value <= 0:
            raise ValueError(f"{info.field_name} must be greater than zero")
        return value

    @property
    def cors_origins(self) -> list[str]:
        return [origin for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin]

    @property
    def esp_provider_slug(self) -> str:
        return self.ESP_PROVIDER.strip().lower()

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
