import json

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./gestion.db"

    # Session cookie set by the auth frontend
    session_cookie_name: str = "session_token"

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS, kept raw so pydantic does not parse a comma-separated value as JSON
    cors_origins_raw: str = Field(default="http://localhost:3000", validation_alias="CORS_ORIGINS")

    # Public quote links
    share_link_days: int = 30

    # Admin seed account (reset_db.py)
    admin_email: str = "admin@example.com"
    admin_username: str = "admin"
    admin_name: str = "Administrateur"
    admin_password: str | None = None

    @property
    def cors_origins(self) -> list[str]:
        """CORS origins, given either as a JSON list or comma-separated."""
        value = self.cors_origins_raw.strip()
        if not value:
            return []
        if value.startswith("["):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
