from pydantic_settings import BaseSettings
from pydantic import Field, validator
from typing import Optional


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "EduRecords Request Server"
    DEBUG: bool = False
    DEV_MODE: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 7070
    LOG_LEVEL: str = "INFO"

    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./edurecords.db"
    DATABASE_ECHO: bool = False
    DATABASE_MEMORY: bool = False

    # Student updater settings
    UPDATER_PERIOD: int = 60  # seconds
    DEFAULT_PASSWORD: str = "password"
    PASSWORD_HASH_ROUNDS: int = Field(default=12, ge=4, le=31)

    # Ledger gateway settings (local mirror is used when no URL is set)
    LEDGER_GATEWAY_URL: Optional[str] = None
    LEDGER_GATEWAY_TOKEN: Optional[str] = None
    LEDGER_GATEWAY_TIMEOUT: float = 30.0
    LEDGER_FAILURE_THRESHOLD: int = 5
    LEDGER_RECOVERY_TIMEOUT: int = 60
    LEDGER_IDENTITY: str = "request-server"

    # Subject registry override (JSON list of {"id", "identifier", "name"})
    SUBJECTS_FILE: Optional[str] = None

    @validator("UPDATER_PERIOD")
    def clamp_updater_period(cls, v):
        return max(v, 1)

    @validator("LEDGER_GATEWAY_URL")
    def validate_gateway_url(cls, v):
        if not v:
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError("LEDGER_GATEWAY_URL must start with http:// or https://")
        return v.rstrip("/")

    @validator("DATABASE_URL")
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("DATABASE_URL is required")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
