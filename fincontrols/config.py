from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    APP_NAME: str = "FinControls"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PORT: int = 8000

    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/fincontrols"
    DATABASE_SYNC_URL: str = ""
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_RECYCLE: int = 300
    DB_SSL_REQUIRED: bool = False

    JWT_PUBLIC_KEY_PATH: Optional[str] = "keys/public.pem"
    JWT_ALGORITHM: str = "RS256"

    # "End of today" for future-date checks is evaluated on this clock
    REFERENCE_TIMEZONE: str = "Africa/Lusaka"
    DEFAULT_APPROVER_ROLE: str = "accountant"
    NOTIFICATION_MAX_ATTEMPTS: int = 3

    CORS_ORIGINS: str = "http://localhost:3000"
    CORS_ORIGIN_REGEX: Optional[str] = None

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
