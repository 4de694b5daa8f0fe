from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    APP_NAME: str = "HealLink"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Database (PostgreSQL via asyncpg in production, SQLite for local dev)
    DATABASE_URL: str = "sqlite+aiosqlite:///./heallink.db"
    DB_ECHO: bool = False

    # Sessions
    SESSION_SECRET: str = "dev-session-secret-change-in-production"
    SESSION_ALGORITHM: str = "HS256"
    SESSION_COOKIE_NAME: str = "heallink.sid"
    SESSION_COOKIE_SECURE: bool = False
    SESSION_TTL_MINUTES: int = 60 * 24  # 24 hours
    SESSION_PRUNE_INTERVAL_MINUTES: int = 60 * 24

    # Health-ID exchange wrapper
    HEALTH_ID_WRAPPER_URL: str = "http://localhost:8082"
    HEALTH_ID_CM_ID: str = "sbx"
    HEALTH_ID_TIMEOUT_SECONDS: float = 30.0

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
