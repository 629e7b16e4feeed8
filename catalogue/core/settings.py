from __future__ import annotations

from typing import List

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Pe host vin din .env; în Docker din env_file/environment.
load_dotenv(override=False)


def _split_csv(raw: str) -> List[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field("dev")
    APP_TITLE: str = "catalogue"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    ROOT_PATH: str = ""
    DISABLE_DOCS: bool = False
    BUILD_SHA: str = ""

    # DB
    DATABASE_URL: str = Field("sqlite:///./catalogue.db", description="postgresql+psycopg://appuser:<PASS>@db:5432/appdb")
    DB_SCHEMA: str = ""
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 1800
    DB_POOL_TIMEOUT: int = 30
    SQLALCHEMY_CREATE_ALL: bool = False

    # Alembic
    ALEMBIC_CONFIG: str = "alembic.ini"
    ALEMBIC_VERSION_TABLE: str = "alembic_version"

    # Fără auth: utilizatorul "curent" e o constantă
    DEFAULT_USER_ID: int = 1

    # HTTP
    MAX_BODY_SIZE_BYTES: int = 0  # 0 = dezactivat
    CORS_ORIGINS: str = ""
    TRUSTED_HOSTS: str = ""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def cors_origins(self) -> List[str]:
        return _split_csv(self.CORS_ORIGINS)

    @property
    def trusted_hosts(self) -> List[str]:
        return _split_csv(self.TRUSTED_HOSTS)

    @property
    def db_schema(self) -> str | None:
        # SQLite nu are scheme (ar fi interpretat ca baza atașată)
        if self.DATABASE_URL.startswith("sqlite"):
            return None
        return self.DB_SCHEMA.strip() or None


settings = Settings()
