"""Dependency providers and settings management."""

from functools import lru_cache
from typing import Dict, Generator, List

from fastapi import Depends, Request
from influxdb_client.client.query_api import QueryApi
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.orm import Session

from .state import AppContext


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    SQLITE_PATH: str = "/data/database.sqlite"

    INFLUX_URL: str = "http://localhost:8086"
    INFLUX_TOKEN: str = "aaaaaaa"
    INFLUX_ORG: str = "nema"
    INFLUX_BUCKET: str = "nema_bucket"

    API_PORT: int = 3005
    LOG_LEVEL: str = "info"
    TESTING: bool = False

    BACKEND_CORS_ORIGINS: str = (
        "http://127.0.0.1:3005,http://127.0.0.1:3000,http://127.0.0.1,"
        "http://localhost:3005,http://localhost:3000,http://localhost"
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


def get_context(request: Request) -> AppContext:
    """The AppContext built by create_app()."""
    return request.app.state.context


def get_db(context: AppContext = Depends(get_context)) -> Generator[Session, None, None]:
    """Yield a database session for the request and close it afterwards."""
    db = context.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_query_api(context: AppContext = Depends(get_context)) -> QueryApi:
    return context.query_api()


def get_filter_params(request: Request) -> Dict[str, List[str]]:
    """Query string as `{name: [values...]}`, the input of the filter parser."""
    params = request.query_params
    return {key: params.getlist(key) for key in params.keys()}
