"""
Application Context
===================

Process-wide resources shared by every request:

- settings: Settings snapshot the app was built with
- engine / session_factory: SQLAlchemy handles for the unit database
- influx: InfluxDB client (holds its own HTTP connection pool)

One AppContext is built by `create_app()` and stored on `app.state.context`.
Handlers receive it through `nemweb.deps.get_context`. Nothing in it is
mutated after construction; requests only borrow sessions and query APIs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from influxdb_client import InfluxDBClient
from influxdb_client.client.query_api import QueryApi
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .database import create_db_engine, create_session_factory, sqlite_url
from .influx import create_influx_client

if TYPE_CHECKING:
    from .deps import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppContext:
    settings: "Settings"
    engine: Engine
    session_factory: sessionmaker
    influx: InfluxDBClient

    @property
    def bucket(self) -> str:
        return self.settings.INFLUX_BUCKET

    def query_api(self) -> QueryApi:
        return self.influx.query_api()

    @classmethod
    def from_settings(cls, settings: "Settings") -> "AppContext":
        engine = create_db_engine(sqlite_url(settings.SQLITE_PATH))
        return cls(
            settings=settings,
            engine=engine,
            session_factory=create_session_factory(engine),
            influx=create_influx_client(settings.INFLUX_URL, settings.INFLUX_TOKEN, settings.INFLUX_ORG),
        )

    def close(self) -> None:
        logger.info("[STATE] Closing InfluxDB client and database engine")
        self.influx.close()
        self.engine.dispose()
