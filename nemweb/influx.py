"""InfluxDB client factory."""

import logging

from influxdb_client import InfluxDBClient

logger = logging.getLogger(__name__)


def create_influx_client(url: str, token: str, org: str) -> InfluxDBClient:
    """Create a client. No request is made until the first query."""
    client = InfluxDBClient(url=url, token=token, org=org)
    logger.info(f"[INFLUX] Client created for {url} (org={org})")
    return client
