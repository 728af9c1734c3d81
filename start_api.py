#!/usr/bin/env python3
"""
NEMweb Data API Startup Script

Starts the FastAPI server on API_PORT (default 3005).
"""

import sys

import uvicorn

from nemweb.deps import get_settings
from nemweb.utils.env import load_env_file

# LOG_LEVEL values uvicorn spells differently
UVICORN_LOG_LEVELS = {"warn": "warning", "fatal": "critical"}


def main():
    """Start the API server."""
    load_env_file()
    settings = get_settings()

    print("Starting NEMweb Data API...")
    print(f"   SQLite:   {settings.SQLITE_PATH}")
    print(f"   InfluxDB: {settings.INFLUX_URL} (bucket={settings.INFLUX_BUCKET})")
    print(f"   Docs:     http://localhost:{settings.API_PORT}/docs")
    print("")

    try:
        uvicorn.run(
            "nemweb.main:create_app",
            factory=True,
            host="0.0.0.0",
            port=settings.API_PORT,
            log_level=UVICORN_LOG_LEVELS.get(settings.LOG_LEVEL.lower(), settings.LOG_LEVEL.lower()),
        )
    except KeyboardInterrupt:
        print("\nShutting down NEMweb Data API...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
