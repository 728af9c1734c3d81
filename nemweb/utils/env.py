import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def load_env_file() -> bool:
    """Load variables from a local .env file without overwriting exported ones.

    Skipped inside Docker: containers are configured through their environment.

    Returns:
        True when a .env file was loaded.
    """
    if os.path.exists("/.dockerenv"):
        logger.debug("Running in Docker, not loading .env")
        return False

    loaded = load_dotenv(override=False)

    if loaded:
        logger.info("Loaded local .env file (existing variables were NOT overwritten)")
    else:
        logger.debug("No local .env file found or loaded")
    return loaded
