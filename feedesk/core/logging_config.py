import logging

from feedesk.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """Configure root logging once for the process. Safe to call repeatedly."""
    level_name = (level or settings.log_level or "INFO").upper()
    logging.basicConfig(level=level_name, format=LOG_FORMAT)
    logging.getLogger("feedesk").setLevel(level_name)
