"""
Logging setup for the application.
"""
import logging
from divvy.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """Configure root logging once for the API process."""
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    if settings.DEBUG:
        level_name = "DEBUG"
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
    
    # SQLAlchemy echoes through its own logger when DB_ECHO is set
    if not settings.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
