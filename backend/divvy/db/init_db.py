"""
Database initialization script.
"""
import logging
from divvy.db.session import init_db
from divvy.core.logging_config import configure_logging

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    configure_logging()
    logger.info("Creating database tables...")
    init_db()
    logger.info("Database tables created successfully!")
