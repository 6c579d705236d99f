# FILE: database/db_config.py

from config import config


def get_database_url() -> str:
    """Returns the SQLAlchemy async URL for the panel store."""
    url = (config.DATABASE_URL or "").strip()
    if not url:
        raise ValueError("DATABASE_URL is not configured.")
    return url
