# FILE: database/models/base.py

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for the local panel store."""
    pass
