"""
SQLAlchemy models for the session auth database.

All models inherit from db.engine.Base for Alembic migrations.
"""

from db.models.principal import Principal, AuthSession

__all__ = [
    "Principal",
    "AuthSession",
]
