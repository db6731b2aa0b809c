"""
Database module for the session auth service.

Provides SQLAlchemy models and engine helpers for principal persistence.
"""

from db.engine import build_engine, build_session_factory, get_engine, get_session_factory, Base

__all__ = ["build_engine", "build_session_factory", "get_engine", "get_session_factory", "Base"]
