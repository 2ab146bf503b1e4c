"""
Database connection and session management for e-SME.
"""

from .connection import Database, create_engine, get_database, get_session

__all__ = ["Database", "create_engine", "get_database", "get_session"]
