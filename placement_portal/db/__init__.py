"""
Database module - SQL engine, sessions and table definitions.
"""
from placement_portal.db.postgres import check_database_connection, get_db_session, init_db

__all__ = [
    "get_db_session",
    "init_db",
    "check_database_connection",
]
