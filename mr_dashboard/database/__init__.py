"""Database package - re-exports all DB classes and factory functions."""

import threading
from typing import Optional

from mr_dashboard.database.base import Database
from mr_dashboard.database.merge_requests import MergeRequestsDB
from mr_dashboard.database.settings import SettingsDB

# Thread-safe singleton instances
_db_lock = threading.Lock()

_db_instance: Optional[Database] = None
_mrs_db: Optional[MergeRequestsDB] = None
_settings_db: Optional[SettingsDB] = None


def get_database() -> Database:
    global _db_instance
    if _db_instance is None:
        with _db_lock:
            if _db_instance is None:
                _db_instance = Database()
    return _db_instance


def get_mrs_db() -> MergeRequestsDB:
    global _mrs_db
    if _mrs_db is None:
        db = get_database()
        with _db_lock:
            if _mrs_db is None:
                _mrs_db = MergeRequestsDB(db)
    return _mrs_db


def get_settings_db() -> SettingsDB:
    global _settings_db
    if _settings_db is None:
        db = get_database()
        with _db_lock:
            if _settings_db is None:
                _settings_db = SettingsDB(db)
    return _settings_db


__all__ = [
    "Database", "MergeRequestsDB", "SettingsDB",
    "get_database", "get_mrs_db", "get_settings_db",
]
