from __future__ import annotations

from .engine import build_db_url, connection_scope, dispose_engine, get_engine
from .repositories import SqlBillStore, SqlUserDirectory

__all__ = [
    "SqlBillStore",
    "SqlUserDirectory",
    "build_db_url",
    "connection_scope",
    "dispose_engine",
    "get_engine",
]
