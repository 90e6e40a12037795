from __future__ import annotations

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine

from .models import metadata

_ENGINES: dict[str, Engine] = {}


def build_db_url(db_path: Path) -> str:
    return f"sqlite+pysqlite:///{db_path}"


def _on_connect(dbapi_conn, _record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@contextmanager
def connection_scope(engine: Engine) -> Iterator[Connection]:
    """One transaction: committed on exit, rolled back if the block raises."""
    with engine.begin() as conn:
        yield conn


def get_engine(db_path: Path) -> Engine:
    """Return the cached engine for ``db_path``, creating the file and schema on first use."""
    key = str(db_path.resolve())
    if key in _ENGINES:
        return _ENGINES[key]

    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(build_db_url(db_path), connect_args={"check_same_thread": False})
    event.listen(engine, "connect", _on_connect)
    with connection_scope(engine) as conn:
        metadata.create_all(bind=conn, checkfirst=True)

    _ENGINES[key] = engine
    return engine


def dispose_engine(db_path: Path) -> None:
    engine = _ENGINES.pop(str(db_path.resolve()), None)
    if engine is not None:
        engine.dispose()


@atexit.register
def dispose_all_engines() -> None:
    for key in list(_ENGINES):
        _ENGINES.pop(key).dispose()
