"""Database bootstrap helpers for the site index."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker

from . import models
from .config import DB_PATH, ensure_app_dir


_engine = None
_engine_path: Path | None = None
_SessionLocal: sessionmaker[Session] | None = None


def get_engine(db_path: Path | str | None = None):
    """Return the engine for ``db_path``, rebuilding it when the path changes."""
    global _engine, _engine_path, _SessionLocal
    path = Path(db_path or _engine_path or DB_PATH)
    if _engine is None or path != _engine_path:
        reset_engine()
        ensure_app_dir(path.parent)
        _engine = create_engine(f"sqlite:///{path}", future=True)
        event.listen(_engine, "connect", _enable_foreign_keys)
        _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False, future=True)
        _engine_path = path
        _bootstrap_schema(_engine)
    return _engine


def reset_engine() -> None:
    """Dispose of the cached engine so the next call opens a fresh one."""
    global _engine, _engine_path, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _engine_path = None
    _SessionLocal = None


def init_db(db_path: Path | str | None = None) -> None:
    """Create all tables."""
    engine = get_engine(db_path=db_path)
    models.Base.metadata.create_all(engine)


@contextmanager
def session_scope(db_path: Path | str | None = None) -> Iterator[Session]:
    """Provide a transactional scope."""
    if _SessionLocal is None or db_path is not None:
        get_engine(db_path=db_path)
    assert _SessionLocal is not None  # safety
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:  # pragma: no cover
        session.rollback()
        raise
    finally:
        session.close()


def _bootstrap_schema(engine) -> None:
    """Create tables and record the schema version on first use."""
    models.Base.metadata.create_all(engine)
    with Session(engine) as session, session.begin():
        version = session.scalar(select(models.Meta).where(models.Meta.key == "schema_version"))
        if version is None:
            session.add(
                models.Meta(
                    key="schema_version",
                    value=models.SCHEMA_VERSION,
                    updated_at=datetime.now(timezone.utc),
                )
            )


def _enable_foreign_keys(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()
