"""
DB utilities (sqlite default, postgresql supported).

Defaults:
- DATABASE_URL: sqlite:///./data/app.db
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, Result
from sqlalchemy.orm import Session
from sqlmodel import SQLModel

from .config import get_database_url


def _repo_root() -> Path:
    # apps/api/plus_api/core/db.py -> repo root = parents[4]
    return Path(__file__).resolve().parents[4]


def resolve_sqlite_path(database_url: str) -> Optional[Path]:
    if not database_url.startswith("sqlite:///"):
        return None
    p = database_url[len("sqlite:///") :]

    # absolute unix
    if p.startswith("/"):
        return Path(p)

    # absolute windows drive, both C:/ and C:\ forms
    if len(p) >= 3 and p[1] == ":" and (p[2] == "/" or p[2] == "\\"):
        return Path(p)

    # relative -> repo root
    return (_repo_root() / p).resolve()


_engine: Optional[Engine] = None
_engine_url: Optional[str] = None


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cur = dbapi_connection.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def get_engine() -> Engine:
    global _engine, _engine_url
    url = get_database_url()
    if _engine is not None and _engine_url == url:
        return _engine
    if _engine is not None:
        _engine.dispose()

    connect_args = {}
    resolved = url
    if url.startswith("sqlite:"):
        connect_args = {"check_same_thread": False}
        sp = resolve_sqlite_path(url)
        if sp is not None:
            sp.parent.mkdir(parents=True, exist_ok=True)
            resolved = "sqlite:///" + sp.as_posix()

    engine = create_engine(resolved, future=True, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    _engine = engine
    _engine_url = url
    return _engine


def reset_engine() -> None:
    global _engine, _engine_url
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _engine_url = None


def create_schema() -> None:
    # table models register on SQLModel.metadata when their modules import
    from plus_api.modules.accounts import models as _accounts  # noqa: F401
    from plus_api.modules.cosmetics import models as _cosmetics  # noqa: F401

    SQLModel.metadata.create_all(get_engine())


@contextmanager
def session_scope() -> Iterator[Session]:
    """One session, one transaction: commit on success, rollback on any error."""
    with Session(get_engine(), expire_on_commit=False) as session:
        with session.begin():
            yield session


def insert_ignore(
    session: Session,
    model: Any,
    rows: Sequence[Mapping[str, Any]],
    index_elements: Iterable[str],
    returning: Sequence[str] = (),
) -> Optional[Result]:
    """
    INSERT ... ON CONFLICT DO NOTHING [RETURNING ...].

    Rows that collide with the unique key named by index_elements are
    dropped by the database. With returning, the result holds only the rows
    this statement actually inserted.
    """
    if not rows:
        return None

    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        raise RuntimeError(f"insert_ignore not supported for dialect {dialect!r}")

    table = model.__table__
    stmt = insert(table).values(list(rows)).on_conflict_do_nothing(index_elements=list(index_elements))
    if returning:
        stmt = stmt.returning(*[table.c[name] for name in returning])
    return session.execute(stmt)


def db_health() -> Dict[str, Any]:
    url = get_database_url()
    kind = url.split(":", 1)[0].split("+", 1)[0] if ":" in url else "unknown"
    sp = resolve_sqlite_path(url)
    path = str(sp.as_posix()) if sp is not None else None

    try:
        eng = get_engine()
        with eng.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok", "kind": kind, "path": path}
    except Exception as e:
        return {"status": "error", "kind": kind, "path": path, "error": str(e)}

