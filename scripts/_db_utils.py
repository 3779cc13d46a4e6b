from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.kinygroup.config import resolve_database_url
from app.kinygroup.db import build_engine, make_sessionmaker


@contextmanager
def script_session(database_url: str | None = None):
    """Commit-on-success session for CLI scripts, outside any Flask app."""
    engine = build_engine(resolve_database_url(database_url))
    s: Session = make_sessionmaker(engine)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
