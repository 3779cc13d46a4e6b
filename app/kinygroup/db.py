from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def build_engine(db_url: str) -> Engine:
    is_postgres = db_url.startswith("postgres")
    engine_kwargs: dict[str, object] = {
        "future": True,
        "pool_pre_ping": True,
    }
    if is_postgres:
        engine_kwargs.update(
            {
                "pool_recycle": 1800,
                "pool_size": 5,
                "max_overflow": 10,
                "pool_timeout": 30,
            }
        )
    engine = create_engine(db_url, **engine_kwargs)
    if db_url.startswith("sqlite"):
        # SQLite ignores ON DELETE clauses unless foreign keys are switched on per connection.
        @event.listens_for(engine, "connect")
        def _sqlite_fk_pragma(dbapi_connection, connection_record):  # type: ignore[no-redef]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def make_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def init_db(app: Flask) -> None:
    engine = build_engine(app.config["DATABASE_URL"])
    if app.config.get("ENV") != "production":
        @event.listens_for(engine, "checkout")
        def _receive_checkout(dbapi_connection, connection_record, connection_proxy):  # type: ignore[no-redef]
            app.logger.debug("DB connection checkout from pool")
    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = make_sessionmaker(engine)


def get_engine(app: Flask | None = None) -> Engine:
    app = app or current_app
    return app.extensions["sqlalchemy_engine"]


def db_session(app: Flask | None = None) -> Session:
    """
    Request-scoped session. Use inside request handlers.
    """
    if getattr(g, "db_session", None) is not None:
        return g.db_session
    if app is None:
        app = current_app
    sm = app.extensions["sqlalchemy_sessionmaker"]
    g.db_session = sm()  # type: ignore[assignment]
    return g.db_session


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = getattr(g, "db_session", None)
    if s is not None:
        try:
            s.close()
        finally:
            g.db_session = None


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """
    Non-request helper for scripts and tests: yields a session and commits/rolls back.
    """
    sm = app.extensions["sqlalchemy_sessionmaker"]
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
