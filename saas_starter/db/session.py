# saas_starter/db/session.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def make_engine(database_url: str, *, in_memory_shared: bool = False) -> Engine:
    """
    Build the engine for `database_url`.
    `in_memory_shared` keeps a single connection so an in-memory SQLite
    database survives across sessions (tests, one-off scripts).
    """
    kwargs = {"pool_pre_ping": True, "future": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}  # FastAPI runs sync handlers in a threadpool
        if in_memory_shared:
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)

    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )


def init_db(engine: Engine) -> None:
    """Create all tables known to the model registry (dev / tests only)."""
    from saas_starter.db.base import Base
    import saas_starter.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(bind=engine)
