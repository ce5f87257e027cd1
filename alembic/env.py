# alembic/env.py
import os
from logging.config import fileConfig

from alembic import context
from dotenv import find_dotenv, load_dotenv

from saas_starter.db.base import Base
from saas_starter.db.session import make_engine
import saas_starter.models  # noqa: F401  (populates Base.metadata)

# DATABASE_URL from .env, same as the application
load_dotenv(find_dotenv(usecwd=True), override=False)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./saas_starter.db")
config.set_main_option("sqlalchemy.url", DATABASE_URL)

target_metadata = Base.metadata


def _is_sqlite() -> bool:
    return DATABASE_URL.startswith("sqlite")


def include_object(object, name, type_, reflected, compare_to):
    """
    Never propose DROP for objects that exist in the database but not in the
    ORM (reflected, nothing to compare to).
    """
    if type_ == "table" and name == "alembic_version":
        return False
    if reflected and compare_to is None and type_ in {"table", "index", "unique_constraint", "foreign_key"}:
        return False
    return True


def process_revision_directives(context, revision, directives):
    # drop empty autogenerate revisions
    if getattr(context.config.cmd_opts, "autogenerate", False):
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []


def run_migrations_offline():
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        include_object=include_object,
        render_as_batch=_is_sqlite(),
        process_revision_directives=process_revision_directives,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    engine = make_engine(DATABASE_URL)
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            include_object=include_object,
            render_as_batch=_is_sqlite(),  # SQLite-friendly ALTER TABLE
            process_revision_directives=process_revision_directives,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
