# migrations/env.py
from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from hr_portal_api.extensions import db
from hr_portal_api.models import load_all
from hr_portal_api.wsgi import app as flask_app

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

with flask_app.app_context():
    # user_attendance / external_employees must be on db.metadata for autogenerate
    load_all()
    db_uri = flask_app.config["SQLALCHEMY_DATABASE_URI"]

# the Flask config is the only source of the database URL
config.set_main_option("sqlalchemy.url", db_uri)

target_metadata = db.metadata

# SQLite cannot ALTER most things in place
render_as_batch = db_uri.startswith("sqlite")


def _configure(**kw) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=render_as_batch,
        **kw,
    )


def run_migrations_offline() -> None:
    _configure(url=config.get_main_option("sqlalchemy.url"), literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _configure(connection=connection)
        with flask_app.app_context():
            with context.begin_transaction():
                context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
