"""Migration environment for the MKcode schema.

The database URL comes from ``mkcode.config`` (and so from ``.env``) unless
``sqlalchemy.url`` is set in alembic.ini or passed with ``-x url=...``.
"""

from logging.config import fileConfig

from dotenv import load_dotenv

from alembic import context

load_dotenv()

from mkcode.config import Settings, get_settings  # noqa: E402
from mkcode.database import Base, create_db_engine  # noqa: E402

# Every model module must be imported for its table to be in the metadata
import mkcode.models.activity_log  # noqa: E402,F401
import mkcode.models.tokens  # noqa: E402,F401
import mkcode.models.user  # noqa: E402,F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _settings() -> Settings:
    url = context.get_x_argument(as_dictionary=True).get("url") or config.get_main_option("sqlalchemy.url")
    return Settings(DATABASE_URL=url) if url else get_settings()


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    context.configure(
        url=_settings().DATABASE_URL,
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    # Same engine options as the app; SQLite needs batch mode for ALTER
    engine = create_db_engine(_settings())
    try:
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=Base.metadata,
                render_as_batch=connection.dialect.name == "sqlite",
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
