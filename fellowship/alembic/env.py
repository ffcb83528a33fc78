import asyncio
from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine
from fellowship.models import Base, DATABASE_URL

config = context.config
target_metadata = Base.metadata

# alembic.ini may pin a url; otherwise use the app's (already asyncpg-normalized) one
db_url = config.get_main_option('sqlalchemy.url') or DATABASE_URL


def run_migrations_offline():
    """Emit SQL for the stories schema without a live connection (`alembic upgrade --sql`)."""
    context.configure(url=db_url, target_metadata=target_metadata, literal_binds=True,
                      dialect_opts={'paramstyle': 'named'}, compare_type=True)
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection):
    context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online():
    engine = create_async_engine(db_url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
