"""Database bootstrap for local/dev environments.

Creates the configured database when it does not exist yet, then brings the schema to the
latest revision with ``alembic upgrade head``. The database name is validated before it is
used in SQL, because CREATE DATABASE cannot be parameterized in PostgreSQL.
"""

import argparse
import asyncio
import os
import re
import sys

from alembic import command
from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import create_async_engine

# Add the project root to the path
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, PROJECT_ROOT)


_DB_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def _validate_database_name(db_name: str) -> str:
  """Validate a PostgreSQL database name used as an identifier."""
  if not db_name:
    raise ValueError("Target database name is empty.")
  if not _DB_NAME_PATTERN.fullmatch(db_name):
    raise ValueError("Target database name contains invalid characters (allowed: A-Z, a-z, 0-9, _).")
  return db_name


async def create_database_if_not_exists(dsn: str) -> None:
  """Create the configured database if it does not already exist."""
  url = make_url(dsn)
  target_db = _validate_database_name(url.database or "")

  postgres_url = url.set(database="postgres")
  if postgres_url.drivername.startswith("postgresql") and "+asyncpg" not in postgres_url.drivername:
    postgres_url = postgres_url.set(drivername="postgresql+asyncpg")

  print(f"Connecting to postgres to check for database '{target_db}'...")
  # CREATE DATABASE cannot run inside a transaction.
  engine = create_async_engine(postgres_url, isolation_level="AUTOCOMMIT")

  try:
    async with engine.connect() as conn:
      result = await conn.execute(text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": target_db})
      if result.scalar() == 1:
        print(f"Database '{target_db}' already exists.")
      else:
        print(f"Database '{target_db}' does not exist. Creating...")
        await conn.execute(text(f'CREATE DATABASE "{target_db}"'))
        print(f"Database '{target_db}' created successfully.")
  finally:
    await engine.dispose()


def upgrade_schema(revision: str = "head") -> None:
  """Apply migrations up to ``revision`` using the project's alembic.ini."""
  config = Config(os.path.join(PROJECT_ROOT, "alembic.ini"))
  config.set_main_option("script_location", os.path.join(PROJECT_ROOT, "alembic"))
  print(f"Upgrading schema to {revision}...")
  # env.py runs its own event loop, so this must not be called from inside one.
  command.upgrade(config, revision)


def main(argv: list[str] | None = None) -> int:
  parser = argparse.ArgumentParser(description="Create the reel-jobs database and apply migrations.")
  parser.add_argument("--skip-migrations", action="store_true", help="Only create the database.")
  args = parser.parse_args(argv)

  from reeljobs.config import get_database_settings

  dsn = get_database_settings().pg_dsn
  if not dsn:
    print("Error: REEL_PG_DSN is not set.")
    return 1

  try:
    asyncio.run(create_database_if_not_exists(dsn))
  except Exception as e:
    print(f"Error checking/creating database: {e}")
    return 1

  if not args.skip_migrations:
    upgrade_schema()
  return 0


if __name__ == "__main__":
  sys.exit(main())
