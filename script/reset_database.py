#!/usr/bin/env python3
"""
Database Reset Script
Wipe the ticket gate database and rebuild its schema

Steps:
1. Connect to the `postgres` maintenance database with asyncpg
2. Terminate sessions on the target database, then DROP and CREATE it
3. Run `alembic upgrade head` to build the schema (events, users, reservations,
   purchase intents, tickets, validation attempts, revocation and purchase audit)

Notes:
- Structure only, no rows; seed afterwards with `python -m script.seed_data`
- Stop the API and the cron scripts first, open sessions are terminated
"""

import asyncio
import subprocess
import sys

import asyncpg

from src.platform.config.core_setting import settings
from src.platform.constant.path import ALEMBIC_INI, BASE_DIR


MAINTENANCE_DB = 'postgres'


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


async def _connect(database: str) -> asyncpg.Connection:
    return await asyncpg.connect(
        host=settings.POSTGRES_SERVER,
        port=settings.POSTGRES_PORT,
        user=settings.POSTGRES_USER,
        password=settings.POSTGRES_PASSWORD.get_secret_value(),
        database=database,
    )


async def recreate_database(db_name: str) -> None:
    """DROP DATABASE cannot run inside a transaction; asyncpg autocommits plain execute()"""
    conn = await _connect(MAINTENANCE_DB)
    try:
        terminated = await conn.fetchval(
            """
            SELECT count(pg_terminate_backend(pid))
            FROM pg_stat_activity
            WHERE datname = $1 AND pid <> pg_backend_pid()
            """,
            db_name,
        )
        print(f'   🔌 Terminated {terminated} open session(s) on {db_name!r}')

        await conn.execute(f'DROP DATABASE IF EXISTS {_quote_ident(db_name)}')
        print(f'   🗑️ Dropped {db_name!r}')
        await conn.execute(f'CREATE DATABASE {_quote_ident(db_name)}')
        print(f'   🏗️ Created {db_name!r}')
    finally:
        await conn.close()


async def count_public_tables(db_name: str) -> int:
    conn = await _connect(db_name)
    try:
        return await conn.fetchval(
            "SELECT count(*) FROM information_schema.tables WHERE table_schema = 'public'"
        )
    finally:
        await conn.close()


def run_migrations() -> None:
    # env.py drives its own event loop, so alembic runs in a child process
    result = subprocess.run(
        ['alembic', '-c', str(ALEMBIC_INI), 'upgrade', 'head'],
        cwd=BASE_DIR,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        print(result.stdout)
        print(result.stderr, file=sys.stderr)
        raise RuntimeError(f'alembic upgrade head exited with {result.returncode}')
    print('   ✅ Migrations applied')


async def main() -> int:
    db_name = settings.POSTGRES_DB
    print(f'🔄 Resetting {db_name!r} on {settings.POSTGRES_SERVER}:{settings.POSTGRES_PORT}')

    try:
        await recreate_database(db_name)
        leftover = await count_public_tables(db_name)
        if leftover:
            raise RuntimeError(f'{leftover} table(s) survived the drop')
        run_migrations()
        print(f'   📊 {await count_public_tables(db_name)} tables in {db_name!r}')
    except (OSError, asyncpg.PostgresError, RuntimeError) as e:
        print(f'❌ Reset failed: {e}', file=sys.stderr)
        return 1

    print('✅ Database reset completed, seed with: python -m script.seed_data')
    return 0


if __name__ == '__main__':
    sys.exit(asyncio.run(main()))
