from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping, Optional, Union

import psycopg
from loguru import logger
from psycopg import sql as psql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from .errors import StoreError, StoreUnavailable, map_db_error
from .metrics import metrics_registry
from .sql import create_table_statement

Statement = Union[str, psql.Composable]
Params = Optional[Mapping[str, Any]]


def make_pool(
    dsn: str, *, pool_max: int = 10, statement_timeout_ms: int | None = None
) -> AsyncConnectionPool:
    kwargs: dict[str, Any] = {"autocommit": False}
    if statement_timeout_ms:
        kwargs["options"] = f"-c statement_timeout={int(statement_timeout_ms)}"
    return AsyncConnectionPool(conninfo=dsn, max_size=pool_max, kwargs=kwargs, open=False)


class StoreHandle:
    """Shared, long-lived handle over the store's connection pool.

    Handlers borrow it for single statements; none of them closes it. There is
    no reconnect supervision: if the store goes away mid-life, statements fail
    with RetryableError until the pool recovers on its own.
    """

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def aclose(self) -> None:
        await self.pool.close()

    async def health(self) -> bool:
        try:
            await self.query("SELECT 1")
        except StoreError:
            return False
        return True

    async def ensure_schema(self, announcing: bool = True) -> None:
        await self.execute(create_table_statement(announcing))

    async def execute(self, statement: Statement, params: Params = None) -> int:
        """Run one parameterized statement and commit. Returns the affected row count."""
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(statement, params)
                    rowcount = cur.rowcount
                await conn.commit()
        except psycopg.Error as e:
            raise map_db_error(e) from e
        return rowcount

    async def query(self, statement: Statement, params: Params = None) -> list[dict]:
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(statement, params)
                    return list(await cur.fetchall())
        except psycopg.Error as e:
            raise map_db_error(e) from e


async def connect_store(
    dsn: str,
    max_attempts: int = 5,
    delay: float = 5.0,
    *,
    announcing: bool = True,
    connect_timeout: float = 10.0,
    pool_max: int = 10,
    statement_timeout_ms: int | None = None,
    pool_factory: Callable[[], AsyncConnectionPool] | None = None,
) -> StoreHandle:
    """
    Connect to the store and ensure the posts table exists.

    Retries with a fixed delay between attempts. Connecting and creating the
    schema count as one attempt, so a schema failure is retried as well.

    Raises:
        StoreUnavailable: every attempt failed; startup must abort.
    """
    if pool_factory is None:

        def pool_factory() -> AsyncConnectionPool:
            return make_pool(dsn, pool_max=pool_max, statement_timeout_ms=statement_timeout_ms)

    remaining = max_attempts
    while remaining > 0:
        pool = pool_factory()
        try:
            await pool.open(wait=True, timeout=connect_timeout)
            logger.info("Connected to the database")

            store = StoreHandle(pool)
            await store.ensure_schema(announcing)
            logger.success("Table 'posts' is ready")

            metrics_registry.store_connect_attempts_total.labels(outcome="success").inc()
            return store
        except (psycopg.Error, StoreError, OSError) as e:
            remaining -= 1
            metrics_registry.store_connect_attempts_total.labels(outcome="failure").inc()
            logger.warning(
                f"Failed to connect to the database ({remaining} attempts left): "
                f"{type(e).__name__}: {e}"
            )
            await pool.close()
            if remaining > 0:
                await asyncio.sleep(delay)

    raise StoreUnavailable(
        f"Could not connect to the database after {max_attempts} attempts"
    )
