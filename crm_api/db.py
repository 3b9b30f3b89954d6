from __future__ import annotations

import asyncio
from typing import Any, List, Sequence

import asyncpg

from .config import PostgresConfig
from .errors import DatabaseUnavailable, QueryExecutionError
from .logging_utils import get_logger
from .params import coerce_params

logger = get_logger(__name__)


class Database:
    """Owns the asyncpg pool; the only component that talks to Postgres."""

    def __init__(self, cfg: PostgresConfig):
        self._cfg = cfg
        self._pool: asyncpg.pool.Pool | None = None

    @property
    def timeout_s(self) -> float:
        return self._cfg.statement_timeout_ms / 1000

    async def connect(self) -> None:
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(
                    host=self._cfg.host,
                    port=self._cfg.port,
                    user=self._cfg.user,
                    password=self._cfg.password,
                    database=self._cfg.database,
                    min_size=self._cfg.min_pool_size,
                    max_size=self._cfg.max_pool_size,
                    timeout=self.timeout_s,
                )
            except (OSError, asyncpg.PostgresError, asyncio.TimeoutError) as exc:
                raise DatabaseUnavailable(f"Cannot connect to {self._cfg.host}:{self._cfg.port}") from exc
            logger.info("db_pool_created", host=self._cfg.host, database=self._cfg.database)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def acquire(self) -> asyncpg.Connection:
        if self._pool is None:
            await self.connect()
        assert self._pool is not None
        try:
            return await self._pool.acquire(timeout=self.timeout_s)
        except asyncio.TimeoutError as exc:
            raise DatabaseUnavailable("Timed out waiting for a pooled connection") from exc
        except (OSError, asyncpg.InterfaceError) as exc:
            raise DatabaseUnavailable(str(exc)) from exc

    async def release(self, conn: asyncpg.Connection) -> None:
        if self._pool is None:
            return
        await self._pool.release(conn)

    async def query(self, sql: str, params: Sequence[Any] = ()) -> List[asyncpg.Record]:
        conn = await self.acquire()
        try:
            return await asyncio.wait_for(self._fetch(conn, sql, params), timeout=self.timeout_s)
        except asyncpg.PostgresError as exc:
            raise QueryExecutionError(str(exc)) from exc
        except asyncio.TimeoutError as exc:
            raise QueryExecutionError("Query execution timed out") from exc
        except (OSError, asyncpg.InterfaceError) as exc:
            raise DatabaseUnavailable(str(exc)) from exc
        finally:
            await self.release(conn)

    @staticmethod
    async def _fetch(conn: asyncpg.Connection, sql: str, params: Sequence[Any]) -> List[asyncpg.Record]:
        stmt = await conn.prepare(sql)
        return await stmt.fetch(*coerce_params(stmt.get_parameters(), params))

    async def execute_script(self, script: str) -> None:
        conn = await self.acquire()
        try:
            await conn.execute(script)
        except asyncpg.PostgresError as exc:
            raise QueryExecutionError(str(exc)) from exc
        except (OSError, asyncpg.InterfaceError) as exc:
            raise DatabaseUnavailable(str(exc)) from exc
        finally:
            await self.release(conn)


__all__ = ["Database"]
