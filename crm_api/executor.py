from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List

from .db import Database
from .logging_utils import get_logger
from .models import GeneratedQuery
from .sql_validator import SQLValidator

logger = get_logger(__name__)


def normalize_rows(rows: Any) -> List[Dict[str, Any]]:
    """Coerce a driver result into a list of row dicts.

    No rows gives an empty list, a single mapping is wrapped, and a sequence
    of rows keeps its order.
    """
    if rows is None:
        return []
    if isinstance(rows, Mapping) or hasattr(rows, "keys"):
        return [dict(rows)]
    return [dict(row) for row in rows]


class QueryExecutor:
    def __init__(self, db: Database, validator: SQLValidator, max_rows: int = 1000):
        self._db = db
        self._validator = validator
        self._max_rows = max_rows

    async def execute(self, generated: GeneratedQuery) -> List[Dict[str, Any]]:
        sql = self._validator.validate(generated.sql)
        logger.info("execute_sql", sql=sql, params=len(generated.param_values))
        records = await self._db.query(sql, generated.param_values)
        rows = normalize_rows(records)
        if len(rows) > self._max_rows:
            logger.warning("execute_sql_truncated", rows=len(rows), max_rows=self._max_rows)
            rows = rows[: self._max_rows]
        return rows


__all__ = ["QueryExecutor", "normalize_rows"]
