from __future__ import annotations

import pathlib

from .db import Database
from .errors import DatabaseUnavailable, QueryExecutionError
from .logging_utils import get_logger

logger = get_logger(__name__)

INIT_SCRIPT = pathlib.Path(__file__).parent / "sql" / "init.sql"


def load_init_script(path: pathlib.Path = INIT_SCRIPT) -> str:
    return path.read_text(encoding="utf-8")


async def initialize_database(db: Database, script: str | None = None) -> bool:
    """Create the demo tables, the get_customers() function and seed rows.

    Errors are logged and reported through the return value; the API keeps
    serving so the other routes stay usable against an existing database.
    """
    script = script if script is not None else load_init_script()
    try:
        await db.execute_script(script)
    except (QueryExecutionError, DatabaseUnavailable) as exc:
        logger.error("db_initialize_failed", error_kind=type(exc).__name__, error=str(exc))
        return False
    logger.info("db_initialized")
    return True


__all__ = ["initialize_database", "load_init_script", "INIT_SCRIPT"]
