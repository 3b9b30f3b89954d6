#!/usr/bin/env python3
"""Create the demo tables, get_customers() and seed rows in the configured database."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from crm_api.bootstrap import INIT_SCRIPT, initialize_database, load_init_script
from crm_api.config import load_settings
from crm_api.db import Database
from crm_api.errors import ConfigurationError, DatabaseUnavailable
from crm_api.logging_utils import configure_logging


async def run(script: str) -> bool:
    settings = load_settings()
    configure_logging(settings.app.log_level)
    db = Database(settings.postgres)
    try:
        await db.connect()
        return await initialize_database(db, script)
    finally:
        await db.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--script", type=Path, default=INIT_SCRIPT)
    args = parser.parse_args()

    try:
        ok = asyncio.run(run(load_init_script(args.script)))
    except (ConfigurationError, DatabaseUnavailable) as exc:
        sys.exit(str(exc))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
