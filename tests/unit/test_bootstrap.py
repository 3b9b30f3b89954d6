from __future__ import annotations

import pytest

from crm_api.bootstrap import initialize_database, load_init_script
from crm_api.errors import DatabaseUnavailable


def test_init_script_defines_tables_and_function() -> None:
    script = load_init_script()
    for table in ("customers", "orders", "order_items", "reviews"):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in script
    assert "CREATE OR REPLACE FUNCTION get_customers()" in script


@pytest.mark.asyncio
async def test_initialize_runs_script(fake_db) -> None:
    assert await initialize_database(fake_db, "SELECT 1;")
    assert fake_db.scripts == ["SELECT 1;"]


@pytest.mark.asyncio
async def test_initialize_failure_is_reported_not_raised(fake_db) -> None:
    fake_db.error = DatabaseUnavailable("connection refused")
    assert not await initialize_database(fake_db)
