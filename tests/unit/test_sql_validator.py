from __future__ import annotations

import pytest

from crm_api.config import SecurityConfig
from crm_api.errors import QueryExecutionError, UnsafeQueryError
from crm_api.sql_validator import SQLValidator


@pytest.fixture
def validator() -> SQLValidator:
    return SQLValidator(SecurityConfig())


def test_allows_select(validator: SQLValidator) -> None:
    sql = "SELECT SUM(total) FROM orders"
    assert validator.validate(sql) == sql


def test_allows_cte_and_union(validator: SQLValidator) -> None:
    validator.validate("WITH big AS (SELECT id FROM orders WHERE total > 100) SELECT COUNT(*) FROM big")
    validator.validate("SELECT city FROM customers UNION SELECT comment FROM reviews")


def test_enforces_select_only(validator: SQLValidator) -> None:
    with pytest.raises(UnsafeQueryError):
        validator.validate("DELETE FROM customers")


def test_rejects_update(validator: SQLValidator) -> None:
    with pytest.raises(UnsafeQueryError):
        validator.validate("UPDATE orders SET total = 0")


def test_rejects_multiple_statements(validator: SQLValidator) -> None:
    with pytest.raises(UnsafeQueryError):
        validator.validate("SELECT 1; DROP TABLE customers")


def test_rejects_disallowed_function(validator: SQLValidator) -> None:
    with pytest.raises(UnsafeQueryError):
        validator.validate("SELECT pg_sleep(1)")


def test_unsafe_query_is_a_query_execution_error(validator: SQLValidator) -> None:
    with pytest.raises(QueryExecutionError):
        validator.validate("INSERT INTO customers (company) VALUES ('x')")


def test_disabled_validator_passes_through() -> None:
    validator = SQLValidator(SecurityConfig(enforce_select_only=False))
    assert validator.validate("DELETE FROM customers") == "DELETE FROM customers"


def test_rejects_select_into(validator: SQLValidator) -> None:
    with pytest.raises(UnsafeQueryError):
        validator.validate("SELECT * INTO customers_copy FROM customers")


def test_rejects_data_modifying_cte(validator: SQLValidator) -> None:
    with pytest.raises(UnsafeQueryError):
        validator.validate("WITH d AS (DELETE FROM reviews RETURNING *) SELECT * FROM d")


def test_rejects_row_locking(validator: SQLValidator) -> None:
    with pytest.raises(UnsafeQueryError):
        validator.validate("SELECT * FROM orders FOR UPDATE")


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT pg_read_binary_file('/etc/passwd')",
        "SELECT set_config('search_path', 'evil', false)",
        "SELECT dblink_exec('host=x', 'DROP TABLE customers')",
    ],
)
def test_rejects_privileged_functions(validator: SQLValidator, sql: str) -> None:
    with pytest.raises(UnsafeQueryError):
        validator.validate(sql)
