from __future__ import annotations

from typing import Dict, List

from .errors import InvalidRequest

SCHEMA_DESCRIPTION = """### Postgres SQL tables, with their properties:
#
# customers (id, company, city, email)
# orders (id, customer_id, date, total)
# order_items (id, order_id, product_id, quantity, price)
# reviews (id, customer_id, review, date, comment)
#"""

SQL_CONSTRAINTS = """# Only allow SELECT queries. UPDATE, INSERT, DELETE are not allowed.
# Convert any strings to a Postgresql parameterized query value to avoid SQL injection attacks"""

RESPONSE_INSTRUCTIONS = """Return a JSON object with the SQL query and the parameter values in it.
Example: { "sql": "", "paramValues": [] }"""


def build_sql_prompt(user_query: str | None) -> str:
    if user_query is None or not user_query.strip():
        raise InvalidRequest('Missing parameter "query".')
    return "\n".join([
        SCHEMA_DESCRIPTION,
        f"### {user_query}",
        "#",
        SQL_CONSTRAINTS,
        "",
        RESPONSE_INSTRUCTIONS,
    ])


def build_sql_messages(user_query: str | None) -> List[Dict[str, str]]:
    return [{"role": "user", "content": build_sql_prompt(user_query)}]


__all__ = ["SCHEMA_DESCRIPTION", "build_sql_prompt", "build_sql_messages"]
