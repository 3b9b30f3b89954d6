from __future__ import annotations

from typing import Iterable

import sqlglot
from sqlglot import expressions as exp

from .config import SecurityConfig
from .errors import UnsafeQueryError

READ_ONLY_ROOTS = (exp.Select, exp.Union, exp.Intersect, exp.Except)
WRITE_NODES = (exp.Insert, exp.Update, exp.Delete, exp.Drop, exp.Create)


class SQLValidator:
    """Allow-list check run on every model-generated statement before execution."""

    def __init__(self, cfg: SecurityConfig):
        self._cfg = cfg
        self._disallowed = {fn.lower() for fn in cfg.disallowed_functions}

    @property
    def enabled(self) -> bool:
        return self._cfg.enforce_select_only

    def validate(self, sql: str) -> str:
        if not self.enabled:
            return sql
        try:
            statements = [stmt for stmt in sqlglot.parse(sql, read="postgres") if stmt is not None]
        except sqlglot.errors.SqlglotError as exc:
            raise UnsafeQueryError(f"Invalid SQL: {exc}") from exc
        if len(statements) != 1:
            raise UnsafeQueryError("Exactly one statement is allowed")
        parsed = statements[0]
        self._enforce_select_only(parsed)
        self._enforce_disallowed_functions(parsed.walk())
        return sql

    def _enforce_select_only(self, expr: exp.Expression) -> None:
        if not isinstance(expr, READ_ONLY_ROOTS):
            raise UnsafeQueryError("Only SELECT statements are allowed")
        for node in expr.walk():
            node = node[0] if isinstance(node, tuple) else node
            if isinstance(node, WRITE_NODES):
                raise UnsafeQueryError(f"{node.key.upper()} is not allowed")
            if isinstance(node, exp.Select) and node.args.get("into") is not None:
                raise UnsafeQueryError("SELECT INTO is not allowed")
            if isinstance(node, exp.Lock):
                raise UnsafeQueryError("Row locking clauses are not allowed")

    def _enforce_disallowed_functions(self, nodes: Iterable) -> None:
        for node in nodes:
            node = node[0] if isinstance(node, tuple) else node
            if isinstance(node, exp.Func) and node.name.lower() in self._disallowed:
                raise UnsafeQueryError(f"Function {node.name} is not allowed")


__all__ = ["SQLValidator"]
