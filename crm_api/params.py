from __future__ import annotations

import decimal
from typing import Any, Callable, Dict, List, Sequence

from dateutil import parser as date_parser

from .errors import QueryExecutionError

TRUE_WORDS = {"true", "t", "yes", "y", "on", "1"}
FALSE_WORDS = {"false", "f", "no", "n", "off", "0"}
TEXT_TYPES = {"text", "varchar", "bpchar", "name", "citext"}


def _to_int(value: Any) -> int:
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value!r} is not an integer")
        return int(value)
    return int(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        word = value.strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
        raise ValueError(f"{value!r} is not a boolean")
    return bool(value)


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


def _to_numeric(value: Any) -> decimal.Decimal:
    try:
        return decimal.Decimal(str(value))
    except decimal.InvalidOperation as exc:
        raise ValueError(f"{value!r} is not numeric") from exc


COERCERS: Dict[str, Callable[[Any], Any]] = {
    "int2": _to_int,
    "int4": _to_int,
    "int8": _to_int,
    "oid": _to_int,
    "float4": float,
    "float8": float,
    "numeric": _to_numeric,
    "bool": _to_bool,
    "date": lambda v: date_parser.parse(v).date(),
    "timestamp": lambda v: date_parser.parse(v).replace(tzinfo=None),
    "timestamptz": date_parser.parse,
    "time": lambda v: date_parser.parse(v).time(),
}


def coerce_params(param_types: Sequence[Any], values: Sequence[Any]) -> List[Any]:
    """Convert model-supplied values to the Python types asyncpg encodes for each parameter.

    asyncpg sends typed binary parameters, so "2023-03-01" bound to a date
    column has to become a ``datetime.date`` first. Values of other kinds and
    parameters of unlisted types pass through unchanged.
    """
    coerced = []
    for index, value in enumerate(values):
        pg_type = param_types[index] if index < len(param_types) else None
        if value is None or pg_type is None or pg_type.kind != "scalar":
            coerced.append(value)
            continue
        if pg_type.name in TEXT_TYPES:
            coerced.append(_to_text(value))
            continue
        coercer = COERCERS.get(pg_type.name)
        needs_coercion = isinstance(value, str) or (coercer is _to_int and isinstance(value, float))
        if coercer is None or not needs_coercion:
            coerced.append(value)
            continue
        try:
            coerced.append(coercer(value))
        except (ValueError, OverflowError) as exc:
            raise QueryExecutionError(f"invalid input for query argument ${index + 1} ({pg_type.name}): {value!r}") from exc
    return coerced


__all__ = ["coerce_params"]
