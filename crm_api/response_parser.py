from __future__ import annotations

import json
import re
from typing import Any, Dict

from jsonschema import Draft7Validator

from .errors import MalformedResponse
from .models import GeneratedQuery

JSON_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.IGNORECASE | re.DOTALL)

GENERATED_QUERY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["sql"],
    "properties": {
        "sql": {"type": "string", "minLength": 1},
        "paramValues": {
            "type": ["array", "null"],
            "items": {"type": ["string", "number", "boolean", "null"]},
        },
    },
}

_validator = Draft7Validator(GENERATED_QUERY_SCHEMA)


def _strip_fence(text: str) -> str:
    text = text.strip()
    match = JSON_FENCE_RE.match(text)
    return match.group(1) if match else text


def parse_generated_query(text: str | None) -> GeneratedQuery:
    if not text or not text.strip():
        raise MalformedResponse("Completion was empty")
    try:
        payload = json.loads(_strip_fence(text))
    except json.JSONDecodeError as exc:
        raise MalformedResponse(f"Completion is not valid JSON: {exc.msg}") from exc
    errors = sorted(_validator.iter_errors(payload), key=lambda err: list(err.path))
    if errors:
        details = "; ".join(err.message for err in errors)
        raise MalformedResponse(f"Completion has the wrong shape: {details}")
    if not payload["sql"].strip():
        raise MalformedResponse("Completion has an empty sql field")
    return GeneratedQuery(sql=payload["sql"], paramValues=list(payload.get("paramValues") or []))


__all__ = ["parse_generated_query", "GENERATED_QUERY_SCHEMA"]
