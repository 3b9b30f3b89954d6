from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, Field


class GeneratedQuery(BaseModel):
    sql: str
    param_values: List[Any] = Field(default_factory=list, alias="paramValues")


class SendSmsResponse(BaseModel):
    status: bool
    messageId: str = ""
    message: str = ""


class AcsTokenResponse(BaseModel):
    userId: str
    token: str
    expiresOn: str


class ErrorResponse(BaseModel):
    error: str


__all__ = [
    "AcsTokenResponse",
    "ErrorResponse",
    "GeneratedQuery",
    "SendSmsResponse",
]
