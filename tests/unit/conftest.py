from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pytest

from crm_api.communication import SmsResult, VoiceToken
from crm_api.config import CommunicationConfig, LLMConfig, PostgresConfig, Settings
from crm_api.errors import InvalidRequest
from crm_api.llm_client import LLMClient, Messages


class FakeDatabase:
    def __init__(self, rows: Any = None, error: Optional[Exception] = None):
        self.rows = rows
        self.error = error
        self.queries: List[tuple] = []
        self.scripts: List[str] = []
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def query(self, sql: str, params: Sequence[Any] = ()) -> Any:
        self.queries.append((sql, list(params)))
        if self.error is not None:
            raise self.error
        return self.rows

    async def execute_script(self, script: str) -> None:
        self.scripts.append(script)
        if self.error is not None:
            raise self.error


class StubLLMClient(LLMClient):
    def __init__(self, completion: str = "", error: Optional[Exception] = None):
        self.completion = completion
        self.error = error
        self.calls: List[Messages] = []

    async def complete(self, messages: Messages) -> str:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.completion


class FakeCommunication:
    def __init__(self, error: Optional[Exception] = None, sms_result: Optional[SmsResult] = None):
        self.error = error
        self.sms_result = sms_result or SmsResult(successful=True, message_id="msg-1")
        self.sent: List[Dict[str, str]] = []
        self.tokens_issued = 0

    async def issue_voice_token(self) -> VoiceToken:
        if self.error is not None:
            raise self.error
        self.tokens_issued += 1
        return VoiceToken(user_id="8:acs:user-1", token="tok", expires_on="2026-10-19T00:00:00+00:00")

    async def send_sms(self, message: Optional[str], to_phone: Optional[str]) -> SmsResult:
        if not message or not to_phone:
            raise InvalidRequest("Message and toPhone must be provided!")
        if self.error is not None:
            raise self.error
        self.sent.append({"message": message, "to": to_phone})
        return self.sms_result


@pytest.fixture
def settings() -> Settings:
    return Settings(
        postgres=PostgresConfig(user="crm", password="secret", initialize_schema=False),
        llm=LLMConfig(api_key="sk-test"),
        communication=CommunicationConfig(
            connection_string="endpoint=https://acs.example.com/;accesskey=a2V5",
            phone_number="+18005550100",
        ),
    )


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def stub_llm() -> StubLLMClient:
    return StubLLMClient()


@pytest.fixture
def fake_communication() -> FakeCommunication:
    return FakeCommunication()
