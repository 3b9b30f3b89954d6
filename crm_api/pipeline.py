from __future__ import annotations

import enum
from typing import Any, Dict, List

from .executor import QueryExecutor
from .llm_client import LLMClient
from .logging_utils import get_logger
from .observability import record_latency
from .prompts import build_sql_messages
from .response_parser import parse_generated_query

logger = get_logger(__name__)


class Stage(str, enum.Enum):
    RECEIVED = "received"
    BUILDING_PROMPT = "building_prompt"
    AWAITING_COMPLETION = "awaiting_completion"
    PARSING_RESPONSE = "parsing_response"
    EXECUTING_QUERY = "executing_query"
    RESPONDED = "responded"
    FAILED = "failed"


class SQLGenerationPipeline:
    """Natural language in, result rows out: prompt, complete, parse, execute."""

    def __init__(self, llm: LLMClient, executor: QueryExecutor):
        self._llm = llm
        self._executor = executor

    async def handle(self, query: str | None) -> List[Dict[str, Any]]:
        stage = Stage.RECEIVED
        log = logger.bind(query=query)
        try:
            stage = self._enter(log, Stage.BUILDING_PROMPT)
            messages = build_sql_messages(query)

            stage = self._enter(log, Stage.AWAITING_COMPLETION)
            with record_latency(stage.value):
                completion = await self._llm.complete(messages)

            stage = self._enter(log, Stage.PARSING_RESPONSE)
            generated = parse_generated_query(completion)

            stage = self._enter(log, Stage.EXECUTING_QUERY)
            with record_latency(stage.value):
                rows = await self._executor.execute(generated)
        except Exception as exc:
            log.warning(
                "generatesql_stage",
                stage=Stage.FAILED.value,
                failed_in=stage.value,
                error_kind=type(exc).__name__,
                error=str(exc),
            )
            raise
        self._enter(log, Stage.RESPONDED, rows=len(rows))
        return rows

    @staticmethod
    def _enter(log, stage: Stage, **kw: Any) -> Stage:
        log.debug("generatesql_stage", stage=stage.value, **kw)
        return stage


__all__ = ["SQLGenerationPipeline", "Stage"]
