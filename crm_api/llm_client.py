from __future__ import annotations

import abc
from typing import Dict, List, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import LLMConfig
from .errors import ConfigurationError, UpstreamError
from .logging_utils import get_logger

logger = get_logger(__name__)

Messages = List[Dict[str, str]]


class LLMClient(abc.ABC):
    @abc.abstractmethod
    async def complete(self, messages: Messages) -> str:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class OpenAIClient(LLMClient):
    def __init__(self, cfg: LLMConfig, client: Optional[httpx.AsyncClient] = None):
        if not cfg.api_key:
            raise ConfigurationError("Missing OpenAI API key", missing=["OPENAI_API_KEY"])
        self._cfg = cfg
        self._client = client or httpx.AsyncClient(timeout=cfg.request_timeout_s)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def complete(self, messages: Messages) -> str:
        headers = {
            "Authorization": f"Bearer {self._cfg.api_key}",
        }
        payload = {
            "model": self._cfg.model,
            "temperature": self._cfg.temperature,
            "max_tokens": self._cfg.max_tokens,
            "messages": messages,
        }
        retry_cfg = self._cfg.retry
        async for attempt in AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(retry_cfg.attempts),
            wait=wait_exponential(multiplier=retry_cfg.backoff_seconds, max=10),
            retry=retry_if_exception_type(UpstreamError),
        ):
            with attempt:
                return await self._post(headers, payload)
        raise UpstreamError("No completion attempt was made")  # pragma: no cover

    async def _post(self, headers: Dict[str, str], payload: Dict) -> str:
        try:
            resp = await self._client.post(
                f"{self._cfg.api_base.rstrip('/')}/chat/completions",
                headers=headers,
                json=payload,
                timeout=self._cfg.request_timeout_s,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamError("Completion request timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Completion request failed: {exc}") from exc
        if resp.status_code >= 400:
            raise UpstreamError(f"LLM HTTP {resp.status_code}: {resp.text}")
        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise UpstreamError("Unexpected LLM response") from exc
        if not isinstance(content, str):
            raise UpstreamError("LLM response has no text content")
        content = content.strip()
        logger.info("llm_completion", model=self._cfg.model, content=content)
        return content


def build_llm_client(cfg: LLMConfig, client: Optional[httpx.AsyncClient] = None) -> LLMClient:
    if cfg.provider.lower() == "openai":
        return OpenAIClient(cfg, client=client)
    raise ConfigurationError(f"Unsupported LLM provider: {cfg.provider}")


__all__ = ["LLMClient", "OpenAIClient", "build_llm_client", "Messages"]
