from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from event_radar.errors import ConfigurationError, RateLimitError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"
GOOGLE_SEARCH_TOOL: Dict[str, Any] = {"google_search": {}}


@dataclass
class GeminiRequest:
    api_key: str
    parts: List[str]
    system_instruction: Optional[str] = None
    tools: List[Dict[str, Any]] = field(default_factory=list)
    temperature: float = 0.2
    max_output_tokens: int = 8192

    def to_body(self) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {
            "temperature": self.temperature,
            "maxOutputTokens": self.max_output_tokens,
        }
        # JSON mode cannot be combined with tool use.
        if not self.tools:
            generation_config["response_mime_type"] = "application/json"

        body: Dict[str, Any] = {
            "contents": [{"parts": [{"text": part} for part in self.parts]}],
            "generationConfig": generation_config,
        }
        if self.system_instruction:
            body["system_instruction"] = {"parts": [{"text": self.system_instruction}]}
        if self.tools:
            body["tools"] = list(self.tools)
        return body


@dataclass
class GeminiResult:
    text: str
    grounding_urls: List[str] = field(default_factory=list)


@dataclass
class RetryPolicy:
    """Bounded exponential backoff for retryable HTTP statuses."""

    max_retries: int = 3
    base_delay: float = 2.0
    retry_statuses: FrozenSet[int] = frozenset({429})
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * (2**attempt)

    def should_retry(self, exc: BaseException) -> bool:
        return getattr(exc, "status_code", None) in self.retry_statuses

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._wait,
            retry=retry_if_exception(self.should_retry),
            before_sleep=self._log_retry,
            sleep=self.sleep,
            reraise=True,
        )

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number - 1)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "Gemini request throttled, retrying",
            extra={"attempt": retry_state.attempt_number, "max_retries": self.max_retries, "delay_s": delay},
        )


class GeminiGateway:
    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: int = 90,
        retry_policy: Optional[RetryPolicy] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self.timeout_seconds = timeout_seconds
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def generate(self, request: GeminiRequest) -> GeminiResult:
        if not (request.api_key or "").strip():
            raise ConfigurationError("Gemini API key is missing. Set GEMINI_API_KEY in .env.")

        body = request.to_body()
        payload: Any = None
        async for attempt in self.retry_policy.retrying():
            with attempt:
                payload = await self._post(request.api_key, body)

        return _parse_result(payload)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, api_key: str, body: Dict[str, Any]) -> Any:
        try:
            response = await self._client.post(
                self.endpoint,
                params={"key": api_key},
                json=body,
                timeout=self.timeout_seconds,
            )
        except httpx.TransportError as exc:
            raise UpstreamError(f"Gemini request failed: {exc}") from exc

        status = response.status_code
        if status == 429:
            raise RateLimitError()
        if not response.is_success:
            logger.warning("Gemini API error", extra={"status": status, "body": response.text[:600]})
            raise UpstreamError(f"Gemini API error ({status})", status_code=status)

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError("Gemini returned a non-JSON body", status_code=status) from exc


def _parse_result(payload: Any) -> GeminiResult:
    candidate = _first_candidate(payload)
    content = candidate.get("content") if isinstance(candidate.get("content"), dict) else {}
    parts = content.get("parts") if isinstance(content.get("parts"), list) else []
    text = "".join(str(p.get("text") or "") for p in parts if isinstance(p, dict))
    return GeminiResult(text=text, grounding_urls=_extract_grounding_urls(candidate))


def _first_candidate(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        return {}
    candidates = payload.get("candidates")
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
        return candidates[0]
    return {}


def _extract_grounding_urls(candidate: Dict[str, Any]) -> List[str]:
    metadata = candidate.get("groundingMetadata")
    if not isinstance(metadata, dict):
        return []
    chunks = metadata.get("groundingChunks")
    if not isinstance(chunks, list):
        return []

    urls: List[str] = []
    for chunk in chunks:
        if not isinstance(chunk, dict):
            continue
        web = chunk.get("web")
        uri = web.get("uri") if isinstance(web, dict) else None
        if isinstance(uri, str) and uri:
            urls.append(uri)
    return urls
