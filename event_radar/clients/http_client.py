from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)


class HttpClient:
    def __init__(self, timeout: int = 15, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def get_json(
        self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None
    ) -> Any:
        response = await self._client.get(url, params=params, headers=headers, timeout=self._timeout)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = response.text[:600]
            raise httpx.HTTPStatusError(
                f"{exc} | response_body={body}", request=exc.request, response=exc.response
            ) from exc
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()
