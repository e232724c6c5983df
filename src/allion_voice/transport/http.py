"""
REST HTTP client used for remote app-config lookups.
"""

from typing import Any, Optional

import httpx

from allion_voice.errors import AllionError

USER_AGENT = "allion-voice/0.1.0"


class HttpClient:
    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def get(self, url: str, headers: Optional[dict[str, str]] = None) -> Any:
        resp = await self._client.get(url, headers=headers)
        if resp.status_code >= 400:
            raise AllionError("http_error", f"HTTP {resp.status_code}: {resp.text[:200]}")
        return resp.json()

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.close()
