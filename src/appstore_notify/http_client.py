from typing import Any, Mapping, Optional

import httpx

from .exceptions import HTTPRequestError


class AsyncJsonHttpClient:
    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._client = client or httpx.AsyncClient()

    async def post_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> int:
        try:
            response = await self._client.post(
                url,
                headers=dict(headers or {}),
                json=dict(payload),
                timeout=timeout_seconds or self._timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise HTTPRequestError(f"http request failed: {type(exc).__name__}: {exc}") from exc
        if response.status_code >= 400:
            raise HTTPRequestError(
                f"http request failed: {response.status_code}",
                status_code=response.status_code,
                response_text=response.text,
                response_headers=dict(response.headers),
            )
        return response.status_code

    async def aclose(self) -> None:
        await self._client.aclose()
