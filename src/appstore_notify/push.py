"""Outbound transports: the Bark push relay and the raw-payload forwarder."""

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Protocol
from urllib.parse import quote

from .composer import DispatchOptions
from .config import DEFAULT_PUSH_SERVER
from .http_client import AsyncJsonHttpClient

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, push_key: str, title: str, body: str, options: DispatchOptions) -> None:
        ...


class Forwarder(Protocol):
    async def forward(self, url: str, payload: Mapping[str, Any]) -> int:
        ...


class BarkNotifier:
    def __init__(
        self,
        *,
        server: str = DEFAULT_PUSH_SERVER,
        http: Optional[AsyncJsonHttpClient] = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._server = server.rstrip("/")
        self._http = http or AsyncJsonHttpClient(timeout_seconds=timeout_seconds)

    def endpoint(self, push_key: str) -> str:
        return f"{self._server}/{quote(push_key, safe='')}"

    async def send(self, push_key: str, title: str, body: str, options: DispatchOptions) -> None:
        payload = {
            "title": title,
            "body": body,
            "sound": options.sound,
            "icon": options.icon,
            "group": options.group,
        }
        await self._http.post_json(self.endpoint(push_key), payload)

    async def aclose(self) -> None:
        await self._http.aclose()


class WebhookForwarder:
    def __init__(
        self,
        *,
        http: Optional[AsyncJsonHttpClient] = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._http = http or AsyncJsonHttpClient(timeout_seconds=timeout_seconds)

    async def forward(self, url: str, payload: Mapping[str, Any]) -> int:
        status_code = await self._http.post_json(url, payload)
        logger.info("forwarded notification, status=%s", status_code)
        return status_code

    async def aclose(self) -> None:
        await self._http.aclose()


@dataclass(frozen=True)
class SentNotification:
    push_key: str
    title: str
    body: str
    options: DispatchOptions


class RecordingNotifier:
    """Keeps composed notifications in memory instead of sending them."""

    def __init__(self) -> None:
        self.sent: List[SentNotification] = []

    async def send(self, push_key: str, title: str, body: str, options: DispatchOptions) -> None:
        self.sent.append(SentNotification(push_key=push_key, title=title, body=body, options=options))
