import asyncio
import logging
from typing import Any, Mapping, Optional, Set

from .composer import DispatchOptions
from .push import Forwarder, Notifier
from .types import DispatchOutcome
from .utils import mask_url

logger = logging.getLogger(__name__)


class DispatchCoordinator:
    """Sends composed notifications and runs raw-payload forwards in the background.

    The push call is awaited but its failures are only logged. Forward calls
    are started as tasks and never joined on the response path; the
    coordinator holds a reference to each task until it finishes.
    """

    def __init__(self, notifier: Notifier, forwarder: Optional[Forwarder] = None) -> None:
        self._notifier = notifier
        self._forwarder = forwarder
        self._tasks: Set["asyncio.Task[None]"] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def dispatch(
        self,
        push_key: str,
        title: str,
        body: str,
        options: DispatchOptions,
    ) -> DispatchOutcome:
        if not push_key:
            logger.info("no push key configured, notification skipped")
            return DispatchOutcome.SKIPPED
        try:
            await self._notifier.send(push_key, title, body, options)
        except Exception as exc:
            logger.warning("push relay send failed: %s: %s", type(exc).__name__, exc)
            return DispatchOutcome.FAILED
        return DispatchOutcome.SENT

    def forward(self, url: str, payload: Mapping[str, Any]) -> Optional["asyncio.Task[None]"]:
        forwarder = self._forwarder
        if not url or forwarder is None:
            return None
        task = asyncio.get_running_loop().create_task(_run_forward(forwarder, url, dict(payload)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        for transport in (self._notifier, self._forwarder):
            close = getattr(transport, "aclose", None)
            if close is not None:
                await close()


async def _run_forward(forwarder: Forwarder, url: str, payload: Mapping[str, Any]) -> None:
    try:
        await forwarder.forward(url, payload)
    except Exception as exc:
        logger.warning("forward to %s failed (non-blocking): %s: %s", mask_url(url), type(exc).__name__, exc)
