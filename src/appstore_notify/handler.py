"""Request pipeline for App Store server notifications.

Order of operations for one inbound body:

1. reject bodies without ``signedPayload`` (ignored)
2. start the raw-payload forward in the background, if configured
3. decode the outer envelope (the only ``error`` outcome)
4. classify the event and interpret the nested transaction
5. compose the alert or a suppression reason
6. await the push relay call

Nothing raised inside the pipeline reaches the caller; every path ends in a
``HandlerResult``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .composer import UNKNOWN_EVENT, Decision, SendDecision, Suppressed, compose
from .config import AppConfig
from .dispatch import DispatchCoordinator
from .envelope import decode_envelope_object
from .events import classify, event_key
from .models import NotificationEvent, TransactionInfo
from .push import BarkNotifier, Forwarder, Notifier, WebhookForwarder
from .transaction import interpret_transaction
from .types import DispatchOutcome, ResultStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandlerResult:
    status: ResultStatus
    message: str
    outcome: Optional[DispatchOutcome] = None
    decision: Optional[SendDecision] = None

    @classmethod
    def success(cls, message: str, *, outcome: DispatchOutcome, decision: SendDecision) -> "HandlerResult":
        return cls(ResultStatus.SUCCESS, message, outcome=outcome, decision=decision)

    @classmethod
    def ignored(cls, message: str) -> "HandlerResult":
        return cls(ResultStatus.IGNORED, message)

    @classmethod
    def error(cls, message: str) -> "HandlerResult":
        return cls(ResultStatus.ERROR, message)

    def to_dict(self) -> Dict[str, str]:
        return {"status": self.status.value, "message": self.message}


class NotificationHandler:
    def __init__(self, app: AppConfig, coordinator: DispatchCoordinator) -> None:
        self._app = app
        self._coordinator = coordinator

    @classmethod
    def for_app(
        cls,
        app: AppConfig,
        *,
        notifier: Optional[Notifier] = None,
        forwarder: Optional[Forwarder] = None,
    ) -> "NotificationHandler":
        if notifier is None:
            notifier = BarkNotifier(server=app.push_server, timeout_seconds=app.timeout_seconds)
        if forwarder is None and app.forward_url:
            forwarder = WebhookForwarder(timeout_seconds=app.timeout_seconds)
        return cls(app, DispatchCoordinator(notifier, forwarder))

    @property
    def app(self) -> AppConfig:
        return self._app

    @property
    def coordinator(self) -> DispatchCoordinator:
        return self._coordinator

    async def handle(self, data: Any) -> HandlerResult:
        try:
            return await self._handle(data)
        except Exception as exc:
            logger.error("[%s] notification handling failed", self._app.name, exc_info=True)
            return HandlerResult.error(f"Internal error: {type(exc).__name__}")

    async def _handle(self, data: Any) -> HandlerResult:
        app = self._app
        if not isinstance(data, Mapping) or not data.get("signedPayload"):
            return HandlerResult.ignored("Missing signedPayload")

        if app.forward_url:
            self._coordinator.forward(app.forward_url, data)

        payload = decode_envelope_object(data.get("signedPayload"))
        if payload is None:
            logger.warning("[%s] signedPayload could not be decoded", app.name)
            return HandlerResult.error("Envelope decode failed")

        event = NotificationEvent.from_payload(payload)
        logger.info(
            "[%s] received %s | %s | %s",
            app.name,
            event.notification_type,
            event.subtype,
            event.environment,
        )

        classification = classify(event.notification_type, event.subtype)
        category_config = app.notifications.get(classification.category) if classification else None
        transaction = interpret_transaction(self._decode_transaction(event))

        decision = compose(
            classification,
            category_config,
            app.product_name,
            transaction,
            event.environment,
            app.sandbox_enabled,
            default_icon=app.push_icon,
        )
        if not isinstance(decision, SendDecision) or classification is None:
            message = _suppression_message(decision, event)
            logger.info("[%s] ignored: %s", app.name, message)
            return HandlerResult.ignored(message)

        outcome = await self._coordinator.dispatch(app.push_key, decision.title, decision.body, decision.options)
        logger.info("[%s] %s dispatch %s", app.name, classification.category.value, outcome.value)
        return HandlerResult.success(
            f"Notification sent: {classification.display_name}",
            outcome=outcome,
            decision=decision,
        )

    def _decode_transaction(self, event: NotificationEvent) -> Optional[TransactionInfo]:
        if not event.transaction_envelope:
            return None
        decoded = decode_envelope_object(event.transaction_envelope)
        if decoded is None:
            logger.info("[%s] signedTransactionInfo could not be decoded", self._app.name)
            return None
        return TransactionInfo.from_payload(decoded)

    async def aclose(self) -> None:
        await self._coordinator.aclose()


def _suppression_message(decision: Decision, event: NotificationEvent) -> str:
    if isinstance(decision, Suppressed) and decision.reason != UNKNOWN_EVENT:
        return decision.reason
    return f"{UNKNOWN_EVENT}: {event_key(event.notification_type, event.subtype)}"
