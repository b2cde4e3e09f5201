from .composer import DispatchOptions, SendDecision, Suppressed, compose
from .config import (
    DEFAULT_NOTIFICATION_CONFIG,
    DEFAULT_PUSH_SERVER,
    AppConfig,
    CategoryConfig,
    NotificationConfig,
)
from .dispatch import DispatchCoordinator
from .envelope import decode_envelope, decode_envelope_object, encode_envelope
from .events import EVENT_TABLE, EventClassification, classify, event_key
from .exceptions import ConfigurationError, HTTPRequestError, NotifyError
from .handler import HandlerResult, NotificationHandler
from .http_client import AsyncJsonHttpClient
from .models import NotificationEvent, TransactionInfo
from .push import BarkNotifier, Forwarder, Notifier, RecordingNotifier, SentNotification, WebhookForwarder
from .resolver import merge_category, merge_override, parse_override_json, resolve_notification_config
from .settings import Settings, build_app_config, load_settings, read_env_file
from .transaction import TransactionView, format_price, interpret_transaction, parse_offer_period
from .types import Category, DispatchOutcome, Environment, ResultStatus
from .utils import mask_key, mask_url

__all__ = [
    "AppConfig",
    "AsyncJsonHttpClient",
    "BarkNotifier",
    "Category",
    "CategoryConfig",
    "ConfigurationError",
    "DEFAULT_NOTIFICATION_CONFIG",
    "DEFAULT_PUSH_SERVER",
    "DispatchCoordinator",
    "DispatchOptions",
    "DispatchOutcome",
    "EVENT_TABLE",
    "Environment",
    "EventClassification",
    "Forwarder",
    "HTTPRequestError",
    "HandlerResult",
    "NotificationConfig",
    "NotificationEvent",
    "NotificationHandler",
    "Notifier",
    "NotifyError",
    "RecordingNotifier",
    "ResultStatus",
    "SendDecision",
    "SentNotification",
    "Settings",
    "Suppressed",
    "TransactionInfo",
    "TransactionView",
    "WebhookForwarder",
    "build_app_config",
    "classify",
    "compose",
    "decode_envelope",
    "decode_envelope_object",
    "encode_envelope",
    "event_key",
    "format_price",
    "interpret_transaction",
    "load_settings",
    "mask_key",
    "mask_url",
    "merge_category",
    "merge_override",
    "parse_offer_period",
    "parse_override_json",
    "read_env_file",
    "resolve_notification_config",
]
