from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .types import Environment


def _as_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    return {}


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def _as_optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return int(stripped)
        except ValueError:
            return None
    return None


def _as_offer_type(value: Any) -> Optional[Union[int, str]]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return value
    if isinstance(value, float):
        return int(value)
    return None


@dataclass(frozen=True)
class NotificationEvent:
    notification_type: str
    subtype: Optional[str] = None
    environment: str = Environment.PRODUCTION.value
    transaction_envelope: Optional[str] = None
    notification_uuid: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "NotificationEvent":
        data = payload.get("data")
        if not isinstance(data, Mapping):
            # summary notifications (RENEWAL_EXTENSION|SUMMARY) carry no data object
            data = _as_mapping(payload.get("summary"))
        environment = _as_optional_str(data.get("environment")) or Environment.PRODUCTION.value
        return cls(
            notification_type=_as_optional_str(payload.get("notificationType")) or "",
            subtype=_as_optional_str(payload.get("subtype")) or None,
            environment=environment,
            transaction_envelope=_as_optional_str(data.get("signedTransactionInfo")),
            notification_uuid=_as_optional_str(payload.get("notificationUUID")),
        )


@dataclass(frozen=True)
class TransactionInfo:
    product_id: Optional[str] = None
    price: Optional[int] = None
    currency: Optional[str] = None
    offer_type: Optional[Union[int, str]] = None
    offer_discount_type: Optional[str] = None
    offer_identifier: Optional[str] = None
    offer_period: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "TransactionInfo":
        if not payload:
            return cls()
        return cls(
            product_id=_as_optional_str(payload.get("productId")),
            price=_as_optional_int(payload.get("price")),
            currency=_as_optional_str(payload.get("currency")),
            offer_type=_as_offer_type(payload.get("offerType")),
            offer_discount_type=_as_optional_str(payload.get("offerDiscountType")),
            offer_identifier=_as_optional_str(payload.get("offerIdentifier")),
            offer_period=_as_optional_str(payload.get("offerPeriod")),
        )
