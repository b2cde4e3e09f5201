"""App Store Server Notifications V2 event table.

References:
- https://developer.apple.com/documentation/appstoreservernotifications/notificationtype
- https://developer.apple.com/documentation/appstoreservernotifications/subtype
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from .types import Category


@dataclass(frozen=True)
class EventClassification:
    display_name: str
    category: Category
    emoji: str


def _entry(display_name: str, category: Category, emoji: str) -> EventClassification:
    return EventClassification(display_name=display_name, category=category, emoji=emoji)


_REVENUE = Category.REVENUE
_REFUND = Category.REFUND
_RISK = Category.RISK
_STATUS = Category.STATUS

EVENT_TABLE: Mapping[str, EventClassification] = MappingProxyType(
    {
        # revenue
        "SUBSCRIBED|INITIAL_BUY": _entry("New subscription (initial buy)", _REVENUE, "🎉"),
        "SUBSCRIBED|RESUBSCRIBE": _entry("Resubscribed", _REVENUE, "🎉"),
        "DID_RENEW|": _entry("Renewed", _REVENUE, "🎉"),
        "DID_RENEW|BILLING_RECOVERY": _entry("Renewal recovered", _REVENUE, "🎉"),
        "ONE_TIME_CHARGE|": _entry("One-time purchase", _REVENUE, "🎉"),
        "OFFER_REDEEMED|INITIAL_BUY": _entry("Offer redeemed (initial buy)", _REVENUE, "🎉"),
        "OFFER_REDEEMED|RESUBSCRIBE": _entry("Offer redeemed (resubscribe)", _REVENUE, "🎉"),
        "OFFER_REDEEMED|UPGRADE": _entry("Offer redeemed (upgrade)", _REVENUE, "🎉"),
        "OFFER_REDEEMED|DOWNGRADE": _entry("Offer redeemed (downgrade)", _REVENUE, "🎉"),
        "REFUND_REVERSED|": _entry("Refund reversed", _REVENUE, "🎉"),
        # refunds
        "REFUND|": _entry("Refund", _REFUND, "💸"),
        "REFUND|CONSUMPTION_REQUEST": _entry("Refund (consumption request)", _REFUND, "💸"),
        "CONSUMPTION_REQUEST|": _entry("Consumption information request", _REFUND, "💸"),
        # risk
        "DID_FAIL_TO_RENEW|": _entry("Renewal failed", _RISK, "⚠️"),
        "DID_FAIL_TO_RENEW|GRACE_PERIOD": _entry("Renewal failed (grace period)", _RISK, "⚠️"),
        "EXPIRED|VOLUNTARY": _entry("Expired (cancelled by user)", _RISK, "⚠️"),
        "EXPIRED|BILLING_RETRY": _entry("Expired (billing retry ended)", _RISK, "⚠️"),
        "EXPIRED|PRICE_INCREASE": _entry("Expired (price increase declined)", _RISK, "⚠️"),
        "EXPIRED|PRODUCT_NOT_FOR_SALE": _entry("Expired (product not for sale)", _RISK, "⚠️"),
        "GRACE_PERIOD_EXPIRED|": _entry("Grace period ended", _RISK, "⚠️"),
        "REVOKE|": _entry("Subscription revoked", _RISK, "⚠️"),
        # status changes
        "DID_CHANGE_RENEWAL_STATUS|AUTO_RENEW_DISABLED": _entry("Auto-renew turned off", _STATUS, "ℹ️"),
        "DID_CHANGE_RENEWAL_STATUS|AUTO_RENEW_ENABLED": _entry("Auto-renew turned on", _STATUS, "ℹ️"),
        "DID_CHANGE_RENEWAL_PREF|UPGRADE": _entry("Plan upgrade", _STATUS, "ℹ️"),
        "DID_CHANGE_RENEWAL_PREF|DOWNGRADE": _entry("Plan downgrade", _STATUS, "ℹ️"),
        "PRICE_INCREASE|PENDING": _entry("Price increase pending", _STATUS, "ℹ️"),
        "PRICE_INCREASE|ACCEPTED": _entry("Price increase accepted", _STATUS, "ℹ️"),
        "RENEWAL_EXTENDED|": _entry("Renewal extended", _STATUS, "ℹ️"),
        "RENEWAL_EXTENSION|SUMMARY": _entry("Renewal extension completed", _STATUS, "ℹ️"),
        "RENEWAL_EXTENSION|FAILURE": _entry("Renewal extension failed", _STATUS, "ℹ️"),
        "EXTERNAL_PURCHASE_TOKEN|": _entry("External purchase token", _STATUS, "ℹ️"),
        "TEST|": _entry("Test notification", _STATUS, "🧪"),
    }
)


def event_key(notification_type: str, subtype: Optional[str] = None) -> str:
    return f"{notification_type}|{subtype or ''}"


def classify(notification_type: str, subtype: Optional[str] = None) -> Optional[EventClassification]:
    """Look up an event by exact ``type|subtype``, then by ``type|`` alone."""
    found = EVENT_TABLE.get(event_key(notification_type, subtype))
    if found is not None:
        return found
    return EVENT_TABLE.get(event_key(notification_type))
