from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from .config import CategoryConfig
from .events import EventClassification
from .transaction import TransactionView
from .types import Category, Environment

TEST_EMOJI = "🧪"
SANDBOX_PREFIX = "[TEST] "
UNKNOWN_EVENT = "Unknown event"

CATEGORY_TITLES: Mapping[Category, str] = MappingProxyType(
    {
        Category.REVENUE: "New revenue!",
        Category.REFUND: "Refund notice",
        Category.RISK: "Risk alert",
        Category.STATUS: "Status change",
    }
)


@dataclass(frozen=True)
class DispatchOptions:
    icon: str = ""
    sound: str = ""
    group: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"icon": self.icon, "sound": self.sound, "group": self.group}


@dataclass(frozen=True)
class Suppressed:
    reason: str


@dataclass(frozen=True)
class SendDecision:
    title: str
    body: str
    options: DispatchOptions

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "body": self.body, **self.options.to_dict()}


Decision = Union[Suppressed, SendDecision]


def compose(
    classification: Optional[EventClassification],
    category_config: Optional[CategoryConfig],
    product_name: str,
    transaction: TransactionView,
    environment: str,
    sandbox_enabled: bool,
    *,
    default_icon: str = "",
) -> Decision:
    is_sandbox = environment == Environment.SANDBOX.value
    if is_sandbox and not sandbox_enabled:
        return Suppressed("Sandbox notifications disabled")
    if classification is None:
        return Suppressed(UNKNOWN_EVENT)
    category = classification.category
    if category_config is None or not category_config.enabled:
        return Suppressed(f"{category.value} notifications disabled")

    emoji = TEST_EMOJI if is_sandbox else classification.emoji
    prefix = SANDBOX_PREFIX if is_sandbox else ""
    title = f"{emoji} {prefix}{product_name} {CATEGORY_TITLES[category]}"

    lines = [
        f"Type: {classification.display_name}",
        f"Product: {transaction.product_id}{transaction.offer_suffix}",
    ]
    if transaction.price_text and category is not Category.STATUS:
        lines.append(f"Amount: {transaction.price_text}")
    if transaction.offer_period_text:
        lines.append(transaction.offer_period_text)

    options = DispatchOptions(
        icon=category_config.icon or default_icon,
        sound=category_config.sound,
        group=f"{product_name}-{category_config.group}",
    )
    return SendDecision(title=title, body="\n".join(lines), options=options)
