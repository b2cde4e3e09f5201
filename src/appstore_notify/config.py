from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, Tuple, Union

from .types import Category


DEFAULT_PUSH_SERVER = "https://api.day.app"


@dataclass(frozen=True)
class CategoryConfig:
    enabled: bool = False
    icon: str = ""
    sound: str = ""
    group: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "icon": self.icon, "sound": self.sound, "group": self.group}


@dataclass(frozen=True)
class NotificationConfig:
    revenue: CategoryConfig
    refund: CategoryConfig
    risk: CategoryConfig
    status: CategoryConfig

    def get(self, category: Union[Category, str]) -> CategoryConfig:
        return getattr(self, _slot(category))

    def with_category(self, category: Union[Category, str], value: CategoryConfig) -> "NotificationConfig":
        return replace(self, **{_slot(category): value})

    def items(self) -> Iterator[Tuple[Category, CategoryConfig]]:
        for category in Category:
            yield category, self.get(category)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {category.value: value.to_dict() for category, value in self.items()}


def _slot(category: Union[Category, str]) -> str:
    return Category(category).value.lower()


DEFAULT_NOTIFICATION_CONFIG = NotificationConfig(
    revenue=CategoryConfig(enabled=True, sound="calypso", group="Revenue"),
    refund=CategoryConfig(enabled=False, sound="minuet", group="Refund"),
    risk=CategoryConfig(enabled=False, sound="chord", group="Risk"),
    status=CategoryConfig(enabled=False, sound="popcorn", group="Status"),
)


@dataclass(frozen=True)
class AppConfig:
    name: str
    product_name: str = ""
    push_key: str = ""
    push_icon: str = ""
    forward_url: str = ""
    sandbox_enabled: bool = False
    push_server: str = DEFAULT_PUSH_SERVER
    notifications: NotificationConfig = field(default_factory=lambda: DEFAULT_NOTIFICATION_CONFIG)
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        normalized_name = str(self.name or "").strip().lower()
        if not normalized_name:
            raise ValueError("app name must not be empty")
        object.__setattr__(self, "name", normalized_name)
        if not self.product_name:
            object.__setattr__(self, "product_name", normalized_name)
        object.__setattr__(self, "push_server", str(self.push_server or DEFAULT_PUSH_SERVER).rstrip("/"))
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
