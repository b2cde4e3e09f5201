"""Multi-app settings read from environment variables.

Recognized variables::

    APPS                       comma separated app names, e.g. "irich,ifocus"
    PRODUCT_NAME_<app>         display name (defaults to the app name)
    BARK_KEY_<app>             push key (defaults to BARK_KEY)
    BARK_ICON_<app>            default icon URL
    FORWARD_URL_<app>          raw payload forward target
    ENABLE_SANDBOX_<app>       "true" to push Sandbox notifications
    NOTIFICATION_CONFIG_<app>  per-app category overrides (JSON)

    BARK_KEY                   shared push key
    BARK_SERVER                push relay base URL
    NOTIFICATION_CONFIG        category overrides for every app (JSON)
    BARK_SOUND                 sound for every category
    BARK_SOUND_<CATEGORY>      sound for one category

Per-app variables accept the app name as written in APPS or upper-cased.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple, Union

from .config import DEFAULT_NOTIFICATION_CONFIG, DEFAULT_PUSH_SERVER, AppConfig, NotificationConfig
from .exceptions import ConfigurationError
from .resolver import parse_override_json, resolve_notification_config
from .types import Category

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    apps: Mapping[str, AppConfig] = field(default_factory=dict)

    def get_app(self, name: str) -> Optional[AppConfig]:
        return self.apps.get(str(name or "").strip().lower())

    @property
    def app_names(self) -> List[str]:
        return list(self.apps)


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    env_file: Optional[Union[str, Path]] = None,
) -> Settings:
    values = dict(os.environ if environ is None else environ)
    if env_file is not None:
        for key, value in read_env_file(env_file).items():
            values.setdefault(key, value)

    apps: Dict[str, AppConfig] = {}
    for name in parse_app_list(values.get("APPS")):
        apps[name] = build_app_config(name, values)
    return Settings(apps=apps)


def parse_app_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    names: List[str] = []
    for item in raw.split(","):
        name = item.strip().lower()
        if name and name not in names:
            names.append(name)
    return names


def build_app_config(name: str, values: Mapping[str, str]) -> AppConfig:
    def app_value(prefix: str) -> Optional[str]:
        return values.get(f"{prefix}_{name}") or values.get(f"{prefix}_{name.upper()}")

    return AppConfig(
        name=name,
        product_name=app_value("PRODUCT_NAME") or name,
        push_key=app_value("BARK_KEY") or values.get("BARK_KEY") or "",
        push_icon=app_value("BARK_ICON") or "",
        forward_url=app_value("FORWARD_URL") or "",
        sandbox_enabled=(app_value("ENABLE_SANDBOX") or "").strip().lower() == "true",
        push_server=values.get("BARK_SERVER") or DEFAULT_PUSH_SERVER,
        notifications=build_notification_config(values, app_override_json=app_value("NOTIFICATION_CONFIG")),
    )


def build_notification_config(
    values: Mapping[str, str],
    *,
    app_override_json: Optional[str] = None,
    defaults: NotificationConfig = DEFAULT_NOTIFICATION_CONFIG,
) -> NotificationConfig:
    app_override = None
    if app_override_json:
        app_override = parse_override_json(app_override_json, source="app NOTIFICATION_CONFIG")
    category_sounds = {
        category.value: values[f"BARK_SOUND_{category.value}"]
        for category in Category
        if values.get(f"BARK_SOUND_{category.value}")
    }
    return resolve_notification_config(
        defaults,
        global_override_json=values.get("NOTIFICATION_CONFIG"),
        app_override=app_override,
        default_sound=values.get("BARK_SOUND"),
        category_sounds=category_sounds,
    )


def read_env_file(path: Union[str, Path]) -> Dict[str, str]:
    env_path = Path(path)
    if not env_path.exists():
        raise ConfigurationError(f"env file not found: {env_path}")
    values: Dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        parsed = _parse_line(line)
        if parsed is None:
            continue
        key, value = parsed
        values.setdefault(key, value)
    logger.debug("loaded %d values from %s", len(values), env_path)
    return values


def _parse_line(line: str) -> Optional[Tuple[str, str]]:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    if "=" not in stripped:
        return None
    key, value = stripped.split("=", 1)
    key = key.strip()
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        value = value[1:-1]
    if not key:
        return None
    return key, value
