"""Layered resolution of per-category notification settings.

Layers, later wins:

1. built-in defaults
2. global override (JSON text)
3. per-app override (mapping)
4. sound overrides (category specific, then default)

Each JSON layer is folded into the typed config field by field. Only the four
known categories and the four known fields are considered.
"""

import json
import logging
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional

from .config import DEFAULT_NOTIFICATION_CONFIG, CategoryConfig, NotificationConfig
from .types import Category

logger = logging.getLogger(__name__)

_FIELD_TYPES: Mapping[str, type] = {
    "enabled": bool,
    "icon": str,
    "sound": str,
    "group": str,
}


def resolve_notification_config(
    defaults: NotificationConfig = DEFAULT_NOTIFICATION_CONFIG,
    global_override_json: Optional[str] = None,
    app_override: Optional[Mapping[str, Any]] = None,
    default_sound: Optional[str] = None,
    category_sounds: Optional[Mapping[str, str]] = None,
) -> NotificationConfig:
    config = defaults

    if global_override_json:
        global_override = parse_override_json(global_override_json, source="global NOTIFICATION_CONFIG")
        if global_override is not None:
            config = merge_override(config, global_override)

    if app_override:
        config = merge_override(config, app_override)

    return apply_sound_overrides(config, default_sound=default_sound, category_sounds=category_sounds)


def parse_override_json(text: str, *, source: str = "override") -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("%s parse error, layer skipped: %s", source, exc)
        return None
    if not isinstance(parsed, Mapping):
        logger.warning("%s must be a JSON object, layer skipped", source)
        return None
    return {str(k): v for k, v in parsed.items()}


def merge_override(config: NotificationConfig, override: Mapping[str, Any]) -> NotificationConfig:
    for raw_key, value in override.items():
        category = _category_from_key(raw_key)
        if category is None:
            logger.debug("unknown notification category %r ignored", raw_key)
            continue
        if not isinstance(value, Mapping):
            logger.warning("override for %s must be an object, ignored", category.value)
            continue
        config = config.with_category(category, merge_category(config.get(category), value, category=category))
    return config


def merge_category(
    current: CategoryConfig,
    override: Mapping[str, Any],
    *,
    category: Optional[Category] = None,
) -> CategoryConfig:
    changes: Dict[str, Any] = {}
    label = category.value if category is not None else "category"
    for name, value in override.items():
        expected = _FIELD_TYPES.get(name)
        if expected is None:
            logger.debug("unknown field %s.%s ignored", label, name)
            continue
        if not isinstance(value, expected):
            logger.warning("field %s.%s must be %s, ignored", label, name, expected.__name__)
            continue
        changes[name] = value
    if not changes:
        return current
    return replace(current, **changes)


def apply_sound_overrides(
    config: NotificationConfig,
    *,
    default_sound: Optional[str] = None,
    category_sounds: Optional[Mapping[str, str]] = None,
) -> NotificationConfig:
    normalized: Dict[Category, str] = {}
    for raw_key, sound in (category_sounds or {}).items():
        category = _category_from_key(raw_key)
        if category is not None and sound:
            normalized[category] = sound

    for category in Category:
        sound = normalized.get(category) or default_sound
        if sound:
            config = config.with_category(category, replace(config.get(category), sound=sound))
    return config


def _category_from_key(key: Any) -> Optional[Category]:
    try:
        return Category(str(key).strip().upper())
    except ValueError:
        return None
