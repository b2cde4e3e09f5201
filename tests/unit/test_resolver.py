import json
import logging

from appstore_notify.config import DEFAULT_NOTIFICATION_CONFIG, CategoryConfig
from appstore_notify.resolver import (
    apply_sound_overrides,
    merge_category,
    merge_override,
    parse_override_json,
    resolve_notification_config,
)
from appstore_notify.types import Category


def test_defaults_when_no_layers():
    config = resolve_notification_config()

    assert config == DEFAULT_NOTIFICATION_CONFIG
    assert config.get(Category.REVENUE) == CategoryConfig(enabled=True, sound="calypso", group="Revenue")
    assert config.get("REFUND").enabled is False
    assert config.get(Category.RISK).sound == "chord"
    assert config.get(Category.STATUS).group == "Status"


def test_layers_merge_field_by_field_and_later_wins():
    config = resolve_notification_config(
        global_override_json=json.dumps({"REFUND": {"enabled": True, "icon": "https://g/icon.png"}}),
        app_override={"REFUND": {"icon": "https://a/icon.png"}, "risk": {"enabled": True}},
    )

    refund = config.get(Category.REFUND)
    assert refund.enabled is True
    assert refund.icon == "https://a/icon.png"
    assert refund.sound == "minuet"
    assert refund.group == "Refund"
    assert config.get(Category.RISK).enabled is True
    assert config.get(Category.REVENUE) == DEFAULT_NOTIFICATION_CONFIG.get(Category.REVENUE)


def test_sound_overrides_category_specific_wins():
    config = resolve_notification_config(
        app_override={"STATUS": {"sound": "from-app"}},
        default_sound="bell",
        category_sounds={"REVENUE": "cash", "status": ""},
    )

    assert config.get(Category.REVENUE).sound == "cash"
    assert config.get(Category.REFUND).sound == "bell"
    assert config.get(Category.RISK).sound == "bell"
    assert config.get(Category.STATUS).sound == "bell"


def test_sound_layer_keeps_layered_value_without_overrides():
    config = apply_sound_overrides(DEFAULT_NOTIFICATION_CONFIG)
    assert config == DEFAULT_NOTIFICATION_CONFIG


def test_invalid_global_json_is_skipped_with_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="appstore_notify.resolver"):
        config = resolve_notification_config(
            global_override_json="{not json",
            app_override={"RISK": {"enabled": True}},
        )

    assert config.get(Category.RISK).enabled is True
    assert config.get(Category.REFUND) == DEFAULT_NOTIFICATION_CONFIG.get(Category.REFUND)
    assert "parse error" in caplog.text


def test_parse_override_json_rejects_non_objects(caplog):
    with caplog.at_level(logging.WARNING, logger="appstore_notify.resolver"):
        assert parse_override_json("[1, 2]", source="test") is None
    assert "must be a JSON object" in caplog.text
    assert parse_override_json('{"REVENUE": {"enabled": false}}') == {"REVENUE": {"enabled": False}}


def test_merge_ignores_unknown_categories_and_wrong_types(caplog):
    with caplog.at_level(logging.WARNING, logger="appstore_notify.resolver"):
        config = merge_override(
            DEFAULT_NOTIFICATION_CONFIG,
            {
                "BONUS": {"enabled": True},
                "REFUND": "yes",
                "RISK": {"enabled": "true", "sound": 5, "group": "Danger", "color": "red"},
            },
        )

    assert config.get(Category.REFUND) == DEFAULT_NOTIFICATION_CONFIG.get(Category.REFUND)
    risk = config.get(Category.RISK)
    assert risk.enabled is False
    assert risk.sound == "chord"
    assert risk.group == "Danger"
    assert "RISK.enabled must be bool" in caplog.text
    assert "REFUND must be an object" in caplog.text


def test_merge_category_without_changes_returns_same_value():
    current = CategoryConfig(enabled=True, sound="a", group="b")
    assert merge_category(current, {}) is current


def test_resolution_is_deterministic_and_does_not_mutate_defaults():
    kwargs = dict(
        global_override_json='{"STATUS": {"enabled": true}}',
        app_override={"REVENUE": {"icon": "x"}},
        default_sound="bell",
    )
    first = resolve_notification_config(**kwargs)
    second = resolve_notification_config(**kwargs)

    assert first == second
    assert DEFAULT_NOTIFICATION_CONFIG.get(Category.STATUS).enabled is False
    assert DEFAULT_NOTIFICATION_CONFIG.get(Category.REVENUE).icon == ""
