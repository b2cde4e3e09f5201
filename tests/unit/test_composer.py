from appstore_notify.composer import DispatchOptions, SendDecision, Suppressed, compose
from appstore_notify.config import CategoryConfig
from appstore_notify.events import classify
from appstore_notify.transaction import TransactionView

_ENABLED = CategoryConfig(enabled=True, icon="", sound="calypso", group="Revenue")


def _view(**overrides) -> TransactionView:
    values = {"product_id": "pro.monthly", "price_text": "$4.99", "offer_suffix": "", "offer_period_text": None}
    values.update(overrides)
    return TransactionView(**values)


def test_compose_revenue_notification():
    decision = compose(classify("DID_RENEW"), _ENABLED, "MyApp", _view(), "Production", False, default_icon="https://i/app.png")

    assert isinstance(decision, SendDecision)
    assert decision.title == "🎉 MyApp New revenue!"
    assert decision.body == "Type: Renewed\nProduct: pro.monthly\nAmount: $4.99"
    assert decision.options == DispatchOptions(icon="https://i/app.png", sound="calypso", group="MyApp-Revenue")


def test_compose_category_icon_wins_over_default():
    config = CategoryConfig(enabled=True, icon="https://i/refund.png", sound="minuet", group="Refund")
    decision = compose(classify("REFUND"), config, "MyApp", _view(), "Production", False, default_icon="https://i/app.png")

    assert decision.title == "💸 MyApp Refund notice"
    assert decision.options.icon == "https://i/refund.png"


def test_compose_sandbox_forces_test_marker():
    decision = compose(classify("SUBSCRIBED", "INITIAL_BUY"), _ENABLED, "MyApp", _view(), "Sandbox", True)

    assert isinstance(decision, SendDecision)
    assert decision.title == "🧪 [TEST] MyApp New revenue!"


def test_compose_status_events_omit_amount():
    config = CategoryConfig(enabled=True, sound="popcorn", group="Status")
    decision = compose(
        classify("DID_CHANGE_RENEWAL_STATUS", "AUTO_RENEW_DISABLED"),
        config,
        "MyApp",
        _view(),
        "Production",
        False,
    )

    assert decision.title == "ℹ️ MyApp Status change"
    assert "Amount" not in decision.body
    assert decision.body == "Type: Auto-renew turned off\nProduct: pro.monthly"


def test_compose_appends_offer_lines():
    decision = compose(
        classify("SUBSCRIBED", "INITIAL_BUY"),
        _ENABLED,
        "MyApp",
        _view(price_text=None, offer_suffix=" (free trial)", offer_period_text="Trial duration: 1 week"),
        "Production",
        False,
    )

    assert decision.body.splitlines() == [
        "Type: New subscription (initial buy)",
        "Product: pro.monthly (free trial)",
        "Trial duration: 1 week",
    ]


def test_compose_suppression_order():
    disabled = CategoryConfig(enabled=False)

    assert compose(None, None, "MyApp", _view(), "Sandbox", False) == Suppressed("Sandbox notifications disabled")
    assert compose(None, None, "MyApp", _view(), "Production", False) == Suppressed("Unknown event")
    assert compose(classify("REFUND"), disabled, "MyApp", _view(), "Production", False) == Suppressed(
        "REFUND notifications disabled"
    )
    assert compose(classify("REFUND"), None, "MyApp", _view(), "Production", False) == Suppressed(
        "REFUND notifications disabled"
    )


def test_send_decision_to_dict():
    decision = compose(classify("DID_RENEW"), _ENABLED, "MyApp", _view(), "Production", False)

    assert decision.to_dict() == {
        "title": "🎉 MyApp New revenue!",
        "body": "Type: Renewed\nProduct: pro.monthly\nAmount: $4.99",
        "icon": "",
        "sound": "calypso",
        "group": "MyApp-Revenue",
    }
