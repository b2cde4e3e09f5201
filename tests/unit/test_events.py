from appstore_notify.events import EVENT_TABLE, classify, event_key
from appstore_notify.types import Category


def test_classify_exact_match():
    found = classify("SUBSCRIBED", "INITIAL_BUY")

    assert found is not None
    assert found.category is Category.REVENUE
    assert found.display_name == "New subscription (initial buy)"
    assert found.emoji == "🎉"


def test_classify_falls_back_to_type_only_entry():
    assert classify("DID_RENEW", None).display_name == "Renewed"
    assert classify("DID_RENEW", "BILLING_RECOVERY").display_name == "Renewal recovered"
    assert classify("DID_RENEW", "SOMETHING_NEW").display_name == "Renewed"


def test_classify_unknown_events_return_none():
    assert classify("SUBSCRIBED", "UNLISTED") is None
    assert classify("NOT_A_TYPE", None) is None
    assert classify("", None) is None


def test_event_key_uses_empty_subtype():
    assert event_key("REFUND") == "REFUND|"
    assert event_key("REFUND", "") == "REFUND|"
    assert event_key("EXPIRED", "VOLUNTARY") == "EXPIRED|VOLUNTARY"


def test_event_table_is_read_only_and_covers_every_category():
    categories = {entry.category for entry in EVENT_TABLE.values()}
    assert categories == set(Category)
    assert classify("REFUND", None).emoji == "💸"
    assert classify("REVOKE", None).category is Category.RISK
    assert classify("TEST", None).category is Category.STATUS

    try:
        EVENT_TABLE["NEW|"] = EVENT_TABLE["TEST|"]  # type: ignore[index]
    except TypeError:
        pass
    else:
        raise AssertionError("event table must not be writable")
