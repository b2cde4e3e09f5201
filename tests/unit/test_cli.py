import json
import os
from pathlib import Path
from typing import Any, Optional

from appstore_notify import cli
from appstore_notify.envelope import encode_envelope

_ENV_PREFIXES = (
    "APPS",
    "BARK_",
    "PRODUCT_NAME_",
    "FORWARD_URL_",
    "ENABLE_SANDBOX_",
    "NOTIFICATION_CONFIG",
)


def _clean_env(monkeypatch: Any) -> None:
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)


def _notification_body(notification_type: str, subtype: Optional[str] = None, environment: str = "Production") -> str:
    transaction = encode_envelope({"productId": "pro.monthly", "price": 4990, "currency": "USD"})
    payload: dict[str, Any] = {
        "notificationType": notification_type,
        "data": {"environment": environment, "signedTransactionInfo": transaction},
    }
    if subtype:
        payload["subtype"] = subtype
    return json.dumps({"signedPayload": encode_envelope(payload)})


def test_decode_token_json_output(capsys: Any) -> None:
    token = encode_envelope({"notificationType": "TEST"})

    code = cli.main(["decode", "--token", token, "--format", "json"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload == {"payload": {"notificationType": "TEST"}}


def test_decode_body_nested(capsys: Any) -> None:
    code = cli.main(["decode", "--body-json", _notification_body("DID_RENEW"), "--nested", "--format", "json"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["payload"]["notificationType"] == "DID_RENEW"
    assert payload["transaction_info"] == {"productId": "pro.monthly", "price": 4990, "currency": "USD"}
    assert "renewal_info" not in payload


def test_decode_body_from_file(tmp_path: Path, capsys: Any) -> None:
    body_file = tmp_path / "body.json"
    body_file.write_text(_notification_body("REFUND"), encoding="utf-8")

    code = cli.main(["decode", "--body-file", str(body_file), "--format", "json"])

    assert code == 0
    assert json.loads(capsys.readouterr().out)["payload"]["notificationType"] == "REFUND"


def test_decode_malformed_token_is_value_error(capsys: Any) -> None:
    code = cli.main(["decode", "--token", "not-an-envelope"])

    assert code == 2
    assert "Error: envelope could not be decoded" in capsys.readouterr().err


def test_decode_rejects_token_with_body(capsys: Any) -> None:
    code = cli.main(["decode", "--token", "a.b.c", "--body-json", "{}", "--format", "json"])

    assert code == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is False
    assert payload["exit_code"] == 2


def test_decode_requires_a_source(capsys: Any) -> None:
    code = cli.main(["decode"])

    assert code == 2
    assert "one of --body-json, --body-file or --body-stdin is required" in capsys.readouterr().err


def test_preview_prints_composed_notification(monkeypatch: Any, capsys: Any) -> None:
    _clean_env(monkeypatch)
    monkeypatch.setenv("APPS", "myapp")
    monkeypatch.setenv("PRODUCT_NAME_myapp", "MyApp")

    code = cli.main(["preview", "--app", "myapp", "--body-json", _notification_body("DID_RENEW"), "--format", "json"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "success"
    assert payload["message"] == "Notification sent: Renewed"
    assert payload["notification"] == {
        "title": "🎉 MyApp New revenue!",
        "body": "Type: Renewed\nProduct: pro.monthly\nAmount: $4.99",
        "icon": "",
        "sound": "calypso",
        "group": "MyApp-Revenue",
    }


def test_preview_sandbox_requires_flag(monkeypatch: Any, capsys: Any) -> None:
    _clean_env(monkeypatch)
    body = _notification_body("DID_RENEW", environment="Sandbox")

    code = cli.main(["preview", "--app", "adhoc", "--body-json", body, "--format", "json"])
    assert code == 0
    suppressed = json.loads(capsys.readouterr().out)
    assert suppressed == {"status": "ignored", "message": "Sandbox notifications disabled"}

    code = cli.main(["preview", "--app", "adhoc", "--enable-sandbox", "--body-json", body, "--format", "json"])
    assert code == 0
    sent = json.loads(capsys.readouterr().out)
    assert sent["notification"]["title"] == "🧪 [TEST] adhoc New revenue!"


def test_preview_unknown_event(monkeypatch: Any, capsys: Any) -> None:
    _clean_env(monkeypatch)

    code = cli.main(["preview", "--app", "adhoc", "--body-json", _notification_body("NEW_THING", "X"), "--format", "json"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {"status": "ignored", "message": "Unknown event: NEW_THING|X"}


def test_apps_masks_secrets(monkeypatch: Any, capsys: Any) -> None:
    _clean_env(monkeypatch)
    monkeypatch.setenv("APPS", "irich")
    monkeypatch.setenv("BARK_KEY_irich", "abcdefghijklmnop")
    monkeypatch.setenv("FORWARD_URL_irich", "https://hooks.example.com/secret/path")

    code = cli.main(["apps", "--format", "json"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    app = payload["apps"][0]
    assert app["name"] == "irich"
    assert app["push_key"] == "abcd****mnop"
    assert app["forward_url"] == "hooks.example.com/****"
    assert app["notifications"]["REVENUE"]["enabled"] is True


def test_apps_reads_env_file(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _clean_env(monkeypatch)
    env_file = tmp_path / ".env"
    env_file.write_text("APPS=one,two\n", encoding="utf-8")

    code = cli.main(["apps", "--env-file", str(env_file), "--format", "json"])

    assert code == 0
    assert [app["name"] for app in json.loads(capsys.readouterr().out)["apps"]] == ["one", "two"]


def test_serve_without_apps_is_configuration_error(monkeypatch: Any, capsys: Any) -> None:
    _clean_env(monkeypatch)

    code = cli.main(["serve", "--port", "0"])

    assert code == 2
    assert "no apps configured" in capsys.readouterr().err


def test_missing_command_exits_with_usage_error(capsys: Any) -> None:
    assert cli.main([]) == 2


def test_human_output_for_flat_mapping(capsys: Any) -> None:
    cli._print_result({"status": "ignored", "message": "Missing signedPayload"}, output_format="human")

    out = capsys.readouterr().out.splitlines()
    assert out == ["message : Missing signedPayload", "status  : ignored"]


def test_human_output_for_nested_mapping(capsys: Any) -> None:
    cli._print_result({"apps": [{"name": "irich"}]}, output_format="human")

    assert json.loads(capsys.readouterr().out) == {"apps": [{"name": "irich"}]}


def test_serve_rejects_non_positive_max_requests(monkeypatch: Any, capsys: Any) -> None:
    _clean_env(monkeypatch)
    monkeypatch.setenv("APPS", "irich")

    code = cli.main(["serve", "--port", "0", "--max-requests", "0"])

    assert code == 2
    assert "max-requests must be > 0" in capsys.readouterr().err
