import argparse
import asyncio
from typing import Optional

from appstore_notify import (
    AppConfig,
    NotificationHandler,
    RecordingNotifier,
    encode_envelope,
    resolve_notification_config,
)


def build_body(notification_type: str, subtype: Optional[str], environment: str) -> dict:
    transaction = encode_envelope(
        {
            "productId": "pro.yearly",
            "price": 29990,
            "currency": "USD",
            "offerType": 1,
            "offerDiscountType": "FREE_TRIAL",
            "offerPeriod": "P1W",
        }
    )
    payload = {
        "notificationType": notification_type,
        "data": {"environment": environment, "signedTransactionInfo": transaction},
    }
    if subtype:
        payload["subtype"] = subtype
    return {"signedPayload": encode_envelope(payload)}


async def async_main() -> None:
    parser = argparse.ArgumentParser(description="appstore_notify offline pipeline example")
    parser.add_argument("--type", default="SUBSCRIBED", help="notificationType (default: SUBSCRIBED)")
    parser.add_argument("--subtype", default="INITIAL_BUY", help="subtype (default: INITIAL_BUY)")
    parser.add_argument("--sandbox", action="store_true", help="Mark the notification as Sandbox")
    args = parser.parse_args()

    app = AppConfig(
        name="demo",
        product_name="Demo App",
        push_key="demo-key",
        sandbox_enabled=True,
        notifications=resolve_notification_config(
            app_override={"REFUND": {"enabled": True}, "RISK": {"enabled": True}, "STATUS": {"enabled": True}},
        ),
    )
    notifier = RecordingNotifier()
    handler = NotificationHandler.for_app(app, notifier=notifier)

    body = build_body(args.type, args.subtype or None, "Sandbox" if args.sandbox else "Production")
    result = await handler.handle(body)
    print("result:", result.to_dict())
    for sent in notifier.sent:
        print("title:", sent.title)
        print(sent.body)
        print("options:", sent.options.to_dict())


if __name__ == "__main__":
    asyncio.run(async_main())
