import json

from errors import NotificationError
from notifier import Ack, FulfillmentNotifier, NotifierConfig
from router import route


def test_notify_sends_one_email(notifier, stub_ses, verified_event, checkout_payload):
    details = route(verified_event(checkout_payload))

    result = notifier.notify(details)

    assert isinstance(result, Ack)
    assert result.message_id == "0100018b-0001"
    assert len(stub_ses.sent) == 1
    sent = stub_ses.sent[0]
    assert sent["Source"] == "shop@example.com"
    assert sent["Destination"] == {"ToAddresses": ["fulfillment@example.com"]}
    assert sent["Message"]["Subject"]["Data"] == "New purchase from Jenny Rosen"


def test_message_body_is_readable_json_dump(notifier, verified_event, checkout_payload):
    msg = notifier.build_message(route(verified_event(checkout_payload)))

    assert msg.text.startswith("{\n  ")
    body = json.loads(msg.text)
    assert [i["description"] for i in body["items"]] == ["Sticker Pack", "Canvas Tote"]
    assert body["shippingDetails"]["name"] == "Jenny Rosen"
    assert body["shippingDetails"]["address"]["line1"] == "510 Townsend St"


def test_ses_failure_becomes_notification_error(failing_ses, config, verified_event, checkout_payload):
    notifier = FulfillmentNotifier(failing_ses, NotifierConfig(recipient=config.recipient, sender=config.sender))

    result = notifier.notify(route(verified_event(checkout_payload)))

    assert isinstance(result, NotificationError)
    assert "not verified" in str(result)
    assert failing_ses.sent == []
