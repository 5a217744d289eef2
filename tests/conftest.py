import base64
import json
import time
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from notifier import FulfillmentNotifier, NotifierConfig
from utils.config import FulfillmentConfig
from verifier import compute_signature

WEBHOOK_SECRET = "whsec_test_secret"
EVENTS_DIR = Path(__file__).parent / "events"


class StubSES:
    """Stands in for boto3.client("ses"); records every send_email call."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send_email(self, Source, Destination, Message):
        if self.fail:
            raise ClientError(
                {"Error": {"Code": "MessageRejected", "Message": "Email address is not verified."}},
                "SendEmail",
            )
        self.sent.append({"Source": Source, "Destination": Destination, "Message": Message})
        return {"MessageId": f"0100018b-{len(self.sent):04d}"}


@pytest.fixture
def webhook_secret():
    return WEBHOOK_SECRET


@pytest.fixture
def sign():
    """Build a Stripe-Signature header value for a raw body."""

    def _sign(raw_body: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
        ts = int(time.time()) if timestamp is None else timestamp
        return f"t={ts},v1={compute_signature(raw_body, secret, ts)}"

    return _sign


@pytest.fixture
def load_event():
    def _load(name: str) -> dict:
        with open(EVENTS_DIR / name, "r", encoding="utf-8") as f:
            return json.load(f)

    return _load


@pytest.fixture
def checkout_payload(load_event):
    return load_event("checkout_session_completed.json")


@pytest.fixture
def api_event(sign):
    """Build an API Gateway event carrying a signed body."""

    def _build(payload, signature=None, base64_encoded=False):
        raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        headers = {"Stripe-Signature": sign(raw) if signature is None else signature}
        body = base64.b64encode(raw).decode("ascii") if base64_encoded else raw.decode("utf-8")
        return {"headers": headers, "body": body, "isBase64Encoded": base64_encoded}

    return _build


@pytest.fixture
def config():
    return FulfillmentConfig(
        webhook_secret=WEBHOOK_SECRET,
        recipient="fulfillment@example.com",
        sender="shop@example.com",
    )


@pytest.fixture
def stub_ses():
    return StubSES()


@pytest.fixture
def failing_ses():
    return StubSES(fail=True)


@pytest.fixture
def notifier(stub_ses, config):
    return FulfillmentNotifier(stub_ses, NotifierConfig(recipient=config.recipient, sender=config.sender))


@pytest.fixture
def verified_event(sign):
    """Turn a payload dict into a VerifiedEvent the only way possible: by verifying it."""
    from verifier import verify

    def _verify(payload: dict):
        raw = json.dumps(payload).encode("utf-8")
        event = verify(raw, sign(raw), WEBHOOK_SECRET)
        assert not isinstance(event, Exception), event
        return event

    return _verify
