"""Stripe webhook signature verification (v1 scheme).

Stripe sends a `Stripe-Signature` header of the form:
    t=<timestamp>,v1=<signature>[,v1=<signature>...][,v0=<deprecated>]

where each v1 value is HMAC-SHA256(secret, "<timestamp>." + raw_body), hex encoded.
The raw body must be used exactly as received; re-serialising parsed JSON
breaks the signature.
"""

import hashlib
import hmac
import json
import time
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, Union

from errors import (
    BadSignature,
    MalformedHeader,
    MalformedPayload,
    StaleSignature,
    VerificationError,
)

SIGNATURE_HEADER = "stripe-signature"
EXPECTED_SCHEME = "v1"
DEFAULT_TOLERANCE = 300

# Set only while verify() builds an event; any other construction path
# (direct call, dataclasses.replace) is refused.
_MINTING: ContextVar[bool] = ContextVar("verified_event_minting", default=False)


@dataclass(frozen=True)
class VerifiedEvent:
    id: str
    type: str
    payload: Dict[str, Any]

    def __post_init__(self):
        if not _MINTING.get():
            raise TypeError("VerifiedEvent can only be created by verifier.verify()")


def compute_signature(raw_body: bytes, secret: str, timestamp: int) -> str:
    """Hex HMAC-SHA256 over "<timestamp>." + raw_body."""
    signed_payload = f"{timestamp}.".encode("utf-8") + raw_body
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def _parse_header(signature_header: str) -> Tuple[int, List[str]]:
    timestamp = None
    signatures: List[str] = []

    for item in (signature_header or "").split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            raise MalformedHeader("Unable to extract timestamp and signatures from header")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise MalformedHeader("Unable to extract timestamp and signatures from header")
        elif key == EXPECTED_SCHEME:
            signatures.append(value)

    if timestamp is None:
        raise MalformedHeader("Unable to extract timestamp and signatures from header")

    return timestamp, signatures


def _parse_payload(raw_body: bytes) -> Dict[str, Any]:
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedPayload(f"Invalid payload: {e}")

    if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
        raise MalformedPayload("Invalid payload: event envelope has no type")

    return payload


def verify(
    raw_body: bytes,
    signature_header: str,
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE,
) -> Union[VerifiedEvent, VerificationError]:
    """
    Verify a webhook request and decode its event envelope.

    Returns a VerifiedEvent on success, otherwise one of MalformedHeader,
    BadSignature, StaleSignature or MalformedPayload. The signature is checked
    before the timestamp, so a stale request with a wrong signature reports
    BadSignature. A tolerance <= 0 disables the staleness check.
    """
    try:
        timestamp, signatures = _parse_header(signature_header)
    except MalformedHeader as e:
        return e

    if not signatures:
        return BadSignature("No signatures found with expected scheme")

    expected = compute_signature(raw_body, secret, timestamp)
    # Compare as bytes: str comparison raises TypeError on non-ASCII input
    expected_bytes = expected.encode("utf-8")
    if not any(hmac.compare_digest(expected_bytes, sig.encode("utf-8", "replace")) for sig in signatures):
        return BadSignature("No signatures found matching the expected signature for payload")

    if tolerance > 0 and timestamp < time.time() - tolerance:
        return StaleSignature("Timestamp outside the tolerance zone")

    try:
        payload = _parse_payload(raw_body)
    except MalformedPayload as e:
        return e

    token = _MINTING.set(True)
    try:
        return VerifiedEvent(
            id=str(payload.get("id") or ""),
            type=payload["type"],
            payload=payload,
        )
    finally:
        _MINTING.reset(token)
