import base64
import json
from functools import partial
from typing import Any, Callable, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from errors import IncompletePayload, NotificationError, VerificationError
from notifier import FulfillmentNotifier, NotifierConfig
from router import route
from utils.config import FulfillmentConfig, load_config
from utils.idempotency import was_processed
from utils.logger import get_logger
from utils.ses_client import build_client
from verifier import SIGNATURE_HEADER, verify

logger = get_logger("purchase")


def _response(status_code: int, body: str) -> Dict[str, Any]:
    return {"statusCode": status_code, "body": body}


def _received() -> Dict[str, Any]:
    return _response(200, json.dumps({"received": True}))


def _webhook_error(err: Exception) -> Dict[str, Any]:
    return _response(400, f"Webhook Error: {err}")


def _raw_body(event: dict) -> bytes:
    """
    Return the request body exactly as received.

    API Gateway base64-encodes bodies it considers binary; Stripe signs the
    decoded bytes.
    """
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        return base64.b64decode(body)
    if isinstance(body, bytes):
        return body
    return body.encode("utf-8")


def _signature_header(event: dict) -> str:
    headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
    return headers.get(SIGNATURE_HEADER, "")


def handle_purchase(
    event: dict,
    config: FulfillmentConfig,
    notifier: FulfillmentNotifier,
    dedup: Optional[Callable[[str], bool]] = None,
) -> Dict[str, Any]:
    """
    Verify a Stripe webhook and send a fulfillment email for completed checkouts.

    Responds 400 when the webhook can't be verified or the checkout lacks
    items/shipping. Everything else is acknowledged with 200, including
    email failures: the event itself was valid and Stripe must not redeliver it.
    """
    # 1) Verify signature against the untouched body
    verified = verify(
        _raw_body(event),
        _signature_header(event),
        config.webhook_secret,
        config.tolerance_seconds,
    )
    if isinstance(verified, VerificationError):
        logger.warning(
            "purchase.verification_failed",
            extra={"error_kind": type(verified).__name__, "error": str(verified)},
        )
        return _webhook_error(verified)

    logger.info("purchase.verified", extra={"event_id": verified.id, "event_type": verified.type})

    # 2) Route on event type
    details = route(verified, config.line_items_field)
    if details is None:
        logger.info("purchase.ignored", extra={"event_id": verified.id, "event_type": verified.type})
        return _received()

    if isinstance(details, IncompletePayload):
        logger.warning(
            "purchase.incomplete_payload",
            extra={"event_id": verified.id, "error": str(details)},
        )
        return _webhook_error(details)

    # 3) Optional duplicate suppression
    if dedup is not None and verified.id:
        try:
            if dedup(verified.id):
                logger.info("purchase.duplicate", extra={"event_id": verified.id})
                return _received()
        except (ClientError, BotoCoreError) as e:
            # Prefer a possible double email over a dropped fulfillment
            logger.error(
                "purchase.dedup_error",
                extra={"event_id": verified.id, "error": str(e)},
            )

    # 4) Notify fulfillment; failure is recorded, never surfaced to Stripe
    result = notifier.notify(details)
    if isinstance(result, NotificationError):
        logger.error(
            "purchase.notification_failed",
            extra={"event_id": verified.id, "error": str(result)},
        )
    else:
        logger.info(
            "purchase.notified",
            extra={"event_id": verified.id, "message_id": result.message_id},
        )

    return _received()


def lambda_handler(event, context):
    logger.info(
        "purchase.lambda_start",
        extra={"request_id": getattr(context, "aws_request_id", None)},
    )

    try:
        config = load_config()
    except RuntimeError as e:
        # Misconfiguration is a 500, not a 4xx
        logger.error("purchase.env_error", extra={"error": str(e)})
        return _response(500, json.dumps({"error": "server_misconfigured"}))

    notifier = FulfillmentNotifier(
        build_client(config.region),
        NotifierConfig(recipient=config.recipient, sender=config.sender),
    )
    dedup = None
    if config.idempotency_table:
        dedup = partial(was_processed, table=config.idempotency_table)

    return handle_purchase(event, config, notifier, dedup)
