import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from router import LINE_ITEM_FIELDS
from utils.logger import get_logger
from utils.secrets import get_payment_secrets

logger = get_logger("config")


@dataclass(frozen=True)
class FulfillmentConfig:
    webhook_secret: str
    recipient: str
    sender: str
    tolerance_seconds: int = 300
    line_items_field: str = "display_items"
    idempotency_table: Optional[str] = None
    region: str = "us-east-1"


@lru_cache(maxsize=None)
def _webhook_secret_from_manager(secret_name: str, region: str) -> str:
    # Resolved once per container; failures are not cached and retry next call
    return get_payment_secrets(secret_name, region)["webhook_secret"]


def _fail(msg: str) -> None:
    logger.error(msg)
    raise RuntimeError(msg)


def load_config() -> FulfillmentConfig:
    """
    Load configuration for the purchase function from the environment.

    STRIPE_WEBHOOK_SECRET:      webhook signing secret (whsec_...)
    PAYMENT_SECRET_NAME:        Secrets Manager secret holding {"webhook_secret": ...},
                                used only when STRIPE_WEBHOOK_SECRET is unset
    FULFILLMENT_EMAIL_ADDRESS:  where fulfillment emails go
    FROM_EMAIL_ADDRESS:         verified SES sender
    WEBHOOK_TOLERANCE_SECONDS:  max signature age (default 300)
    LINE_ITEMS_FIELD:           "display_items" (legacy API) or "line_items"
    IDEMPOTENCY_TABLE:          DynamoDB table for duplicate suppression (optional)

    Raises RuntimeError with a clear message if something is missing/invalid.
    """
    region = os.getenv("AWS_REGION", "us-east-1")
    webhook_secret = os.getenv("STRIPE_WEBHOOK_SECRET")
    secret_name = os.getenv("PAYMENT_SECRET_NAME")
    recipient = os.getenv("FULFILLMENT_EMAIL_ADDRESS")
    sender = os.getenv("FROM_EMAIL_ADDRESS")
    tolerance_str = os.getenv("WEBHOOK_TOLERANCE_SECONDS", "300")
    line_items_field = os.getenv("LINE_ITEMS_FIELD", "display_items")

    missing = []
    if not webhook_secret and not secret_name:
        missing.append("STRIPE_WEBHOOK_SECRET (or PAYMENT_SECRET_NAME)")
    if not recipient:
        missing.append("FULFILLMENT_EMAIL_ADDRESS")
    if not sender:
        missing.append("FROM_EMAIL_ADDRESS")

    if missing:
        _fail(f"Missing required environment variables: {', '.join(missing)}")

    try:
        tolerance_seconds = int(tolerance_str)
    except ValueError:
        _fail(
            f"Invalid WEBHOOK_TOLERANCE_SECONDS='{tolerance_str}'. "
            "Must be an integer number of seconds."
        )

    if line_items_field not in LINE_ITEM_FIELDS:
        _fail(
            f"Invalid LINE_ITEMS_FIELD='{line_items_field}'. "
            f"Must be one of: {', '.join(LINE_ITEM_FIELDS)}"
        )

    if not webhook_secret:
        webhook_secret = _webhook_secret_from_manager(secret_name, region)

    return FulfillmentConfig(
        webhook_secret=webhook_secret,
        recipient=recipient,
        sender=sender,
        tolerance_seconds=tolerance_seconds,
        line_items_field=line_items_field,
        idempotency_table=os.getenv("IDEMPOTENCY_TABLE") or None,
        region=region,
    )
