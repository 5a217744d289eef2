import json

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from utils.logger import get_logger

logger = get_logger("secrets")


def get_payment_secrets(secret_name: str, region_name: str = "us-east-1") -> dict:
    """
    Fetch Stripe credentials from AWS Secrets Manager.

    Expects the secret value to be a JSON object, e.g.:

        {
          "webhook_secret": "whsec_..."
        }
    """
    logger.info(
        "Fetching payment secrets from Secrets Manager",
        extra={"secret_name": secret_name, "region": region_name},
    )

    client = boto3.client("secretsmanager", region_name=region_name)

    try:
        resp = client.get_secret_value(SecretId=secret_name)
    except (ClientError, BotoCoreError) as e:
        logger.error(
            "Failed to fetch payment secret",
            extra={"secret_name": secret_name, "region": region_name, "error": str(e)},
        )
        raise RuntimeError(f"Unable to read secret '{secret_name}': {e}")

    secret_str = resp.get("SecretString")

    if not secret_str:
        msg = f"Secret '{secret_name}' has no SecretString payload"
        logger.error(msg)
        raise RuntimeError(msg)

    try:
        data = json.loads(secret_str)
    except json.JSONDecodeError as e:
        logger.error(
            "SecretString is not valid JSON",
            extra={"secret_name": secret_name, "error": str(e)},
        )
        raise RuntimeError(f"Secret '{secret_name}' is not valid JSON")

    if not isinstance(data, dict) or not data.get("webhook_secret"):
        logger.error("Payment secret missing webhook_secret", extra={"secret_name": secret_name})
        raise RuntimeError(f"Secret '{secret_name}' has no webhook_secret")

    return data
