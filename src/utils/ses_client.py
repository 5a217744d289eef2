# utils/ses_client.py

import boto3

from utils.logger import get_logger

logger = get_logger("ses_client")


def build_client(region_name: str = "us-east-1"):
    """
    Build an Amazon SES client.

    SES authenticates with the function's IAM role, so there is no API key to
    load; the sender address must be a verified SES identity in this region.
    """
    client = boto3.client("ses", region_name=region_name)
    logger.info("SES client initialized", extra={"region": region_name})
    return client
