"""
Shop Fulfillment Function Utilities
===================================

Shared helper modules for the purchase and products functions:

- logger.py       → structured JSON logging
- config.py       → environment configuration for the purchase function
- secrets.py      → AWS Secrets Manager integration
- ses_client.py   → Amazon SES client builder
- idempotency.py  → DynamoDB-based duplicate-event guard

All functions in this package are stateless, suitable for AWS Lambda execution.
"""

from .logger import get_logger, log

__all__ = [
    "get_logger",
    "log",
]
