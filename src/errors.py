"""
Error kinds for the purchase webhook.

The verifier, router and notifier *return* these instead of raising them, so
the handler maps every kind to a response explicitly.
"""


class WebhookError(Exception):
    """Base class for every purchase-webhook error kind."""


class VerificationError(WebhookError):
    """The request could not be turned into a VerifiedEvent."""


class MalformedHeader(VerificationError):
    pass


class BadSignature(VerificationError):
    pass


class StaleSignature(VerificationError):
    pass


class MalformedPayload(VerificationError):
    pass


class IncompletePayload(WebhookError):
    """A checkout event is missing the items or shipping needed for fulfillment."""


class NotificationError(WebhookError):
    """The mail API rejected or failed to accept the fulfillment email."""
