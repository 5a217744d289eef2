import json
from dataclasses import dataclass
from typing import Union

from botocore.exceptions import BotoCoreError, ClientError

from errors import NotificationError
from router import PurchaseDetails
from utils.logger import get_logger

logger = get_logger("notifier")


@dataclass(frozen=True)
class NotifierConfig:
    recipient: str
    sender: str


@dataclass(frozen=True)
class NotificationMessage:
    to: str
    sender: str
    subject: str
    text: str


@dataclass(frozen=True)
class Ack:
    message_id: str


class FulfillmentNotifier:
    """Emails purchase details to the fulfillment provider through Amazon SES."""

    def __init__(self, client, config: NotifierConfig):
        # client: a boto3 "ses" client (or anything with the same send_email signature)
        self.client = client
        self.config = config

    def build_message(self, details: PurchaseDetails) -> NotificationMessage:
        return NotificationMessage(
            to=self.config.recipient,
            sender=self.config.sender,
            subject=f"New purchase from {details.shipping.name}",
            text=json.dumps(details.to_dict(), indent=2),
        )

    def notify(self, details: PurchaseDetails) -> Union[Ack, NotificationError]:
        """
        Send exactly one fulfillment email for the purchase.

        Transport and authentication failures from SES come back as a
        NotificationError; nothing is retried here.
        """
        msg = self.build_message(details)
        logger.info(
            "notifier.fulfill_purchase",
            extra={"event_id": details.event_id, "purchase": details.to_dict()},
        )

        try:
            resp = self.client.send_email(
                Source=msg.sender,
                Destination={"ToAddresses": [msg.to]},
                Message={
                    "Subject": {"Data": msg.subject, "Charset": "UTF-8"},
                    "Body": {"Text": {"Data": msg.text, "Charset": "UTF-8"}},
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "notifier.ses_error",
                extra={"error": str(e), "event_id": details.event_id, "to": msg.to},
            )
            return NotificationError(f"Failed to send fulfillment email: {e}")

        message_id = resp.get("MessageId", "<no-id>")
        logger.info(
            "notifier.ses_sent",
            extra={"message_id": message_id, "event_id": details.event_id, "to": msg.to},
        )
        return Ack(message_id=message_id)
