import time

import boto3
from botocore.exceptions import ClientError


def was_processed(event_id: str, table: str, ddb=None, ttl_secs: int = 86400) -> bool:
    """
    Record event_id in DynamoDB; True if it was already recorded.

    Uses a conditional put so two concurrent deliveries of the same event
    cannot both see False. Items expire via the table's TTL on `exp`.
    """
    ddb = ddb or boto3.client("dynamodb")
    try:
        ddb.put_item(
            TableName=table,
            Item={"pk": {"S": event_id}, "exp": {"N": str(int(time.time()) + ttl_secs)}},
            ConditionExpression="attribute_not_exists(pk)",
        )
        return False
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            return True
        raise
