import logging
from decimal import Decimal
from typing import Any, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from app.core.config import settings

logger = logging.getLogger(__name__)

OWNER_EMAIL_INDEX = "owner_email-index"

# Initialize DynamoDB resource
dynamodb = boto3.resource("dynamodb", region_name=settings.DYNAMO_REGION)

# Get table references
users_table = dynamodb.Table(settings.DYNAMO_USERS_TABLE)
subscriptions_table = dynamodb.Table(settings.DYNAMO_SUBSCRIPTIONS_TABLE)


def get_user(email: str) -> Optional[dict]:
    """Get a user by email, the partition key of the Users table."""
    try:
        response = users_table.get_item(Key={"email": email.lower()})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_user failed: {e.response['Error']['Message']}")
        return None


def put_user(user_item: dict) -> bool:
    """Insert or replace a user in the Users table."""
    try:
        users_table.put_item(Item=_convert_for_dynamo(user_item))
        return True
    except ClientError as e:
        logger.error(f"put_user failed: {e.response['Error']['Message']}")
        return False


def delete_user(email: str) -> bool:
    try:
        response = users_table.delete_item(Key={"email": email.lower()}, ReturnValues="ALL_OLD")
        return "Attributes" in response
    except ClientError as e:
        logger.error(f"delete_user failed: {e.response['Error']['Message']}")
        return False


def scan_users() -> List[dict]:
    try:
        return _scan_all(users_table)
    except ClientError as e:
        logger.error(f"scan_users failed: {e.response['Error']['Message']}")
        return []


def put_subscription(subscription_item: dict) -> bool:
    """Insert or update a subscription."""
    try:
        subscriptions_table.put_item(Item=_convert_for_dynamo(subscription_item))
        return True
    except ClientError as e:
        logger.error(f"put_subscription failed: {e.response['Error']['Message']}")
        return False


def get_subscription(subscription_id: str) -> Optional[dict]:
    try:
        response = subscriptions_table.get_item(Key={"id": subscription_id})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_subscription failed: {e.response['Error']['Message']}")
        return None


def get_subscriptions_for_user(owner_email: str) -> List[dict]:
    """
    Query all subscriptions owned by a user through the owner_email GSI.
    """
    items: List[dict] = []
    kwargs = {
        "IndexName": OWNER_EMAIL_INDEX,  # You must create this GSI manually
        "KeyConditionExpression": Key("owner_email").eq(owner_email.lower()),
    }
    try:
        while True:
            response = subscriptions_table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return [_from_dynamo(item) for item in items]
    except ClientError as e:
        logger.error(f"get_subscriptions_for_user failed: {e.response['Error']['Message']}")
        return []


def scan_subscriptions() -> List[dict]:
    try:
        return _scan_all(subscriptions_table)
    except ClientError as e:
        logger.error(f"scan_subscriptions failed: {e.response['Error']['Message']}")
        return []


def delete_subscription(subscription_id: str) -> bool:
    """Delete a specific subscription item."""
    try:
        response = subscriptions_table.delete_item(
            Key={"id": subscription_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in response
    except ClientError as e:
        logger.error(f"delete_subscription failed: {e.response['Error']['Message']}")
        return False


def _scan_all(table) -> List[dict]:
    items: List[dict] = []
    kwargs: dict = {}
    while True:
        response = table.scan(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            break
        kwargs["ExclusiveStartKey"] = last_key
    return [_from_dynamo(item) for item in items]


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal and drop None values for DynamoDB.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
