"""
Repository interface between the HTTP layer and storage.

The analytics core only ever sees the plain collections returned by the three
read methods; the write methods serve the application routes.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.models.subscription import Subscription, SubscriptionStatus
from app.models.user import UserInDB

logger = logging.getLogger(__name__)


class RepositoryError(RuntimeError):
    """A write could not be persisted."""


ModelT = TypeVar("ModelT", bound=BaseModel)


def _backfill_legacy(item: Dict[str, Any]) -> Dict[str, Any]:
    # Older rows were canceled without recording when; use the creation day.
    try:
        canceled = SubscriptionStatus(item.get("status")) is SubscriptionStatus.CANCELED
    except ValueError:
        return item
    if canceled and not item.get("canceled_at"):
        return {**item, "canceled_at": item.get("created_at") or item.get("renewal_date")}
    return item


def _load(model: Type[ModelT], item: Dict[str, Any]) -> Optional[ModelT]:
    """Validate one stored item, logging and skipping it when malformed."""
    if model is Subscription:
        item = _backfill_legacy(item)
    try:
        return model.model_validate(item)
    except ValidationError as e:
        logger.warning(f"Skipping malformed {model.__name__} item {item.get('id') or item.get('email')}: {e}")
        return None


def _load_all(model: Type[ModelT], items: Iterable[Dict[str, Any]]) -> List[ModelT]:
    loaded = (_load(model, item) for item in items)
    return [record for record in loaded if record is not None]


class SubscriptionRepository(Protocol):
    def get_subscriptions_for_user(self, owner_email: str) -> List[Subscription]:
        ...

    def get_all_subscriptions(self) -> List[Subscription]:
        ...

    def get_all_users(self) -> List[UserInDB]:
        ...

    def get_user(self, email: str) -> Optional[UserInDB]:
        ...

    def save_user(self, user: UserInDB) -> UserInDB:
        ...

    def delete_user(self, email: str) -> bool:
        ...

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        ...

    def save_subscription(self, subscription: Subscription) -> Subscription:
        ...

    def delete_subscription(self, subscription_id: str) -> bool:
        ...


class DynamoRepository:
    """SubscriptionRepository backed by the DynamoDB tables in app.db.dynamo."""

    def __init__(self, dynamo_module=None) -> None:
        if dynamo_module is None:
            from app.db import dynamo as dynamo_module
        self._dynamo = dynamo_module

    def get_subscriptions_for_user(self, owner_email: str) -> List[Subscription]:
        return _load_all(Subscription, self._dynamo.get_subscriptions_for_user(owner_email))

    def get_all_subscriptions(self) -> List[Subscription]:
        return _load_all(Subscription, self._dynamo.scan_subscriptions())

    def get_all_users(self) -> List[UserInDB]:
        return _load_all(UserInDB, self._dynamo.scan_users())

    def get_user(self, email: str) -> Optional[UserInDB]:
        item = self._dynamo.get_user(email)
        return _load(UserInDB, item) if item else None

    def save_user(self, user: UserInDB) -> UserInDB:
        if not self._dynamo.put_user(user.model_dump(mode="json")):
            raise RepositoryError(f"Failed to save user {user.email}")
        return user

    def delete_user(self, email: str) -> bool:
        return self._dynamo.delete_user(email)

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        item = self._dynamo.get_subscription(subscription_id)
        return _load(Subscription, item) if item else None

    def save_subscription(self, subscription: Subscription) -> Subscription:
        if not self._dynamo.put_subscription(subscription.model_dump(mode="json")):
            raise RepositoryError(f"Failed to save subscription {subscription.id}")
        return subscription

    def delete_subscription(self, subscription_id: str) -> bool:
        return self._dynamo.delete_subscription(subscription_id)


_repository: Optional[DynamoRepository] = None


def get_repository() -> SubscriptionRepository:
    """FastAPI dependency returning the process-wide DynamoDB repository."""
    global _repository
    if _repository is None:
        logger.info("Initializing DynamoDB repository")
        _repository = DynamoRepository()
    return _repository
