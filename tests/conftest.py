from datetime import date, datetime
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.db.repository import get_repository
from app.main import app
from app.models.subscription import Subscription
from app.models.user import UserInDB, UserRole, UserStatus


class InMemoryRepository:
    """SubscriptionRepository kept in dicts, for tests only."""

    def __init__(self) -> None:
        self.users: Dict[str, UserInDB] = {}
        self.subscriptions: Dict[str, Subscription] = {}

    def get_subscriptions_for_user(self, owner_email: str) -> List[Subscription]:
        return [sub for sub in self.subscriptions.values() if sub.owner_email == owner_email.lower()]

    def get_all_subscriptions(self) -> List[Subscription]:
        return list(self.subscriptions.values())

    def get_all_users(self) -> List[UserInDB]:
        return list(self.users.values())

    def get_user(self, email: str) -> Optional[UserInDB]:
        return self.users.get(email.lower())

    def save_user(self, user: UserInDB) -> UserInDB:
        self.users[user.email] = user
        return user

    def delete_user(self, email: str) -> bool:
        return self.users.pop(email.lower(), None) is not None

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        return self.subscriptions.get(subscription_id)

    def save_subscription(self, subscription: Subscription) -> Subscription:
        self.subscriptions[subscription.id] = subscription
        return subscription

    def delete_subscription(self, subscription_id: str) -> bool:
        return self.subscriptions.pop(subscription_id, None) is not None


@pytest.fixture
def make_subscription():
    def _make(**overrides) -> Subscription:
        data = {
            "owner_email": "ana@example.com",
            "platform": "Netflix",
            "category": "Streaming",
            "amount": 1000,
            "currency": "CLP",
            "period": "Monthly",
            "renewal_date": date(2025, 3, 10),
            "created_at": date(2024, 1, 15),
        }
        data.update(overrides)
        if data.get("status") == "Canceled":
            data.setdefault("canceled_at", date(2025, 1, 1))
        return Subscription(**data)

    return _make


@pytest.fixture
def make_user():
    def _make(email: str, **overrides) -> UserInDB:
        data = {
            "email": email,
            "first_name": email.split("@")[0].capitalize(),
            "last_name": "Tester",
            "password_hash": "not-a-real-hash",
            "role": UserRole.USER,
            "status": UserStatus.ACTIVE,
            "created_at": datetime(2025, 1, 1),
        }
        data.update(overrides)
        return UserInDB(**data)

    return _make


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def client(repo):
    app.dependency_overrides[get_repository] = lambda: repo
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(repo, make_user):
    """Store a user (if missing) and return bearer headers for it."""

    def _headers(email: str = "ana@example.com", **overrides) -> Dict[str, str]:
        if repo.get_user(email) is None:
            repo.save_user(make_user(email, **overrides))
        token = create_access_token(data={"sub": email.lower()})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers("admin@example.com", role=UserRole.ADMIN)
