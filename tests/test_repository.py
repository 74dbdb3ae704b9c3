import logging
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.db import dynamo
from app.db.repository import DynamoRepository, RepositoryError, get_repository
from app.main import app
from app.models.subscription import Category, SubscriptionStatus


def fake_dynamo(**overrides):
    defaults = {
        "get_subscriptions_for_user": lambda email: [],
        "scan_subscriptions": lambda: [],
        "scan_users": lambda: [],
        "get_user": lambda email: None,
        "put_user": lambda item: True,
        "delete_user": lambda email: True,
        "get_subscription": lambda subscription_id: None,
        "put_subscription": lambda item: True,
        "delete_subscription": lambda subscription_id: True,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


STORED_ITEM = {
    "id": "sub-1",
    "owner_email": "ana@example.com",
    "platform": "Spotify",
    "category": "Música",
    "amount": 4500,
    "currency": "CLP",
    "period": "Mensual",
    "renewal_date": "2025-03-28",
    "created_at": "2024-01-15",
    "status": "Cancelada",
    "canceled_at": "2025-02-01",
    "enable_reminder": True,
}


def test_items_are_validated_into_records():
    repo = DynamoRepository(fake_dynamo(get_subscriptions_for_user=lambda email: [STORED_ITEM]))
    [sub] = repo.get_subscriptions_for_user("ana@example.com")

    assert sub.category is Category.MUSIC
    assert sub.status is SubscriptionStatus.CANCELED
    assert sub.renewal_date == date(2025, 3, 28)


def test_save_subscription_writes_json_shape(make_subscription):
    written = []
    repo = DynamoRepository(fake_dynamo(put_subscription=lambda item: written.append(item) or True))

    sub = make_subscription(amount=9.99, currency="USD")
    assert repo.save_subscription(sub) == sub
    assert written[0]["renewal_date"] == "2025-03-10"
    assert written[0]["currency"] == "USD"
    assert written[0]["amount"] == 9.99


def test_failed_writes_raise(make_subscription, make_user):
    repo = DynamoRepository(fake_dynamo(put_subscription=lambda item: False, put_user=lambda item: False))

    with pytest.raises(RepositoryError):
        repo.save_subscription(make_subscription())
    with pytest.raises(RepositoryError):
        repo.save_user(make_user("ana@example.com"))


def test_missing_items_are_none():
    repo = DynamoRepository(fake_dynamo())

    assert repo.get_user("nobody@example.com") is None
    assert repo.get_subscription("missing") is None


def test_convert_for_dynamo_uses_decimals_and_drops_none():
    item = dynamo._convert_for_dynamo({"amount": 9.99, "notes": None, "tags": [1.5]})
    assert item == {"amount": Decimal("9.99"), "tags": [Decimal("1.5")]}


def test_from_dynamo_restores_native_numbers():
    assert dynamo._from_dynamo({"amount": Decimal("4500"), "rate": Decimal("9.99")}) == {
        "amount": 4500,
        "rate": 9.99,
    }


def test_malformed_items_are_skipped(caplog):
    broken = {**STORED_ITEM, "id": "sub-2", "amount": -1}
    repo = DynamoRepository(fake_dynamo(scan_subscriptions=lambda: [STORED_ITEM, broken]))

    with caplog.at_level(logging.WARNING, logger="app.db.repository"):
        subs = repo.get_all_subscriptions()

    assert [sub.id for sub in subs] == ["sub-1"]
    assert "sub-2" in caplog.text


def test_legacy_canceled_item_without_canceled_at_is_backfilled():
    legacy = {key: value for key, value in STORED_ITEM.items() if key != "canceled_at"}
    repo = DynamoRepository(fake_dynamo(get_subscription=lambda subscription_id: legacy))

    sub = repo.get_subscription("sub-1")
    assert sub.status is SubscriptionStatus.CANCELED
    assert sub.canceled_at == date(2024, 1, 15)


def test_admin_analytics_survives_bad_rows():
    admin = {
        "email": "admin@example.com",
        "first_name": "Admin",
        "last_name": "Tester",
        "password_hash": "not-a-real-hash",
        "role": "ADMIN",
        "status": "active",
        "created_at": "2025-01-01T00:00:00",
    }
    active = {**STORED_ITEM, "id": "a", "status": "Activa", "canceled_at": None}
    legacy = {key: value for key, value in STORED_ITEM.items() if key not in ("id", "canceled_at")}
    repo = DynamoRepository(
        fake_dynamo(
            get_user=lambda email: admin if email == "admin@example.com" else None,
            scan_users=lambda: [admin, {"email": "ghost@example.com"}],
            scan_subscriptions=lambda: [active, {**legacy, "id": "b"}, {"id": "c", "platform": "Broken"}],
        )
    )
    app.dependency_overrides[get_repository] = lambda: repo
    try:
        with TestClient(app) as client:
            token = create_access_token(data={"sub": "admin@example.com"})
            response = client.get("/api/admin/analytics", headers={"Authorization": f"Bearer {token}"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    kpis = response.json()["kpis"]
    assert kpis["active_users"] == 1
    assert kpis["active_subscriptions"] == 1
    assert kpis["churn_rate"] == 50
