from datetime import date, datetime

import pytest
from pydantic import ValidationError

from app.models.subscription import (
    Category,
    Currency,
    Period,
    Subscription,
    SubscriptionStatus,
    with_status,
)
from app.models.user import UserInDB, UserRole, UserStatus


def test_owner_email_is_lowercased(make_subscription):
    assert make_subscription(owner_email="  Ana@Example.COM ").owner_email == "ana@example.com"


def test_legacy_spanish_labels_are_accepted(make_subscription):
    sub = make_subscription(category="Música", period="Anual", status="Activa")

    assert sub.category is Category.MUSIC
    assert sub.period is Period.ANNUAL
    assert sub.status is SubscriptionStatus.ACTIVE
    assert Currency("usd") is Currency.USD


def test_unknown_enum_value_is_rejected(make_subscription):
    with pytest.raises(ValidationError):
        make_subscription(category="Podcasts")


def test_amount_must_be_positive(make_subscription):
    with pytest.raises(ValidationError):
        make_subscription(amount=0)


def test_canceled_at_cleared_unless_canceled(make_subscription):
    sub = make_subscription(status="Paused", canceled_at=date(2025, 1, 1))
    assert sub.canceled_at is None


def test_canceled_requires_canceled_at(make_subscription):
    with pytest.raises(ValidationError):
        make_subscription(status="Canceled", canceled_at=None)


def test_datetimes_are_truncated_to_days(make_subscription):
    sub = make_subscription(renewal_date=datetime(2025, 3, 10, 23, 45), created_at="2024-12-01T08:00:00Z")

    assert sub.renewal_date == date(2025, 3, 10)
    assert sub.created_at == date(2024, 12, 1)


def test_subscription_is_immutable(make_subscription):
    sub = make_subscription()
    with pytest.raises(ValidationError):
        sub.amount = 5


def test_with_status_sets_and_clears_canceled_at(make_subscription):
    sub = make_subscription()

    canceled = with_status(sub, SubscriptionStatus.CANCELED, on=date(2025, 3, 1))
    assert canceled.status is SubscriptionStatus.CANCELED
    assert canceled.canceled_at == date(2025, 3, 1)
    assert sub.status is SubscriptionStatus.ACTIVE

    reactivated = with_status(canceled, SubscriptionStatus.ACTIVE, on=date(2025, 4, 1))
    assert reactivated.canceled_at is None
    assert reactivated.id == sub.id


def test_json_round_trip_through_storage_shape(make_subscription):
    sub = make_subscription(status="Canceled", notes="Family plan")
    stored = sub.model_dump(mode="json")

    assert stored["renewal_date"] == "2025-03-10"
    assert stored["status"] == "Canceled"
    assert Subscription.model_validate(stored) == sub


def test_user_email_is_lowercased(make_user):
    assert make_user("Bob@Example.com").email == "bob@example.com"
    assert isinstance(make_user("bob@example.com"), UserInDB)


def test_user_enums_accept_stored_label_variants(make_user):
    user = make_user("ana@example.com", role="ADMIN", status="blocked")

    assert user.role is UserRole.ADMIN
    assert user.status is UserStatus.BLOCKED
    assert UserRole("USER") is UserRole.USER
    assert UserStatus("active") is UserStatus.ACTIVE


def test_unknown_user_role_is_rejected(make_user):
    with pytest.raises(ValidationError):
        make_user("ana@example.com", role="Superuser")
