from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


class LabelledEnum(str, Enum):
    """
    String enum that also accepts the Spanish labels stored by the first
    version of the app and any casing of its own values, so legacy records
    load without a migration.
    """

    @classmethod
    def _missing_(cls, value: Any):
        if isinstance(value, str):
            canonical = _LEGACY_LABELS.get(value.strip())
            if canonical is not None:
                for member in cls:
                    if member.value == canonical:
                        return member
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class Category(LabelledEnum):
    STREAMING = "Streaming"
    MUSIC = "Music"
    GAMING = "Gaming"
    SOFTWARE = "Software"
    SPORTS = "Sports"
    NEWS = "News"
    OTHER = "Other"


class Currency(LabelledEnum):
    CLP = "CLP"
    USD = "USD"
    EUR = "EUR"


class Period(LabelledEnum):
    MONTHLY = "Monthly"
    ANNUAL = "Annual"


class SubscriptionStatus(LabelledEnum):
    ACTIVE = "Active"
    PAUSED = "Paused"
    CANCELED = "Canceled"


_LEGACY_LABELS = {
    "Música": "Music",
    "Videojuegos": "Gaming",
    "Deporte": "Sports",
    "Noticias": "News",
    "Otros": "Other",
    "Mensual": "Monthly",
    "Anual": "Annual",
    "Activa": "Active",
    "Pausada": "Paused",
    "Cancelada": "Canceled",
}

_ENUM_FIELDS = {
    "category": Category,
    "currency": Currency,
    "period": Period,
    "status": SubscriptionStatus,
}


def as_date(value: Any) -> Any:
    """Truncate datetimes (and ISO datetime strings) to their calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


class Subscription(BaseModel):
    """
    Canonical subscription record handed to the analytics core.

    Records are immutable snapshots; edits produce a new record.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    owner_email: str
    platform: str
    category: Category
    amount: float = Field(gt=0)
    currency: Currency
    period: Period
    renewal_date: date
    created_at: date = Field(default_factory=date.today)
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    canceled_at: Optional[date] = None
    enable_reminder: bool = False
    plan: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("owner_email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("category", "currency", "period", "status", mode="before")
    @classmethod
    def _parse_label(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, str):
            return _ENUM_FIELDS[info.field_name](value)
        return value

    @field_validator("renewal_date", "created_at", "canceled_at", mode="before")
    @classmethod
    def _truncate_to_day(cls, value: Any) -> Any:
        return as_date(value)

    @model_validator(mode="before")
    @classmethod
    def _sync_canceled_at(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        status = data.get("status", SubscriptionStatus.ACTIVE)
        if SubscriptionStatus(status) is SubscriptionStatus.CANCELED:
            if not data.get("canceled_at"):
                raise ValueError("canceled subscriptions require canceled_at")
        elif data.get("canceled_at") is not None:
            data = {**data, "canceled_at": None}
        return data


def with_status(subscription: Subscription, status: SubscriptionStatus, on: date) -> Subscription:
    """Return a copy moved to `status`; canceled_at is set only for Canceled."""
    data = subscription.model_dump()
    data["status"] = status
    data["canceled_at"] = on if status is SubscriptionStatus.CANCELED else None
    return Subscription.model_validate(data)


class SubscriptionCreate(BaseModel):
    platform: str = Field(min_length=1)
    category: Category
    amount: float = Field(gt=0)
    currency: Currency = Currency.CLP
    period: Period = Period.MONTHLY
    renewal_date: date
    created_at: Optional[date] = None
    enable_reminder: bool = False
    plan: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class SubscriptionUpdate(BaseModel):
    platform: Optional[str] = Field(default=None, min_length=1)
    category: Optional[Category] = None
    amount: Optional[float] = Field(default=None, gt=0)
    currency: Optional[Currency] = None
    period: Optional[Period] = None
    renewal_date: Optional[date] = None
    created_at: Optional[date] = None
    enable_reminder: Optional[bool] = None
    plan: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class SubscriptionStatusUpdate(BaseModel):
    status: SubscriptionStatus
