"""
Cross-user analytics for the admin panel.

Every function takes full snapshots (all users, all subscriptions) and returns
plain values; nothing here touches storage.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from app.models.subscription import Subscription, SubscriptionStatus
from app.models.user import UserInDB, UserRole, UserStatus
from app.utils.analyzer import BreakdownEntry, active_only, group_breakdown, monthly_equivalent


@dataclass(frozen=True)
class AnalyticsKPIs:
    active_users: int
    active_subscriptions: int
    average_monthly_value: float
    churn_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AnalyticsSummary:
    kpis: AnalyticsKPIs
    platform_breakdown: List[BreakdownEntry] = field(default_factory=list)
    category_breakdown: List[BreakdownEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kpis": self.kpis.to_dict(),
            "platform_breakdown": [entry.to_dict() for entry in self.platform_breakdown],
            "category_breakdown": [entry.to_dict() for entry in self.category_breakdown],
        }


def _count_one(_: Subscription) -> float:
    return 1


def count_active_users(users: Iterable[UserInDB]) -> int:
    return sum(1 for user in users if user.status is UserStatus.ACTIVE)


def average_monthly_value(subscriptions: Iterable[Subscription]) -> float:
    """
    Mean monthly equivalent of active subscriptions. Currencies are summed
    as-is; 0 when nothing is active.
    """
    active = active_only(subscriptions)
    if not active:
        return 0
    return sum(monthly_equivalent(sub) for sub in active) / len(active)


def churn_rate(subscriptions: Iterable[Subscription]) -> float:
    """Lifetime share of canceled over active + canceled, as a percentage."""
    active = canceled = 0
    for sub in subscriptions:
        if sub.status is SubscriptionStatus.ACTIVE:
            active += 1
        elif sub.status is SubscriptionStatus.CANCELED:
            canceled += 1
    denominator = active + canceled
    if denominator == 0:
        return 0
    return canceled / denominator * 100


def platform_counts(subscriptions: Iterable[Subscription]) -> List[BreakdownEntry]:
    return group_breakdown(active_only(subscriptions), lambda sub: sub.platform, _count_one)


def category_counts(subscriptions: Iterable[Subscription]) -> List[BreakdownEntry]:
    return group_breakdown(active_only(subscriptions), lambda sub: sub.category.value, _count_one)


def summarize(users: Iterable[UserInDB], subscriptions: Iterable[Subscription]) -> AnalyticsSummary:
    subs = list(subscriptions)
    kpis = AnalyticsKPIs(
        active_users=count_active_users(users),
        active_subscriptions=len(active_only(subs)),
        average_monthly_value=average_monthly_value(subs),
        churn_rate=churn_rate(subs),
    )
    return AnalyticsSummary(
        kpis=kpis,
        platform_breakdown=platform_counts(subs),
        category_breakdown=category_counts(subs),
    )


def manageable_users(
    users: Iterable[UserInDB],
    search: Optional[str] = None,
    status: Optional[UserStatus] = None,
) -> List[UserInDB]:
    """Non-admin accounts matching `search` and `status`, newest first."""
    needle = (search or "").strip().lower()
    matches = [
        user
        for user in users
        if user.role is not UserRole.ADMIN
        and (status is None or user.status is status)
        and (
            needle in user.first_name.lower()
            or needle in user.last_name.lower()
            or needle in user.email.lower()
        )
    ]
    return sorted(matches, key=lambda user: user.created_at, reverse=True)


def signups(users: Iterable[UserInDB], order: str = "desc") -> List[Dict[str, Any]]:
    ordered = sorted(users, key=lambda user: user.created_at, reverse=order != "asc")
    return [
        {
            "signup_date": user.created_at.isoformat(),
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
        }
        for user in ordered
    ]
