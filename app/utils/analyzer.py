from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.models.subscription import Category, Currency, Period, Subscription, SubscriptionStatus


@dataclass(frozen=True)
class BreakdownEntry:
    """One group of a category or platform breakdown."""

    name: str
    value: float
    percent: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def monthly_equivalent(subscription: Subscription) -> float:
    """Billing amount expressed per month. No rounding."""
    if subscription.period is Period.ANNUAL:
        return subscription.amount / 12
    return subscription.amount


def active_only(subscriptions: Iterable[Subscription]) -> List[Subscription]:
    return [sub for sub in subscriptions if sub.status is SubscriptionStatus.ACTIVE]


def to_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def group_breakdown(
    subscriptions: Iterable[Subscription],
    key: Callable[[Subscription], str],
    weight: Callable[[Subscription], float],
) -> List[BreakdownEntry]:
    """
    Group by `key`, sum `weight` per group and express each group as a share
    of the grand total, largest first. Ties keep first-seen order.
    """
    totals: Dict[str, float] = {}
    for sub in subscriptions:
        name = key(sub)
        totals[name] = totals.get(name, 0) + weight(sub)

    grand_total = sum(totals.values())
    if not grand_total:
        return []

    entries = [
        BreakdownEntry(name=name, value=value, percent=value / grand_total)
        for name, value in totals.items()
    ]
    return sorted(entries, key=lambda entry: entry.value, reverse=True)


def _category_name(sub: Subscription) -> str:
    return sub.category.value


def _platform_name(sub: Subscription) -> str:
    return sub.platform


class SubscriptionAnalyzer:
    """
    Per-user spend analytics over an immutable snapshot of subscriptions.
    Every call recomputes from its input; nothing is cached between calls.
    """

    def __init__(self, home_currency: Currency | str = Currency.CLP) -> None:
        self._home_currency = Currency(home_currency)

    @property
    def home_currency(self) -> Currency:
        return self._home_currency

    def total_monthly_cost(
        self,
        subscriptions: Iterable[Subscription],
        currency: Optional[Currency | str] = None,
    ) -> float:
        """
        Monthly-equivalent spend of active subscriptions billed in `currency`.
        Subscriptions in other currencies are left out, not converted.
        """
        target = Currency(currency) if currency is not None else self._home_currency
        return sum(
            (monthly_equivalent(sub) for sub in active_only(subscriptions) if sub.currency is target),
            0,
        )

    def category_breakdown(self, subscriptions: Iterable[Subscription]) -> List[BreakdownEntry]:
        return group_breakdown(active_only(subscriptions), _category_name, monthly_equivalent)

    def platform_breakdown(self, subscriptions: Iterable[Subscription]) -> List[BreakdownEntry]:
        return group_breakdown(active_only(subscriptions), _platform_name, monthly_equivalent)

    def upcoming_renewal(
        self,
        subscriptions: Iterable[Subscription],
        reference_date: date | datetime,
    ) -> Optional[Subscription]:
        """Earliest active renewal on or after `reference_date`, if any."""
        today = to_day(reference_date)
        upcoming = [sub for sub in active_only(subscriptions) if sub.renewal_date >= today]
        if not upcoming:
            return None
        return min(upcoming, key=lambda sub: (sub.renewal_date, sub.id))

    def filter_subscriptions(
        self,
        subscriptions: Iterable[Subscription],
        search: Optional[str] = None,
        category: Optional[Category | str] = None,
    ) -> List[Subscription]:
        """The user's list as shown on the dashboard, soonest renewal first."""
        needle = (search or "").strip().lower()
        wanted = Category(category) if category else None
        matches = [
            sub
            for sub in subscriptions
            if needle in sub.platform.lower() and (wanted is None or sub.category is wanted)
        ]
        return sorted(matches, key=lambda sub: (sub.renewal_date, sub.id))

    def dashboard(
        self,
        subscriptions: Iterable[Subscription],
        reference_date: date | datetime,
        currency: Optional[Currency | str] = None,
    ) -> Dict[str, Any]:
        snapshot = list(subscriptions)
        target = Currency(currency) if currency is not None else self._home_currency
        upcoming = self.upcoming_renewal(snapshot, reference_date)
        return {
            "currency": target.value,
            "total_monthly_cost": self.total_monthly_cost(snapshot, target),
            "category_breakdown": [entry.to_dict() for entry in self.category_breakdown(snapshot)],
            "platform_breakdown": [entry.to_dict() for entry in self.platform_breakdown(snapshot)],
            "upcoming_renewal": upcoming.model_dump(mode="json") if upcoming else None,
        }
