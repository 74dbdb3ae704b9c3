from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List

from app.models.subscription import Subscription, SubscriptionStatus
from app.utils.analyzer import to_day

DEFAULT_LOOKAHEAD_DAYS = 3


@dataclass(frozen=True)
class Reminder:
    subscription: Subscription
    days_until: int

    @property
    def due_today(self) -> bool:
        return self.days_until == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subscription": self.subscription.model_dump(mode="json"),
            "days_until": self.days_until,
            "due_today": self.due_today,
        }


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Whole calendar days from `start` to `end`; time of day is ignored."""
    return (to_day(end) - to_day(start)).days


def select_due_reminders(
    subscriptions: Iterable[Subscription],
    reference_date: date | datetime,
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
) -> List[Reminder]:
    """
    Active subscriptions with reminders enabled that renew between
    `reference_date` (day 0, inclusive) and `lookahead_days` days later.
    Soonest first.
    """
    reminders = []
    for sub in subscriptions:
        if not sub.enable_reminder or sub.status is not SubscriptionStatus.ACTIVE:
            continue
        days_until = days_between(reference_date, sub.renewal_date)
        if 0 <= days_until <= lookahead_days:
            reminders.append(Reminder(subscription=sub, days_until=days_until))
    return sorted(reminders, key=lambda r: (r.subscription.renewal_date, r.subscription.id))
