"""
Notifications Router
Renewal reminders for subscriptions due within the lookahead window
"""
from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from app.core.config import settings
from app.core.security import get_current_user
from app.db.repository import SubscriptionRepository, get_repository
from app.models.user import UserInDB
from app.utils.reminders import select_due_reminders

router = APIRouter()


@router.get("/")
def get_notifications(
    reference_date: Optional[date] = None,
    lookahead_days: Optional[int] = Query(default=None, ge=0),
    user: UserInDB = Depends(get_current_user),
    repo: SubscriptionRepository = Depends(get_repository),
) -> Dict:
    """
    Subscriptions with reminders enabled that renew within `lookahead_days`
    (REMINDER_LOOKAHEAD_DAYS by default), soonest first.
    """
    today = reference_date or date.today()
    window = settings.REMINDER_LOOKAHEAD_DAYS if lookahead_days is None else lookahead_days
    reminders = select_due_reminders(
        repo.get_subscriptions_for_user(user.email),
        reference_date=today,
        lookahead_days=window,
    )
    return {
        "reference_date": today.isoformat(),
        "lookahead_days": window,
        "reminders": [reminder.to_dict() for reminder in reminders],
        "count": len(reminders),
    }
