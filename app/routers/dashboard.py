from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.security import get_current_user
from app.db.repository import SubscriptionRepository, get_repository
from app.models.subscription import Currency
from app.models.user import UserInDB
from app.utils.analyzer import SubscriptionAnalyzer

router = APIRouter()
analyzer = SubscriptionAnalyzer(settings.HOME_CURRENCY)


@router.get("/")
def get_dashboard(
    currency: Optional[Currency] = None,
    reference_date: Optional[date] = None,
    user: UserInDB = Depends(get_current_user),
    repo: SubscriptionRepository = Depends(get_repository),
) -> Dict:
    """
    Monthly spend in the home currency (or `currency`), spend per category
    and platform, and the next renewal on or after `reference_date` (today).
    """
    subscriptions = repo.get_subscriptions_for_user(user.email)
    return analyzer.dashboard(
        subscriptions,
        reference_date=reference_date or date.today(),
        currency=currency,
    )
