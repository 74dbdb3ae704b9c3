import logging
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.security import require_admin
from app.db.repository import RepositoryError, SubscriptionRepository, get_repository
from app.models.user import UserInDB, UserPublic, UserRole, UserStatus, UserStatusUpdate
from app.utils import analytics_summary

router = APIRouter()
logger = logging.getLogger(__name__)


def _managed_user(email: str, repo: SubscriptionRepository) -> UserInDB:
    user = repo.get_user(email)
    if not user or user.role is UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/analytics")
def get_analytics(
    admin: UserInDB = Depends(require_admin),
    repo: SubscriptionRepository = Depends(get_repository),
) -> Dict:
    """KPIs plus platform and category subscription counts across all users."""
    summary = analytics_summary.summarize(repo.get_all_users(), repo.get_all_subscriptions())
    return summary.to_dict()


@router.get("/users", response_model=List[UserPublic])
def list_users(
    search: Optional[str] = None,
    status: Optional[UserStatus] = None,
    admin: UserInDB = Depends(require_admin),
    repo: SubscriptionRepository = Depends(get_repository),
):
    return analytics_summary.manageable_users(repo.get_all_users(), search=search, status=status)


@router.patch("/users/{email}/status", response_model=UserPublic)
def update_user_status(
    email: str,
    payload: UserStatusUpdate,
    admin: UserInDB = Depends(require_admin),
    repo: SubscriptionRepository = Depends(get_repository),
):
    user = _managed_user(email, repo)
    updated = user.model_copy(update={"status": payload.status})
    try:
        repo.save_user(updated)
    except RepositoryError:
        raise HTTPException(status_code=500, detail="Failed to update user")
    logger.info(f"Admin {admin.email} set {updated.email} to {payload.status.value}")
    return updated


@router.delete("/users/{email}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    email: str,
    admin: UserInDB = Depends(require_admin),
    repo: SubscriptionRepository = Depends(get_repository),
):
    """Delete an account together with every subscription it owns."""
    user = _managed_user(email, repo)
    failed = [
        subscription.id
        for subscription in repo.get_subscriptions_for_user(user.email)
        if not repo.delete_subscription(subscription.id)
    ]
    if failed:
        logger.error(f"Could not delete subscriptions {failed} of {user.email}; keeping the account")
        raise HTTPException(status_code=500, detail="Failed to delete user subscriptions")
    if not repo.delete_user(user.email):
        raise HTTPException(status_code=500, detail="Failed to delete user")
    logger.info(f"Admin {admin.email} deleted user {user.email}")
    return None


@router.get("/signups")
def list_signups(
    order: Literal["asc", "desc"] = "desc",
    admin: UserInDB = Depends(require_admin),
    repo: SubscriptionRepository = Depends(get_repository),
) -> List[Dict]:
    return analytics_summary.signups(repo.get_all_users(), order=order)
