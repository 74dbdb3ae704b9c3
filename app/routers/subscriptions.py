from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from app.core.security import get_current_user
from app.db.repository import RepositoryError, SubscriptionRepository, get_repository
from app.models.subscription import (
    Category,
    Subscription,
    SubscriptionCreate,
    SubscriptionStatusUpdate,
    SubscriptionUpdate,
    with_status,
)
from app.models.user import UserInDB
from app.utils.analyzer import SubscriptionAnalyzer

router = APIRouter()
analyzer = SubscriptionAnalyzer()


def _owned_subscription(subscription_id: str, user: UserInDB, repo: SubscriptionRepository) -> Subscription:
    subscription = repo.get_subscription(subscription_id)
    if not subscription or subscription.owner_email != user.email:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return subscription


def _save(repo: SubscriptionRepository, subscription: Subscription) -> Subscription:
    try:
        return repo.save_subscription(subscription)
    except RepositoryError:
        raise HTTPException(status_code=500, detail="Failed to save subscription")


def _new_subscription(data: SubscriptionCreate, owner_email: str) -> Subscription:
    fields = data.model_dump(exclude_none=True)
    return Subscription(owner_email=owner_email, **fields)


@router.get("/", response_model=List[Subscription])
def list_subscriptions(
    search: Optional[str] = None,
    category: Optional[Category] = None,
    user: UserInDB = Depends(get_current_user),
    repo: SubscriptionRepository = Depends(get_repository),
):
    subscriptions = repo.get_subscriptions_for_user(user.email)
    return analyzer.filter_subscriptions(subscriptions, search=search, category=category)


@router.post("/", response_model=Subscription, status_code=status.HTTP_201_CREATED)
def create_subscription(
    payload: SubscriptionCreate,
    user: UserInDB = Depends(get_current_user),
    repo: SubscriptionRepository = Depends(get_repository),
):
    return _save(repo, _new_subscription(payload, user.email))


@router.post("/onboarding", response_model=List[Subscription], status_code=status.HTTP_201_CREATED)
def onboard_subscriptions(
    payload: List[SubscriptionCreate],
    user: UserInDB = Depends(get_current_user),
    repo: SubscriptionRepository = Depends(get_repository),
):
    """Create the first batch of subscriptions right after sign-up."""
    if not payload:
        raise HTTPException(status_code=400, detail="No subscriptions provided")
    return [_save(repo, _new_subscription(item, user.email)) for item in payload]


@router.get("/{subscription_id}", response_model=Subscription)
def get_subscription(
    subscription_id: str,
    user: UserInDB = Depends(get_current_user),
    repo: SubscriptionRepository = Depends(get_repository),
):
    return _owned_subscription(subscription_id, user, repo)


@router.put("/{subscription_id}", response_model=Subscription)
def update_subscription(
    subscription_id: str,
    payload: SubscriptionUpdate,
    user: UserInDB = Depends(get_current_user),
    repo: SubscriptionRepository = Depends(get_repository),
):
    mutable_fields = payload.model_dump(exclude_unset=True)
    if not mutable_fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    current = _owned_subscription(subscription_id, user, repo)
    try:
        updated = Subscription.model_validate({**current.model_dump(), **mutable_fields})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False, include_input=False))
    return _save(repo, updated)


@router.patch("/{subscription_id}/status", response_model=Subscription)
def change_status(
    subscription_id: str,
    payload: SubscriptionStatusUpdate,
    user: UserInDB = Depends(get_current_user),
    repo: SubscriptionRepository = Depends(get_repository),
):
    current = _owned_subscription(subscription_id, user, repo)
    if current.status is payload.status:
        return current
    return _save(repo, with_status(current, payload.status, on=date.today()))


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subscription(
    subscription_id: str,
    user: UserInDB = Depends(get_current_user),
    repo: SubscriptionRepository = Depends(get_repository),
):
    _owned_subscription(subscription_id, user, repo)
    if not repo.delete_subscription(subscription_id):
        raise HTTPException(status_code=404, detail="Subscription not found")
    return None
