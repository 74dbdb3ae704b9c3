import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.security import create_access_token, get_current_user, get_password_hash, verify_password
from app.db.repository import RepositoryError, SubscriptionRepository, get_repository
from app.models.user import UserCreate, UserInDB, UserLogin, UserPublic, UserStatus

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, repo: SubscriptionRepository = Depends(get_repository)):
    # Check if user already exists
    existing = repo.get_user(user.email)
    if existing:
        raise HTTPException(status_code=400, detail="User already exists")

    user_db = UserInDB(
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        password_hash=get_password_hash(user.password),
    )

    try:
        repo.save_user(user_db)
    except RepositoryError:
        raise HTTPException(status_code=500, detail="Error saving user")

    logger.info(f"Registered user: {user_db.email}")
    return UserPublic(**user_db.model_dump())


@router.get("/me", response_model=UserPublic)
def get_me(user: UserInDB = Depends(get_current_user)):
    """Get current user profile"""
    return UserPublic(**user.model_dump())


@router.post("/login")
def login(login_data: UserLogin, repo: SubscriptionRepository = Depends(get_repository)):
    logger.info(f"Login attempt for email: {login_data.email}")
    user = repo.get_user(login_data.email)

    if not user:
        logger.warning(f"User not found: {login_data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not verify_password(login_data.password, user.password_hash):
        logger.warning(f"Invalid password for user: {login_data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if user.status is UserStatus.BLOCKED:
        logger.warning(f"Blocked user tried to log in: {user.email}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account blocked")

    user = user.model_copy(update={"last_login_at": datetime.utcnow()})
    try:
        repo.save_user(user)
    except RepositoryError:
        logger.error(f"Could not record last login for {user.email}")

    access_token = create_access_token(data={"sub": user.email, "role": user.role.value})
    logger.info(f"Login successful for user: {user.email}")

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserPublic(**user.model_dump()).model_dump(mode="json"),
    }
