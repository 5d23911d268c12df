"""
Authentication API Routes for Sirened.

Handles:
- User registration (Sign Up)
- User login (Token generation)
- Current user retrieval and profile updates
"""

from datetime import timedelta
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from loguru import logger

from sirened.api.dependencies import Settings, get_settings, get_user_repository
from sirened.api.schemas import Token, UserCreate, UserResponse, UserUpdate, ErrorResponse
from sirened.exceptions import ForbiddenError, ValidationError
from sirened.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from sirened.storage.user_repository import StoredUser

router = APIRouter(prefix="/auth", tags=["auth"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


# --- Current user dependencies ---

def _user_from_token(token: str, settings: Settings, users) -> Optional[StoredUser]:
    payload = decode_access_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
    if payload is None:
        return None

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        return None
    return users.get(int(subject))


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    settings: Settings = Depends(get_settings),
    users=Depends(get_user_repository),
) -> StoredUser:
    """Dependency to get current authenticated user."""
    user = _user_from_token(token, settings, users)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    token: Annotated[Optional[str], Depends(optional_oauth2_scheme)],
    settings: Settings = Depends(get_settings),
    users=Depends(get_user_repository),
) -> Optional[StoredUser]:
    """Signed-in user when a valid token is sent, otherwise None."""
    if not token:
        return None
    return _user_from_token(token, settings, users)


def require_admin(current_user: StoredUser = Depends(get_current_user)) -> StoredUser:
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user


# --- Endpoints ---

@router.post(
    "/signup",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Email or username taken"}},
)
def signup(user: UserCreate, users=Depends(get_user_repository)):
    """Register a new user."""
    created = users.create(
        email=user.email,
        username=user.username,
        hashed_password=get_password_hash(user.password),
        display_name=user.display_name,
    )
    logger.info(f"New signup: {created.username}")
    return created


@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    settings: Settings = Depends(get_settings),
    users=Depends(get_user_repository),
):
    """
    Login endpoint.

    The form's ``username`` may be either the username or the e-mail.
    Returns a JWT if the credentials are valid.
    """
    user = users.get_by_login(form_data.username)

    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.warning(f"Failed login for '{form_data.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(
        data={"sub": user.id},
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserResponse)
def read_users_me(current_user: Annotated[StoredUser, Depends(get_current_user)]):
    """Get current user profile."""
    return current_user


@router.patch("/me", response_model=UserResponse)
def update_users_me(
    update: UserUpdate,
    current_user: Annotated[StoredUser, Depends(get_current_user)],
    users=Depends(get_user_repository),
):
    """Update display name, bio, social links or password."""
    if update.new_password is not None:
        if not update.current_password or not verify_password(update.current_password, current_user.hashed_password):
            raise ValidationError("Current password is incorrect")
        users.set_password(current_user.id, get_password_hash(update.new_password))

    return users.update_profile(
        current_user.id,
        display_name=update.display_name,
        bio=update.bio,
        social_links=update.social_links,
    )
