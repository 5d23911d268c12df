"""
User and Author Profile Routes

Public reader profiles and the signed-in user's author profile.
"""

from fastapi import APIRouter, Depends
from loguru import logger

from sirened.api.dependencies import get_user_repository
from sirened.api.routes.auth import get_current_user
from sirened.api.schemas import AuthorResponse, AuthorUpsert, PublicUserResponse, ErrorResponse
from sirened.exceptions import NotFoundError


router = APIRouter(tags=["users"])


@router.get(
    "/users/{username}",
    response_model=PublicUserResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
)
def get_public_profile(username: str, users=Depends(get_user_repository)):
    """Public profile of a reader."""
    user = users.get_by_username(username)
    if user is None:
        raise NotFoundError("User", username)
    return user


@router.get("/authors/me", response_model=AuthorResponse)
def get_my_author_profile(current_user=Depends(get_current_user), users=Depends(get_user_repository)):
    author = users.get_author_by_user(current_user.id)
    if author is None:
        raise NotFoundError("Author profile", current_user.username)
    return author


@router.put("/authors/me", response_model=AuthorResponse)
def upsert_my_author_profile(
    profile: AuthorUpsert,
    current_user=Depends(get_current_user),
    users=Depends(get_user_repository),
):
    """Create or update the signed-in user's author profile."""
    logger.info(f"Saving author profile for user {current_user.id}")
    return users.upsert_author(
        current_user.id,
        author_name=profile.author_name,
        bio=profile.bio,
        author_image_url=profile.author_image_url,
    )


@router.get(
    "/authors/{author_id}",
    response_model=AuthorResponse,
    responses={404: {"model": ErrorResponse, "description": "Author not found"}},
)
def get_author(author_id: int, users=Depends(get_user_repository)):
    author = users.get_author(author_id)
    if author is None:
        raise NotFoundError("Author", author_id)
    return author
