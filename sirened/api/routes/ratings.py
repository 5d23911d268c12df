"""
Rating Routes

Posting ratings, the reader's rating preferences (criteria order, weights,
slider rebalancing) and reading compatibility between two readers.
Authors feature ratings of their books; readers report ratings and admins
settle the reports.
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from loguru import logger

from sirened.api.dependencies import get_book_repository, get_rating_repository, get_user_repository
from sirened.api.routes.auth import get_current_user, require_admin
from sirened.api.schemas import (
    CompatibilityResponse,
    ErrorResponse,
    RatingCreate,
    RatingFeatureRequest,
    RatingPreferencesResponse,
    RatingPreferencesUpdate,
    RatingResponse,
    RatingReportUpdate,
    ReportStatus,
    RebalanceRequest,
)
from sirened.exceptions import ForbiddenError, NotFoundError, ValidationError
from sirened.intelligence.compatibility import calculate_reading_compatibility
from sirened.intelligence.rating_weights import RATING_CRITERIA, calculate_weighted_rating, rebalance_weights


router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.post(
    "",
    response_model=RatingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"model": RatingResponse, "description": "Existing rating updated"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
def post_rating(
    payload: RatingCreate,
    response: Response,
    current_user=Depends(get_current_user),
    ratings=Depends(get_rating_repository),
):
    """
    Rate a book.

    A reader has one rating per book: posting again replaces the scores
    and review. Rating a book also marks it completed.
    """
    scores = payload.model_dump(include=set(RATING_CRITERIA))
    rating, created = ratings.upsert_rating(
        current_user.id,
        payload.book_id,
        scores,
        review=payload.review,
        analysis=payload.analysis,
    )
    if not created:
        response.status_code = status.HTTP_200_OK

    weights = ratings.get_or_create_preferences(current_user.id).weights
    return RatingResponse(
        **asdict(rating),
        weighted_rating=calculate_weighted_rating(rating.scores, weights),
    )


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rating(
    book_id: int,
    current_user=Depends(get_current_user),
    ratings=Depends(get_rating_repository),
):
    if not ratings.delete_rating(current_user.id, book_id):
        raise NotFoundError("Rating", book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Preferences
# =============================================================================

@router.get("/preferences", response_model=RatingPreferencesResponse)
def get_preferences(current_user=Depends(get_current_user), ratings=Depends(get_rating_repository)):
    """Stored preferences; defaults are saved on first access."""
    return ratings.get_or_create_preferences(current_user.id)


@router.put(
    "/preferences",
    response_model=RatingPreferencesResponse,
    responses={400: {"model": ErrorResponse, "description": "Weights do not sum to 1.0"}},
)
def update_preferences(
    update: RatingPreferencesUpdate,
    current_user=Depends(get_current_user),
    ratings=Depends(get_rating_repository),
    users=Depends(get_user_repository),
):
    """
    Save rating preferences.

    A ``criteria_order`` derives the weights from position. Explicit
    ``weights`` are normalized when auto-adjust is on and must already sum
    to 1.0 otherwise. Saving completes onboarding.
    """
    if update.criteria_order is None and update.weights is None and update.auto_adjust is None:
        raise ValidationError("Nothing to update", detail="Send criteria_order, weights or auto_adjust")

    prefs = ratings.save_preferences(
        current_user.id,
        weights=update.weights.model_dump() if update.weights else None,
        criteria_order=update.criteria_order,
        auto_adjust=update.auto_adjust,
    )
    users.mark_onboarded(current_user.id)
    return prefs


@router.post("/preferences/rebalance", response_model=RatingPreferencesResponse)
def rebalance_preferences(
    request: RebalanceRequest,
    current_user=Depends(get_current_user),
    ratings=Depends(get_rating_repository),
):
    """Move one weight slider; the other criteria share the remainder."""
    current = ratings.get_or_create_preferences(current_user.id)
    weights = rebalance_weights(current.weights, request.criterion, request.value)

    logger.debug(f"Rebalanced {request.criterion} to {weights[request.criterion]} for user {current_user.id}")
    return ratings.save_preferences(current_user.id, weights=weights)


# =============================================================================
# Compatibility
# =============================================================================

@router.get(
    "/compatibility/{username}",
    response_model=CompatibilityResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
)
def get_compatibility(
    username: str,
    current_user=Depends(get_current_user),
    ratings=Depends(get_rating_repository),
    users=Depends(get_user_repository),
):
    """How closely the other reader's weights match the signed-in reader's."""
    other = users.get_by_username(username)
    if other is None:
        raise NotFoundError("User", username)

    mine = ratings.get_or_create_preferences(current_user.id)
    theirs = ratings.get_or_create_preferences(other.id)
    result = calculate_reading_compatibility(mine.weights, theirs.weights)

    return CompatibilityResponse(username=other.username, **result.to_dict())


# =============================================================================
# Featuring and reports
# =============================================================================

@router.get("/admin/reported", response_model=list[RatingResponse])
def list_reported_ratings(
    report_status: Optional[ReportStatus] = Query(None, alias="status"),
    admin=Depends(require_admin),
    ratings=Depends(get_rating_repository),
):
    """Reported ratings awaiting or past review, oldest first."""
    return ratings.list_reported(report_status.value if report_status else None)


@router.post(
    "/{rating_id}/feature",
    response_model=RatingResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not the book's author"},
        404: {"model": ErrorResponse, "description": "Rating not found"},
    },
)
def feature_rating(
    rating_id: int,
    request: RatingFeatureRequest,
    current_user=Depends(get_current_user),
    ratings=Depends(get_rating_repository),
    books=Depends(get_book_repository),
    users=Depends(get_user_repository),
):
    """Feature (or unfeature) a rating; only the rated book's author may."""
    rating = ratings.get(rating_id)
    if rating is None:
        raise NotFoundError("Rating", rating_id)

    if not current_user.is_admin:
        book = books.get(rating.book_id)
        author = users.get_author_by_user(current_user.id)
        if book is None or author is None or author.id != book.author_id:
            raise ForbiddenError("Only the book's author can feature its ratings")

    return ratings.set_featured(rating_id, request.featured)


@router.post(
    "/{rating_id}/report",
    response_model=RatingResponse,
    responses={404: {"model": ErrorResponse, "description": "Rating not found"}},
)
def report_rating(
    rating_id: int,
    current_user=Depends(get_current_user),
    ratings=Depends(get_rating_repository),
):
    """Flag a rating for moderation."""
    return ratings.report(rating_id, current_user.id)


@router.patch(
    "/{rating_id}/report",
    response_model=RatingResponse,
    responses={404: {"model": ErrorResponse, "description": "Rating not found"}},
)
def settle_report(
    rating_id: int,
    update: RatingReportUpdate,
    admin=Depends(require_admin),
    ratings=Depends(get_rating_repository),
):
    """Set a rating's report status. Approving a report hides the rating."""
    logger.info(f"Admin {admin.id} set report on rating {rating_id} to {update.report_status.value}")
    return ratings.set_report_status(rating_id, update.report_status.value)
