"""
Book API Routes

Catalog CRUD (with upload wizard validation and ownership checks),
taxonomy assignment, referral link ordering, per-book ratings and the
reader's own reading status.
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from loguru import logger

from sirened.api.dependencies import (
    get_book_repository,
    get_rating_repository,
    get_reading_repository,
    get_user_repository,
)
from sirened.api.routes.auth import get_current_user, get_optional_user
from sirened.api.schemas import (
    BookCreate,
    BookUpdate,
    BookResponse,
    BookListResponse,
    ErrorResponse,
    RatingResponse,
    RatingSummaryResponse,
    ReadingStatusResponse,
    ReferralLinkMove,
    TaxonomyAssignment,
    WizardStepCheck,
    WizardStepResult,
)
from sirened.catalog.upload_wizard import WIZARD_STEPS, can_skip_to, step_errors, validate_submission
from sirened.exceptions import ForbiddenError, NotFoundError
from sirened.intelligence.rating_weights import calculate_weighted_rating
from sirened.storage.rating_repository import StoredRatingPreferences


router = APIRouter(prefix="/books", tags=["books"])


# =============================================================================
# Helpers
# =============================================================================

def _get_book_or_404(books, book_id: int):
    book = books.get(book_id)
    if book is None:
        raise NotFoundError("Book", book_id)
    return book


def _ensure_can_edit(book, user, users) -> None:
    """Only the book's author (or an admin) may change it."""
    if user.is_admin:
        return
    author = users.get_author_by_user(user.id)
    if author is None or author.id != book.author_id:
        raise ForbiddenError("Not authorized to modify this book")


def _viewer_weights(ratings, user) -> dict[str, float]:
    if user is None:
        return StoredRatingPreferences.defaults().weights
    prefs = ratings.get_preferences(user.id)
    return prefs.weights if prefs else StoredRatingPreferences.defaults(user.id).weights


def _rating_payload(rating, weights) -> dict:
    return {**asdict(rating), "weighted_rating": calculate_weighted_rating(rating.scores, weights)}


# =============================================================================
# CRUD Endpoints
# =============================================================================

@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Submission failed wizard validation"},
    },
)
def create_book(
    book: BookCreate,
    current_user=Depends(get_current_user),
    books=Depends(get_book_repository),
    users=Depends(get_user_repository),
):
    """
    Submit a new book.

    The submission has to pass every upload wizard step. The caller's
    author profile is created from their display name when missing.
    """
    validate_submission(book)

    author = users.ensure_author(current_user.id)
    logger.info(f"Creating book '{book.title}' for author {author.id}")

    fields = book.model_dump(mode="json", exclude={"title", "description", "has_awards"})
    return books.create(author_id=author.id, title=book.title, description=book.description, **fields)


@router.post("/wizard/validate", response_model=WizardStepResult)
def validate_wizard_step(check: WizardStepCheck):
    """Validate one step of the upload wizard without saving anything."""
    errors = step_errors(check.step, check.form)
    return WizardStepResult(
        step=check.step,
        title=WIZARD_STEPS[check.step].title,
        errors=errors,
        can_proceed=not errors,
        can_skip_to=(
            can_skip_to(check.step, check.current_step, check.form)
            if check.current_step is not None else None
        ),
    )


@router.get("", response_model=BookListResponse)
def list_books(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    author_id: Optional[int] = None,
    taxonomy_id: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=200),
    sort_by: str = Query("created_at", pattern="^(created_at|title|published_date)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    books=Depends(get_book_repository),
):
    """List books with pagination and filtering."""
    filters = {"author_id": author_id, "taxonomy_id": taxonomy_id, "search": search}
    items, total = books.list_books(page=page, limit=limit, filters=filters, sort_by=sort_by, sort_order=sort_order)

    return BookListResponse(
        books=[BookResponse.model_validate(b) for b in items],
        total=total,
        page=page,
        limit=limit,
        has_more=page * limit < total,
    )


@router.get("/wishlist", response_model=list[BookResponse])
def list_wishlist(
    current_user=Depends(get_current_user),
    reading=Depends(get_reading_repository),
    books=Depends(get_book_repository),
):
    """Books on the signed-in reader's wishlist."""
    return books.get_many(reading.list_wishlist(current_user.id))


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    responses={404: {"model": ErrorResponse, "description": "Book not found"}},
)
def get_book(book_id: int, books=Depends(get_book_repository)):
    """Get a book by ID with full details."""
    return _get_book_or_404(books, book_id)


@router.patch(
    "/{book_id}",
    response_model=BookResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not the book's author"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
def update_book(
    book_id: int,
    update: BookUpdate,
    current_user=Depends(get_current_user),
    books=Depends(get_book_repository),
    users=Depends(get_user_repository),
):
    """Update a book (partial)."""
    book = _get_book_or_404(books, book_id)
    _ensure_can_edit(book, current_user, users)

    fields = update.model_dump(mode="json", exclude_unset=True)
    logger.info(f"Updating book {book_id}: {sorted(fields)}")
    return books.update(book_id, **fields)


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_book(
    book_id: int,
    current_user=Depends(get_current_user),
    books=Depends(get_book_repository),
    users=Depends(get_user_repository),
):
    """Delete a book and everything attached to it."""
    book = _get_book_or_404(books, book_id)
    _ensure_can_edit(book, current_user, users)

    books.delete(book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{book_id}/taxonomies", response_model=BookResponse)
def set_book_taxonomies(
    book_id: int,
    assignment: TaxonomyAssignment,
    current_user=Depends(get_current_user),
    books=Depends(get_book_repository),
    users=Depends(get_user_repository),
):
    """Replace the book's taxonomies; list position is the rank."""
    book = _get_book_or_404(books, book_id)
    _ensure_can_edit(book, current_user, users)

    books.set_taxonomies(book_id, assignment.taxonomy_ids)
    return books.get(book_id)


@router.post("/{book_id}/referral-links/move", response_model=BookResponse)
def move_referral_link(
    book_id: int,
    move: ReferralLinkMove,
    current_user=Depends(get_current_user),
    books=Depends(get_book_repository),
    users=Depends(get_user_repository),
):
    """Drag a referral link to a new position."""
    book = _get_book_or_404(books, book_id)
    _ensure_can_edit(book, current_user, users)

    return books.move_referral_link(book_id, move.from_index, move.to_index)


# =============================================================================
# Ratings
# =============================================================================

@router.get("/{book_id}/ratings", response_model=list[RatingResponse])
def list_book_ratings(
    book_id: int,
    viewer=Depends(get_optional_user),
    books=Depends(get_book_repository),
    ratings=Depends(get_rating_repository),
):
    """Every rating of a book, newest first, weighted with the viewer's preferences."""
    _get_book_or_404(books, book_id)
    weights = _viewer_weights(ratings, viewer)
    return [_rating_payload(r, weights) for r in ratings.list_for_book(book_id)]


@router.get("/{book_id}/ratings/me", response_model=Optional[RatingResponse])
def get_my_book_rating(
    book_id: int,
    current_user=Depends(get_current_user),
    ratings=Depends(get_rating_repository),
):
    """The signed-in reader's rating, or null when they have not rated the book."""
    rating = ratings.get_user_rating(current_user.id, book_id)
    if rating is None:
        return None
    return _rating_payload(rating, _viewer_weights(ratings, current_user))


@router.get("/{book_id}/ratings/summary", response_model=RatingSummaryResponse)
def get_book_rating_summary(
    book_id: int,
    viewer=Depends(get_optional_user),
    books=Depends(get_book_repository),
    ratings=Depends(get_rating_repository),
):
    _get_book_or_404(books, book_id)
    summary = ratings.book_summary(book_id)
    overall = (
        calculate_weighted_rating(summary.averages, _viewer_weights(ratings, viewer))
        if summary.count else 0.0
    )
    return RatingSummaryResponse(
        book_id=book_id,
        count=summary.count,
        averages=summary.averages,
        overall=overall,
    )


# =============================================================================
# Reading status
# =============================================================================

@router.get("/{book_id}/reading-status", response_model=ReadingStatusResponse)
def get_reading_status(
    book_id: int,
    current_user=Depends(get_current_user),
    reading=Depends(get_reading_repository),
):
    return reading.get_status(current_user.id, book_id)


@router.post("/{book_id}/wishlist", response_model=ReadingStatusResponse)
def toggle_wishlist(
    book_id: int,
    current_user=Depends(get_current_user),
    reading=Depends(get_reading_repository),
):
    """Add the book to the wishlist, or take it off when already there."""
    return reading.toggle_wishlist(current_user.id, book_id)


@router.post("/{book_id}/complete", response_model=ReadingStatusResponse)
def mark_completed(
    book_id: int,
    current_user=Depends(get_current_user),
    reading=Depends(get_reading_repository),
):
    return reading.mark_completed(current_user.id, book_id)
