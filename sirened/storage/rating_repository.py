"""
Rating Repository for Sirened

Five-criteria book ratings and the per-reader weights used to combine them.

Invariants:
1. One rating per (reader, book); posting again updates it
2. Rating a book marks it completed for that reader
. Ratings with an upheld report are left out of listings and summaries
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional, Sequence

from loguru import logger
from sqlalchemy import func, or_

from sirened.exceptions import NotFoundError, ValidationError
from sirened.intelligence.rating_weights import (
    DEFAULT_RATING_WEIGHTS,
    RATING_CRITERIA,
    normalize_weights,
    order_from_weights,
    weights_from_order,
    weights_sum_to_one,
)
from .database import Database
from .models import Book, Rating, RatingPreferences, User
from .reading_repository import mark_completed_in_session

# Accepted drift for hand-entered weights when auto-adjust is off
MANUAL_SUM_TOLERANCE = 0.01

# Moderation states of a rating; "approved" means the report was upheld
REPORT_STATUSES = ("none", "pending", "approved", "rejected")


def _not_removed():
    return or_(Rating.report_status.is_(None), Rating.report_status != "approved")


@dataclass
class StoredRating:
    """Data class for rating data transfer."""

    id: int
    user_id: int
    book_id: int
    enjoyment: int
    writing: int
    themes: int
    characters: int
    worldbuilding: int
    review: Optional[str] = None
    analysis: Optional[dict] = None
    featured: bool = False
    report_status: str = "none"
    username: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: Rating, username: Optional[str] = None) -> "StoredRating":
        return cls(
            id=model.id,
            user_id=model.user_id,
            book_id=model.book_id,
            enjoyment=model.enjoyment,
            writing=model.writing,
            themes=model.themes,
            characters=model.characters,
            worldbuilding=model.worldbuilding,
            review=model.review,
            analysis=model.analysis,
            featured=bool(model.featured),
            report_status=model.report_status or "none",
            username=username,
            created_at=model.created_at,
        )

    @property
    def scores(self) -> dict[str, int]:
        return {c: getattr(self, c) for c in RATING_CRITERIA}


@dataclass
class StoredRatingPreferences:
    user_id: int
    weights: dict[str, float]
    criteria_order: list[str] = field(default_factory=list)
    auto_adjust: bool = False
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: RatingPreferences) -> "StoredRatingPreferences":
        weights = {c: getattr(model, c) for c in RATING_CRITERIA}
        return cls(
            user_id=model.user_id,
            weights=weights,
            criteria_order=model.criteria_order or order_from_weights(weights),
            auto_adjust=bool(model.auto_adjust),
            updated_at=model.updated_at,
        )

    @classmethod
    def defaults(cls, user_id: Optional[int] = None) -> "StoredRatingPreferences":
        return cls(
            user_id=user_id,
            weights=dict(DEFAULT_RATING_WEIGHTS),
            criteria_order=list(RATING_CRITERIA),
            auto_adjust=True,
        )


@dataclass
class RatingSummary:
    book_id: int
    count: int
    averages: dict[str, float]


class RatingRepository:
    """
    Repository for ratings and rating preferences.

    Usage:
        repo = RatingRepository(database)
        rating, created = repo.upsert_rating(user_id, book_id, scores)
        prefs = repo.save_preferences(user_id, criteria_order=[...])
    """

    def __init__(self, database: Database):
        self.database = database

    def upsert_rating(
        self,
        user_id: int,
        book_id: int,
        scores: Mapping[str, int],
        review: Optional[str] = None,
        analysis: Optional[dict] = None,
    ) -> tuple[StoredRating, bool]:
        """
        Create or update the reader's rating of a book.

        Returns:
            (rating, created) where ``created`` is False for an update.
        """
        with self.database.session() as session:
            if not session.get(Book, book_id):
                raise NotFoundError("Book", book_id)

            rating = session.query(Rating).filter(
                Rating.user_id == user_id,
                Rating.book_id == book_id,
            ).first()
            created = rating is None

            if created:
                rating = Rating(user_id=user_id, book_id=book_id, featured=False, report_status="none")
                session.add(rating)

            for criterion in RATING_CRITERIA:
                setattr(rating, criterion, scores[criterion])
            rating.review = review
            rating.analysis = analysis

            mark_completed_in_session(session, user_id, book_id)

            session.commit()
            session.refresh(rating)

            logger.info(
                f"{'Created' if created else 'Updated'} rating {rating.id} "
                f"(user={user_id}, book={book_id})"
            )
            return StoredRating.from_model(rating), created

    def get_user_rating(self, user_id: int, book_id: int) -> Optional[StoredRating]:
        with self.database.session() as session:
            rating = session.query(Rating).filter(
                Rating.user_id == user_id,
                Rating.book_id == book_id,
            ).first()
            return StoredRating.from_model(rating) if rating else None

    def delete_rating(self, user_id: int, book_id: int) -> bool:
        with self.database.session() as session:
            deleted = session.query(Rating).filter(
                Rating.user_id == user_id,
                Rating.book_id == book_id,
            ).delete(synchronize_session=False)
            session.commit()
            return bool(deleted)

    def list_for_book(self, book_id: int) -> list[StoredRating]:
        """Ratings for a book with the rater's username, newest first."""
        with self.database.session() as session:
            rows = (
                session.query(Rating, User.username)
                .join(User, User.id == Rating.user_id)
                .filter(Rating.book_id == book_id, _not_removed())
                .order_by(Rating.created_at.desc(), Rating.id.desc())
                .all()
            )
            return [StoredRating.from_model(r, username) for r, username in rows]

    def book_summary(self, book_id: int) -> RatingSummary:
        with self.database.session() as session:
            columns = [func.avg(getattr(Rating, c)) for c in RATING_CRITERIA]
            row = session.query(func.count(Rating.id), *columns).filter(
                Rating.book_id == book_id,
                _not_removed(),
            ).one()

        count = row[0] or 0
        averages = {
            c: round(float(avg), 2) if avg is not None else 0.0
            for c, avg in zip(RATING_CRITERIA, row[1:])
        }
        return RatingSummary(book_id=book_id, count=count, averages=averages)

    # =========================================================================
    # Featuring and moderation
    # =========================================================================

    def get(self, rating_id: int) -> Optional[StoredRating]:
        with self.database.session() as session:
            row = (
                session.query(Rating, User.username)
                .join(User, User.id == Rating.user_id)
                .filter(Rating.id == rating_id)
                .first()
            )
            return StoredRating.from_model(*row) if row else None

    def _update_rating(self, rating_id: int, **fields) -> StoredRating:
        with self.database.session() as session:
            rating = session.get(Rating, rating_id)
            if not rating:
                raise NotFoundError("Rating", rating_id)
            for key, value in fields.items():
                setattr(rating, key, value)
            session.commit()
            session.refresh(rating)
            return StoredRating.from_model(rating, session.get(User, rating.user_id).username)

    def set_featured(self, rating_id: int, featured: bool) -> StoredRating:
        rating = self._update_rating(rating_id, featured=featured)
        logger.info(f"Rating {rating_id} featured={featured}")
        return rating

    def report(self, rating_id: int, reporter_id: int) -> StoredRating:
        """
        Flag a rating for review.

        Only an unreviewed rating moves to ``pending``; a decided report
        keeps its outcome.
        """
        rating = self.get(rating_id)
        if rating is None:
            raise NotFoundError("Rating", rating_id)
        if rating.user_id == reporter_id:
            raise ValidationError("You cannot report your own rating")
        if rating.report_status != "none":
            return rating

        logger.info(f"Rating {rating_id} reported by user {reporter_id}")
        return self._update_rating(rating_id, report_status="pending")

    def set_report_status(self, rating_id: int, report_status: str) -> StoredRating:
        if report_status not in REPORT_STATUSES:
            raise ValidationError("Invalid report status", detail=report_status)
        rating = self._update_rating(rating_id, report_status=report_status)
        logger.info(f"Rating {rating_id} report_status={report_status}")
        return rating

    def list_reported(self, report_status: Optional[str] = None) -> list[StoredRating]:
        """Reported ratings, oldest first; every status but "none" by default."""
        with self.database.session() as session:
            query = session.query(Rating, User.username).join(User, User.id == Rating.user_id)
            if report_status:
                query = query.filter(Rating.report_status == report_status)
            else:
                query = query.filter(Rating.report_status != "none")
            rows = query.order_by(Rating.created_at, Rating.id).all()
            return [StoredRating.from_model(r, username) for r, username in rows]

    # =========================================================================
    # Preferences
    # =========================================================================

    def get_preferences(self, user_id: int) -> Optional[StoredRatingPreferences]:
        with self.database.session() as session:
            prefs = session.query(RatingPreferences).filter(RatingPreferences.user_id == user_id).first()
            return StoredRatingPreferences.from_model(prefs) if prefs else None

    def get_or_create_preferences(self, user_id: int) -> StoredRatingPreferences:
        existing = self.get_preferences(user_id)
        if existing:
            return existing
        defaults = StoredRatingPreferences.defaults(user_id)
        return self._write_preferences(user_id, defaults.weights, defaults.criteria_order, defaults.auto_adjust)

    def save_preferences(
        self,
        user_id: int,
        weights: Optional[Mapping[str, float]] = None,
        criteria_order: Optional[Sequence[str]] = None,
        auto_adjust: Optional[bool] = None,
    ) -> StoredRatingPreferences:
        """
        Store a reader's weights.

        ``criteria_order`` wins over ``weights``. Explicit weights are
        normalized when auto-adjust is on, otherwise they must already sum
        to 1.0.
        """
        current = self.get_preferences(user_id) or StoredRatingPreferences.defaults(user_id)
        adjust = current.auto_adjust if auto_adjust is None else auto_adjust

        if criteria_order:
            new_weights = weights_from_order(criteria_order)
            order = list(criteria_order)
        elif weights is not None:
            if adjust:
                new_weights = normalize_weights(weights)
            else:
                new_weights = {c: float(weights[c]) for c in RATING_CRITERIA if c in weights}
                normalize_weights(new_weights)  # presence / sign checks
                if not weights_sum_to_one(new_weights, MANUAL_SUM_TOLERANCE):
                    raise ValidationError(
                        "Rating weights must sum to 1.0",
                        detail=f"Got {round(sum(new_weights.values()), 4)}; enable auto_adjust to normalize",
                    )
                new_weights = normalize_weights(new_weights)
            order = order_from_weights(new_weights)
        else:
            new_weights = current.weights
            order = current.criteria_order

        return self._write_preferences(user_id, new_weights, order, adjust)

    def _write_preferences(
        self,
        user_id: int,
        weights: Mapping[str, float],
        criteria_order: Sequence[str],
        auto_adjust: bool,
    ) -> StoredRatingPreferences:
        with self.database.session() as session:
            prefs = session.query(RatingPreferences).filter(RatingPreferences.user_id == user_id).first()
            if prefs is None:
                prefs = RatingPreferences(user_id=user_id)
                session.add(prefs)

            for criterion in RATING_CRITERIA:
                setattr(prefs, criterion, weights[criterion])
            prefs.criteria_order = list(criteria_order)
            prefs.auto_adjust = auto_adjust

            session.commit()
            session.refresh(prefs)

            logger.info(f"Saved rating preferences for user {user_id}")
            return StoredRatingPreferences.from_model(prefs)
