"""
Per-reader reading status: wishlist and completion.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger

from sirened.exceptions import NotFoundError
from .database import Database
from .models import Book, ReadingStatus


@dataclass
class StoredReadingStatus:
    user_id: int
    book_id: int
    is_wishlisted: bool = False
    is_completed: bool = False
    completed_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: ReadingStatus) -> "StoredReadingStatus":
        return cls(
            user_id=model.user_id,
            book_id=model.book_id,
            is_wishlisted=bool(model.is_wishlisted),
            is_completed=bool(model.is_completed),
            completed_at=model.completed_at,
        )


def get_or_create_status(session, user_id: int, book_id: int) -> ReadingStatus:
    """Status row for (user, book) inside an open session."""
    status = session.query(ReadingStatus).filter(
        ReadingStatus.user_id == user_id,
        ReadingStatus.book_id == book_id,
    ).first()
    if status is None:
        status = ReadingStatus(
            user_id=user_id,
            book_id=book_id,
            is_wishlisted=False,
            is_completed=False,
        )
        session.add(status)
    return status


def mark_completed_in_session(session, user_id: int, book_id: int) -> ReadingStatus:
    status = get_or_create_status(session, user_id, book_id)
    if not status.is_completed:
        status.is_completed = True
        status.completed_at = datetime.utcnow()
    return status


class ReadingRepository:
    """Wishlist and completed-book tracking."""

    def __init__(self, database: Database):
        self.database = database

    def _require_book(self, session, book_id: int) -> None:
        if not session.get(Book, book_id):
            raise NotFoundError("Book", book_id)

    def get_status(self, user_id: int, book_id: int) -> StoredReadingStatus:
        with self.database.session() as session:
            status = session.query(ReadingStatus).filter(
                ReadingStatus.user_id == user_id,
                ReadingStatus.book_id == book_id,
            ).first()
            if status is None:
                return StoredReadingStatus(user_id=user_id, book_id=book_id)
            return StoredReadingStatus.from_model(status)

    def toggle_wishlist(self, user_id: int, book_id: int) -> StoredReadingStatus:
        with self.database.session() as session:
            self._require_book(session, book_id)
            status = get_or_create_status(session, user_id, book_id)
            status.is_wishlisted = not status.is_wishlisted
            session.commit()
            session.refresh(status)

            logger.info(f"User {user_id} wishlist book {book_id}: {status.is_wishlisted}")
            return StoredReadingStatus.from_model(status)

    def mark_completed(self, user_id: int, book_id: int) -> StoredReadingStatus:
        with self.database.session() as session:
            self._require_book(session, book_id)
            status = mark_completed_in_session(session, user_id, book_id)
            session.commit()
            session.refresh(status)
            return StoredReadingStatus.from_model(status)

    def list_wishlist(self, user_id: int) -> list[int]:
        """Book ids on the reader's wishlist, oldest first."""
        with self.database.session() as session:
            rows = session.query(ReadingStatus.book_id).filter(
                ReadingStatus.user_id == user_id,
                ReadingStatus.is_wishlisted.is_(True),
            ).order_by(ReadingStatus.id).all()
            return [r.book_id for r in rows]
