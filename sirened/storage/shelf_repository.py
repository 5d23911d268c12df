"""
Shelf Repository for Sirened

Reader-curated shelves, the books on them, and notes on shelves or books.
Shelves and shelf books are ordered by ``rank``; new items go to the end.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from loguru import logger
from sqlalchemy import func

from sirened.board.ordering import next_rank, validate_rank_updates
from sirened.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from .database import Database
from .models import Book, BookShelf, Note, ShelfBook, User


@dataclass
class StoredShelf:
    id: int
    user_id: int
    title: str
    rank: int
    cover_image_url: Optional[str] = None
    is_shared: bool = False
    book_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: BookShelf, book_count: int = 0) -> "StoredShelf":
        return cls(
            id=model.id,
            user_id=model.user_id,
            title=model.title,
            rank=model.rank,
            cover_image_url=model.cover_image_url,
            is_shared=bool(model.is_shared),
            book_count=book_count,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass
class StoredShelfBook:
    id: int
    shelf_id: int
    book_id: int
    rank: int
    title: Optional[str] = None
    added_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: ShelfBook, title: Optional[str] = None) -> "StoredShelfBook":
        return cls(
            id=model.id,
            shelf_id=model.shelf_id,
            book_id=model.book_id,
            rank=model.rank,
            title=title,
            added_at=model.added_at,
        )


@dataclass
class StoredNote:
    id: int
    user_id: int
    content: str
    type: str
    shelf_id: Optional[int] = None
    book_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: Note) -> "StoredNote":
        return cls(
            id=model.id,
            user_id=model.user_id,
            content=model.content,
            type=model.type,
            shelf_id=model.shelf_id,
            book_id=model.book_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class ShelfRepository:
    """
    Repository for shelves, shelf books and notes.

    Every mutating method takes the acting ``user_id`` and refuses to touch
    another reader's shelf.
    """

    def __init__(self, database: Database):
        self.database = database

    def _owned_shelf(self, session, shelf_id: int, user_id: int) -> BookShelf:
        shelf = session.get(BookShelf, shelf_id)
        if not shelf:
            raise NotFoundError("Shelf", shelf_id)
        if shelf.user_id != user_id:
            raise ForbiddenError("Not authorized to access this shelf")
        return shelf

    def _book_counts(self, session, shelf_ids: list[int]) -> dict[int, int]:
        if not shelf_ids:
            return {}
        rows = (
            session.query(ShelfBook.shelf_id, func.count(ShelfBook.id))
            .filter(ShelfBook.shelf_id.in_(shelf_ids))
            .group_by(ShelfBook.shelf_id)
            .all()
        )
        return dict(rows)

    # =========================================================================
    # Shelves
    # =========================================================================

    def list_shelves(self, user_id: int) -> list[StoredShelf]:
        with self.database.session() as session:
            shelves = (
                session.query(BookShelf)
                .filter(BookShelf.user_id == user_id)
                .order_by(BookShelf.rank, BookShelf.id)
                .all()
            )
            counts = self._book_counts(session, [s.id for s in shelves])
            return [StoredShelf.from_model(s, counts.get(s.id, 0)) for s in shelves]

    def get_shelf(self, shelf_id: int, user_id: int) -> StoredShelf:
        with self.database.session() as session:
            shelf = self._owned_shelf(session, shelf_id, user_id)
            counts = self._book_counts(session, [shelf.id])
            return StoredShelf.from_model(shelf, counts.get(shelf.id, 0))

    def create_shelf(self, user_id: int, title: str, cover_image_url: Optional[str] = None) -> StoredShelf:
        with self.database.session() as session:
            ranks = [r for (r,) in session.query(BookShelf.rank).filter(BookShelf.user_id == user_id)]
            shelf = BookShelf(
                user_id=user_id,
                title=title,
                cover_image_url=cover_image_url,
                rank=next_rank(ranks),
                is_shared=False,
            )
            session.add(shelf)
            session.commit()
            session.refresh(shelf)

            logger.info(f"Created shelf {shelf.id} '{title}' for user {user_id} at rank {shelf.rank}")
            return StoredShelf.from_model(shelf)

    def update_shelf(
        self,
        shelf_id: int,
        user_id: int,
        title: Optional[str] = None,
        cover_image_url: Optional[str] = None,
        is_shared: Optional[bool] = None,
    ) -> StoredShelf:
        with self.database.session() as session:
            shelf = self._owned_shelf(session, shelf_id, user_id)
            if title is not None:
                shelf.title = title
            if cover_image_url is not None:
                shelf.cover_image_url = cover_image_url
            if is_shared is not None:
                shelf.is_shared = is_shared
            session.commit()
            session.refresh(shelf)
            counts = self._book_counts(session, [shelf.id])
            return StoredShelf.from_model(shelf, counts.get(shelf.id, 0))

    def delete_shelf(self, shelf_id: int, user_id: int) -> None:
        """Delete a shelf with its books and notes."""
        with self.database.session() as session:
            shelf = self._owned_shelf(session, shelf_id, user_id)
            books = session.query(ShelfBook).filter(ShelfBook.shelf_id == shelf_id).delete(synchronize_session=False)
            notes = session.query(Note).filter(Note.shelf_id == shelf_id).delete(synchronize_session=False)
            session.delete(shelf)
            session.commit()

            logger.info(f"Deleted shelf {shelf_id} ({books} books, {notes} notes)")

    def reorder_shelves(self, user_id: int, updates: Sequence) -> list[StoredShelf]:
        """
        Apply ``[{id, rank}]`` updates and return the shelves in new order.

        Raises:
            ForbiddenError: An id belongs to another reader (or does not exist).
        """
        with self.database.session() as session:
            shelves = {s.id: s for s in session.query(BookShelf).filter(BookShelf.user_id == user_id)}
            ranks = validate_rank_updates(updates, shelves.keys())
            for shelf_id, rank in ranks.items():
                shelves[shelf_id].rank = rank
            session.commit()

        return self.list_shelves(user_id)

    def get_shared_shelf(self, username: str, title: str) -> StoredShelf:
        """A shelf other readers may view; private shelves look missing."""
        with self.database.session() as session:
            row = (
                session.query(BookShelf)
                .join(User, User.id == BookShelf.user_id)
                .filter(
                    func.lower(User.username) == username.lower(),
                    BookShelf.title == title,
                    BookShelf.is_shared.is_(True),
                )
                .first()
            )
            if not row:
                raise NotFoundError("Shelf", f"{username}/{title}")
            counts = self._book_counts(session, [row.id])
            return StoredShelf.from_model(row, counts.get(row.id, 0))

    # =========================================================================
    # Shelf books
    # =========================================================================

    def _shelf_books(self, session, shelf_id: int) -> list[StoredShelfBook]:
        rows = (
            session.query(ShelfBook, Book.title)
            .join(Book, Book.id == ShelfBook.book_id)
            .filter(ShelfBook.shelf_id == shelf_id)
            .order_by(ShelfBook.rank, ShelfBook.id)
            .all()
        )
        return [StoredShelfBook.from_model(sb, title) for sb, title in rows]

    def list_shelf_books(self, shelf_id: int, user_id: Optional[int] = None) -> list[StoredShelfBook]:
        """Books on a shelf. Without ``user_id`` the shelf must be shared."""
        with self.database.session() as session:
            if user_id is None:
                shelf = session.get(BookShelf, shelf_id)
                if not shelf or not shelf.is_shared:
                    raise NotFoundError("Shelf", shelf_id)
            else:
                self._owned_shelf(session, shelf_id, user_id)
            return self._shelf_books(session, shelf_id)

    def add_book(self, shelf_id: int, user_id: int, book_id: int) -> StoredShelfBook:
        with self.database.session() as session:
            self._owned_shelf(session, shelf_id, user_id)
            book = session.get(Book, book_id)
            if not book:
                raise NotFoundError("Book", book_id)

            existing = session.query(ShelfBook).filter(
                ShelfBook.shelf_id == shelf_id,
                ShelfBook.book_id == book_id,
            ).first()
            if existing:
                raise ConflictError("Book already on shelf", detail=f"Book {book_id} is on shelf {shelf_id}")

            ranks = [r for (r,) in session.query(ShelfBook.rank).filter(ShelfBook.shelf_id == shelf_id)]
            entry = ShelfBook(shelf_id=shelf_id, book_id=book_id, rank=next_rank(ranks))
            session.add(entry)
            session.commit()
            session.refresh(entry)

            logger.info(f"Added book {book_id} to shelf {shelf_id} at rank {entry.rank}")
            return StoredShelfBook.from_model(entry, book.title)

    def remove_book(self, shelf_id: int, user_id: int, book_id: int) -> None:
        with self.database.session() as session:
            self._owned_shelf(session, shelf_id, user_id)
            deleted = session.query(ShelfBook).filter(
                ShelfBook.shelf_id == shelf_id,
                ShelfBook.book_id == book_id,
            ).delete(synchronize_session=False)
            if not deleted:
                raise NotFoundError("Shelf book", f"{shelf_id}/{book_id}")
            session.commit()

            logger.info(f"Removed book {book_id} from shelf {shelf_id}")

    def reorder_books(self, shelf_id: int, user_id: int, updates: Sequence) -> list[StoredShelfBook]:
        """``[{id, rank}]`` where ``id`` is the book id."""
        with self.database.session() as session:
            self._owned_shelf(session, shelf_id, user_id)
            entries = {e.book_id: e for e in session.query(ShelfBook).filter(ShelfBook.shelf_id == shelf_id)}
            try:
                ranks = validate_rank_updates(updates, entries.keys())
            except ForbiddenError:
                raise ValidationError("Book not on shelf", detail=f"Shelf {shelf_id}")
            for book_id, rank in ranks.items():
                entries[book_id].rank = rank
            session.commit()
            return self._shelf_books(session, shelf_id)

    # =========================================================================
    # Notes
    # =========================================================================

    def list_notes(
        self,
        user_id: int,
        shelf_id: Optional[int] = None,
        book_id: Optional[int] = None,
    ) -> list[StoredNote]:
        with self.database.session() as session:
            query = session.query(Note).filter(Note.user_id == user_id)
            if shelf_id is not None:
                query = query.filter(Note.shelf_id == shelf_id)
            if book_id is not None:
                query = query.filter(Note.book_id == book_id)
            return [StoredNote.from_model(n) for n in query.order_by(Note.created_at.desc(), Note.id.desc())]

    def create_note(
        self,
        user_id: int,
        content: str,
        shelf_id: Optional[int] = None,
        book_id: Optional[int] = None,
    ) -> StoredNote:
        """Note on a shelf (owned by the reader) or on a book."""
        if (shelf_id is None) == (book_id is None):
            raise ValidationError("A note belongs to exactly one shelf or one book")

        with self.database.session() as session:
            if shelf_id is not None:
                self._owned_shelf(session, shelf_id, user_id)
                note_type = "shelf"
            else:
                if not session.get(Book, book_id):
                    raise NotFoundError("Book", book_id)
                note_type = "book"

            note = Note(user_id=user_id, content=content, type=note_type, shelf_id=shelf_id, book_id=book_id)
            session.add(note)
            session.commit()
            session.refresh(note)
            return StoredNote.from_model(note)

    def _owned_note(self, session, note_id: int, user_id: int) -> Note:
        note = session.get(Note, note_id)
        if not note:
            raise NotFoundError("Note", note_id)
        if note.user_id != user_id:
            raise ForbiddenError("Not authorized to modify this note")
        return note

    def update_note(self, note_id: int, user_id: int, content: str) -> StoredNote:
        with self.database.session() as session:
            note = self._owned_note(session, note_id, user_id)
            note.content = content
            session.commit()
            session.refresh(note)
            return StoredNote.from_model(note)

    def delete_note(self, note_id: int, user_id: int) -> None:
        with self.database.session() as session:
            note = self._owned_note(session, note_id, user_id)
            session.delete(note)
            session.commit()
