"""
Book Repository for Sirened

Structured storage for catalog entries using SQLAlchemy:
- PostgreSQL for production
- SQLite for development/testing
- Genre taxonomy links with rank
- Publisher/author links used by content filtering

Design Decisions:
1. JSON columns for small ordered lists (awards, formats, referral links)
2. Referral links stored enhanced so reads never resolve domains
3. Hard delete with cleanup of every row that points at the book
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from loguru import logger
from sqlalchemy import func

from sirened.board.ordering import array_move, assign_ranks
from sirened.catalog.referral_links import DEFAULT_FAVICON_SERVICE, enhance_referral_links
from sirened.exceptions import NotFoundError, ValidationError
from .database import Database
from .models import (
    Author,
    Book,
    BookGenreTaxonomy,
    GenreTaxonomy,
    Note,
    Publisher,
    PublisherAuthor,
    Rating,
    ReadingStatus,
    ShelfBook,
)


@dataclass
class StoredBook:
    """Data class for book data transfer."""

    id: int
    title: str
    author_id: int
    description: str

    series: Optional[str] = None
    setting: Optional[str] = None
    characters: list[str] = field(default_factory=list)
    awards: list[str] = field(default_factory=list)
    formats: list[str] = field(default_factory=list)

    page_count: Optional[int] = None
    published_date: Optional[str] = None
    isbn: Optional[str] = None
    asin: Optional[str] = None
    language: Optional[str] = None
    original_title: Optional[str] = None

    referral_links: list[dict] = field(default_factory=list)
    internal_details: Optional[str] = None
    promoted: bool = False

    # Taxonomy ids in rank order
    genres: list[int] = field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: Book, genres: Optional[list[int]] = None) -> "StoredBook":
        """Create from SQLAlchemy model."""
        return cls(
            id=model.id,
            title=model.title,
            author_id=model.author_id,
            description=model.description,
            series=model.series,
            setting=model.setting,
            characters=model.characters or [],
            awards=model.awards or [],
            formats=model.formats or [],
            page_count=model.page_count,
            published_date=model.published_date,
            isbn=model.isbn,
            asin=model.asin,
            language=model.language,
            original_title=model.original_title,
            referral_links=model.referral_links or [],
            internal_details=model.internal_details,
            promoted=bool(model.promoted),
            genres=genres or [],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass
class StoredPublisher:
    id: int
    name: str
    description: Optional[str] = None
    author_ids: list[int] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: Publisher, author_ids: Optional[list[int]] = None) -> "StoredPublisher":
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            author_ids=author_ids or [],
            created_at=model.created_at,
        )


class BookRepository:
    """
    Repository for book CRUD operations.

    Usage:
        repo = BookRepository(database)

        book = repo.create(
            author_id=1,
            title="The Hollow Tide",
            description="...",
            formats=["digital"],
        )
        repo.set_taxonomies(book.id, [3, 7])
    """

    EDITABLE_FIELDS = {
        "title", "description", "series", "setting", "characters", "awards",
        "formats", "page_count", "published_date", "isbn", "asin", "language",
        "original_title", "referral_links", "internal_details", "promoted",
    }

    SORT_FIELDS = {
        "created_at": Book.created_at,
        "title": Book.title,
        "published_date": Book.published_date,
    }

    def __init__(self, database: Database, favicon_service: str = DEFAULT_FAVICON_SERVICE):
        self.database = database
        self.favicon_service = favicon_service

    def _genre_ids(self, session, book_id: int) -> list[int]:
        rows = (
            session.query(BookGenreTaxonomy.taxonomy_id)
            .filter(BookGenreTaxonomy.book_id == book_id)
            .order_by(BookGenreTaxonomy.rank)
            .all()
        )
        return [r.taxonomy_id for r in rows]

    def _apply_fields(self, book: Book, fields: dict) -> None:
        for key, value in fields.items():
            if key not in self.EDITABLE_FIELDS:
                continue
            if key == "referral_links":
                value = enhance_referral_links(value or [], self.favicon_service)
            setattr(book, key, value)

    def create(self, author_id: int, title: str, description: str, **kwargs) -> StoredBook:
        """
        Create a new book.

        Args:
            author_id: Owning author profile
            title: Book title
            description: Blurb
            **kwargs: Additional editable fields; ``genres`` sets taxonomy links

        Returns:
            Created StoredBook
        """
        genres = kwargs.pop("genres", None)

        with self.database.session() as session:
            book = Book(author_id=author_id, title=title, description=description)
            self._apply_fields(book, kwargs)
            session.add(book)
            session.flush()

            if genres:
                self._replace_taxonomies(session, book.id, genres)

            session.commit()
            session.refresh(book)

            logger.info(f"Created book {book.id}: {title}")
            return StoredBook.from_model(book, self._genre_ids(session, book.id))

    def get(self, book_id: int) -> Optional[StoredBook]:
        with self.database.session() as session:
            book = session.get(Book, book_id)
            if not book:
                return None
            return StoredBook.from_model(book, self._genre_ids(session, book.id))

    def get_many(self, book_ids: Iterable[int]) -> list[StoredBook]:
        """Books for ``book_ids`` in the same order; unknown ids are skipped."""
        ids = list(book_ids)
        if not ids:
            return []

        with self.database.session() as session:
            books = {b.id: b for b in session.query(Book).filter(Book.id.in_(ids)).all()}
            return [
                StoredBook.from_model(books[i], self._genre_ids(session, i))
                for i in ids
                if i in books
            ]

    def update(self, book_id: int, **kwargs) -> StoredBook:
        genres = kwargs.pop("genres", None)

        with self.database.session() as session:
            book = session.get(Book, book_id)
            if not book:
                raise NotFoundError("Book", book_id)

            self._apply_fields(book, kwargs)
            if genres is not None:
                self._replace_taxonomies(session, book_id, genres)

            session.commit()
            session.refresh(book)

            logger.info(f"Updated book {book_id}")
            return StoredBook.from_model(book, self._genre_ids(session, book_id))

    def delete(self, book_id: int) -> bool:
        """Delete a book and every row that references it."""
        with self.database.session() as session:
            book = session.get(Book, book_id)
            if not book:
                return False

            for model in (BookGenreTaxonomy, ShelfBook, Rating, ReadingStatus, Note):
                session.query(model).filter(model.book_id == book_id).delete(synchronize_session=False)
            session.delete(book)
            session.commit()

            logger.info(f"Deleted book {book_id}")
            return True

    def list_books(
        self,
        page: int = 1,
        limit: int = 20,
        filters: Optional[dict] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[StoredBook], int]:
        """
        List books with pagination and filtering.

        Filters:
            author_id: exact author
            taxonomy_id: tagged with this taxonomy
            search: case-insensitive title substring
        """
        filters = filters or {}

        with self.database.session() as session:
            query = session.query(Book)

            if filters.get("author_id") is not None:
                query = query.filter(Book.author_id == filters["author_id"])
            if filters.get("taxonomy_id") is not None:
                query = query.join(
                    BookGenreTaxonomy, BookGenreTaxonomy.book_id == Book.id
                ).filter(BookGenreTaxonomy.taxonomy_id == filters["taxonomy_id"])
            if filters.get("search"):
                query = query.filter(func.lower(Book.title).contains(filters["search"].lower()))

            total = query.count()

            column = self.SORT_FIELDS.get(sort_by, Book.created_at)
            query = query.order_by(column.asc() if sort_order == "asc" else column.desc(), Book.id)

            rows = query.offset((page - 1) * limit).limit(limit).all()
            books = [StoredBook.from_model(b, self._genre_ids(session, b.id)) for b in rows]
            return books, total

    # =========================================================================
    # Referral links
    # =========================================================================

    def move_referral_link(self, book_id: int, from_index: int, to_index: int) -> StoredBook:
        with self.database.session() as session:
            book = session.get(Book, book_id)
            if not book:
                raise NotFoundError("Book", book_id)

            book.referral_links = array_move(book.referral_links or [], from_index, to_index)
            session.commit()
            session.refresh(book)
            return StoredBook.from_model(book, self._genre_ids(session, book_id))

    # =========================================================================
    # Genre taxonomies
    # =========================================================================

    def _replace_taxonomies(self, session, book_id: int, taxonomy_ids: list[int]) -> None:
        unique_ids = list(dict.fromkeys(taxonomy_ids))
        known = {
            row.id
            for row in session.query(GenreTaxonomy.id).filter(
                GenreTaxonomy.id.in_(unique_ids),
                GenreTaxonomy.deleted_at.is_(None),
            )
        }
        missing = [t for t in unique_ids if t not in known]
        if missing:
            raise ValidationError("Unknown genre taxonomy", detail=f"Unknown ids: {missing}")

        session.query(BookGenreTaxonomy).filter(
            BookGenreTaxonomy.book_id == book_id
        ).delete(synchronize_session=False)

        for taxonomy_id, rank in assign_ranks(unique_ids, key=lambda t: t):
            session.add(BookGenreTaxonomy(
                book_id=book_id,
                taxonomy_id=taxonomy_id,
                rank=rank,
                importance=round(1.0 / (rank + 1), 4),
            ))

    def set_taxonomies(self, book_id: int, taxonomy_ids: list[int]) -> list[int]:
        """Replace a book's taxonomies; rank follows list position."""
        with self.database.session() as session:
            if not session.get(Book, book_id):
                raise NotFoundError("Book", book_id)
            self._replace_taxonomies(session, book_id, taxonomy_ids)
            session.commit()
            return self._genre_ids(session, book_id)

    def books_for_taxonomies(self, taxonomy_ids: Iterable[int]) -> dict[int, set[int]]:
        """book id -> the subset of ``taxonomy_ids`` it is tagged with."""
        ids = list(taxonomy_ids)
        if not ids:
            return {}

        with self.database.session() as session:
            rows = session.query(BookGenreTaxonomy.book_id, BookGenreTaxonomy.taxonomy_id).filter(
                BookGenreTaxonomy.taxonomy_id.in_(ids)
            ).all()

        mapping: dict[int, set[int]] = {}
        for book_id, taxonomy_id in rows:
            mapping.setdefault(book_id, set()).add(taxonomy_id)
        return mapping

    def taxonomies_for_books(self, book_ids: Iterable[int]) -> dict[int, set[int]]:
        ids = list(book_ids)
        if not ids:
            return {}

        with self.database.session() as session:
            rows = session.query(BookGenreTaxonomy.book_id, BookGenreTaxonomy.taxonomy_id).filter(
                BookGenreTaxonomy.book_id.in_(ids)
            ).all()

        mapping: dict[int, set[int]] = {}
        for book_id, taxonomy_id in rows:
            mapping.setdefault(book_id, set()).add(taxonomy_id)
        return mapping

    def authors_for_books(self, book_ids: Iterable[int]) -> dict[int, int]:
        ids = list(book_ids)
        if not ids:
            return {}

        with self.database.session() as session:
            rows = session.query(Book.id, Book.author_id).filter(Book.id.in_(ids)).all()
            return {book_id: author_id for book_id, author_id in rows}

    # =========================================================================
    # Publishers
    # =========================================================================

    def _publisher_author_ids(self, session, publisher_id: int) -> list[int]:
        rows = session.query(PublisherAuthor.author_id).filter(
            PublisherAuthor.publisher_id == publisher_id
        ).order_by(PublisherAuthor.author_id).all()
        return [author_id for (author_id,) in rows]

    def create_publisher(self, name: str, description: Optional[str] = None) -> StoredPublisher:
        if not name or not name.strip():
            raise ValidationError("Publisher name is required")

        with self.database.session() as session:
            publisher = Publisher(name=name.strip(), description=description)
            session.add(publisher)
            session.commit()
            logger.info(f"Created publisher {publisher.id}: {publisher.name}")
            return StoredPublisher.from_model(publisher)

    def get_publisher(self, publisher_id: int) -> Optional[StoredPublisher]:
        with self.database.session() as session:
            publisher = session.get(Publisher, publisher_id)
            if publisher is None:
                return None
            return StoredPublisher.from_model(publisher, self._publisher_author_ids(session, publisher_id))

    def list_publishers(self) -> list[StoredPublisher]:
        with self.database.session() as session:
            publishers = session.query(Publisher).order_by(Publisher.name, Publisher.id).all()
            return [
                StoredPublisher.from_model(p, self._publisher_author_ids(session, p.id))
                for p in publishers
            ]

    def add_publisher_author(self, publisher_id: int, author_id: int) -> StoredPublisher:
        """Link an author to a publisher; linking twice is a no-op."""
        with self.database.session() as session:
            publisher = session.get(Publisher, publisher_id)
            if not publisher:
                raise NotFoundError("Publisher", publisher_id)
            if not session.get(Author, author_id):
                raise NotFoundError("Author", author_id)

            exists = session.query(PublisherAuthor).filter(
                PublisherAuthor.publisher_id == publisher_id,
                PublisherAuthor.author_id == author_id,
            ).first()
            if not exists:
                session.add(PublisherAuthor(publisher_id=publisher_id, author_id=author_id))
                session.commit()
                logger.info(f"Linked author {author_id} to publisher {publisher_id}")
            return StoredPublisher.from_model(publisher, self._publisher_author_ids(session, publisher_id))

    def remove_publisher_author(self, publisher_id: int, author_id: int) -> None:
        with self.database.session() as session:
            link = session.query(PublisherAuthor).filter(
                PublisherAuthor.publisher_id == publisher_id,
                PublisherAuthor.author_id == author_id,
            ).first()
            if not link:
                raise NotFoundError("Publisher author", f"{publisher_id}/{author_id}")
            session.delete(link)
            session.commit()

    def publisher_authors(self, publisher_ids: Iterable[int]) -> dict[int, set[int]]:
        ids = list(publisher_ids)
        if not ids:
            return {}

        with self.database.session() as session:
            rows = session.query(PublisherAuthor.publisher_id, PublisherAuthor.author_id).filter(
                PublisherAuthor.publisher_id.in_(ids)
            ).all()

        mapping: dict[int, set[int]] = {}
        for publisher_id, author_id in rows:
            mapping.setdefault(publisher_id, set()).add(author_id)
        return mapping
