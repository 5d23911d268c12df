"""
Database models for Sirened.

All tables share one declarative ``Base`` so ``create_all`` and the
migration runner see the complete schema.
"""

from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    DateTime,
    JSON,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class User(Base):
    """Reader, author or administrator account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(64), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    display_name = Column(String(255))
    bio = Column(Text)
    is_admin = Column(Boolean, default=False, nullable=False)
    has_completed_onboarding = Column(Boolean, default=False, nullable=False)
    social_links = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)


class Author(Base):
    """Author profile owned by a user."""
    __tablename__ = "authors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    author_name = Column(String(255), nullable=False)
    bio = Column(Text)
    author_image_url = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow)


class Publisher(Base):
    __tablename__ = "publishers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)


class PublisherAuthor(Base):
    __tablename__ = "publishers_authors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    publisher_id = Column(Integer, ForeignKey("publishers.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("publisher_id", "author_id", name="uq_publisher_author"),
    )


class Book(Base):
    """Catalog entry submitted through the upload wizard."""
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=False, index=True)
    description = Column(Text, nullable=False)

    series = Column(String(255))
    setting = Column(String(255))
    characters = Column(JSON, default=list)
    awards = Column(JSON, default=list)
    formats = Column(JSON, default=list)

    page_count = Column(Integer)
    published_date = Column(String(32))
    isbn = Column(String(20), index=True)
    asin = Column(String(20))
    language = Column(String(50))
    original_title = Column(String(500))

    referral_links = Column(JSON, default=list)
    internal_details = Column(Text)
    promoted = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_books_author_title", "author_id", "title"),
    )


class GenreTaxonomy(Base):
    """Genre, subgenre, theme or trope."""
    __tablename__ = "genre_taxonomies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    type = Column(String(20), nullable=False, index=True)
    parent_id = Column(Integer, ForeignKey("genre_taxonomies.id"), index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime)

    __table_args__ = (
        CheckConstraint(
            "type IN ('genre', 'subgenre', 'theme', 'trope')",
            name="ck_taxonomy_type",
        ),
    )


class BookGenreTaxonomy(Base):
    __tablename__ = "book_genre_taxonomies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    taxonomy_id = Column(Integer, ForeignKey("genre_taxonomies.id"), nullable=False, index=True)
    rank = Column(Integer, nullable=False, default=0)
    importance = Column(Float, default=1.0)


class Rating(Base):
    """One reader's five-criteria rating of a book."""
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    enjoyment = Column(Integer, nullable=False)
    writing = Column(Integer, nullable=False)
    themes = Column(Integer, nullable=False)
    characters = Column(Integer, nullable=False)
    worldbuilding = Column(Integer, nullable=False)
    review = Column(Text)
    analysis = Column(JSON)
    featured = Column(Boolean, default=False)
    report_status = Column(String(20), default="none")
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_rating_user_book"),
    )


class RatingPreferences(Base):
    __tablename__ = "rating_preferences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    enjoyment = Column(Float, nullable=False)
    writing = Column(Float, nullable=False)
    themes = Column(Float, nullable=False)
    characters = Column(Float, nullable=False)
    worldbuilding = Column(Float, nullable=False)
    criteria_order = Column(JSON, default=list)
    auto_adjust = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ReadingStatus(Base):
    __tablename__ = "reading_status"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    is_wishlisted = Column(Boolean, default=False, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime)

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_reading_status_user_book"),
    )


class BookShelf(Base):
    __tablename__ = "book_shelves"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    cover_image_url = Column(String(500))
    rank = Column(Integer, nullable=False, default=0)
    is_shared = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ShelfBook(Base):
    __tablename__ = "shelf_books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    shelf_id = Column(Integer, ForeignKey("book_shelves.id"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    rank = Column(Integer, nullable=False, default=0)
    added_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("shelf_id", "book_id", name="uq_shelf_book"),
    )


class Note(Base):
    """Free-text note attached to a shelf or a book."""
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    type = Column(String(10), nullable=False)
    shelf_id = Column(Integer, ForeignKey("book_shelves.id"), index=True)
    book_id = Column(Integer, ForeignKey("books.id"), index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("type IN ('shelf', 'book')", name="ck_note_type"),
    )


class FeedbackTicket(Base):
    __tablename__ = "feedback_tickets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ticket_number = Column(String(6), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    type = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="new", index=True)
    priority = Column(Integer, nullable=False, default=1)
    assigned_to = Column(Integer, ForeignKey("users.id"))
    admin_notes = Column(Text)
    device_info = Column(JSON)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    resolved_at = Column(DateTime)


class UserGenreView(Base):
    """Named, ranked collection of taxonomies a reader browses by."""
    __tablename__ = "user_genre_views"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    rank = Column(Integer, nullable=False, default=0)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ViewGenre(Base):
    __tablename__ = "view_genres"

    id = Column(Integer, primary_key=True, autoincrement=True)
    view_id = Column(Integer, ForeignKey("user_genre_views.id"), nullable=False, index=True)
    taxonomy_id = Column(Integer, ForeignKey("genre_taxonomies.id"), nullable=False)
    type = Column(String(20), nullable=False)
    rank = Column(Integer, nullable=False, default=0)


class UserBlock(Base):
    __tablename__ = "user_blocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    block_type = Column(String(20), nullable=False)
    block_id = Column(Integer, nullable=False)
    block_name = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "block_type", "block_id", name="uq_user_block"),
    )
