"""
Storage Module for Sirened

Persistent storage for the catalog and reader data:
- SQLAlchemy models and engine/session management
- One repository per aggregate (books, users, ratings, shelves, ...)
- Idempotent schema migrations
"""

from sirened.storage.database import Database, create_database
from sirened.storage.models import Base
from sirened.storage.book_repository import BookRepository, StoredBook, StoredPublisher
from sirened.storage.user_repository import UserRepository, StoredUser, StoredAuthor
from sirened.storage.rating_repository import (
    RatingRepository,
    StoredRating,
    StoredRatingPreferences,
    RatingSummary,
)
from sirened.storage.reading_repository import ReadingRepository, StoredReadingStatus
from sirened.storage.shelf_repository import (
    ShelfRepository,
    StoredShelf,
    StoredShelfBook,
    StoredNote,
)
from sirened.storage.feedback_repository import FeedbackRepository, StoredTicket
from sirened.storage.taxonomy_repository import TaxonomyRepository, StoredTaxonomy, ImportResult
from sirened.storage.genre_view_repository import (
    GenreViewRepository,
    StoredGenreView,
    StoredViewTaxonomy,
)
from sirened.storage.block_repository import BlockRepository, StoredBlock
from sirened.storage.migrations import (
    Migration,
    MigrationReport,
    MigrationRunner,
    run_migrations,
)

__all__ = [
    # Database
    "Database",
    "create_database",
    "Base",
    # Repositories
    "BookRepository",
    "StoredBook",
    "StoredPublisher",
    "UserRepository",
    "StoredUser",
    "StoredAuthor",
    "RatingRepository",
    "StoredRating",
    "StoredRatingPreferences",
    "RatingSummary",
    "ReadingRepository",
    "StoredReadingStatus",
    "ShelfRepository",
    "StoredShelf",
    "StoredShelfBook",
    "StoredNote",
    "FeedbackRepository",
    "StoredTicket",
    "TaxonomyRepository",
    "StoredTaxonomy",
    "ImportResult",
    "GenreViewRepository",
    "StoredGenreView",
    "StoredViewTaxonomy",
    "BlockRepository",
    "StoredBlock",
    # Migrations
    "Migration",
    "MigrationReport",
    "MigrationRunner",
    "run_migrations",
]
