"""
Genre View Book Selection

Builds the book feed for one of a reader's genre views:

1. Collect the view's taxonomies in rank order
2. Gather every book tagged with any of them (deduplicated)
3. Drop books the reader has blocked
4. Order by the best-ranked matching taxonomy, then book id
5. Keep the first ``count``, never more than MAX_VIEW_BOOKS
"""

from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from .content_filter import filter_book_ids

MAX_VIEW_BOOKS = 100


@dataclass
class ViewBooks:
    """Books selected for a genre view."""

    view_id: int
    book_ids: list[int] = field(default_factory=list)
    candidates: int = 0
    filtered_out: int = 0


def rank_books_for_taxonomies(
    book_taxonomies: dict[int, set[int]],
    taxonomy_ranks: dict[int, int],
) -> list[int]:
    """Book ids ordered by the lowest rank among their matching taxonomies."""
    def best_rank(book_id: int) -> int:
        return min(taxonomy_ranks[t] for t in book_taxonomies[book_id] if t in taxonomy_ranks)

    return sorted(book_taxonomies, key=lambda b: (best_rank(b), b))


class ViewBookSelector:
    """
    Selects books for genre views using the book, block and view repositories.

    Usage:
        selector = ViewBookSelector(book_repo, block_repo, view_repo)
        result = selector.select(view_id, user_id, count=10)
        books = book_repo.get_many(result.book_ids)
    """

    def __init__(self, book_repository, block_repository, genre_view_repository, default_count: int = 10):
        self.books = book_repository
        self.blocks = block_repository
        self.views = genre_view_repository
        self.default_count = min(default_count, MAX_VIEW_BOOKS)

    def select(self, view_id: int, user_id: int, count: Optional[int] = None) -> ViewBooks:
        count = self.default_count if count is None else min(count, MAX_VIEW_BOOKS)
        view = self.views.get_view(view_id, user_id)

        taxonomy_ranks = {t.taxonomy_id: t.rank for t in view.taxonomies}
        if not taxonomy_ranks:
            return ViewBooks(view_id=view_id)

        book_taxonomies = self.books.books_for_taxonomies(taxonomy_ranks.keys())
        ordered = rank_books_for_taxonomies(book_taxonomies, taxonomy_ranks)

        block_set = self.blocks.block_set(user_id)
        if block_set.is_empty():
            kept = ordered
        else:
            kept = filter_book_ids(
                ordered,
                block_set,
                book_taxonomies=self.books.taxonomies_for_books(ordered),
                book_authors=self.books.authors_for_books(ordered),
                publisher_authors=self.books.publisher_authors(block_set.publishers),
            )

        logger.debug(
            f"Genre view {view_id}: {len(ordered)} candidates, "
            f"{len(ordered) - len(kept)} blocked, returning {min(count, len(kept))}"
        )
        return ViewBooks(
            view_id=view_id,
            book_ids=kept[:count],
            candidates=len(ordered),
            filtered_out=len(ordered) - len(kept),
        )
