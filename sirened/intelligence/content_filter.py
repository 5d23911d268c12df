"""
Content filtering driven by a reader's blocks.

A reader can block an author, a publisher, a single book or a taxonomy.
Publisher blocks reach books through the publisher's authors.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Sequence


class BlockType(str, Enum):
    """What a block entry points at."""
    AUTHOR = "author"
    PUBLISHER = "publisher"
    BOOK = "book"
    TAXONOMY = "taxonomy"


@dataclass
class BlockSet:
    """Block ids grouped by type."""

    authors: set[int] = field(default_factory=set)
    publishers: set[int] = field(default_factory=set)
    books: set[int] = field(default_factory=set)
    taxonomies: set[int] = field(default_factory=set)

    @classmethod
    def from_blocks(cls, blocks: Iterable) -> "BlockSet":
        """
        Build from block records (objects with ``block_type`` and ``block_id``
        attributes, or dicts with the same keys).
        """
        block_set = cls()
        buckets = {
            BlockType.AUTHOR.value: block_set.authors,
            BlockType.PUBLISHER.value: block_set.publishers,
            BlockType.BOOK.value: block_set.books,
            BlockType.TAXONOMY.value: block_set.taxonomies,
        }
        for block in blocks:
            if isinstance(block, Mapping):
                block_type, block_id = block["block_type"], block["block_id"]
            else:
                block_type, block_id = block.block_type, block.block_id
            bucket = buckets.get(getattr(block_type, "value", block_type))
            if bucket is not None:
                bucket.add(int(block_id))
        return block_set

    def is_empty(self) -> bool:
        return not (self.authors or self.publishers or self.books or self.taxonomies)


def blocked_author_ids(
    block_set: BlockSet,
    publisher_authors: Mapping[int, Iterable[int]],
) -> set[int]:
    """Directly blocked authors plus every author of a blocked publisher."""
    authors = set(block_set.authors)
    for publisher_id in block_set.publishers:
        authors.update(publisher_authors.get(publisher_id, ()))
    return authors


def filter_book_ids(
    book_ids: Sequence[int],
    block_set: BlockSet,
    book_taxonomies: Mapping[int, Iterable[int]],
    book_authors: Mapping[int, int],
    publisher_authors: Mapping[int, Iterable[int]],
) -> list[int]:
    """
    Drop blocked books, keeping input order.

    Args:
        book_ids: Candidate books.
        block_set: The reader's blocks.
        book_taxonomies: book id -> taxonomy ids on that book.
        book_authors: book id -> author id.
        publisher_authors: publisher id -> author ids.

    Returns:
        Book ids that survive every block.
    """
    if block_set.is_empty():
        return list(book_ids)

    authors = blocked_author_ids(block_set, publisher_authors)
    kept = []
    for book_id in book_ids:
        if book_id in block_set.books:
            continue
        if book_authors.get(book_id) in authors:
            continue
        if block_set.taxonomies.intersection(book_taxonomies.get(book_id, ())):
            continue
        kept.append(book_id)
    return kept
