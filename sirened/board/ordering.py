"""
Drag-and-drop ordering helpers.

Shelves, shelf books, genre views and referral links are all ordered
collections the user rearranges by dragging. These helpers keep the
rank arithmetic in one place.
"""

from typing import Any, Callable, Hashable, Iterable, Optional, Sequence, TypeVar

from sirened.exceptions import ForbiddenError, ValidationError

T = TypeVar("T")


def array_move(items: Sequence[T], old_index: int, new_index: int) -> list[T]:
    """
    Return a copy of ``items`` with one element moved.

    Raises:
        ValidationError: If either index is out of range.
    """
    size = len(items)
    for name, index in (("from_index", old_index), ("to_index", new_index)):
        if not 0 <= index < size:
            raise ValidationError(
                "Index out of range",
                detail=f"{name}={index} outside 0..{size - 1}",
            )

    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


def reorder_by_ids(
    items: Sequence[T],
    active_id: Hashable,
    over_id: Optional[Hashable],
    key: Callable[[T], Hashable] = lambda item: item["id"],
) -> list[T]:
    """
    Move the dragged item to the slot of the item it was dropped on.

    A drop outside any item (``over_id`` is None) or onto itself leaves
    the order untouched.
    """
    if over_id is None or active_id == over_id:
        return list(items)

    ids = [key(item) for item in items]
    try:
        old_index = ids.index(active_id)
        new_index = ids.index(over_id)
    except ValueError:
        raise ValidationError(
            "Unknown item in reorder",
            detail=f"active={active_id!r} over={over_id!r}",
        )
    return array_move(items, old_index, new_index)


def assign_ranks(items: Iterable[Any], key: Callable[[Any], Any] = lambda item: item["id"]) -> list[tuple[Any, int]]:
    """Pair each item id with its position."""
    return [(key(item), rank) for rank, item in enumerate(items)]


def next_rank(existing_ranks: Iterable[Optional[int]]) -> int:
    """Rank for an item appended to the end: max + 1, or 0 when empty."""
    ranks = [r for r in existing_ranks if r is not None]
    return max(ranks) + 1 if ranks else 0


def validate_rank_updates(updates: Sequence[Any], owned_ids: Iterable[int]) -> dict[int, int]:
    """
    Check a batch of ``{id, rank}`` updates against what the caller owns.

    Returns:
        Mapping id -> rank.

    Raises:
        ForbiddenError: An id does not belong to the caller.
        ValidationError: Duplicate ids or negative ranks.
    """
    owned = set(owned_ids)
    ranks: dict[int, int] = {}

    for update in updates:
        if isinstance(update, dict):
            item_id, rank = update["id"], update["rank"]
        else:
            item_id, rank = update.id, update.rank

        if item_id not in owned:
            raise ForbiddenError(
                "Not authorized to reorder these items",
                detail=f"Item {item_id} does not belong to the current user",
            )
        if item_id in ranks:
            raise ValidationError("Duplicate id in rank update", detail=str(item_id))
        if rank < 0:
            raise ValidationError("Rank must be non-negative", detail=f"id={item_id} rank={rank}")
        ranks[item_id] = rank

    return ranks
