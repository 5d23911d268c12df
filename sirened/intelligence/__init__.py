"""
Reader Intelligence Module for Sirened

Pure logic behind personalized reading:
- Weighted rating preferences (ordering, normalization, slider rebalance)
- Reader-to-reader compatibility
- Content filtering from reader blocks
- Genre view book selection
"""

from sirened.intelligence.rating_weights import (
    RATING_CRITERIA,
    POSITION_WEIGHTS,
    DEFAULT_RATING_WEIGHTS,
    weights_from_order,
    order_from_weights,
    normalize_weights,
    rebalance_weights,
    weights_sum_to_one,
    calculate_weighted_rating,
)
from sirened.intelligence.compatibility import (
    CompatibilityResult,
    CriterionComparison,
    calculate_reading_compatibility,
    compatibility_label,
    compatibility_score,
)
from sirened.intelligence.content_filter import (
    BlockType,
    BlockSet,
    blocked_author_ids,
    filter_book_ids,
)
from sirened.intelligence.view_books import (
    ViewBooks,
    ViewBookSelector,
    rank_books_for_taxonomies,
)

__all__ = [
    # Rating weights
    "RATING_CRITERIA",
    "POSITION_WEIGHTS",
    "DEFAULT_RATING_WEIGHTS",
    "weights_from_order",
    "order_from_weights",
    "normalize_weights",
    "rebalance_weights",
    "weights_sum_to_one",
    "calculate_weighted_rating",
    # Compatibility
    "CompatibilityResult",
    "CriterionComparison",
    "calculate_reading_compatibility",
    "compatibility_label",
    "compatibility_score",
    # Content filter
    "BlockType",
    "BlockSet",
    "blocked_author_ids",
    "filter_book_ids",
    # Genre view feeds
    "ViewBooks",
    "ViewBookSelector",
    "rank_books_for_taxonomies",
]
