"""
Board Module for Sirened

Ordering logic behind the drag-and-drop surfaces:
- Generic array moves and rank assignment
- Ownership checks for batched rank updates
- Feedback ticket kanban status derivation
"""

from sirened.board.ordering import (
    array_move,
    reorder_by_ids,
    assign_ranks,
    next_rank,
    validate_rank_updates,
)
from sirened.board.kanban import (
    TicketStatus,
    BOARD_COLUMNS,
    BoardMove,
    derive_drop_status,
    plan_ticket_move,
    group_by_status,
    is_valid_status,
)

__all__ = [
    # Ordering
    "array_move",
    "reorder_by_ids",
    "assign_ranks",
    "next_rank",
    "validate_rank_updates",
    # Kanban
    "TicketStatus",
    "BOARD_COLUMNS",
    "BoardMove",
    "derive_drop_status",
    "plan_ticket_move",
    "group_by_status",
    "is_valid_status",
]
