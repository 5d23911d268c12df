"""
Feedback Ticket Board

Admins triage feedback tickets on a kanban board with one column per
status. A drag ends over either a column container or another ticket;
the drop target decides the ticket's new status.

Drop target ids:
- "container-<status>" / "droppable-<status>": a column
- a ticket id: the column that ticket sits in
- anything else (or nothing): the drag is cancelled
"""

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Union

from sirened.exceptions import NotFoundError


class TicketStatus(str, Enum):
    """Board columns, in display order."""
    NEW = "new"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


BOARD_COLUMNS: tuple[str, ...] = tuple(s.value for s in TicketStatus)

COLUMN_PREFIXES = ("container-", "droppable-")


def _field(ticket: Any, name: str):
    if isinstance(ticket, dict):
        return ticket.get(name)
    return getattr(ticket, name, None)


def is_valid_status(status: Optional[str]) -> bool:
    return status in BOARD_COLUMNS


def _as_ticket_id(value: Union[int, str]) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def derive_drop_status(
    over_id: Optional[Union[int, str]],
    tickets: Iterable[Any],
    dragged_status: str,
    initial_status: Optional[str] = None,
) -> str:
    """
    Resolve the status a dropped ticket should land in.

    Args:
        over_id: Id of the drop target, or None when dropped outside the board.
        tickets: Tickets currently on the board.
        dragged_status: Status of the dragged ticket right now.
        initial_status: Status when the drag started; used to revert.

    Returns:
        The target status, or the revert status for unusable targets.
    """
    revert = initial_status if is_valid_status(initial_status) else dragged_status

    if over_id is None:
        return revert

    if isinstance(over_id, str):
        for prefix in COLUMN_PREFIXES:
            if over_id.startswith(prefix):
                status = over_id[len(prefix):]
                return status if is_valid_status(status) else revert

    target_id = _as_ticket_id(over_id)
    if target_id is None:
        return revert

    for ticket in tickets:
        if _field(ticket, "id") == target_id:
            status = _field(ticket, "status")
            return status if is_valid_status(status) else revert

    return revert


@dataclass
class BoardMove:
    """Outcome of a drop on the board."""

    ticket_id: int
    from_status: str
    to_status: str
    changed: bool

    def to_dict(self) -> dict:
        return {
            "ticket_id": self.ticket_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "changed": self.changed,
        }


def plan_ticket_move(
    ticket_id: int,
    over_id: Optional[Union[int, str]],
    tickets: Iterable[Any],
    initial_status: Optional[str] = None,
) -> BoardMove:
    """
    Work out what a drop does to ``ticket_id``.

    ``changed`` is only true when the status actually differs, so callers
    can skip the write for drops within the same column.
    """
    tickets = list(tickets)
    current = None
    for ticket in tickets:
        if _field(ticket, "id") == ticket_id:
            current = _field(ticket, "status")
            break
    if current is None:
        raise NotFoundError("Ticket", ticket_id)

    target = derive_drop_status(over_id, tickets, current, initial_status)
    return BoardMove(
        ticket_id=ticket_id,
        from_status=current,
        to_status=target,
        changed=target != current,
    )


def group_by_status(tickets: Iterable[Any]) -> "OrderedDict[str, list]":
    """
    Lay tickets out in board columns.

    Every column is present, even when empty. Within a column, higher
    priority first, then oldest first.
    """
    columns: "OrderedDict[str, list]" = OrderedDict((status, []) for status in BOARD_COLUMNS)
    for ticket in tickets:
        status = _field(ticket, "status")
        if status in columns:
            columns[status].append(ticket)

    for status, items in columns.items():
        items.sort(key=lambda t: (-(_field(t, "priority") or 0), _field(t, "created_at") or datetime.min))
    return columns
