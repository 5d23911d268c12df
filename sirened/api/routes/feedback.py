"""
Feedback Routes

Anyone can file a ticket and look it up by its number. Admins triage
tickets on a kanban board whose columns are the ticket statuses.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from sirened.api.dependencies import get_feedback_repository, get_user_agent
from sirened.api.routes.auth import get_current_user, get_optional_user, require_admin
from sirened.api.schemas import (
    AdminTicketCreate,
    BoardColumn,
    BoardMoveRequest,
    BoardMoveResponse,
    BoardResponse,
    ErrorResponse,
    TicketCreate,
    TicketPublicResponse,
    TicketResponse,
    TicketStatus,
    TicketUpdate,
)
from sirened.board.kanban import group_by_status, plan_ticket_move
from sirened.exceptions import ForbiddenError, NotFoundError


router = APIRouter(prefix="/feedback", tags=["feedback"])


# =============================================================================
# Public
# =============================================================================

@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
def submit_feedback(
    ticket: TicketCreate,
    viewer=Depends(get_optional_user),
    user_agent: Optional[str] = Depends(get_user_agent),
    feedback=Depends(get_feedback_repository),
):
    """
    File a ticket.

    Signed-in users are linked to the ticket; anonymous submitters keep the
    ticket number to check on it later. Without explicit device info the
    request's user agent is recorded.
    """
    created = feedback.create(
        type=ticket.type.value,
        title=ticket.title,
        description=ticket.description,
        user_id=viewer.id if viewer else None,
        device_info=ticket.device_info or ({"user_agent": user_agent} if user_agent else None),
    )
    return created


@router.get("/mine", response_model=list[TicketResponse])
def list_my_tickets(current_user=Depends(get_current_user), feedback=Depends(get_feedback_repository)):
    return feedback.list_for_user(current_user.id)


@router.get(
    "/lookup/{ticket_number}",
    response_model=None,
    responses={
        200: {"model": TicketResponse, "description": "Full ticket, or the public view for anonymous tickets"},
        403: {"model": ErrorResponse, "description": "Ticket belongs to another user"},
        404: {"model": ErrorResponse, "description": "Unknown ticket number"},
    },
)
def lookup_ticket(
    ticket_number: str,
    viewer=Depends(get_optional_user),
    feedback=Depends(get_feedback_repository),
):
    """
    Look a ticket up by number.

    The owner and admins see everything. Anonymous tickets show their
    status to whoever holds the number; other users' tickets are off limits.
    """
    ticket = feedback.get_by_number(ticket_number)
    if ticket is None:
        raise NotFoundError("Ticket", ticket_number)

    if viewer is not None and (viewer.is_admin or ticket.user_id == viewer.id):
        return TicketResponse.model_validate(ticket)
    if ticket.is_anonymous:
        return TicketPublicResponse(**ticket.public_view())
    raise ForbiddenError("Not authorized to view this ticket")


# =============================================================================
# Admin
# =============================================================================

@router.get("/admin/tickets", response_model=list[TicketResponse])
def list_all_tickets(
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    admin=Depends(require_admin),
    feedback=Depends(get_feedback_repository),
):
    return feedback.list_all(status_filter.value if status_filter else None)


@router.post("/admin/tickets", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
def create_ticket(
    ticket: AdminTicketCreate,
    admin=Depends(require_admin),
    feedback=Depends(get_feedback_repository),
):
    return feedback.create(
        type=ticket.type.value,
        title=ticket.title,
        description=ticket.description,
        user_id=ticket.user_id,
        device_info=ticket.device_info,
        priority=ticket.priority,
        status=ticket.status.value,
    )


@router.patch(
    "/admin/tickets/{ticket_id}",
    response_model=TicketResponse,
    responses={404: {"model": ErrorResponse, "description": "Ticket not found"}},
)
def update_ticket(
    ticket_id: int,
    update: TicketUpdate,
    admin=Depends(require_admin),
    feedback=Depends(get_feedback_repository),
):
    """Change status, priority, assignee or notes. Resolving stamps resolved_at."""
    fields = update.model_dump(mode="json", exclude_unset=True)
    logger.info(f"Admin {admin.id} updating ticket {ticket_id}: {sorted(fields)}")
    return feedback.update(ticket_id, **fields)


@router.get("/admin/board", response_model=BoardResponse)
def get_board(admin=Depends(require_admin), feedback=Depends(get_feedback_repository)):
    """Tickets grouped into board columns, every column present."""
    columns = group_by_status(feedback.list_all())
    return BoardResponse(
        columns=[
            BoardColumn(status=column, tickets=[TicketResponse.model_validate(t) for t in tickets])
            for column, tickets in columns.items()
        ]
    )


@router.post(
    "/admin/board/move",
    response_model=BoardMoveResponse,
    responses={404: {"model": ErrorResponse, "description": "Ticket not found"}},
)
def move_ticket(
    move: BoardMoveRequest,
    admin=Depends(require_admin),
    feedback=Depends(get_feedback_repository),
):
    """
    Apply a drag-and-drop on the board.

    The new status comes from what the ticket was dropped on; nothing is
    written when it lands in its own column.
    """
    plan = plan_ticket_move(
        move.ticket_id,
        move.over_id,
        feedback.list_all(),
        initial_status=move.initial_status.value if move.initial_status else None,
    )

    if plan.changed:
        ticket = feedback.update(move.ticket_id, status=plan.to_status)
    else:
        ticket = feedback.get(move.ticket_id)

    return BoardMoveResponse(**plan.to_dict(), ticket=TicketResponse.model_validate(ticket))
