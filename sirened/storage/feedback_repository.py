"""
Feedback Repository for Sirened

Bug reports, feature requests, questions and general feedback. Tickets
are addressed publicly by a short ticket number so anonymous reporters
can check on them.
"""

import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger

from sirened.board.kanban import is_valid_status
from sirened.exceptions import NotFoundError, SirenedException, ValidationError
from .database import Database
from .models import FeedbackTicket

TICKET_ALPHABET = string.ascii_uppercase + string.digits
TICKET_NUMBER_LENGTH = 6
TICKET_TYPES = ("bug_report", "feature_request", "general_feedback", "question")


def generate_ticket_number(length: int = TICKET_NUMBER_LENGTH) -> str:
    return "".join(secrets.choice(TICKET_ALPHABET) for _ in range(length))


@dataclass
class StoredTicket:
    """Data class for ticket data transfer."""

    id: int
    ticket_number: str
    type: str
    title: str
    description: str
    status: str
    priority: int
    user_id: Optional[int] = None
    assigned_to: Optional[int] = None
    admin_notes: Optional[str] = None
    device_info: Optional[dict] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: FeedbackTicket) -> "StoredTicket":
        return cls(
            id=model.id,
            ticket_number=model.ticket_number,
            type=model.type,
            title=model.title,
            description=model.description,
            status=model.status,
            priority=model.priority,
            user_id=model.user_id,
            assigned_to=model.assigned_to,
            admin_notes=model.admin_notes,
            device_info=model.device_info,
            created_at=model.created_at,
            updated_at=model.updated_at,
            resolved_at=model.resolved_at,
        )

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    def public_view(self) -> dict:
        """What anyone holding the ticket number may see."""
        return {
            "ticket_number": self.ticket_number,
            "type": self.type,
            "status": self.status,
            "created_at": self.created_at,
        }


class FeedbackRepository:
    """
    Repository for feedback tickets.

    Usage:
        repo = FeedbackRepository(database)
        ticket = repo.create("bug_report", "Crash", "Steps...", user_id=None)
        repo.update(ticket.id, status="resolved")
    """

    UPDATABLE_FIELDS = {"status", "priority", "assigned_to", "admin_notes", "resolved_at", "title", "description", "type"}
    CLEARABLE_FIELDS = {"assigned_to", "admin_notes"}
    MAX_NUMBER_ATTEMPTS = 10

    def __init__(self, database: Database):
        self.database = database

    def _unique_ticket_number(self, session) -> str:
        for _ in range(self.MAX_NUMBER_ATTEMPTS):
            number = generate_ticket_number()
            taken = session.query(FeedbackTicket.id).filter(FeedbackTicket.ticket_number == number).first()
            if not taken:
                return number
        raise SirenedException("Could not allocate a ticket number", code="TICKET_NUMBER_EXHAUSTED")

    def create(
        self,
        type: str,
        title: str,
        description: str,
        user_id: Optional[int] = None,
        device_info: Optional[dict] = None,
        priority: int = 1,
        status: str = "new",
    ) -> StoredTicket:
        if type not in TICKET_TYPES:
            raise ValidationError("Invalid ticket type", detail=f"Expected one of {', '.join(TICKET_TYPES)}")
        if not is_valid_status(status):
            raise ValidationError("Invalid ticket status", detail=status)

        with self.database.session() as session:
            ticket = FeedbackTicket(
                ticket_number=self._unique_ticket_number(session),
                type=type,
                title=title,
                description=description,
                user_id=user_id,
                device_info=device_info,
                priority=priority,
                status=status,
                resolved_at=datetime.utcnow() if status == "resolved" else None,
            )
            session.add(ticket)
            session.commit()
            session.refresh(ticket)

            logger.info(f"Created feedback ticket {ticket.ticket_number} ({type})")
            return StoredTicket.from_model(ticket)

    def get(self, ticket_id: int) -> Optional[StoredTicket]:
        with self.database.session() as session:
            ticket = session.get(FeedbackTicket, ticket_id)
            return StoredTicket.from_model(ticket) if ticket else None

    def get_by_number(self, ticket_number: str) -> Optional[StoredTicket]:
        with self.database.session() as session:
            ticket = session.query(FeedbackTicket).filter(
                FeedbackTicket.ticket_number == ticket_number.upper()
            ).first()
            return StoredTicket.from_model(ticket) if ticket else None

    def list_for_user(self, user_id: int) -> list[StoredTicket]:
        with self.database.session() as session:
            tickets = (
                session.query(FeedbackTicket)
                .filter(FeedbackTicket.user_id == user_id)
                .order_by(FeedbackTicket.created_at.desc(), FeedbackTicket.id.desc())
                .all()
            )
            return [StoredTicket.from_model(t) for t in tickets]

    def list_all(self, status: Optional[str] = None) -> list[StoredTicket]:
        with self.database.session() as session:
            query = session.query(FeedbackTicket)
            if status:
                query = query.filter(FeedbackTicket.status == status)
            tickets = query.order_by(FeedbackTicket.created_at.desc(), FeedbackTicket.id.desc()).all()
            return [StoredTicket.from_model(t) for t in tickets]

    def update(self, ticket_id: int, **fields) -> StoredTicket:
        """
        Update ticket fields.

        ``None`` leaves a field alone, except for the assignee and admin notes
        where it clears them.
        Moving into ``resolved`` stamps ``resolved_at`` unless one is given.
        """
        status = fields.get("status")
        if status is not None and not is_valid_status(status):
            raise ValidationError("Invalid ticket status", detail=status)

        with self.database.session() as session:
            ticket = session.get(FeedbackTicket, ticket_id)
            if not ticket:
                raise NotFoundError("Ticket", ticket_id)

            previous_status = ticket.status
            for key, value in fields.items():
                if key not in self.UPDATABLE_FIELDS:
                    continue
                if value is not None or key in self.CLEARABLE_FIELDS:
                    setattr(ticket, key, value)

            if status == "resolved" and previous_status != "resolved" and fields.get("resolved_at") is None:
                ticket.resolved_at = datetime.utcnow()

            session.commit()
            session.refresh(ticket)

            if status and status != previous_status:
                logger.info(f"Ticket {ticket.ticket_number}: {previous_status} -> {status}")
            return StoredTicket.from_model(ticket)
