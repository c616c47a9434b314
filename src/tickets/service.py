import uuid
from datetime import date
from typing import List

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import ResponseStatus, ServiceError
from src.models import Ticket
from src.tickets.schemas import RescheduleTicketRequest, TicketRequest


class TicketService:
    """Ticket registry: one record per booking, seats kept in allocation order"""

    def __init__(self, db: Session):
        self.db = db

    def create_new_ticket(self, request: TicketRequest) -> Ticket:
        ticket = Ticket(
            ticket_id=str(uuid.uuid4()),
            user_id=request.user_id,
            train_id=request.train_id,
            source=request.source,
            destination=request.destination,
            date_of_travel=request.date_of_travel,
            arrival_time_at_source=request.arrival_time_at_source,
            reaching_time_at_destination=request.reaching_time_at_destination,
            booked_seats_index=request.booked_seats_index,
        )
        try:
            self.db.add(ticket)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error saving ticket for user {}: {}", request.user_id, e)
            raise ServiceError(ResponseStatus.TICKET_NOT_SAVED_IN_COLLECTION, f"Error while saving the ticket: {e}")
        self.db.refresh(ticket)
        logger.info("Ticket {} saved for user {} on train {}", ticket.ticket_id, ticket.user_id, ticket.train_id)
        return ticket

    def find_ticket_by_id(self, ticket_id: str) -> Ticket:
        ticket = self.db.get(Ticket, ticket_id)
        if ticket is None:
            raise ServiceError(ResponseStatus.TICKET_NOT_FOUND, f"Ticket not found with ID: {ticket_id}")
        return ticket

    def fetch_all_tickets(self, ticket_ids: List[str]) -> List[Ticket]:
        """Tickets in the order of ``ticket_ids``; unknown ids are skipped"""
        if not ticket_ids:
            return []
        found = {
            ticket.ticket_id: ticket
            for ticket in self.db.query(Ticket).filter(Ticket.ticket_id.in_(ticket_ids)).all()
        }
        return [found[ticket_id] for ticket_id in ticket_ids if ticket_id in found]

    def cancel_ticket(self, ticket_id: str) -> None:
        ticket = self.find_ticket_by_id(ticket_id)
        try:
            self.db.delete(ticket)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error deleting ticket {}: {}", ticket_id, e)
            raise ServiceError(ResponseStatus.INTERNAL_ERROR, f"Error while deleting the ticket: {e}")
        logger.info("Ticket {} deleted", ticket_id)

    def reschedule_ticket(self, ticket_id: str, updated_travel_date: date, update: RescheduleTicketRequest) -> Ticket:
        ticket = self.find_ticket_by_id(ticket_id)
        try:
            ticket.date_of_travel = updated_travel_date
            ticket.booked_seats_index = update.booked_seats_index
            ticket.arrival_time_at_source = update.arrival_time_at_source
            ticket.reaching_time_at_destination = update.reaching_time_at_destination
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error rescheduling ticket {}: {}", ticket_id, e)
            raise ServiceError(ResponseStatus.TICKET_NOT_SAVED_IN_COLLECTION, f"Error while updating the ticket: {e}")
        self.db.refresh(ticket)
        logger.info("Ticket {} rescheduled to {} with seats {}", ticket_id, updated_travel_date, ticket.booked_seats_index)
        return ticket
