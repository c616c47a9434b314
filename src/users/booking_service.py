from datetime import date, datetime, timezone
from typing import List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from src.booking.gateways import mail_gateway, seat_gateway, ticket_gateway
from src.booking.service import BookingOutcome, BookingSaga, RescheduleOutcome
from src.config import settings
from src.core.exceptions import ResponseStatus, ServiceError
from src.core.locks import ticket_locks
from src.models import User
from src.tickets.schemas import TicketSchema
from src.users.service import UserService


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def validate_travel_date(travel_date: date) -> None:
    if travel_date < today_utc():
        raise ServiceError(ResponseStatus.INVALID_DATA, f"Date of travel {travel_date.isoformat()} is in the past")


def validate_seat_count(count: int) -> None:
    if count < 1:
        raise ServiceError(ResponseStatus.INVALID_DATA, "Number of seats to be booked must be at least 1")
    if count > settings.MAX_SEATS_PER_BOOKING:
        raise ServiceError(
            ResponseStatus.INVALID_DATA,
            f"At most {settings.MAX_SEATS_PER_BOOKING} seats can be booked at once",
        )


class UserBookingService:
    """Booking operations of a signed-in user.

    The seat and ticket work runs through ``BookingSaga``; this layer checks
    the request at the edge, keeps the user's ticket list in step and makes
    sure a user only touches tickets they own.
    """

    def __init__(self, db: Session, saga: Optional[BookingSaga] = None):
        self.db = db
        self.user_service = UserService(db)
        self.saga = saga or BookingSaga(seat_gateway(db), ticket_gateway(db), mail_gateway())

    def book_ticket(
        self,
        user: User,
        train_prn: str,
        source: str,
        destination: str,
        date_of_travel: date,
        number_of_seats: int,
    ) -> BookingOutcome:
        validate_seat_count(number_of_seats)
        validate_travel_date(date_of_travel)

        outcome = self.saga.book(
            user.user_id, user.user_email, train_prn, source, destination, date_of_travel, number_of_seats
        )
        try:
            self.user_service.add_ticket_id(user.user_id, outcome.ticket_id)
        except ServiceError as e:
            logger.warning("Ticket {} not linked to user {} ({}); cancelling it", outcome.ticket_id, user.user_id, e.message)
            try:
                self.saga.cancel(outcome.ticket_id)
            except ServiceError as cancel_error:
                logger.error("Cancelling unlinked ticket {} failed: {}", outcome.ticket_id, cancel_error.message)
            raise ServiceError(ResponseStatus.TICKET_NOT_BOOKED, f"Ticket could not be booked: {e.message}")
        return outcome

    def cancel_ticket(self, user: User, ticket_id: str) -> TicketSchema:
        with ticket_locks.hold(ticket_id):
            self._check_owner(user.user_id, ticket_id)
            try:
                ticket = self.saga.cancel(ticket_id)
            except ServiceError as e:
                if e.response_status == ResponseStatus.TICKET_NOT_FOUND:
                    # The registry no longer knows the ticket; drop the stale id
                    logger.warning("Ticket {} of user {} is gone, removing it from the list", ticket_id, user.user_id)
                    self.user_service.remove_ticket_id(user.user_id, ticket_id)
                raise
            self.user_service.remove_ticket_id(user.user_id, ticket_id)
        logger.info("User {} cancelled ticket {}", user.user_id, ticket_id)
        return ticket

    def reschedule_ticket(self, user: User, ticket_id: str, updated_date_of_travel: date) -> RescheduleOutcome:
        validate_travel_date(updated_date_of_travel)
        with ticket_locks.hold(ticket_id):
            self._check_owner(user.user_id, ticket_id)
            return self.saga.reschedule(ticket_id, updated_date_of_travel)

    def fetch_all_tickets(self, user: User) -> List[TicketSchema]:
        user = self.user_service.find_user_by_id(user.user_id)
        return self.saga.tickets.fetch_all_tickets(list(user.tickets_booked_ids))

    def fetch_ticket_by_id(self, user: User, ticket_id: str) -> TicketSchema:
        self._check_owner(user.user_id, ticket_id)
        return self.saga.tickets.find_ticket(ticket_id)

    def _check_owner(self, user_id: str, ticket_id: str) -> None:
        user = self.user_service.find_user_by_id(user_id)
        if ticket_id not in user.tickets_booked_ids:
            raise ServiceError(ResponseStatus.TICKET_NOT_FOUND, f"Ticket ID: {ticket_id} not found for the user")
