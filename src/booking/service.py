from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from loguru import logger

from src.booking.gateways import MailGateway, SeatGateway, TicketGateway
from src.config import settings
from src.core.exceptions import ResponseStatus, ServiceError
from src.core.resilience import Deadline
from src.tickets.schemas import RescheduleTicketRequest, TicketRequest, TicketSchema
from src.trains.service import arrival_time_at


@dataclass
class BookingOutcome:
    ticket: TicketSchema
    mail_sent: bool = True
    mail_error: Optional[str] = None

    @property
    def ticket_id(self) -> str:
        return self.ticket.ticket_id


@dataclass
class RescheduleOutcome:
    ticket: TicketSchema
    previous_seats: List[List[int]] = field(default_factory=list)


class BookingSaga:
    """Book, cancel and reschedule across the seat engine, ticket registry and mail sink.

    Steps run sequentially under one deadline per protocol run. When a step
    fails after seats were taken, the seats are handed back before the error
    is surfaced.
    """

    def __init__(
        self,
        seats: SeatGateway,
        tickets: TicketGateway,
        mail: MailGateway,
        booking_deadline: float = settings.BOOKING_DEADLINE_SECONDS,
        cancel_deadline: float = settings.CANCEL_DEADLINE_SECONDS,
    ):
        self.seats = seats
        self.tickets = tickets
        self.mail = mail
        self.booking_deadline = booking_deadline
        self.cancel_deadline = cancel_deadline

    def book(
        self,
        user_id: str,
        user_email: str,
        train_prn: str,
        source: str,
        destination: str,
        travel_date: date,
        count: int,
    ) -> BookingOutcome:
        deadline = Deadline(self.booking_deadline)
        logger.info("Booking {} seats on train {} for {} ({} -> {})", count, train_prn, travel_date, source, destination)

        # 1. validate the route
        self.seats.can_be_booked(train_prn, source, destination, travel_date, deadline=deadline)
        schedule = self.seats.get_schedule(train_prn, travel_date, deadline=deadline)

        # 2. take the seats
        booked_seats = self.seats.allocate_seats(train_prn, travel_date, count, deadline=deadline)

        # 3. persist the ticket, handing the seats back on failure
        request = TicketRequest(
            user_id=user_id,
            train_id=train_prn,
            email=user_email,
            source=source,
            destination=destination,
            date_of_travel=travel_date,
            booked_seats_index=booked_seats,
            arrival_time_at_source=arrival_time_at(schedule, source),
            reaching_time_at_destination=arrival_time_at(schedule, destination),
        )
        try:
            ticket_id = self.tickets.create_ticket(request, deadline=deadline)
        except Exception as e:
            cause = e.message if isinstance(e, ServiceError) else str(e)
            logger.warning("Ticket creation failed ({}); releasing seats {} on train {}", cause, booked_seats, train_prn)
            self._release(train_prn, booked_seats, travel_date)
            raise ServiceError(ResponseStatus.TICKET_NOT_CREATED, f"Ticket could not be created: {cause}") from e

        ticket = TicketSchema(ticket_id=ticket_id, **request.model_dump(exclude={"email"}))
        logger.info("Ticket {} created for user {}", ticket_id, user_id)

        # 4. notify; a failure here never undoes the booking
        outcome = BookingOutcome(ticket=ticket)
        try:
            self.mail.send_ticket_email(ticket, user_email, deadline=deadline)
        except ServiceError as e:
            logger.warning("Ticket {} booked but notification to {} failed: {}", ticket_id, user_email, e.message)
            outcome.mail_sent = False
            outcome.mail_error = e.message
        return outcome

    def cancel(self, ticket_id: str) -> TicketSchema:
        """Release the ticket's seats, then delete it; the ticket stays if the seats cannot be freed"""
        deadline = Deadline(self.cancel_deadline)
        ticket = self.tickets.find_ticket(ticket_id, deadline=deadline)

        try:
            self.seats.free_seats(ticket.train_id, ticket.booked_seats_index, ticket.date_of_travel, deadline=deadline)
        except ServiceError as e:
            logger.error("Could not free seats of ticket {}: {}", ticket_id, e.message)
            raise ServiceError(
                ResponseStatus.FREE_THE_SEAT_OPERATION_FAILED,
                f"Ticket ID: {ticket_id} was not cancelled, freeing the seats failed: {e.message}",
            ) from e

        self.tickets.delete_ticket(ticket_id, deadline=deadline)
        logger.info("Ticket {} cancelled, seats {} freed", ticket_id, ticket.booked_seats_index)
        return ticket

    def reschedule(self, ticket_id: str, updated_travel_date: date) -> RescheduleOutcome:
        deadline = Deadline(self.booking_deadline)
        ticket = self.tickets.find_ticket(ticket_id, deadline=deadline)
        count = len(ticket.booked_seats_index)
        logger.info("Rescheduling ticket {} from {} to {}", ticket_id, ticket.date_of_travel, updated_travel_date)

        self.seats.can_be_booked(ticket.train_id, ticket.source, ticket.destination, updated_travel_date,
                                 deadline=deadline)
        schedule = self.seats.get_schedule(ticket.train_id, updated_travel_date, deadline=deadline)

        try:
            self.seats.free_seats(ticket.train_id, ticket.booked_seats_index, ticket.date_of_travel, deadline=deadline)
        except ServiceError as e:
            raise ServiceError(
                ResponseStatus.FREE_THE_SEAT_OPERATION_FAILED,
                f"Ticket ID: {ticket_id} was not rescheduled, freeing the seats failed: {e.message}",
            ) from e

        try:
            new_seats = self.seats.allocate_seats(ticket.train_id, updated_travel_date, count, deadline=deadline)
        except ServiceError:
            logger.warning("No seats for ticket {} on {}; re-acquiring seats on {}",
                           ticket_id, updated_travel_date, ticket.date_of_travel)
            self._restore(ticket)
            raise

        update = RescheduleTicketRequest(
            booked_seats_index=new_seats,
            arrival_time_at_source=arrival_time_at(schedule, ticket.source),
            reaching_time_at_destination=arrival_time_at(schedule, ticket.destination),
        )
        try:
            updated = self.tickets.reschedule_ticket(ticket_id, updated_travel_date, update, deadline=deadline)
        except ServiceError as e:
            logger.warning("Ticket {} could not be updated ({}); undoing the move", ticket_id, e.message)
            self._release(ticket.train_id, new_seats, updated_travel_date)
            self._restore(ticket)
            raise

        logger.info("Ticket {} moved to {} with seats {}", ticket_id, updated_travel_date, new_seats)
        return RescheduleOutcome(ticket=updated, previous_seats=ticket.booked_seats_index)

    def _release(self, train_prn: str, seats: List[List[int]], travel_date: date) -> None:
        """Compensation: free seats outside the protocol deadline"""
        try:
            self.seats.free_seats(train_prn, seats, travel_date)
        except ServiceError as e:
            logger.error("Compensation failed, seats {} on train {} for {} remain booked: {}",
                         seats, train_prn, travel_date, e.message)

    def _restore(self, ticket: TicketSchema) -> None:
        """Re-acquire as many seats as the ticket held on its original date.

        The cells handed back may differ from the original ones; the ticket is
        updated when they do.
        """
        count = len(ticket.booked_seats_index)
        try:
            restored = self.seats.allocate_seats(ticket.train_id, ticket.date_of_travel, count)
        except ServiceError as e:
            logger.error("Ticket {} lost its seats on {}: {}", ticket.ticket_id, ticket.date_of_travel, e.message)
            return

        if restored == ticket.booked_seats_index:
            return
        update = RescheduleTicketRequest(
            booked_seats_index=restored,
            arrival_time_at_source=ticket.arrival_time_at_source,
            reaching_time_at_destination=ticket.reaching_time_at_destination,
        )
        try:
            self.tickets.reschedule_ticket(ticket.ticket_id, ticket.date_of_travel, update)
        except ServiceError as e:
            logger.error("Ticket {} holds seats {} but records {}: {}",
                         ticket.ticket_id, restored, ticket.booked_seats_index, e.message)
