"""
Ports used by the booking protocols and their in-process adapters.

The protocols in ``src.booking.service`` talk to three collaborators: the
seat engine, the ticket registry and the mail sink. When a collaborator runs
in the same process it is reached through the local adapters below; otherwise
through the HTTP clients in ``src.clients``, which expose the same methods.
"""

from datetime import date
from typing import List, Optional, Protocol

from sqlalchemy.orm import Session

from src.clients import get_mail_client, get_ticket_client, get_train_client
from src.config import settings
from src.core.resilience import Deadline
from src.mail.service import EmailService
from src.tickets.schemas import RescheduleTicketRequest, TicketRequest, TicketSchema
from src.tickets.service import TicketService
from src.trains.seat_service import SeatManagementService
from src.trains.service import TrainService


class SeatGateway(Protocol):
    def can_be_booked(self, prn: str, source: str, destination: str, travel_date: date,
                      deadline: Optional[Deadline] = None) -> None: ...

    def get_schedule(self, prn: str, travel_date: date,
                     deadline: Optional[Deadline] = None) -> Optional[List[dict]]: ...

    def allocate_seats(self, prn: str, travel_date: date, count: int,
                       deadline: Optional[Deadline] = None) -> List[List[int]]: ...

    def free_seats(self, prn: str, seats: List[List[int]], travel_date: date,
                   deadline: Optional[Deadline] = None) -> None: ...


class TicketGateway(Protocol):
    def create_ticket(self, request: TicketRequest, deadline: Optional[Deadline] = None) -> str: ...

    def find_ticket(self, ticket_id: str, deadline: Optional[Deadline] = None) -> TicketSchema: ...

    def fetch_all_tickets(self, ticket_ids: List[str],
                          deadline: Optional[Deadline] = None) -> List[TicketSchema]: ...

    def delete_ticket(self, ticket_id: str, deadline: Optional[Deadline] = None) -> None: ...

    def reschedule_ticket(self, ticket_id: str, updated_travel_date: date, update: RescheduleTicketRequest,
                          deadline: Optional[Deadline] = None) -> TicketSchema: ...


class MailGateway(Protocol):
    def send_ticket_email(self, ticket: TicketSchema, email: str,
                          deadline: Optional[Deadline] = None) -> str: ...


def _check(deadline: Optional[Deadline], operation: str) -> None:
    if deadline is not None:
        deadline.check(operation)


class LocalSeatGateway:
    def __init__(self, db: Session):
        self.train_service = TrainService(db)
        self.seat_service = SeatManagementService(db)

    def can_be_booked(self, prn, source, destination, travel_date, deadline=None):
        _check(deadline, "train.canBeBooked")
        self.train_service.can_be_booked(prn, source, destination, travel_date)

    def get_schedule(self, prn, travel_date, deadline=None):
        _check(deadline, "train.getSchedule")
        return self.train_service.get_train_schedule(prn, travel_date)

    def allocate_seats(self, prn, travel_date, count, deadline=None):
        _check(deadline, "train.bookSeats")
        return self.seat_service.allocate_seats(prn, travel_date, count)

    def free_seats(self, prn, seats, travel_date, deadline=None):
        _check(deadline, "train.freeBookedSeats")
        self.seat_service.free_seats(prn, seats, travel_date)


class LocalTicketGateway:
    def __init__(self, db: Session):
        self.ticket_service = TicketService(db)

    def create_ticket(self, request, deadline=None):
        _check(deadline, "ticket.createTicket")
        return self.ticket_service.create_new_ticket(request).ticket_id

    def find_ticket(self, ticket_id, deadline=None):
        _check(deadline, "ticket.findTicket")
        return TicketSchema.model_validate(self.ticket_service.find_ticket_by_id(ticket_id))

    def fetch_all_tickets(self, ticket_ids, deadline=None):
        _check(deadline, "ticket.fetchAllTickets")
        return [TicketSchema.model_validate(ticket) for ticket in self.ticket_service.fetch_all_tickets(ticket_ids)]

    def delete_ticket(self, ticket_id, deadline=None):
        _check(deadline, "ticket.deleteTicket")
        self.ticket_service.cancel_ticket(ticket_id)

    def reschedule_ticket(self, ticket_id, updated_travel_date, update, deadline=None):
        _check(deadline, "ticket.rescheduleTicket")
        ticket = self.ticket_service.reschedule_ticket(ticket_id, updated_travel_date, update)
        return TicketSchema.model_validate(ticket)


class LocalMailGateway:
    def __init__(self):
        self.email_service = EmailService()

    def send_ticket_email(self, ticket, email, deadline=None):
        _check(deadline, "mail.sendEmail")
        return self.email_service.send_ticket_email(ticket, email)


def hosts(service: str, service_name: Optional[str] = None) -> bool:
    """Whether the given service runs in this process"""
    service_name = service_name or settings.SERVICE_NAME
    return service_name == "all" or service_name == service


def seat_gateway(db: Session) -> SeatGateway:
    if hosts("train"):
        return LocalSeatGateway(db)
    return get_train_client()


def ticket_gateway(db: Session) -> TicketGateway:
    if hosts("ticket"):
        return LocalTicketGateway(db)
    return get_ticket_client()


def mail_gateway() -> MailGateway:
    if hosts("mail"):
        return LocalMailGateway()
    return get_mail_client()
