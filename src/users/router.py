from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.booking.gateways import ticket_gateway
from src.booking.service import BookingOutcome
from src.core.exceptions import ResponseStatus
from src.core.schemas import ResponseData, envelope
from src.database import get_db
from src.models import User
from src.trains.schemas import BookTrainRequest
from src.users.auth import get_current_user
from src.users.booking_service import UserBookingService
from src.users.schemas import BookingResult, UserSchema
from src.users.service import UserService

router = APIRouter()
# Mounted under /v1/seats; books on behalf of a known user
seat_booking_router = APIRouter()


def booking_envelope(outcome: BookingOutcome, data: dict) -> dict:
    if not outcome.mail_sent:
        return envelope(
            f"Ticket Booked, ticket mail not sent: {outcome.mail_error}",
            data=data,
            response_status=ResponseStatus.MAIL_NOT_SENT.value,
        )
    return envelope("Ticket Booked", data=data)


@router.post("/signupUser", response_model=ResponseData, response_model_exclude_none=True)
def signup_user(
    user_email: str = Query(..., alias="userEmail"),
    password: str = Query(...),
    db: Session = Depends(get_db)
):
    user = UserService(db).signup_user(user_email, password)
    return envelope("User Signed Up", data=UserSchema.model_validate(user).to_wire())


@router.post("/loginUser", response_model=ResponseData, response_model_exclude_none=True)
def login_user(
    user_email: str = Query(..., alias="userEmail"),
    password: str = Query(...),
    db: Session = Depends(get_db)
):
    """Authenticate and return a bearer token with the user's tickets"""
    result = UserService(db).login_user(user_email, password, ticket_gateway(db))
    return envelope("User Logged In", data=result.to_wire())


@router.post("/bookTicket", response_model=ResponseData, response_model_exclude_none=True)
def book_ticket(
    train_prn: str = Query(..., alias="trainPrn"),
    source: str = Query(...),
    destination: str = Query(...),
    date_of_travel: date = Query(..., alias="dateOfTravel"),
    number_of_seats: int = Query(..., alias="numberOfSeatsToBeBooked"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    outcome = UserBookingService(db).book_ticket(
        current_user, train_prn, source, destination, date_of_travel, number_of_seats
    )
    result = BookingResult(
        ticket_id=outcome.ticket_id,
        booked_seats_index=outcome.ticket.booked_seats_index,
        mail_sent=outcome.mail_sent,
    )
    return booking_envelope(outcome, result.to_wire())


@seat_booking_router.post("/book", response_model=ResponseData, response_model_exclude_none=True)
def book_train(request: BookTrainRequest, db: Session = Depends(get_db)):
    """Book seats, ticket and mail for the user named in the request"""
    user = UserService(db).find_user_by_id(request.user_id)
    outcome = UserBookingService(db).book_ticket(
        user, request.train_prn, request.source, request.destination,
        request.travel_date, request.number_of_seats_to_be_booked,
    )
    return booking_envelope(outcome, outcome.ticket.to_wire())


@router.get("/fetchTickets", response_model=ResponseData, response_model_exclude_none=True)
def fetch_tickets(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    tickets = UserBookingService(db).fetch_all_tickets(current_user)
    return envelope(f"Fetched {len(tickets)} tickets", data=[ticket.to_wire() for ticket in tickets])


@router.get("/fetchTicketById", response_model=ResponseData, response_model_exclude_none=True)
def fetch_ticket_by_id(
    ticket_id: str = Query(..., alias="ticketId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ticket = UserBookingService(db).fetch_ticket_by_id(current_user, ticket_id)
    return envelope("Ticket Found", data=ticket.to_wire())


@router.post("/cancelTicket", response_model=ResponseData, response_model_exclude_none=True)
def cancel_ticket(
    ticket_id: str = Query(..., alias="ticketId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    UserBookingService(db).cancel_ticket(current_user, ticket_id)
    return envelope(f"Ticket ID: {ticket_id} cancelled")


@router.post("/rescheduleTicket", response_model=ResponseData, response_model_exclude_none=True)
def reschedule_ticket(
    ticket_id: str = Query(..., alias="ticketId"),
    updated_date_of_travel: date = Query(..., alias="updatedDateOfTravel"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    outcome = UserBookingService(db).reschedule_ticket(current_user, ticket_id, updated_date_of_travel)
    return envelope(f"Ticket ID: {ticket_id} rescheduled", data=outcome.ticket.to_wire())
