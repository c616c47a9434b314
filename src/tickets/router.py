from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.database import get_db
from src.core.schemas import ResponseData, envelope
from src.tickets.schemas import RescheduleTicketRequest, TicketRequest, TicketSchema
from src.tickets.service import TicketService

router = APIRouter()


@router.post("/createTicket", response_model=ResponseData, response_model_exclude_none=True)
def create_ticket(request: TicketRequest, db: Session = Depends(get_db)):
    """Save a ticket and answer with its id"""
    ticket = TicketService(db).create_new_ticket(request)
    return envelope("Ticket Created", data=ticket.ticket_id)


@router.get("/fetchAllTickets", response_model=ResponseData, response_model_exclude_none=True)
def fetch_all_tickets(
    ticket_ids: List[str] = Query([], alias="ticketIds", description="Repeated or comma-separated ticket ids"),
    db: Session = Depends(get_db)
):
    ids = [ticket_id for value in ticket_ids for ticket_id in value.split(",") if ticket_id]
    tickets = TicketService(db).fetch_all_tickets(ids)
    return envelope(
        f"Fetched {len(tickets)} tickets",
        data=[TicketSchema.model_validate(ticket).to_wire() for ticket in tickets],
    )


@router.put("/rescheduleTicket/{ticket_id}", response_model=ResponseData, response_model_exclude_none=True)
def reschedule_ticket(
    ticket_id: str,
    update: RescheduleTicketRequest,
    updated_travel_date: date = Query(..., alias="updatedTravelDate"),
    db: Session = Depends(get_db)
):
    """Move a ticket to another date with the seats already taken there"""
    ticket = TicketService(db).reschedule_ticket(ticket_id, updated_travel_date, update)
    return envelope("Ticket Rescheduled", data=TicketSchema.model_validate(ticket).to_wire())


@router.get("/{ticket_id}", response_model=ResponseData, response_model_exclude_none=True)
def find_ticket(ticket_id: str, db: Session = Depends(get_db)):
    ticket = TicketService(db).find_ticket_by_id(ticket_id)
    return envelope("Ticket Found", data=TicketSchema.model_validate(ticket).to_wire())


@router.delete("/{ticket_id}", response_model=ResponseData, response_model_exclude_none=True)
def cancel_ticket(ticket_id: str, db: Session = Depends(get_db)):
    TicketService(db).cancel_ticket(ticket_id)
    return envelope(f"Ticket ID: {ticket_id} deleted")
