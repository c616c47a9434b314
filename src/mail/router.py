from fastapi import APIRouter, Query

from src.core.schemas import ResponseData, envelope
from src.mail.service import EmailService
from src.tickets.schemas import TicketSchema

router = APIRouter()


@router.post("/sendEmail", response_model=ResponseData, response_model_exclude_none=True)
def send_email(ticket: TicketSchema, email: str = Query(..., description="Recipient address")):
    """Send the booking confirmation of a ticket"""
    message = EmailService().send_ticket_email(ticket, email)
    return envelope(message)
