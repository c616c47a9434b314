from pydantic import Field
from typing import List, Optional
from datetime import datetime

from src.core.schemas import CamelModel
from src.tickets.schemas import TicketSchema


class UserSchema(CamelModel):
    user_id: str
    user_email: str
    tickets_booked_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class UserWithTickets(UserSchema):
    """User as returned on login, with the booked tickets resolved"""
    tickets: List[TicketSchema] = Field(default_factory=list)


class LoginResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserWithTickets


class BookingResult(CamelModel):
    ticket_id: str
    booked_seats_index: List[List[int]]
    mail_sent: bool = True
