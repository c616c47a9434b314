from pydantic import Field, model_validator
from typing import List, Optional
from datetime import date, datetime

from src.core.schemas import CamelModel
from src.trains.schemas import SeatIndex


class TicketRequest(CamelModel):
    """Ticket to be created; ``email`` is the notification address"""
    user_id: str = Field(..., min_length=1)
    train_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    source: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    date_of_travel: date
    booked_seats_index: List[SeatIndex] = Field(default_factory=list)
    arrival_time_at_source: Optional[datetime] = None
    reaching_time_at_destination: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_stations(self):
        if self.source.casefold() == self.destination.casefold():
            raise ValueError('Source and destination must differ')
        return self


class TicketSchema(CamelModel):
    ticket_id: str
    user_id: str
    train_id: str
    source: str
    destination: str
    date_of_travel: date
    booked_seats_index: List[SeatIndex] = Field(default_factory=list)
    arrival_time_at_source: Optional[datetime] = None
    reaching_time_at_destination: Optional[datetime] = None


class RescheduleTicketRequest(CamelModel):
    """New seats and timestamps for a ticket moved to another date"""
    booked_seats_index: List[SeatIndex]
    arrival_time_at_source: Optional[datetime] = None
    reaching_time_at_destination: Optional[datetime] = None
