from pydantic import Field, field_validator
from typing import Annotated, Dict, List, Optional
from datetime import date, datetime

from src.core.schemas import CamelModel

# [row, col]
SeatIndex = Annotated[List[int], Field(min_length=2, max_length=2)]


class StationSchedule(CamelModel):
    """One stop of a train on a given date"""
    name: str = Field(..., min_length=1)
    arrival_time: datetime


class TrainSchema(CamelModel):
    """Train document: seat grids and schedules keyed by travel date (yyyy-MM-dd)"""
    prn: str = Field(..., min_length=1)
    train_name: str = Field(..., min_length=1)
    seats: Dict[str, List[List[int]]] = Field(default_factory=dict)
    schedules: Dict[str, List[StationSchedule]] = Field(default_factory=dict)

    @field_validator('seats')
    @classmethod
    def validate_seats(cls, v):
        for travel_date, grid in v.items():
            date.fromisoformat(travel_date)
            if grid and any(len(row) != len(grid[0]) for row in grid):
                raise ValueError(f'Seat grid for {travel_date} must have the same column count in every row')
            if any(cell not in (0, 1) for row in grid for cell in row):
                raise ValueError(f'Seat grid for {travel_date} may only contain 0 (free) or 1 (booked)')
        return v

    @field_validator('schedules')
    @classmethod
    def validate_schedules(cls, v):
        for travel_date, stops in v.items():
            date.fromisoformat(travel_date)
            for previous, current in zip(stops, stops[1:]):
                if current.arrival_time <= previous.arrival_time:
                    raise ValueError(
                        f'Arrival times for {travel_date} must be strictly increasing '
                        f'({previous.name} -> {current.name})'
                    )
        return v


class FreeBookedSeatsRequest(CamelModel):
    train_prn: str
    booked_seats_list: List[SeatIndex]
    travel_date: date


class BookTrainRequest(CamelModel):
    """Seat-level booking request on behalf of a registered user"""
    user_id: str
    train_prn: str
    user_email: str
    source: str
    destination: str
    travel_date: date
    number_of_seats_to_be_booked: int = Field(..., ge=1)


class TrainSearchResult(CamelModel):
    total_trains: int
    trains_data: List[TrainSchema]


class MultipleTrainsResult(CamelModel):
    added: List[TrainSchema]
    skipped_prns: List[str]


class SeatLayout(CamelModel):
    train_prn: str
    travel_date: date
    seats: Optional[List[List[int]]] = None
