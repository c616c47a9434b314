from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.core.schemas import ResponseData, envelope
from src.database import get_db
from src.trains.schemas import (
    FreeBookedSeatsRequest, MultipleTrainsResult,
    SeatLayout, TrainSchema, TrainSearchResult
)
from src.trains.seat_service import SeatManagementService
from src.trains.service import TrainService

seats_router = APIRouter()
train_router = APIRouter()


# Seat Endpoints
@seats_router.post("/bookSeats", response_model=ResponseData, response_model_exclude_none=True)
def book_seats(
    train_prn: str = Query(..., alias="trainPrn"),
    travel_date: date = Query(..., alias="travelDate"),
    number_of_seats: int = Query(..., alias="numberOfSeatsToBeBooked", ge=0),
    db: Session = Depends(get_db)
):
    """Allocate seats on a train for a date and return their indices"""
    seats = SeatManagementService(db).allocate_seats(train_prn, travel_date, number_of_seats)
    return envelope("Seats Booked", data=seats)


@seats_router.put("/freeBookedSeats", response_model=ResponseData, response_model_exclude_none=True)
def free_booked_seats(request: FreeBookedSeatsRequest, db: Session = Depends(get_db)):
    SeatManagementService(db).free_seats(request.train_prn, request.booked_seats_list, request.travel_date)
    return envelope("Seats Freed")


@seats_router.get("/getSeats", response_model=ResponseData, response_model_exclude_none=True)
def get_seats(
    train_prn: str = Query(..., alias="trainPrn"),
    travel_date: date = Query(..., alias="travelDate"),
    db: Session = Depends(get_db)
):
    seats = SeatManagementService(db).get_seats_at_date(train_prn, travel_date)
    layout = SeatLayout(train_prn=train_prn, travel_date=travel_date, seats=seats)
    return envelope("Seats Found", data=layout.to_wire())


# Train Endpoints
@train_router.get("/canBeBooked", response_model=ResponseData, response_model_exclude_none=True)
def can_be_booked(
    train_prn: str = Query(..., alias="trainPrn"),
    source: str = Query(...),
    destination: str = Query(...),
    travel_date: date = Query(..., alias="travelDate"),
    db: Session = Depends(get_db)
):
    TrainService(db).can_be_booked(train_prn, source, destination, travel_date)
    return envelope("Train can be booked")


@train_router.get("/getSchedule", response_model=ResponseData, response_model_exclude_none=True)
def get_schedule(
    train_prn: str = Query(..., alias="trainPrn"),
    travel_date: date = Query(..., alias="travelDate"),
    db: Session = Depends(get_db)
):
    schedule = TrainService(db).get_train_schedule(train_prn, travel_date)
    return envelope("Schedule Found", data=schedule)


@train_router.get("/searchTrains", response_model=ResponseData, response_model_exclude_none=True)
def search_trains(
    source: str = Query(...),
    destination: str = Query(...),
    travel_date: date = Query(..., alias="travelDate"),
    db: Session = Depends(get_db)
):
    """Trains running from source to destination on a date"""
    trains = TrainService(db).search_trains(source, destination, travel_date)
    result = TrainSearchResult(
        total_trains=len(trains),
        trains_data=[TrainSchema.model_validate(train) for train in trains],
    )
    return envelope("Trains Found", data=result.to_wire())


@train_router.post("/addTrain", response_model=ResponseData, response_model_exclude_none=True)
def add_train(train: TrainSchema, db: Session = Depends(get_db)):
    saved = TrainService(db).add_train(train)
    return envelope("Train Added", data=TrainSchema.model_validate(saved).to_wire())


@train_router.post("/addMultipleTrains", response_model=ResponseData, response_model_exclude_none=True)
def add_multiple_trains(trains: List[TrainSchema], db: Session = Depends(get_db)):
    added, skipped = TrainService(db).add_multiple_trains(trains)
    result = MultipleTrainsResult(
        added=[TrainSchema.model_validate(train) for train in added],
        skipped_prns=skipped,
    )
    return envelope(f"Added {len(added)} trains", data=result.to_wire())


@train_router.put("/updateTrain", response_model=ResponseData, response_model_exclude_none=True)
def update_train(train: TrainSchema, db: Session = Depends(get_db)):
    updated = TrainService(db).update_train(train)
    return envelope("Train Updated", data=TrainSchema.model_validate(updated).to_wire())


@train_router.get("/{prn}", response_model=ResponseData, response_model_exclude_none=True)
def find_train(prn: str, db: Session = Depends(get_db)):
    train = TrainService(db).find_train_by_prn(prn)
    return envelope("Train Found", data=TrainSchema.model_validate(train).to_wire())
