from datetime import date, datetime
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import ResponseStatus, ServiceError
from src.models import Train
from src.trains.schemas import TrainSchema


def find_station_index(schedule: List[dict], station: str) -> int:
    """Index of the first stop whose name matches case-insensitively, -1 if absent"""
    wanted = station.casefold()
    for index, stop in enumerate(schedule):
        if stop["name"].casefold() == wanted:
            return index
    return -1


def arrival_time_at(schedule: Optional[List[dict]], station: str) -> Optional[datetime]:
    if not schedule:
        return None
    index = find_station_index(schedule, station)
    if index == -1:
        return None
    return datetime.fromisoformat(schedule[index]["arrivalTime"])


def is_valid_route(schedule: Optional[List[dict]], source: str, destination: str) -> bool:
    """Both stations are on the schedule and the source comes first"""
    if not schedule:
        return False
    source_index = find_station_index(schedule, source)
    destination_index = find_station_index(schedule, destination)
    return source_index != -1 and destination_index != -1 and source_index < destination_index


def to_document(train: TrainSchema) -> dict:
    wire = train.to_wire()
    return {
        "prn": train.prn,
        "train_name": train.train_name,
        "seats": wire.get("seats", {}),
        "schedules": wire.get("schedules", {}),
    }


class TrainService:
    """Train catalog, schedules and route validation"""

    def __init__(self, db: Session):
        self.db = db

    def find_train_by_prn(self, prn: str) -> Train:
        train = self.db.get(Train, prn, populate_existing=True)
        if train is None:
            logger.warning("Train not found: {}", prn)
            raise ServiceError(ResponseStatus.TRAIN_NOT_FOUND, f"Train does not exist with PRN: {prn}")
        return train

    def does_train_exist(self, prn: str) -> bool:
        return self.db.get(Train, prn) is not None

    def add_train(self, new_train: TrainSchema) -> Train:
        logger.info("Attempting to add new train: {}", new_train.prn)
        if self.does_train_exist(new_train.prn):
            raise ServiceError(ResponseStatus.TRAIN_ALREADY_EXISTS, f"Train already exists with PRN: {new_train.prn}")

        train = Train(version=0, **to_document(new_train))
        try:
            self.db.add(train)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error adding train {}: {}", new_train.prn, e)
            raise ServiceError(ResponseStatus.TRAIN_NOT_SAVED_IN_COLLECTION, f"Error while saving the train: {e}")
        self.db.refresh(train)
        logger.info("Train added successfully: {}", train.prn)
        return train

    def add_multiple_trains(self, new_trains: List[TrainSchema]) -> Tuple[List[Train], List[str]]:
        """Save the trains whose PRN is unknown; report the skipped PRNs"""
        logger.info("Attempting to add {} trains", len(new_trains))
        skipped = []
        to_add = []
        seen = set()
        for new_train in new_trains:
            if new_train.prn in seen or self.does_train_exist(new_train.prn):
                skipped.append(new_train.prn)
                continue
            seen.add(new_train.prn)
            to_add.append(Train(version=0, **to_document(new_train)))

        try:
            self.db.add_all(to_add)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error adding multiple trains: {}", e)
            raise ServiceError(ResponseStatus.TRAIN_NOT_SAVED_IN_COLLECTION, f"Error while saving the trains: {e}")

        for train in to_add:
            self.db.refresh(train)
        logger.info("Added {} trains, skipped PRNs {}", len(to_add), skipped)
        return to_add, skipped

    def update_train(self, updated_train: TrainSchema) -> Train:
        logger.info("Attempting to update train: {}", updated_train.prn)
        train = self.find_train_by_prn(updated_train.prn)
        document = to_document(updated_train)
        try:
            train.train_name = document["train_name"]
            train.seats = document["seats"]
            train.schedules = document["schedules"]
            train.version = train.version + 1
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error updating train {}: {}", updated_train.prn, e)
            raise ServiceError(ResponseStatus.TRAIN_UPDATING_FAILED, f"Error while updating train: {e}")
        self.db.refresh(train)
        logger.info("Train updated successfully: {}", train.prn)
        return train

    def get_train_schedule(self, prn: str, travel_date: date) -> Optional[List[dict]]:
        train = self.find_train_by_prn(prn)
        return train.schedules.get(travel_date.isoformat())

    def get_arrival_time(self, train: Train, station: str, travel_date: date) -> Optional[datetime]:
        """Arrival timestamp of the train at a station on a date, None if it does not stop there"""
        return arrival_time_at(train.schedules.get(travel_date.isoformat()), station)

    def search_trains(self, source: str, destination: str, travel_date: date) -> List[Train]:
        logger.info("Searching trains from {} to {} on {}", source, destination, travel_date)
        day = travel_date.isoformat()
        trains = [
            train for train in self.db.query(Train).order_by(Train.prn).all()
            if is_valid_route(train.schedules.get(day), source, destination)
        ]
        logger.info("Found {} trains from {} to {}", len(trains), source, destination)
        return trains

    def can_be_booked(self, prn: str, source: str, destination: str, travel_date: date) -> Train:
        logger.info("Checking if train can be booked: {}", prn)
        train = self.find_train_by_prn(prn)

        schedule = train.schedules.get(travel_date.isoformat())
        if schedule is None:
            raise ServiceError(
                ResponseStatus.INVALID_DATA,
                f"Can not be Booked: train {prn} has no schedule on {travel_date.isoformat()}",
            )
        if not is_valid_route(schedule, source, destination):
            raise ServiceError(
                ResponseStatus.INVALID_DATA,
                "Can not be Booked: Source and destination do not align with train data",
            )
        logger.info("Train {} can be booked", prn)
        return train
