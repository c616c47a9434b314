import copy
from datetime import date
from typing import List, Optional

from loguru import logger
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import ResponseStatus, ServiceError
from src.core.locks import seat_map_locks
from src.models import Train
from src.trains.service import TrainService


def find_available_seats(grid: List[List[int]], count: int) -> List[List[int]]:
    """Choose ``count`` free seats from a 0/1 grid without mutating it.

    First pass looks for ``count`` adjacent free seats in one row, scanning
    row-major so the earliest run wins. Second pass falls back to the first
    ``count`` free seats in row-major order.
    """
    rows = len(grid)
    cols = len(grid[0]) if rows else 0
    total_seats = rows * cols

    if count > total_seats:
        raise ServiceError(
            ResponseStatus.NOT_ENOUGH_SEATS,
            f"Not enough seats available: requested {count}, total seats {total_seats}",
        )
    if count <= 0:
        return []

    contiguous = 0
    candidates = []
    for index in range(total_seats):
        row, col = divmod(index, cols)
        if col == 0 or grid[row][col] == 1:
            contiguous = 0
            candidates = []
        if grid[row][col] == 0:
            contiguous += 1
            candidates.append([row, col])
            if contiguous == count:
                return candidates

    logger.debug("Contiguous seats not found, collecting separate seats")
    candidates = []
    for index in range(total_seats):
        row, col = divmod(index, cols)
        if grid[row][col] == 0:
            candidates.append([row, col])
            if len(candidates) == count:
                return candidates

    raise ServiceError(
        ResponseStatus.NOT_ENOUGH_SEATS,
        f"Not enough seats available: requested {count}, found {len(candidates)}",
    )


def check_seat_bounds(grid: List[List[int]], seats: List[List[int]]) -> None:
    rows = len(grid)
    cols = len(grid[0]) if rows else 0
    for seat in seats:
        if len(seat) != 2 or not (0 <= seat[0] < rows and 0 <= seat[1] < cols):
            raise ServiceError(
                ResponseStatus.INVALID_DATA,
                f"Seat {seat} is outside the {rows}x{cols} seat grid",
            )


class SeatManagementService:
    """Per-date seat grids: allocation and release.

    Each read-modify-write of one (train, date) grid runs under an exclusive
    lock for that key, and the write is a compare-and-swap on ``Train.version``.
    """

    def __init__(self, db: Session):
        self.db = db
        self.train_service = TrainService(db)

    def get_seats_at_date(self, prn: str, travel_date: date) -> Optional[List[List[int]]]:
        train = self.train_service.find_train_by_prn(prn)
        return train.seats.get(travel_date.isoformat())

    def allocate_seats(self, prn: str, travel_date: date, count: int) -> List[List[int]]:
        """Pick ``count`` seats, mark them booked and persist; returns them in allocation order"""
        day = travel_date.isoformat()
        logger.info("Checking seat availability for train {} on {}: {} seats requested", prn, day, count)
        with seat_map_locks.hold((prn, day)):
            train = self.train_service.find_train_by_prn(prn)
            grid = self._grid_copy(train, day)
            seats = find_available_seats(grid, count)
            if not seats:
                return seats

            for row, col in seats:
                grid[row][col] = 1
            self._persist_grid(train, day, grid)
            logger.info("Booked seats {} on train {} for {}", seats, prn, day)
            return seats

    def free_seats(self, prn: str, seats: List[List[int]], travel_date: date) -> None:
        """Mark the listed seats free and persist; freeing a free seat is a no-op"""
        day = travel_date.isoformat()
        with seat_map_locks.hold((prn, day)):
            train = self.train_service.find_train_by_prn(prn)
            grid = self._grid_copy(train, day)
            check_seat_bounds(grid, seats)

            logger.debug("Seats layout before freeing {}", grid)
            changed = False
            for row, col in seats:
                if grid[row][col] != 0:
                    grid[row][col] = 0
                    changed = True
            if not changed:
                logger.info("Seats {} on train {} for {} already free", seats, prn, day)
                return
            self._persist_grid(train, day, grid)
            logger.debug("Seats layout after freeing {}", grid)
            logger.info("Freed seats {} on train {} for {}", seats, prn, day)

    def _grid_copy(self, train: Train, day: str) -> List[List[int]]:
        grid = train.seats.get(day)
        if grid is None:
            raise ServiceError(
                ResponseStatus.INVALID_DATA,
                f"No seat layout for train {train.prn} on {day}",
            )
        return copy.deepcopy(grid)

    def _persist_grid(self, train: Train, day: str, grid: List[List[int]]) -> None:
        seats = dict(train.seats)
        seats[day] = grid
        expected_version = train.version
        try:
            result = self.db.execute(
                update(Train)
                .where(Train.prn == train.prn, Train.version == expected_version)
                .values(seats=seats, version=expected_version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise ServiceError(
                    ResponseStatus.TRAIN_UPDATING_FAILED,
                    f"Seat map of train {train.prn} changed concurrently (version {expected_version})",
                )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error updating train {}: {}", train.prn, e)
            raise ServiceError(ResponseStatus.TRAIN_UPDATING_FAILED, f"Error while updating train: {e}")
        self.db.expire(train)
