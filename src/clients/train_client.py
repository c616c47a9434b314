from datetime import date
from functools import lru_cache
from typing import List, Optional

from src.clients.base import ServiceClient
from src.config import settings
from src.core.resilience import Deadline


class TrainClient(ServiceClient):
    """Remote access to the train engine's seat and route operations"""

    service_name = "train"

    def can_be_booked(
        self, prn: str, source: str, destination: str, travel_date: date, deadline: Optional[Deadline] = None
    ) -> None:
        self.call(
            "canBeBooked", "GET", "/v1/train/canBeBooked", deadline=deadline,
            params={
                "trainPrn": prn,
                "source": source,
                "destination": destination,
                "travelDate": travel_date.isoformat(),
            },
        )

    def allocate_seats(
        self, prn: str, travel_date: date, count: int, deadline: Optional[Deadline] = None
    ) -> List[List[int]]:
        body = self.call(
            "bookSeats", "POST", "/v1/seats/bookSeats", deadline=deadline,
            params={
                "trainPrn": prn,
                "travelDate": travel_date.isoformat(),
                "numberOfSeatsToBeBooked": count,
            },
        )
        return body.get("data") or []

    def free_seats(
        self, prn: str, seats: List[List[int]], travel_date: date, deadline: Optional[Deadline] = None
    ) -> None:
        self.call(
            "freeBookedSeats", "PUT", "/v1/seats/freeBookedSeats", deadline=deadline,
            json={
                "trainPrn": prn,
                "bookedSeatsList": seats,
                "travelDate": travel_date.isoformat(),
            },
        )

    def get_schedule(self, prn: str, travel_date: date, deadline: Optional[Deadline] = None) -> Optional[List[dict]]:
        body = self.call(
            "getSchedule", "GET", "/v1/train/getSchedule", deadline=deadline,
            params={"trainPrn": prn, "travelDate": travel_date.isoformat()},
        )
        return body.get("data")


@lru_cache
def get_train_client() -> TrainClient:
    return TrainClient(settings.TRAIN_SERVICE_URL)
