#!/usr/bin/env python3

from datetime import date, datetime, time, timedelta

from src.database import SessionLocal, init_db
from src.models import Ticket, Train, User
from src.trains.schemas import TrainSchema
from src.trains.service import TrainService

DAYS_AHEAD = 7

# (prn, name, rows, cols, [(station, minutes after departure)], departure)
TRAINS = [
    ("12127", "Intercity Express", 10, 4,
     [("Mumbai", 0), ("Lonavala", 95), ("Pune", 180)], time(6, 0)),
    ("12951", "Rajdhani Express", 12, 6,
     [("Mumbai", 0), ("Surat", 170), ("Vadodara", 260), ("Kota", 600), ("Delhi", 930)], time(17, 0)),
    ("22105", "Indrayani Express", 8, 5,
     [("Pune", 0), ("Lonavala", 80), ("Karjat", 130), ("Mumbai", 205)], time(5, 50)),
]


def build_train(prn, name, rows, cols, stops, departure, start: date) -> TrainSchema:
    seats = {}
    schedules = {}
    for offset in range(DAYS_AHEAD):
        day = start + timedelta(days=offset)
        leaves_at = datetime.combine(day, departure)
        seats[day.isoformat()] = [[0] * cols for _ in range(rows)]
        schedules[day.isoformat()] = [
            {"name": station, "arrivalTime": (leaves_at + timedelta(minutes=minutes)).isoformat()}
            for station, minutes in stops
        ]
    return TrainSchema.model_validate({"prn": prn, "trainName": name, "seats": seats, "schedules": schedules})


def create_seed_data():
    init_db()
    db = SessionLocal()

    try:
        print("🚆 Creating seed data for the train booking services...")

        print("Clearing existing data...")
        db.query(Ticket).delete()
        db.query(User).delete()
        db.query(Train).delete()
        db.commit()

        print(f"Creating trains with seat layouts for the next {DAYS_AHEAD} days...")
        today = date.today()
        trains = [build_train(*train, start=today) for train in TRAINS]
        added, skipped = TrainService(db).add_multiple_trains(trains)

        print(f"✅ Seed data created: {len(added)} trains added, skipped {skipped}")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    create_seed_data()
