from sqlalchemy import Column, Integer, String, Date, DateTime, JSON
from sqlalchemy.sql import func
from src.database import Base

# ================================
# Trains
# ================================
class Train(Base):
    __tablename__ = "trains"

    prn = Column(String(64), primary_key=True, index=True)
    train_name = Column(String(255), nullable=False)
    # {"2025-06-01": [[0, 1, 0], [0, 0, 0]]}
    seats = Column(JSON, nullable=False, default=dict)
    # {"2025-06-01": [{"name": "Pune", "arrivalTime": "2025-06-01T08:00:00"}]}
    schedules = Column(JSON, nullable=False, default=dict)
    # Compare-and-swap counter for seat map writes
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# ================================
# Tickets
# ================================
class Ticket(Base):
    __tablename__ = "tickets"

    ticket_id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    train_id = Column(String(64), nullable=False, index=True)
    source = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    date_of_travel = Column(Date, nullable=False)
    arrival_time_at_source = Column(DateTime)
    reaching_time_at_destination = Column(DateTime)
    # [[row, col], ...] in allocation order
    booked_seats_index = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# ================================
# Users
# ================================
class User(Base):
    __tablename__ = "users"

    user_id = Column(String(64), primary_key=True, index=True)
    user_email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    tickets_booked_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
