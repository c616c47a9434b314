import uuid
from typing import List, Optional

from loguru import logger
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.booking.gateways import TicketGateway
from src.core.exceptions import ResponseStatus, ServiceError
from src.core.locks import user_locks
from src.core.validators import normalize_email
from src.models import User
from src.tickets.schemas import TicketSchema
from src.users.auth import create_access_token, get_password_hash, verify_password
from src.users.schemas import LoginResponse, UserWithTickets


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.user_email) == email.lower()).first()

    def find_user_by_id(self, user_id: str) -> User:
        user = self.db.get(User, user_id, populate_existing=True)
        if user is None:
            raise ServiceError(ResponseStatus.USER_NOT_FOUND, f"User not found with ID: {user_id}")
        return user

    def signup_user(self, email: str, password: str) -> User:
        email = normalize_email(email)
        if not password:
            raise ServiceError(ResponseStatus.INVALID_DATA, "Password must not be empty")
        if self.get_user_by_email(email) is not None:
            raise ServiceError(ResponseStatus.USER_ALREADY_EXISTS, f"User already exists with email: {email}")

        user = User(
            user_id=str(uuid.uuid4()),
            user_email=email,
            hashed_password=get_password_hash(password),
            tickets_booked_ids=[],
        )
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ServiceError(ResponseStatus.USER_ALREADY_EXISTS, f"User already exists with email: {email}")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error saving user {}: {}", email, e)
            raise ServiceError(ResponseStatus.USER_NOT_SAVED_IN_COLLECTION, f"Error while saving the user: {e}")
        self.db.refresh(user)
        logger.info("User signed up: {}", user.user_id)
        return user

    def login_user(self, email: str, password: str, tickets: TicketGateway) -> LoginResponse:
        """Check the credentials and hand out a bearer token with the user's tickets"""
        email = normalize_email(email)
        user = self.get_user_by_email(email)
        if user is None:
            raise ServiceError(ResponseStatus.USER_NOT_FOUND, f"User not found with email: {email}")
        if not verify_password(password or "", user.hashed_password):
            raise ServiceError(ResponseStatus.PASSWORD_INCORRECT, "Password is incorrect")

        access_token = create_access_token(data={"sub": user.user_id})
        logger.info("User logged in: {}", user.user_id)
        return LoginResponse(
            access_token=access_token,
            token_type="bearer",
            user=self.with_tickets(user, tickets),
        )

    def with_tickets(self, user: User, tickets: TicketGateway) -> UserWithTickets:
        """User with its tickets; an unreachable registry yields an empty list"""
        resolved: List[TicketSchema] = []
        try:
            resolved = tickets.fetch_all_tickets(list(user.tickets_booked_ids))
        except ServiceError as e:
            logger.warning("Tickets of user {} unavailable: {}", user.user_id, e.message)
        result = UserWithTickets.model_validate(user)
        result.tickets = resolved
        return result

    def add_ticket_id(self, user_id: str, ticket_id: str) -> User:
        with user_locks.hold(user_id):
            user = self.find_user_by_id(user_id)
            return self._save_ticket_ids(user, list(user.tickets_booked_ids) + [ticket_id])

    def remove_ticket_id(self, user_id: str, ticket_id: str) -> User:
        with user_locks.hold(user_id):
            user = self.find_user_by_id(user_id)
            remaining = [booked for booked in user.tickets_booked_ids if booked != ticket_id]
            return self._save_ticket_ids(user, remaining)

    def _save_ticket_ids(self, user: User, ticket_ids: List[str]) -> User:
        try:
            user.tickets_booked_ids = ticket_ids
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error updating tickets of user {}: {}", user.user_id, e)
            raise ServiceError(ResponseStatus.USER_NOT_SAVED_IN_COLLECTION, f"Error while saving the user: {e}")
        self.db.refresh(user)
        return user
