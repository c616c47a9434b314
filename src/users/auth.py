from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from src.config import settings
from src.core.exceptions import ResponseStatus, ServiceError
from src.database import get_db
from src.models import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/user/loginUser", auto_error=False)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> str:
    """User id carried by a valid token"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        raise ServiceError(ResponseStatus.UNAUTHORIZED)
    user_id = payload.get("sub")
    if not user_id:
        raise ServiceError(ResponseStatus.UNAUTHORIZED)
    return user_id


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """Caller identity, resolved per request from the bearer token"""
    if not token:
        raise ServiceError(ResponseStatus.UNAUTHORIZED, "Not authenticated")
    user = db.get(User, verify_token(token))
    if user is None:
        raise ServiceError(ResponseStatus.UNAUTHORIZED)
    return user
