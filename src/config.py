from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    PGHOST: Optional[str] = None
    PGDATABASE: Optional[str] = None
    PGUSER: Optional[str] = None
    PGPASSWORD: Optional[str] = None
    PGSSLMODE: str = "require"

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Application
    PROJECT_NAME: str = "Train Ticket Booking Services"
    API_V1_STR: str = "/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    SERVICE_NAME: str = "all"  # train | ticket | user | mail | all
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Peer services
    TRAIN_SERVICE_URL: str = "http://localhost:8081"
    TICKET_SERVICE_URL: str = "http://localhost:8083"
    MAIL_SERVICE_URL: str = "http://localhost:8084"

    # Resilience
    REMOTE_CALL_TIMEOUT_SECONDS: float = 5.0
    BOOKING_DEADLINE_SECONDS: float = 30.0
    CANCEL_DEADLINE_SECONDS: float = 15.0
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_INITIAL_BACKOFF_SECONDS: float = 0.1
    RETRY_BACKOFF_MULTIPLIER: float = 2.0
    RETRY_JITTER: float = 0.5
    BREAKER_FAILURE_RATE_THRESHOLD: float = 0.5
    BREAKER_WINDOW_SIZE: int = 20
    BREAKER_OPEN_SECONDS: float = 30.0

    # Booking rules
    MAX_SEATS_PER_BOOKING: int = 10

    # Mail
    MAIL_ENABLED: bool = False
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    MAIL_FROM: str = "no-reply@trainbooking.local"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.PGHOST:
            return f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}/{self.PGDATABASE}?sslmode={self.PGSSLMODE}"
        return "sqlite:///./train_booking.db"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
