import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from src.config import settings
from src.core.exceptions import register_exception_handlers
from src.core.logger import setup_logging
from src.database import init_db
from src.mail.router import router as mail_router
from src.models import Ticket, Train, User
from src.tickets.router import router as tickets_router
from src.trains.router import seats_router, train_router
from src.users.router import router as users_router, seat_booking_router

SERVICES = ("train", "ticket", "user", "mail")

# Tables owned by each service
SERVICE_TABLES = {
    "train": [Train.__table__],
    "ticket": [Ticket.__table__],
    "user": [User.__table__],
    "mail": [],
}


def service_tables(service: str):
    if service == "all":
        return [table for name in SERVICES for table in SERVICE_TABLES[name]]
    return SERVICE_TABLES[service]


def include_routers(app: FastAPI, service: str) -> None:
    hosted = SERVICES if service == "all" else (service,)

    if "train" in hosted:
        app.include_router(
            seats_router,
            prefix=f"{settings.API_V1_STR}/seats",
            tags=["Seats"]
        )
        app.include_router(
            train_router,
            prefix=f"{settings.API_V1_STR}/train",
            tags=["Trains"]
        )

    if "ticket" in hosted:
        app.include_router(
            tickets_router,
            prefix=f"{settings.API_V1_STR}/tickets",
            tags=["Tickets"]
        )

    if "user" in hosted:
        app.include_router(
            users_router,
            prefix=f"{settings.API_V1_STR}/user",
            tags=["Users & Booking"]
        )
        app.include_router(
            seat_booking_router,
            prefix=f"{settings.API_V1_STR}/seats",
            tags=["Users & Booking"]
        )

    if "mail" in hosted:
        app.include_router(
            mail_router,
            prefix=f"{settings.API_V1_STR}/email",
            tags=["Mail"]
        )


def create_app(service: str = settings.SERVICE_NAME) -> FastAPI:
    """Build the application hosting one service, or all of them"""
    if service != "all" and service not in SERVICES:
        raise ValueError(f"Unknown service {service!r}, expected one of {', '.join(SERVICES)} or 'all'")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(tables=service_tables(service))
        logger.info("{} started, hosting service '{}'", settings.PROJECT_NAME, service)
        yield
        logger.info("{} stopped", settings.PROJECT_NAME)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Train ticket booking services",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    include_routers(app, service)

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "message": settings.PROJECT_NAME,
            "service": service,
            "version": "1.0.0",
            "docs": "/docs"
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": service}

    return app


def main() -> None:
    import uvicorn

    setup_logging(settings.SERVICE_NAME, settings.LOG_LEVEL)
    try:
        app = create_app(settings.SERVICE_NAME)
        # Fail fast on an unreachable store
        init_db(tables=service_tables(settings.SERVICE_NAME))
    except (ValueError, SQLAlchemyError) as e:
        logger.error("Startup failed: {}", e)
        sys.exit(1)

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
