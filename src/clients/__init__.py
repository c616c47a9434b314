"""
HTTP clients for the peer services. Each call runs inside the resilience
envelope (retry, per-call-site circuit breaker, optional deadline).
"""

from .base import ServiceClient
from .train_client import TrainClient, get_train_client
from .ticket_client import TicketClient, get_ticket_client
from .mail_client import MailClient, get_mail_client

__all__ = [
    "ServiceClient",
    "TrainClient",
    "TicketClient",
    "MailClient",
    "get_train_client",
    "get_ticket_client",
    "get_mail_client",
]
