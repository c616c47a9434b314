from functools import lru_cache
from typing import Optional

from src.clients.base import ServiceClient
from src.config import settings
from src.core.resilience import Deadline
from src.tickets.schemas import TicketSchema


class MailClient(ServiceClient):
    service_name = "mail"

    def send_ticket_email(self, ticket: TicketSchema, email: str, deadline: Optional[Deadline] = None) -> str:
        body = self.call(
            "sendEmail", "POST", "/v1/email/sendEmail", deadline=deadline,
            params={"email": email}, json=ticket.to_wire(),
        )
        return body.get("message", "")


@lru_cache
def get_mail_client() -> MailClient:
    return MailClient(settings.MAIL_SERVICE_URL)
