import smtplib
from email.message import EmailMessage
from html import escape
from typing import Optional

from loguru import logger

from src.config import settings
from src.core.exceptions import ResponseStatus, ServiceError
from src.core.validators import normalize_email
from src.tickets.schemas import TicketSchema


def _format_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def render_ticket_email(ticket: TicketSchema) -> str:
    """HTML body of the booking confirmation"""
    seats = ", ".join(f"Row {row + 1} Seat {col + 1}" for row, col in ticket.booked_seats_index)
    rows = [
        ("Ticket ID", ticket.ticket_id),
        ("Train", ticket.train_id),
        ("Date of travel", ticket.date_of_travel.isoformat()),
        ("From", f"{ticket.source} (arrives {_format_time(ticket.arrival_time_at_source)})"),
        ("To", f"{ticket.destination} (arrives {_format_time(ticket.reaching_time_at_destination)})"),
        ("Seats", seats or "-"),
    ]
    table = "\n".join(
        f"    <tr><th align=\"left\">{escape(label)}</th><td>{escape(str(value))}</td></tr>"
        for label, value in rows
    )
    return (
        "<html>\n<body>\n"
        "  <h2>Your train ticket is booked</h2>\n"
        "  <table>\n"
        f"{table}\n"
        "  </table>\n"
        "  <p>Have a safe journey.</p>\n"
        "</body>\n</html>\n"
    )


class EmailService:
    """Sends ticket confirmations over SMTP; with mail disabled the message is only logged"""

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = settings.MAIL_ENABLED if enabled is None else enabled

    def build_message(self, ticket: TicketSchema, email: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = f"Ticket {ticket.ticket_id}: {ticket.source} to {ticket.destination} on {ticket.date_of_travel.isoformat()}"
        message["From"] = settings.MAIL_FROM
        message["To"] = email
        message.set_content(
            f"Ticket {ticket.ticket_id} on train {ticket.train_id}, seats {ticket.booked_seats_index}"
        )
        message.add_alternative(render_ticket_email(ticket), subtype="html")
        return message

    def send_ticket_email(self, ticket: TicketSchema, email: str) -> str:
        email = normalize_email(email)
        message = self.build_message(ticket, email)

        if not self.enabled:
            logger.info("Mail disabled, ticket {} email to {} not dispatched", ticket.ticket_id, email)
            logger.debug("Email body:\n{}", render_ticket_email(ticket))
            return f"Mail logged for {email}"

        try:
            with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.REMOTE_CALL_TIMEOUT_SECONDS) as smtp:
                if settings.SMTP_USE_TLS:
                    smtp.starttls()
                if settings.SMTP_USERNAME:
                    smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Sending ticket {} email to {} failed: {}", ticket.ticket_id, email, e)
            raise ServiceError(ResponseStatus.MAIL_NOT_SENT, f"Mail not sent to {email}: {e}")

        logger.info("Ticket {} email sent to {}", ticket.ticket_id, email)
        return f"Mail Sent to {email}"
