from datetime import date
from functools import lru_cache
from typing import List, Optional

from src.clients.base import ServiceClient
from src.config import settings
from src.core.resilience import Deadline
from src.tickets.schemas import RescheduleTicketRequest, TicketRequest, TicketSchema


class TicketClient(ServiceClient):
    """Remote access to the ticket registry"""

    service_name = "ticket"

    def create_ticket(self, request: TicketRequest, deadline: Optional[Deadline] = None) -> str:
        body = self.call(
            "createTicket", "POST", "/v1/tickets/createTicket", deadline=deadline, json=request.to_wire()
        )
        return body["data"]

    def find_ticket(self, ticket_id: str, deadline: Optional[Deadline] = None) -> TicketSchema:
        body = self.call("findTicket", "GET", f"/v1/tickets/{ticket_id}", deadline=deadline)
        return TicketSchema.model_validate(body["data"])

    def fetch_all_tickets(self, ticket_ids: List[str], deadline: Optional[Deadline] = None) -> List[TicketSchema]:
        if not ticket_ids:
            return []
        body = self.call(
            "fetchAllTickets", "GET", "/v1/tickets/fetchAllTickets", deadline=deadline,
            params={"ticketIds": ticket_ids},
        )
        return [TicketSchema.model_validate(ticket) for ticket in body.get("data") or []]

    def delete_ticket(self, ticket_id: str, deadline: Optional[Deadline] = None) -> None:
        self.call("deleteTicket", "DELETE", f"/v1/tickets/{ticket_id}", deadline=deadline)

    def reschedule_ticket(
        self,
        ticket_id: str,
        updated_travel_date: date,
        update: RescheduleTicketRequest,
        deadline: Optional[Deadline] = None,
    ) -> TicketSchema:
        body = self.call(
            "rescheduleTicket", "PUT", f"/v1/tickets/rescheduleTicket/{ticket_id}", deadline=deadline,
            params={"updatedTravelDate": updated_travel_date.isoformat()},
            json=update.to_wire(),
        )
        return TicketSchema.model_validate(body["data"])


@lru_cache
def get_ticket_client() -> TicketClient:
    return TicketClient(settings.TICKET_SERVICE_URL)
