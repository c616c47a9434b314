"""Book, cancel and reschedule protocols against the in-process services."""

import pytest

from src.booking.gateways import LocalMailGateway, LocalSeatGateway, LocalTicketGateway
from src.booking.service import BookingSaga
from src.core.exceptions import RemoteCallError, ResponseStatus, ServiceError
from src.trains.seat_service import SeatManagementService
from tests.conftest import travel_day
from tests.util_constant import TEST_USER_EMAIL

DAY = travel_day(2)
NEXT_DAY = travel_day(3)


class FailingTicketGateway(LocalTicketGateway):
    def __init__(self, db, fail_on=()):
        super().__init__(db)
        self.fail_on = set(fail_on)

    def _maybe_fail(self, operation):
        if operation in self.fail_on:
            raise RemoteCallError(ResponseStatus.SERVICE_UNAVAILABLE, f'ticket registry down ({operation})', retryable=True)

    def create_ticket(self, request, deadline=None):
        self._maybe_fail('create')
        return super().create_ticket(request, deadline)

    def reschedule_ticket(self, ticket_id, updated_travel_date, update, deadline=None):
        self._maybe_fail('reschedule')
        return super().reschedule_ticket(ticket_id, updated_travel_date, update, deadline)


class FailingSeatGateway(LocalSeatGateway):
    def __init__(self, db, fail_free=False):
        super().__init__(db)
        self.fail_free = fail_free

    def free_seats(self, prn, seats, travel_date, deadline=None):
        if self.fail_free:
            raise RemoteCallError(ResponseStatus.SERVICE_UNAVAILABLE, 'train engine down', retryable=True)
        super().free_seats(prn, seats, travel_date, deadline)


class FailingMailGateway:
    def send_ticket_email(self, ticket, email, deadline=None):
        raise ServiceError(ResponseStatus.MAIL_NOT_SENT, 'smtp down')


def grid(db, prn='T1', day=DAY):
    db.expire_all()
    return SeatManagementService(db).get_seats_at_date(prn, day)


def book(saga, count=2, prn='T1', day=DAY):
    return saga.book('user-1', TEST_USER_EMAIL, prn, 'Mumbai', 'Pune', day, count)


@pytest.fixture
def saga(db):
    return BookingSaga(LocalSeatGateway(db), LocalTicketGateway(db), LocalMailGateway())


class TestBook:
    def test_books_seats_and_ticket(self, db, add_train, saga):
        add_train('T1', {DAY: [[0, 0, 0], [0, 0, 0]]})

        outcome = book(saga, count=3)

        assert outcome.mail_sent
        assert outcome.ticket.booked_seats_index == [[0, 0], [0, 1], [0, 2]]
        assert grid(db) == [[1, 1, 1], [0, 0, 0]]
        stored = saga.tickets.find_ticket(outcome.ticket_id)
        assert stored.booked_seats_index == [[0, 0], [0, 1], [0, 2]]
        assert stored.arrival_time_at_source.hour == 6
        assert stored.reaching_time_at_destination.hour == 9

    def test_ticket_failure_frees_the_seats(self, db, add_train):
        add_train('T1', {DAY: [[0, 0, 0]]})
        saga = BookingSaga(LocalSeatGateway(db), FailingTicketGateway(db, fail_on={'create'}), LocalMailGateway())

        with pytest.raises(ServiceError) as exc_info:
            book(saga, count=2)

        assert exc_info.value.response_status == ResponseStatus.TICKET_NOT_CREATED
        assert grid(db) == [[0, 0, 0]]

    def test_not_enough_seats_surfaces_unchanged(self, db, add_train, saga):
        add_train('T1', {DAY: [[0, 0]]})

        with pytest.raises(ServiceError) as exc_info:
            book(saga, count=3)

        assert exc_info.value.response_status == ResponseStatus.NOT_ENOUGH_SEATS
        assert grid(db) == [[0, 0]]

    def test_invalid_route_takes_no_seats(self, db, add_train, saga):
        add_train('T1', {DAY: [[0, 0]]})

        with pytest.raises(ServiceError) as exc_info:
            saga.book('user-1', TEST_USER_EMAIL, 'T1', 'Pune', 'Mumbai', DAY, 1)

        assert exc_info.value.response_status == ResponseStatus.INVALID_DATA
        assert grid(db) == [[0, 0]]

    def test_mail_failure_keeps_the_booking(self, db, add_train):
        add_train('T1', {DAY: [[0, 0, 0]]})
        saga = BookingSaga(LocalSeatGateway(db), LocalTicketGateway(db), FailingMailGateway())

        outcome = book(saga, count=1)

        assert not outcome.mail_sent
        assert outcome.mail_error == 'smtp down'
        assert grid(db) == [[1, 0, 0]]
        assert saga.tickets.find_ticket(outcome.ticket_id).booked_seats_index == [[0, 0]]

    def test_expired_deadline_fails_before_any_seat_is_taken(self, db, add_train):
        add_train('T1', {DAY: [[0, 0]]})
        saga = BookingSaga(LocalSeatGateway(db), LocalTicketGateway(db), LocalMailGateway(), booking_deadline=0)

        with pytest.raises(ServiceError) as exc_info:
            book(saga, count=1)

        assert exc_info.value.response_status == ResponseStatus.SERVICE_UNAVAILABLE
        assert grid(db) == [[0, 0]]


class TestCancel:
    def test_cancel_frees_seats_and_deletes_ticket(self, db, add_train, saga):
        add_train('T1', {DAY: [[0, 0], [0, 0]]})
        outcome = book(saga, count=2)
        assert outcome.ticket.booked_seats_index == [[0, 0], [0, 1]]

        saga.cancel(outcome.ticket_id)

        assert grid(db) == [[0, 0], [0, 0]]
        with pytest.raises(ServiceError) as exc_info:
            saga.tickets.find_ticket(outcome.ticket_id)
        assert exc_info.value.response_status == ResponseStatus.TICKET_NOT_FOUND

    def test_second_cancel_changes_nothing(self, db, add_train, saga):
        add_train('T1', {DAY: [[0, 0, 0]]})
        first = book(saga, count=1)
        second = book(saga, count=1)
        saga.cancel(first.ticket_id)

        with pytest.raises(ServiceError) as exc_info:
            saga.cancel(first.ticket_id)

        assert exc_info.value.response_status == ResponseStatus.TICKET_NOT_FOUND
        assert grid(db) == [[0, 1, 0]]
        assert saga.tickets.find_ticket(second.ticket_id).booked_seats_index == [[0, 1]]

    def test_free_seats_failure_keeps_the_ticket(self, db, add_train, saga):
        add_train('T1', {DAY: [[0, 0]]})
        outcome = book(saga, count=1)
        failing = BookingSaga(FailingSeatGateway(db, fail_free=True), LocalTicketGateway(db), LocalMailGateway())

        with pytest.raises(ServiceError) as exc_info:
            failing.cancel(outcome.ticket_id)

        assert exc_info.value.response_status == ResponseStatus.FREE_THE_SEAT_OPERATION_FAILED
        assert saga.tickets.find_ticket(outcome.ticket_id).booked_seats_index == [[0, 0]]
        assert grid(db) == [[1, 0]]


class TestReschedule:
    def test_moves_ticket_with_same_seat_count(self, db, add_train, saga):
        add_train('T1', {DAY: [[0, 0, 0]], NEXT_DAY: [[1, 0, 0]]})
        outcome = book(saga, count=2)

        result = saga.reschedule(outcome.ticket_id, NEXT_DAY)

        assert result.ticket.date_of_travel == NEXT_DAY
        assert result.ticket.booked_seats_index == [[0, 1], [0, 2]]
        assert result.previous_seats == [[0, 0], [0, 1]]
        assert result.ticket.arrival_time_at_source.date() == NEXT_DAY
        assert grid(db, day=DAY) == [[0, 0, 0]]
        assert grid(db, day=NEXT_DAY) == [[1, 1, 1]]

    def test_no_seats_on_new_date_restores_the_old_seats(self, db, add_train, saga):
        add_train('T1', {DAY: [[0, 0, 0]], NEXT_DAY: [[1, 1, 0]]})
        outcome = book(saga, count=2)

        with pytest.raises(ServiceError) as exc_info:
            saga.reschedule(outcome.ticket_id, NEXT_DAY)

        assert exc_info.value.response_status == ResponseStatus.NOT_ENOUGH_SEATS
        ticket = saga.tickets.find_ticket(outcome.ticket_id)
        assert ticket.date_of_travel == DAY
        assert ticket.booked_seats_index == [[0, 0], [0, 1]]
        assert grid(db, day=DAY) == [[1, 1, 0]]
        assert grid(db, day=NEXT_DAY) == [[1, 1, 0]]

    def test_ticket_update_failure_undoes_the_move(self, db, add_train):
        add_train('T1', {DAY: [[0, 0, 0]], NEXT_DAY: [[0, 0, 0]]})
        tickets = FailingTicketGateway(db)
        saga = BookingSaga(LocalSeatGateway(db), tickets, LocalMailGateway())
        outcome = book(saga, count=1)
        tickets.fail_on.add('reschedule')

        with pytest.raises(ServiceError):
            saga.reschedule(outcome.ticket_id, NEXT_DAY)

        assert grid(db, day=DAY) == [[1, 0, 0]]
        assert grid(db, day=NEXT_DAY) == [[0, 0, 0]]
        assert saga.tickets.find_ticket(outcome.ticket_id).date_of_travel == DAY

    def test_route_not_served_on_new_date(self, db, add_train, saga):
        add_train('T1', {DAY: [[0, 0]]})
        outcome = book(saga, count=1)

        with pytest.raises(ServiceError) as exc_info:
            saga.reschedule(outcome.ticket_id, NEXT_DAY)

        assert exc_info.value.response_status == ResponseStatus.INVALID_DATA
        assert grid(db) == [[1, 0]]
