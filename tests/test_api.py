"""HTTP surface of the services hosted together in one application."""

from datetime import timedelta

import pytest

from tests.conftest import make_train, travel_day
from tests.util_constant import ANOTHER_USER_EMAIL, DEFAULT_PASSWORD, TEST_USER_EMAIL

DAY = travel_day(2)
NEXT_DAY = travel_day(3)


def add_train(client, prn, grids):
    response = client.post('/v1/train/addTrain', json=make_train(prn, grids).to_wire())
    assert response.status_code == 200, response.json()
    return response.json()['data']


def signup(client, email=TEST_USER_EMAIL):
    response = client.post('/v1/user/signupUser', params={'userEmail': email, 'password': DEFAULT_PASSWORD})
    assert response.status_code == 200, response.json()
    return response.json()['data']['userId']


def login(client, email=TEST_USER_EMAIL):
    response = client.post('/v1/user/loginUser', params={'userEmail': email, 'password': DEFAULT_PASSWORD})
    assert response.status_code == 200, response.json()
    return {'Authorization': f"Bearer {response.json()['data']['accessToken']}"}


def signup_and_login(client, email=TEST_USER_EMAIL):
    signup(client, email)
    return login(client, email)


def book(client, headers, count=2, day=DAY, prn='T1'):
    return client.post('/v1/user/bookTicket', headers=headers, params={
        'trainPrn': prn,
        'source': 'Mumbai',
        'destination': 'Pune',
        'dateOfTravel': day.isoformat(),
        'numberOfSeatsToBeBooked': count,
    })


def seats(client, day=DAY, prn='T1'):
    response = client.get('/v1/seats/getSeats', params={'trainPrn': prn, 'travelDate': day.isoformat()})
    return response.json()['data']['seats']


class TestTrainApi:
    def test_health(self, client):
        assert client.get('/health').json() == {'status': 'healthy', 'service': 'all'}

    def test_find_train_uses_camel_case(self, client):
        add_train(client, 'T1', {DAY: [[0, 0]]})

        body = client.get('/v1/train/T1').json()

        assert body['status'] is True
        assert body['data']['trainName'] == 'Train T1'
        assert body['data']['schedules'][DAY.isoformat()][0]['name'] == 'Mumbai'
        assert 'responseStatus' not in body

    def test_unknown_train_envelope(self, client):
        response = client.get('/v1/train/NOPE')

        assert response.status_code == 404
        assert response.json() == {
            'status': False,
            'responseStatus': 'TRAIN_NOT_FOUND',
            'message': 'Train does not exist with PRN: NOPE',
        }

    def test_duplicate_train(self, client):
        add_train(client, 'T1', {DAY: [[0]]})
        response = client.post('/v1/train/addTrain', json=make_train('T1', {DAY: [[0]]}).to_wire())
        assert response.status_code == 400
        assert response.json()['responseStatus'] == 'TRAIN_ALREADY_EXISTS'

    def test_book_and_free_seats(self, client):
        add_train(client, 'T1', {DAY: [[0, 1, 0], [0, 0, 0]]})

        response = client.post('/v1/seats/bookSeats', params={
            'trainPrn': 'T1', 'travelDate': DAY.isoformat(), 'numberOfSeatsToBeBooked': 3,
        })
        assert response.json()['data'] == [[1, 0], [1, 1], [1, 2]]

        response = client.put('/v1/seats/freeBookedSeats', json={
            'trainPrn': 'T1', 'bookedSeatsList': [[1, 0], [1, 1]], 'travelDate': DAY.isoformat(),
        })
        assert response.status_code == 200
        assert seats(client) == [[0, 1, 0], [0, 0, 1]]

    def test_not_enough_seats_is_a_conflict(self, client):
        add_train(client, 'T1', {DAY: [[0, 0]]})

        response = client.post('/v1/seats/bookSeats', params={
            'trainPrn': 'T1', 'travelDate': DAY.isoformat(), 'numberOfSeatsToBeBooked': 3,
        })

        assert response.status_code == 409
        assert response.json()['responseStatus'] == 'NOT_ENOUGH_SEATS'
        assert seats(client) == [[0, 0]]

    def test_can_be_booked(self, client):
        add_train(client, 'T1', {DAY: [[0]]})
        params = {'trainPrn': 'T1', 'source': 'Mumbai', 'destination': 'Pune', 'travelDate': DAY.isoformat()}

        assert client.get('/v1/train/canBeBooked', params=params).status_code == 200
        params.update(source='Pune', destination='Mumbai')
        response = client.get('/v1/train/canBeBooked', params=params)
        assert response.status_code == 400
        assert response.json()['responseStatus'] == 'INVALID_DATA'

    def test_search_trains(self, client):
        add_train(client, 'T1', {DAY: [[0]]})
        add_train(client, 'T2', {NEXT_DAY: [[0]]})

        response = client.get('/v1/train/searchTrains', params={
            'source': 'Mumbai', 'destination': 'Pune', 'travelDate': DAY.isoformat(),
        })

        data = response.json()['data']
        assert data['totalTrains'] == 1
        assert data['trainsData'][0]['prn'] == 'T1'

    def seat_book(self, client, user_id, day=DAY, count=2):
        return client.post('/v1/seats/book', json={
            'userId': user_id, 'trainPrn': 'T1', 'userEmail': TEST_USER_EMAIL, 'source': 'Mumbai',
            'destination': 'Pune', 'travelDate': day.isoformat(), 'numberOfSeatsToBeBooked': count,
        })

    def test_seat_level_booking_belongs_to_user(self, client):
        add_train(client, 'T1', {DAY: [[0, 0, 0]]})
        user_id = signup(client)
        headers = login(client)

        response = self.seat_book(client, user_id)

        assert response.status_code == 200
        ticket = response.json()['data']
        assert ticket['bookedSeatsIndex'] == [[0, 0], [0, 1]]
        assert ticket['userId'] == user_id
        assert client.get(f"/v1/tickets/{ticket['ticketId']}").json()['data']['trainId'] == 'T1'
        tickets = client.get('/v1/user/fetchTickets', headers=headers).json()['data']
        assert [booked['ticketId'] for booked in tickets] == [ticket['ticketId']]

        response = client.post('/v1/user/cancelTicket', headers=headers, params={'ticketId': ticket['ticketId']})

        assert response.status_code == 200
        assert seats(client) == [[0, 0, 0]]

    def test_seat_level_booking_unknown_user(self, client):
        add_train(client, 'T1', {DAY: [[0, 0, 0]]})

        response = self.seat_book(client, 'user-1')

        assert response.status_code == 404
        assert response.json()['responseStatus'] == 'USER_NOT_FOUND'
        assert seats(client) == [[0, 0, 0]]

    def test_seat_level_booking_rejects_past_date(self, client):
        yesterday = travel_day(-1)
        add_train(client, 'T1', {yesterday: [[0, 0, 0]]})
        user_id = signup(client)

        response = self.seat_book(client, user_id, day=yesterday)

        assert response.status_code == 400
        assert response.json()['responseStatus'] == 'INVALID_DATA'
        assert seats(client, day=yesterday) == [[0, 0, 0]]

    def test_routes_declare_envelope_model(self, client):
        schema = client.get('/openapi.json').json()

        assert 'ResponseData' in schema['components']['schemas']
        for path in ('/v1/seats/book', '/v1/user/bookTicket', '/v1/train/addTrain', '/v1/tickets/createTicket'):
            operation = schema['paths'][path]['post']
            content = operation['responses']['200']['content']['application/json']
            assert content['schema']['$ref'].endswith('/ResponseData')

    def test_malformed_request_is_invalid_data(self, client):
        response = client.post('/v1/seats/bookSeats', params={'trainPrn': 'T1', 'travelDate': 'not-a-date'})
        assert response.status_code == 400
        assert response.json()['responseStatus'] == 'INVALID_DATA'


class TestTicketApi:
    def create(self, client, seats_index, source='Mumbai'):
        response = client.post('/v1/tickets/createTicket', json={
            'userId': 'user-1', 'trainId': 'T1', 'source': source, 'destination': 'Pune',
            'dateOfTravel': DAY.isoformat(), 'bookedSeatsIndex': seats_index,
        })
        return response

    def test_fetch_all_keeps_order_and_skips_unknown(self, client):
        first = self.create(client, [[0, 0]]).json()['data']
        second = self.create(client, [[0, 1]]).json()['data']

        response = client.get('/v1/tickets/fetchAllTickets', params=[
            ('ticketIds', second), ('ticketIds', 'missing'), ('ticketIds', first),
        ])

        assert [ticket['ticketId'] for ticket in response.json()['data']] == [second, first]

    def test_fetch_all_accepts_comma_separated_ids(self, client):
        first = self.create(client, [[0, 0]]).json()['data']
        second = self.create(client, [[0, 1]]).json()['data']

        response = client.get('/v1/tickets/fetchAllTickets', params={'ticketIds': f'{first},{second}'})

        assert [ticket['ticketId'] for ticket in response.json()['data']] == [first, second]

    def test_same_source_and_destination(self, client):
        response = self.create(client, [[0, 0]], source='pune')
        assert response.status_code == 400

    def test_reschedule_and_delete(self, client):
        ticket_id = self.create(client, [[0, 0]]).json()['data']

        response = client.put(
            f'/v1/tickets/rescheduleTicket/{ticket_id}',
            params={'updatedTravelDate': NEXT_DAY.isoformat()},
            json={'bookedSeatsIndex': [[1, 1]]},
        )
        assert response.json()['data']['dateOfTravel'] == NEXT_DAY.isoformat()
        assert response.json()['data']['bookedSeatsIndex'] == [[1, 1]]

        assert client.delete(f'/v1/tickets/{ticket_id}').status_code == 200
        response = client.get(f'/v1/tickets/{ticket_id}')
        assert response.status_code == 404
        assert response.json()['responseStatus'] == 'TICKET_NOT_FOUND'


class TestUserApi:
    def test_signup_rejects_bad_email(self, client):
        response = client.post('/v1/user/signupUser', params={'userEmail': 'not-an-email', 'password': 'x'})
        assert response.status_code == 400
        assert response.json()['responseStatus'] == 'EMAIL_NOT_VALID'

    def test_signup_rejects_duplicate_email(self, client):
        signup_and_login(client)
        response = client.post('/v1/user/signupUser', params={
            'userEmail': TEST_USER_EMAIL.upper(), 'password': DEFAULT_PASSWORD,
        })
        assert response.status_code == 400
        assert response.json()['responseStatus'] == 'USER_ALREADY_EXISTS'

    def test_login_failures(self, client):
        signup_and_login(client)

        response = client.post('/v1/user/loginUser', params={'userEmail': TEST_USER_EMAIL, 'password': 'wrong'})
        assert response.json()['responseStatus'] == 'PASSWORD_INCORRECT'
        response = client.post('/v1/user/loginUser', params={'userEmail': ANOTHER_USER_EMAIL, 'password': 'x'})
        assert response.status_code == 404
        assert response.json()['responseStatus'] == 'USER_NOT_FOUND'

    def test_booking_requires_a_token(self, client):
        response = book(client, headers={})
        assert response.status_code == 401
        assert response.json()['responseStatus'] == 'UNAUTHORIZED'

        response = book(client, headers={'Authorization': 'Bearer garbage'})
        assert response.status_code == 401

    def test_book_and_fetch_tickets(self, client):
        add_train(client, 'T1', {DAY: [[0, 0, 0], [0, 0, 0]]})
        headers = signup_and_login(client)

        response = book(client, headers, count=3)

        assert response.status_code == 200
        body = response.json()
        assert body['data']['bookedSeatsIndex'] == [[0, 0], [0, 1], [0, 2]]
        assert body['data']['mailSent'] is True
        assert 'responseStatus' not in body

        tickets = client.get('/v1/user/fetchTickets', headers=headers).json()['data']
        assert [ticket['ticketId'] for ticket in tickets] == [body['data']['ticketId']]

        response = client.post('/v1/user/loginUser', params={'userEmail': TEST_USER_EMAIL, 'password': DEFAULT_PASSWORD})
        user = response.json()['data']['user']
        assert user['ticketsBookedIds'] == [body['data']['ticketId']]
        assert user['tickets'][0]['bookedSeatsIndex'] == [[0, 0], [0, 1], [0, 2]]

    @pytest.mark.parametrize('count', [0, -1, 11])
    def test_rejects_bad_seat_count(self, client, count):
        add_train(client, 'T1', {DAY: [[0] * 12]})
        headers = signup_and_login(client)

        response = book(client, headers, count=count)

        assert response.status_code == 400
        assert response.json()['responseStatus'] == 'INVALID_DATA'
        assert seats(client) == [[0] * 12]

    def test_rejects_past_date(self, client):
        past = travel_day(-2)
        add_train(client, 'T1', {past: [[0, 0]]})
        headers = signup_and_login(client)

        response = book(client, headers, count=1, day=past)

        assert response.status_code == 400
        assert seats(client, day=past) == [[0, 0]]

    def test_cancel_ticket(self, client):
        add_train(client, 'T1', {DAY: [[0, 0], [0, 0]]})
        headers = signup_and_login(client)
        ticket_id = book(client, headers, count=2).json()['data']['ticketId']
        assert seats(client) == [[1, 1], [0, 0]]

        response = client.post('/v1/user/cancelTicket', headers=headers, params={'ticketId': ticket_id})

        assert response.status_code == 200
        assert seats(client) == [[0, 0], [0, 0]]
        assert client.get(f'/v1/tickets/{ticket_id}').json()['responseStatus'] == 'TICKET_NOT_FOUND'
        assert client.get('/v1/user/fetchTickets', headers=headers).json()['data'] == []

        response = client.post('/v1/user/cancelTicket', headers=headers, params={'ticketId': ticket_id})
        assert response.status_code == 404
        assert response.json()['responseStatus'] == 'TICKET_NOT_FOUND'

    def test_cannot_touch_another_users_ticket(self, client):
        add_train(client, 'T1', {DAY: [[0, 0]]})
        owner = signup_and_login(client)
        intruder = signup_and_login(client, ANOTHER_USER_EMAIL)
        ticket_id = book(client, owner, count=1).json()['data']['ticketId']

        response = client.post('/v1/user/cancelTicket', headers=intruder, params={'ticketId': ticket_id})
        assert response.status_code == 404
        response = client.get('/v1/user/fetchTicketById', headers=intruder, params={'ticketId': ticket_id})
        assert response.status_code == 404

        assert seats(client) == [[1, 0]]
        response = client.get('/v1/user/fetchTicketById', headers=owner, params={'ticketId': ticket_id})
        assert response.json()['data']['bookedSeatsIndex'] == [[0, 0]]

    def test_reschedule_ticket(self, client):
        add_train(client, 'T1', {DAY: [[0, 0, 0]], NEXT_DAY: [[1, 0, 0]]})
        headers = signup_and_login(client)
        ticket_id = book(client, headers, count=2).json()['data']['ticketId']

        response = client.post('/v1/user/rescheduleTicket', headers=headers, params={
            'ticketId': ticket_id, 'updatedDateOfTravel': NEXT_DAY.isoformat(),
        })

        assert response.status_code == 200
        ticket = response.json()['data']
        assert ticket['dateOfTravel'] == NEXT_DAY.isoformat()
        assert len(ticket['bookedSeatsIndex']) == 2
        assert seats(client) == [[0, 0, 0]]
        assert seats(client, day=NEXT_DAY) == [[1, 1, 1]]

    def test_reschedule_to_past_date(self, client):
        add_train(client, 'T1', {DAY: [[0, 0]]})
        headers = signup_and_login(client)
        ticket_id = book(client, headers, count=1).json()['data']['ticketId']

        response = client.post('/v1/user/rescheduleTicket', headers=headers, params={
            'ticketId': ticket_id, 'updatedDateOfTravel': (DAY - timedelta(days=10)).isoformat(),
        })

        assert response.status_code == 400
        assert seats(client) == [[1, 0]]
