from types import SimpleNamespace

import pytest
import stripe

from etuition.models.application import ApplicationStatus
from etuition.models.payment import Payment
from etuition.models.tuition import TuitionStatus
from etuition.models.user import UserRole


@pytest.fixture
def fake_stripe(monkeypatch):
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id='pi_fake', client_secret='pi_fake_secret')

    monkeypatch.setattr(stripe.PaymentIntent, 'create', fake_create)
    return calls


def test_create_payment_intent_converts_to_minor_units(client, fake_stripe, auth_headers) -> None:
    response = client.post('/create-payment-intent', json={'price': 20}, headers=auth_headers('student@example.com'))

    assert response.status_code == 200
    assert response.json() == {'clientSecret': 'pi_fake_secret'}
    assert fake_stripe[0]['amount'] == 2000
    assert fake_stripe[0]['currency'] == 'usd'


@pytest.mark.parametrize('body', [{}, {'price': 0}, {'price': -3}])
def test_create_payment_intent_requires_positive_price(client, fake_stripe, auth_headers, body) -> None:
    response = client.post('/create-payment-intent', json=body, headers=auth_headers('student@example.com'))

    assert response.status_code == 400
    assert response.json() == {'message': 'Price is required'}
    assert fake_stripe == []


def test_create_payment_intent_checks_application_is_hireable(
    client, fake_stripe, make_tuition, make_application, auth_headers,
) -> None:
    tuition = make_tuition(status=TuitionStatus.FILLED)
    application = make_application(tuition.id)

    response = client.post(
        '/create-payment-intent',
        json={'price': 20, 'applicationId': application.id},
        headers=auth_headers('student@example.com'),
    )

    assert response.status_code == 409
    assert fake_stripe == []


def test_create_payment_intent_surfaces_processor_failure(client, monkeypatch, auth_headers) -> None:
    def broken_create(**kwargs):
        raise stripe.StripeError('boom')

    monkeypatch.setattr(stripe.PaymentIntent, 'create', broken_create)

    response = client.post('/create-payment-intent', json={'price': 20}, headers=auth_headers('student@example.com'))

    assert response.status_code == 502


def test_payment_for_missing_application_is_not_found(client, auth_headers) -> None:
    response = client.post(
        '/payments',
        json={'applicationId': 77, 'price': 20, 'transactionId': 'pi_1'},
        headers=auth_headers('student@example.com'),
    )

    assert response.status_code == 404
    assert response.json() == {'message': 'Application not found'}


def test_retried_payment_confirmation_is_idempotent(client, db, make_tuition, make_application, auth_headers) -> None:
    application = make_application(make_tuition().id)
    payload = {'applicationId': application.id, 'price': 20, 'transactionId': 'pi_retry'}

    first = client.post('/payments', json=payload, headers=auth_headers('student@example.com'))
    second = client.post('/payments', json=payload, headers=auth_headers('student@example.com'))

    assert first.json()['duplicate'] is False
    assert second.status_code == 200
    assert second.json()['duplicate'] is True
    assert second.json()['payment']['id'] == first.json()['payment']['id']
    assert db.query(Payment).count() == 1


def test_payment_histories_are_self_only(client, make_tuition, make_application, auth_headers) -> None:
    application = make_application(make_tuition().id)
    client.post(
        '/payments',
        json={'applicationId': application.id, 'price': 20, 'transactionId': 'pi_h'},
        headers=auth_headers('student@example.com'),
    )

    payer = client.get('/payments/my-history/student@example.com', headers=auth_headers('student@example.com'))
    tutor = client.get('/payments/tutor-history/tutor@example.com', headers=auth_headers('tutor@example.com'))
    snoop = client.get('/payments/tutor-history/tutor@example.com', headers=auth_headers('student@example.com'))

    assert [payment['transactionId'] for payment in payer.json()] == ['pi_h']
    assert [payment['tutorEmail'] for payment in tutor.json()] == ['tutor@example.com']
    assert snoop.status_code == 403


def test_hire_scenario_from_posting_to_filled(client, make_user, fake_stripe, auth_headers) -> None:
    make_user('a@example.com', name='Student A')
    make_user('b@example.com', role=UserRole.TUTOR, name='Tutor B')
    make_user('admin@example.com', role=UserRole.ADMIN)
    student, tutor, admin = (auth_headers(email) for email in ('a@example.com', 'b@example.com', 'admin@example.com'))

    posted = client.post('/tuitions', json={'subject': 'Math', 'location': 'Dhaka', 'budget': 3000}, headers=student)
    tuition_id = posted.json()['insertedId']
    assert client.get(f'/tuitions/{tuition_id}').json()['status'] == TuitionStatus.PENDING
    assert client.get('/tuitions').json()['total'] == 0

    client.patch(f'/tuitions/status/{tuition_id}', json={'status': 'approved'}, headers=admin)
    assert [item['id'] for item in client.get('/tuitions').json()['result']] == [tuition_id]

    applied = client.post('/applications', json={'tuitionId': tuition_id, 'tutorName': 'Tutor B'}, headers=tutor)
    application_id = applied.json()['insertedId']
    assert client.get(f'/applications/{application_id}', headers=tutor).json()['status'] == ApplicationStatus.PENDING

    intent = client.post('/create-payment-intent', json={'price': 20, 'applicationId': application_id}, headers=student)
    assert intent.json()['clientSecret'] == 'pi_fake_secret'
    assert fake_stripe[0]['metadata']['application_id'] == str(application_id)

    paid = client.post(
        '/payments',
        json={'applicationId': application_id, 'price': 20, 'transactionId': 'pi_fake'},
        headers=student,
    )
    assert paid.status_code == 200
    assert paid.json()['payment']['tutorEmail'] == 'b@example.com'

    application = client.get(f'/applications/{application_id}', headers=tutor).json()
    tuition = client.get(f'/tuitions/{tuition_id}').json()
    assert application['status'] == ApplicationStatus.APPROVED
    assert tuition['status'] == TuitionStatus.FILLED
    assert tuition['hiredTutorEmail'] == 'b@example.com'
    assert tuition['hiredTutorName'] == 'Tutor B'
    assert client.get('/tuitions').json()['total'] == 0

    stats = client.get('/admin-stats', headers=admin).json()
    assert stats == {'users': 3, 'tuitions': 1, 'applications': 1, 'payments': 1, 'revenue': 20}
