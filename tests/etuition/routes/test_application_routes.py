import pytest

from etuition.models.application import Application, ApplicationStatus
from etuition.models.tuition import TuitionStatus
from etuition.models.user import UserRole


@pytest.fixture
def tutor(make_user):
    return make_user('tutor@example.com', role=UserRole.TUTOR, name='Tutor B')


def test_only_tutors_can_apply(client, make_user, make_tuition, auth_headers) -> None:
    make_user('student2@example.com')
    tuition = make_tuition()

    response = client.post(
        '/applications',
        json={'tuitionId': tuition.id},
        headers=auth_headers('student2@example.com'),
    )

    assert response.status_code == 403


def test_duplicate_application_returns_null_identifier(client, db, tutor, make_tuition, auth_headers) -> None:
    tuition = make_tuition()
    payload = {'tuitionId': tuition.id, 'tutorName': 'Tutor B', 'expectedSalary': 4500}

    first = client.post('/applications', json=payload, headers=auth_headers('tutor@example.com'))
    second = client.post('/applications', json=payload, headers=auth_headers('tutor@example.com'))

    assert first.status_code == 200
    assert first.json()['insertedId'] is not None
    assert second.status_code == 200
    assert second.json() == {'insertedId': None, 'message': 'Already applied'}
    assert db.query(Application).count() == 1


def test_apply_to_pending_tuition_conflicts(client, tutor, make_tuition, auth_headers) -> None:
    tuition = make_tuition(status=TuitionStatus.PENDING)

    response = client.post('/applications', json={'tuitionId': tuition.id}, headers=auth_headers('tutor@example.com'))

    assert response.status_code == 409


def test_received_applications_join_tuition(client, make_tuition, make_application, auth_headers) -> None:
    tuition = make_tuition(subject='Chemistry')
    make_application(tuition.id)
    make_application(make_tuition(student_email='other@example.com').id, tutor_email='x@example.com')

    response = client.get('/applications/received/student@example.com', headers=auth_headers('student@example.com'))

    body = response.json()
    assert len(body) == 1
    assert body[0]['tutorEmail'] == 'tutor@example.com'
    assert body[0]['tuitionData']['subject'] == 'Chemistry'


def test_received_applications_is_self_only(client, auth_headers) -> None:
    response = client.get('/applications/received/student@example.com', headers=auth_headers('tutor@example.com'))

    assert response.status_code == 403


def test_tutor_applications_include_deleted_tuition(client, make_tuition, make_application, auth_headers) -> None:
    tuition = make_tuition()
    make_application(tuition.id)
    make_application(31337)

    response = client.get('/applications/tutor/tutor@example.com', headers=auth_headers('tutor@example.com'))

    tuition_data = [row['tuitionData'] for row in response.json()]
    assert len(tuition_data) == 2
    assert None in tuition_data


def test_get_application_access(client, make_tuition, make_application, auth_headers) -> None:
    application = make_application(make_tuition().id)

    assert client.get(f'/applications/{application.id}', headers=auth_headers('tutor@example.com')).status_code == 200
    assert client.get(f'/applications/{application.id}', headers=auth_headers('student@example.com')).status_code == 200
    assert client.get(f'/applications/{application.id}', headers=auth_headers('nosy@example.com')).status_code == 403
    assert client.get('/applications/9999', headers=auth_headers('tutor@example.com')).status_code == 404


def test_owner_rejects_application(client, db, make_tuition, make_application, auth_headers) -> None:
    application = make_application(make_tuition().id)

    by_tutor = client.patch(f'/applications/reject/{application.id}', headers=auth_headers('tutor@example.com'))
    by_owner = client.patch(f'/applications/reject/{application.id}', headers=auth_headers('student@example.com'))

    assert by_tutor.status_code == 403
    assert by_owner.json()['status'] == ApplicationStatus.REJECTED


def test_admin_deletes_any_application(client, make_user, make_tuition, make_application, auth_headers) -> None:
    make_user('admin@example.com', role=UserRole.ADMIN)
    application = make_application(make_tuition().id)

    response = client.delete(f'/applications/{application.id}', headers=auth_headers('admin@example.com'))

    assert response.json() == {'deletedCount': 1}


def test_tutor_role_is_matched_case_insensitively(client, make_user, make_tuition, auth_headers) -> None:
    make_user('cased@example.com', role='TUTOR')
    tuition = make_tuition()

    response = client.post('/applications', json={'tuitionId': tuition.id}, headers=auth_headers('cased@example.com'))

    assert response.status_code == 200
    assert response.json()['insertedId'] is not None
