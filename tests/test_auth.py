from datetime import timedelta

from campusdesk.auth import create_access_token, verify_token

from conftest import STUDENT


def test_token_round_trip():
    token = create_access_token("student-1", "riya@college.edu", "STUDENT")

    payload = verify_token(token)

    assert payload.user_id == "student-1"
    assert payload.role == "STUDENT"


def test_expired_token_is_rejected():
    token = create_access_token("student-1", "riya@college.edu", "STUDENT", expires_delta=timedelta(seconds=-5))

    assert verify_token(token) is None


def test_garbage_token_is_rejected():
    assert verify_token("not-a-jwt") is None


def test_role_claim_overrides_stored_role(client):
    token = create_access_token(STUDENT.user_id, STUDENT.email, "TEACHER")

    response = client.get("/api/v1/student/exams", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 404
