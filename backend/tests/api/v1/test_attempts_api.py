"""
Tests for the test attempt endpoints.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.error_responses import ErrorMessages
from app.models import (
    AssessmentSession,
    Attempt,
    AttemptStatus,
    Question,
    SessionModule,
    SessionStatus,
    TestStatus,
)
from tests.factories import add_answers, create_attempt, create_test_definition


def first_question(db_session, test):
    return (
        db_session.query(Question)
        .filter(Question.test_id == test.id)
        .order_by(Question.sequence)
        .first()
    )


def reload_attempt(db_session, attempt_id):
    db_session.expire_all()
    return db_session.get(Attempt, attempt_id)


@pytest.fixture
def second_test(db_session):
    return create_test_definition(db_session, name="Numerical Reasoning", question_count=5)


@pytest.fixture
def assessment_session(db_session, iq_test, second_test):
    """An active session with the IQ test followed by a second test."""
    now = datetime.now(timezone.utc)
    session = AssessmentSession(
        session_code="BATCH-2025-01",
        name="Graduate intake",
        start_time=now - timedelta(hours=1),
        end_time=now + timedelta(hours=2),
        status=SessionStatus.ACTIVE,
    )
    db_session.add(session)
    db_session.flush()
    db_session.add_all(
        [
            SessionModule(session_id=session.id, test_id=iq_test.id, sequence=1),
            SessionModule(session_id=session.id, test_id=second_test.id, sequence=2),
        ]
    )
    db_session.commit()
    db_session.refresh(session)
    return session


class TestStartAttempt:
    """Tests for POST /v1/attempts/start."""

    def test_start_new_attempt(self, client, auth_headers, iq_test):
        response = client.post(
            "/v1/attempts/start", json={"test_id": iq_test.id}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["resumed"] is False
        attempt = data["attempt"]
        assert attempt["status"] == "started"
        assert attempt["attempt_number"] == 1
        assert attempt["total_questions"] == 10
        assert attempt["questions_answered"] == 0
        assert attempt["session_id"] is None
        progress = data["progress"]
        assert progress["progress_percentage"] == 0
        assert 1790 <= progress["time_remaining_seconds"] <= 1800
        assert progress["can_continue"] is True
        assert progress["estimated_completion_minutes"] is None

    def test_start_resumes_live_attempt(self, client, auth_headers, iq_test):
        first = client.post(
            "/v1/attempts/start", json={"test_id": iq_test.id}, headers=auth_headers
        ).json()

        response = client.post(
            "/v1/attempts/start", json={"test_id": iq_test.id}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["resumed"] is True
        assert data["attempt"]["id"] == first["attempt"]["id"]

    def test_start_after_time_ran_out_creates_new_attempt(
        self, client, auth_headers, db_session, test_user, iq_test
    ):
        stale = create_attempt(
            db_session,
            test_user,
            iq_test,
            status=AttemptStatus.IN_PROGRESS,
            started_minutes_ago=45,
        )

        response = client.post(
            "/v1/attempts/start", json={"test_id": iq_test.id}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["resumed"] is False
        assert data["attempt"]["id"] != stale.id
        assert data["attempt"]["attempt_number"] == 2
        assert reload_attempt(db_session, stale.id).status == AttemptStatus.EXPIRED

    def test_start_after_finished_attempt_numbers_next(
        self, client, auth_headers, db_session, test_user, iq_test
    ):
        create_attempt(
            db_session, test_user, iq_test, status=AttemptStatus.COMPLETED
        )
        create_attempt(
            db_session,
            test_user,
            iq_test,
            status=AttemptStatus.ABANDONED,
            attempt_number=2,
        )

        response = client.post(
            "/v1/attempts/start", json={"test_id": iq_test.id}, headers=auth_headers
        )

        assert response.json()["attempt"]["attempt_number"] == 3

    def test_attempt_numbers_are_per_participant(
        self, client, auth_headers, db_session, other_user, iq_test
    ):
        create_attempt(
            db_session, other_user, iq_test, status=AttemptStatus.COMPLETED
        )

        response = client.post(
            "/v1/attempts/start", json={"test_id": iq_test.id}, headers=auth_headers
        )

        assert response.json()["attempt"]["attempt_number"] == 1

    def test_inactive_test(self, client, auth_headers, db_session):
        test = create_test_definition(db_session, status=TestStatus.INACTIVE)

        response = client.post(
            "/v1/attempts/start", json={"test_id": test.id}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == ErrorMessages.TEST_NOT_ACTIVE

    def test_missing_test(self, client, auth_headers):
        response = client.post(
            "/v1/attempts/start", json={"test_id": 9999}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json()["detail"] == ErrorMessages.TEST_NOT_FOUND

    def test_requires_authentication(self, client, iq_test):
        response = client.post("/v1/attempts/start", json={"test_id": iq_test.id})
        assert response.status_code in (401, 403)

    def test_invalid_token(self, client, iq_test):
        response = client.post(
            "/v1/attempts/start",
            json={"test_id": iq_test.id},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    def test_start_within_session(
        self, client, auth_headers, iq_test, assessment_session
    ):
        response = client.post(
            "/v1/attempts/start",
            json={"test_id": iq_test.id, "session_code": "BATCH-2025-01"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["attempt"]["session_id"] == assessment_session.id

    def test_unknown_session_code(self, client, auth_headers, iq_test):
        response = client.post(
            "/v1/attempts/start",
            json={"test_id": iq_test.id, "session_code": "NOPE"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == ErrorMessages.INVALID_SESSION

    def test_test_outside_session(
        self, client, auth_headers, db_session, assessment_session
    ):
        outsider = create_test_definition(db_session, name="Outsider")

        response = client.post(
            "/v1/attempts/start",
            json={"test_id": outsider.id, "session_code": "BATCH-2025-01"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == ErrorMessages.INVALID_SESSION

    def test_inactive_session(
        self, client, auth_headers, db_session, iq_test, assessment_session
    ):
        assessment_session.status = SessionStatus.COMPLETED
        db_session.commit()

        response = client.post(
            "/v1/attempts/start",
            json={"test_id": iq_test.id, "session_code": "BATCH-2025-01"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == ErrorMessages.SESSION_NOT_ACTIVE


class TestSubmitAnswer:
    """Tests for POST /v1/attempts/{attempt_id}/answers."""

    @pytest.fixture
    def attempt(self, db_session, test_user, iq_test):
        return create_attempt(db_session, test_user, iq_test)

    def submit(self, client, headers, attempt_id, question_id, answer="A"):
        return client.post(
            f"/v1/attempts/{attempt_id}/answers",
            json={"question_id": question_id, "answer": answer, "time_taken": 12},
            headers=headers,
        )

    def test_first_answer_is_scored(
        self, client, auth_headers, db_session, iq_test, attempt
    ):
        question = first_question(db_session, iq_test)

        response = self.submit(client, auth_headers, attempt.id, question.id)

        assert response.status_code == 200
        data = response.json()
        assert data["is_update"] is False
        assert data["answer"]["is_correct"] is True
        assert data["answer"]["score"] == 1.0
        assert data["answer"]["time_taken"] == 12
        assert data["progress"]["status"] == "in_progress"
        assert data["progress"]["questions_answered"] == 1
        assert data["progress"]["progress_percentage"] == 10

    def test_resubmission_replaces_answer(
        self, client, auth_headers, db_session, iq_test, attempt
    ):
        question = first_question(db_session, iq_test)
        self.submit(client, auth_headers, attempt.id, question.id, answer="A")

        response = self.submit(client, auth_headers, attempt.id, question.id, answer="B")

        data = response.json()
        assert data["is_update"] is True
        assert data["answer"]["is_correct"] is False
        assert data["answer"]["score"] == 0.0
        assert data["progress"]["questions_answered"] == 1

    def test_invalid_option(self, client, auth_headers, db_session, iq_test, attempt):
        question = first_question(db_session, iq_test)

        response = self.submit(client, auth_headers, attempt.id, question.id, answer="Z")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid answer: Invalid option selected"

    def test_question_from_another_test(
        self, client, auth_headers, db_session, attempt, second_test
    ):
        question = first_question(db_session, second_test)

        response = self.submit(client, auth_headers, attempt.id, question.id)

        assert response.status_code == 404
        assert response.json()["detail"] == ErrorMessages.QUESTION_NOT_FOUND

    def test_other_participants_attempt(
        self, client, other_auth_headers, db_session, iq_test, attempt
    ):
        question = first_question(db_session, iq_test)

        response = self.submit(client, other_auth_headers, attempt.id, question.id)

        assert response.status_code == 403
        assert response.json()["detail"] == ErrorMessages.ATTEMPT_ACCESS_DENIED

    def test_missing_attempt(self, client, auth_headers, db_session, iq_test):
        question = first_question(db_session, iq_test)

        response = self.submit(client, auth_headers, 9999, question.id)

        assert response.status_code == 404
        assert response.json()["detail"] == ErrorMessages.ATTEMPT_NOT_FOUND

    def test_finished_attempt_rejects_answers(
        self, client, auth_headers, db_session, test_user, iq_test
    ):
        finished = create_attempt(
            db_session, test_user, iq_test, status=AttemptStatus.ABANDONED
        )
        question = first_question(db_session, iq_test)

        response = self.submit(client, auth_headers, finished.id, question.id)

        assert response.status_code == 400
        assert response.json()["detail"] == ErrorMessages.ATTEMPT_NOT_MODIFIABLE

    def test_answer_after_time_limit_expires_attempt(
        self, client, auth_headers, db_session, test_user, iq_test
    ):
        late = create_attempt(
            db_session,
            test_user,
            iq_test,
            status=AttemptStatus.IN_PROGRESS,
            started_minutes_ago=31,
        )
        question = first_question(db_session, iq_test)

        response = self.submit(client, auth_headers, late.id, question.id)

        assert response.status_code == 400
        assert reload_attempt(db_session, late.id).status == AttemptStatus.EXPIRED


class TestAttemptProgress:
    """Tests for GET /v1/attempts/{attempt_id}/progress."""

    def test_progress_of_running_attempt(
        self, client, auth_headers, db_session, test_user, iq_test
    ):
        attempt = create_attempt(
            db_session,
            test_user,
            iq_test,
            status=AttemptStatus.IN_PROGRESS,
            started_minutes_ago=10,
        )
        add_answers(db_session, attempt, correct=3, wrong=1)

        response = client.get(f"/v1/attempts/{attempt.id}/progress", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["questions_answered"] == 4
        assert data["progress_percentage"] == 40
        assert data["is_expired"] is False
        assert data["can_continue"] is True
        assert data["estimated_completion_minutes"] == 15
        assert 1190 <= data["time_remaining_seconds"] <= 1200

    def test_nearly_expired(self, client, auth_headers, db_session, test_user, iq_test):
        attempt = create_attempt(
            db_session, test_user, iq_test, started_minutes_ago=27
        )

        data = client.get(
            f"/v1/attempts/{attempt.id}/progress", headers=auth_headers
        ).json()

        assert data["is_nearly_expired"] is True
        assert data["can_continue"] is True

    def test_progress_marks_elapsed_attempt_expired(
        self, client, auth_headers, db_session, test_user, iq_test
    ):
        attempt = create_attempt(
            db_session, test_user, iq_test, started_minutes_ago=40
        )

        data = client.get(
            f"/v1/attempts/{attempt.id}/progress", headers=auth_headers
        ).json()

        assert data["status"] == "expired"
        assert data["is_expired"] is True
        assert data["can_continue"] is False
        assert data["time_remaining_seconds"] == 0
        assert reload_attempt(db_session, attempt.id).status == AttemptStatus.EXPIRED

    def test_other_participant(
        self, client, other_auth_headers, db_session, test_user, iq_test
    ):
        attempt = create_attempt(db_session, test_user, iq_test)

        response = client.get(
            f"/v1/attempts/{attempt.id}/progress", headers=other_auth_headers
        )

        assert response.status_code == 403


class TestFinishAttempt:
    """Tests for POST /v1/attempts/{attempt_id}/finish."""

    @pytest.fixture
    def answered_attempt(self, db_session, test_user, iq_test):
        attempt = create_attempt(
            db_session, test_user, iq_test, status=AttemptStatus.IN_PROGRESS
        )
        add_answers(db_session, attempt, correct=7, wrong=3)
        return attempt

    def finish(self, client, headers, attempt_id, completion_type="completed"):
        return client.post(
            f"/v1/attempts/{attempt_id}/finish",
            json={"completion_type": completion_type},
            headers=headers,
        )

    def test_completion_scores_the_attempt(
        self, client, auth_headers, answered_attempt
    ):
        response = self.finish(client, auth_headers, answered_attempt.id)

        assert response.status_code == 200
        data = response.json()
        assert data["already_finished"] is False
        assert data["attempt"]["status"] == "completed"
        assert data["attempt"]["actual_end_time"] is not None
        assert 295 <= data["attempt"]["time_spent"] <= 310
        result = data["result"]
        assert result["attempt_id"] == answered_attempt.id
        assert result["scaled_score"] == 70.0
        assert result["grade"] == "C"
        assert result["is_passed"] is True
        assert result["completion_percentage"] == 100.0
        assert data["next_test"] is None

    def test_repeated_completion_is_a_noop(
        self, client, auth_headers, answered_attempt
    ):
        first = self.finish(client, auth_headers, answered_attempt.id).json()

        response = self.finish(client, auth_headers, answered_attempt.id)

        assert response.status_code == 200
        data = response.json()
        assert data["already_finished"] is True
        assert data["result"]["id"] == first["result"]["id"]
        assert data["attempt"]["actual_end_time"][:19] == (
            first["attempt"]["actual_end_time"][:19]
        )

    def test_conflicting_finish(self, client, auth_headers, answered_attempt):
        self.finish(client, auth_headers, answered_attempt.id)

        response = self.finish(client, auth_headers, answered_attempt.id, "abandoned")

        assert response.status_code == 409
        assert response.json()["detail"] == ErrorMessages.attempt_already_finished(
            "completed"
        )

    def test_abandon(self, client, auth_headers, db_session, answered_attempt):
        response = self.finish(client, auth_headers, answered_attempt.id, "abandoned")

        data = response.json()
        assert data["attempt"]["status"] == "abandoned"
        assert data["result"] is None
        assert reload_attempt(db_session, answered_attempt.id).status == (
            AttemptStatus.ABANDONED
        )

    def test_late_completion_is_recorded_as_expired(
        self, client, auth_headers, db_session, test_user, iq_test
    ):
        late = create_attempt(
            db_session,
            test_user,
            iq_test,
            status=AttemptStatus.IN_PROGRESS,
            started_minutes_ago=35,
        )

        response = self.finish(client, auth_headers, late.id)

        data = response.json()
        assert data["attempt"]["status"] == "expired"
        assert data["result"] is None

    def test_invalid_completion_type(self, client, auth_headers, answered_attempt):
        response = self.finish(client, auth_headers, answered_attempt.id, "paused")
        assert response.status_code == 422

    def test_other_participant(self, client, other_auth_headers, answered_attempt):
        response = self.finish(client, other_auth_headers, answered_attempt.id)
        assert response.status_code == 403

    def test_next_test_in_session(
        self,
        client,
        auth_headers,
        db_session,
        test_user,
        iq_test,
        second_test,
        assessment_session,
    ):
        attempt = create_attempt(
            db_session, test_user, iq_test, status=AttemptStatus.IN_PROGRESS
        )
        attempt.session_id = assessment_session.id
        db_session.commit()

        data = self.finish(client, auth_headers, attempt.id, "abandoned").json()

        assert data["next_test"] == {
            "test_id": second_test.id,
            "name": "Numerical Reasoning",
            "sequence": 2,
        }

    def test_last_test_in_session_has_no_next(
        self,
        client,
        auth_headers,
        db_session,
        test_user,
        second_test,
        assessment_session,
    ):
        attempt = create_attempt(
            db_session, test_user, second_test, status=AttemptStatus.IN_PROGRESS
        )
        attempt.session_id = assessment_session.id
        db_session.commit()

        data = self.finish(client, auth_headers, attempt.id, "abandoned").json()

        assert data["next_test"] is None
