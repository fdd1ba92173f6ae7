"""
Tests for the result calculation admin endpoints.
"""
from decimal import Decimal

import pytest

from app.core.error_responses import ErrorMessages
from app.models import Answer, AttemptStatus, Question
from tests.factories import add_answers, create_attempt

CALCULATE_URL = "/v1/admin/results/calculate"


@pytest.fixture
def completed_attempt(db_session, test_user, iq_test):
    attempt = create_attempt(
        db_session, test_user, iq_test, status=AttemptStatus.COMPLETED, time_spent=900
    )
    add_answers(db_session, attempt, correct=7, wrong=3)
    return attempt


class TestCalculateResult:
    """Tests for POST /v1/admin/results/calculate."""

    def test_first_calculation_creates_result(
        self, client, admin_headers, completed_attempt
    ):
        response = client.post(
            CALCULATE_URL, json={"attempt_id": completed_attempt.id}, headers=admin_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Result calculated successfully"
        assert data["metadata"]["recalculated"] is False
        assert data["metadata"]["processing_time_ms"] >= 0
        result = data["result"]
        assert result["attempt_id"] == completed_attempt.id
        assert result["raw_score"] == 7.0
        assert result["scaled_score"] == 70.0
        assert result["percentile"] == 70.0
        assert result["grade"] == "C"
        assert result["is_passed"] is True
        assert result["description"] == (
            "Test completed with 100% completion rate. Scored 70 out of 100 (C)."
        )
        assert result["recommendations"].startswith("Average performance.")
        assert result["detailed_analysis"]["time_efficiency"] == 50

    def test_existing_result_conflicts(self, client, admin_headers, completed_attempt):
        client.post(
            CALCULATE_URL, json={"attempt_id": completed_attempt.id}, headers=admin_headers
        )

        response = client.post(
            CALCULATE_URL, json={"attempt_id": completed_attempt.id}, headers=admin_headers
        )

        assert response.status_code == 409
        assert response.json()["detail"] == ErrorMessages.RESULT_ALREADY_EXISTS

    def test_forced_recalculation_updates_result(
        self, client, admin_headers, db_session, completed_attempt
    ):
        first = client.post(
            CALCULATE_URL, json={"attempt_id": completed_attempt.id}, headers=admin_headers
        ).json()["result"]
        wrong = (
            db_session.query(Answer)
            .filter(Answer.attempt_id == completed_attempt.id, Answer.is_correct.is_(False))
            .first()
        )
        wrong.answer = "A"
        wrong.is_correct = True
        wrong.score = Decimal("1")
        db_session.commit()

        response = client.post(
            CALCULATE_URL,
            json={
                "attempt_id": completed_attempt.id,
                "force_recalculate": True,
                "calculation_options": {"include_recommendations": False},
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Result recalculated successfully"
        assert data["metadata"]["recalculated"] is True
        assert data["result"]["id"] == first["id"]
        assert data["result"]["scaled_score"] == 80.0
        assert data["result"]["grade"] == "B"
        assert data["result"]["recommendations"] is None

    def test_recalculate_by_result_id(self, client, admin_headers, completed_attempt):
        first = client.post(
            CALCULATE_URL, json={"attempt_id": completed_attempt.id}, headers=admin_headers
        ).json()["result"]

        response = client.post(
            CALCULATE_URL,
            json={"result_id": first["id"], "force_recalculate": True},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["result"]["id"] == first["id"]

    def test_result_id_without_force_conflicts(
        self, client, admin_headers, completed_attempt
    ):
        first = client.post(
            CALCULATE_URL, json={"attempt_id": completed_attempt.id}, headers=admin_headers
        ).json()["result"]

        response = client.post(
            CALCULATE_URL, json={"result_id": first["id"]}, headers=admin_headers
        )

        assert response.status_code == 409

    def test_requires_an_identifier(self, client, admin_headers):
        response = client.post(CALCULATE_URL, json={}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == ErrorMessages.ATTEMPT_OR_RESULT_REQUIRED

    def test_attempt_not_completed(
        self, client, admin_headers, db_session, test_user, iq_test
    ):
        attempt = create_attempt(
            db_session, test_user, iq_test, status=AttemptStatus.IN_PROGRESS
        )

        response = client.post(
            CALCULATE_URL, json={"attempt_id": attempt.id}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == ErrorMessages.ATTEMPT_NOT_COMPLETED

    def test_missing_attempt(self, client, admin_headers):
        response = client.post(
            CALCULATE_URL, json={"attempt_id": 9999}, headers=admin_headers
        )

        assert response.status_code == 404
        assert response.json()["detail"] == ErrorMessages.ATTEMPT_NOT_FOUND

    def test_missing_result(self, client, admin_headers):
        response = client.post(
            CALCULATE_URL, json={"result_id": 9999}, headers=admin_headers
        )

        assert response.status_code == 404
        assert response.json()["detail"] == ErrorMessages.RESULT_NOT_FOUND

    def test_invalid_admin_token(self, client, completed_attempt):
        response = client.post(
            CALCULATE_URL,
            json={"attempt_id": completed_attempt.id},
            headers={"X-Admin-Token": "wrong-token"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == ErrorMessages.ADMIN_TOKEN_INVALID

    def test_missing_admin_token(self, client, completed_attempt):
        response = client.post(CALCULATE_URL, json={"attempt_id": completed_attempt.id})
        assert response.status_code == 422


class TestRescoreAnswers:
    """Tests for POST /v1/admin/attempts/{attempt_id}/rescore-answers."""

    def test_rescore_after_answer_key_change(
        self, client, admin_headers, db_session, iq_test, completed_attempt
    ):
        question = (
            db_session.query(Question)
            .filter(Question.test_id == iq_test.id)
            .order_by(Question.sequence)
            .first()
        )
        question.correct_answer = "B"
        db_session.commit()

        response = client.post(
            f"/v1/admin/attempts/{completed_attempt.id}/rescore-answers",
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["attempt_id"] == completed_attempt.id
        assert data["total_answers"] == 10
        assert data["updated_count"] == 1
        assert data["skipped_count"] == 9
        assert data["updates"] == [
            {
                "question_id": question.id,
                "old_score": 1.0,
                "new_score": 0.0,
                "old_is_correct": True,
                "new_is_correct": False,
            }
        ]

    def test_missing_attempt(self, client, admin_headers):
        response = client.post(
            "/v1/admin/attempts/9999/rescore-answers", headers=admin_headers
        )
        assert response.status_code == 404

    def test_requires_admin_token(self, client, completed_attempt):
        response = client.post(
            f"/v1/admin/attempts/{completed_attempt.id}/rescore-answers",
            headers={"X-Admin-Token": "wrong-token"},
        )
        assert response.status_code == 401
