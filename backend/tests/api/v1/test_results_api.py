"""
Tests for the participant result and report endpoints.
"""
import pytest

from app.core.error_responses import ErrorMessages
from app.models import AttemptStatus
from tests.factories import (
    add_answers,
    answer_ratings,
    create_attempt,
    create_personality_test,
)

RATINGS = [
    ("openness", 5),
    ("conscientiousness", 4),
    ("extraversion", 3),
    ("agreeableness", 2),
    ("neuroticism", 1),
]


def calculate(client, admin_headers, attempt_id):
    response = client.post(
        "/v1/admin/results/calculate",
        json={"attempt_id": attempt_id},
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()["result"]


@pytest.fixture
def iq_result(client, admin_headers, db_session, test_user, iq_test):
    attempt = create_attempt(
        db_session, test_user, iq_test, status=AttemptStatus.COMPLETED, time_spent=900
    )
    add_answers(db_session, attempt, correct=7, wrong=3)
    return calculate(client, admin_headers, attempt.id)


@pytest.fixture
def personality_result(client, admin_headers, db_session, test_user):
    test = create_personality_test(db_session, RATINGS)
    attempt = create_attempt(
        db_session, test_user, test, status=AttemptStatus.COMPLETED
    )
    answer_ratings(db_session, attempt, RATINGS)
    return calculate(client, admin_headers, attempt.id)


class TestGetResult:
    """Tests for GET /v1/results/{result_id}."""

    def test_own_result(self, client, auth_headers, iq_result):
        response = client.get(f"/v1/results/{iq_result['id']}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == iq_result["id"]
        assert data["scaled_score"] == 70.0
        assert data["grade"] == "C"
        assert data["traits"] is None
        assert data["detailed_analysis"]["correct_answers"] == 7

    def test_personality_result_traits(self, client, auth_headers, personality_result):
        data = client.get(
            f"/v1/results/{personality_result['id']}", headers=auth_headers
        ).json()

        assert [t["name"] for t in data["traits"]] == [
            "Openness",
            "Conscientiousness",
            "Extraversion",
            "Agreeableness",
            "Neuroticism",
        ]
        assert [t["score"] for t in data["traits"]] == [100.0, 75.0, 50.0, 25.0, 0.0]
        assert data["trait_names"][0] == "Openness"

    def test_other_participants_result(self, client, other_auth_headers, iq_result):
        response = client.get(
            f"/v1/results/{iq_result['id']}", headers=other_auth_headers
        )

        assert response.status_code == 403
        assert response.json()["detail"] == ErrorMessages.RESULT_ACCESS_DENIED

    def test_missing_result(self, client, auth_headers):
        response = client.get("/v1/results/9999", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == ErrorMessages.RESULT_NOT_FOUND


class TestResultReport:
    """Tests for GET /v1/results/{result_id}/report."""

    def test_full_report(self, client, auth_headers, personality_result):
        response = client.get(
            f"/v1/results/{personality_result['id']}/report", headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["result"]["id"] == personality_result["id"]
        content = data["content"]
        assert "Participant: Test User (test@example.com)" in content["summary"]
        assert "Test: Personality Profile (BIG_FIVE)" in content["summary"]
        assert content["detailed_analysis"].startswith("DETAILED ANALYSIS:")
        assert "- Openness: Key strength that can be maximized" in content["recommendations"]
        assert "- Neuroticism: Area for development" in content["recommendations"]
        assert len(content["trait_explanations"]) == 5
        assert content["charts_data"]["personality_radar"]["data"] == [
            100.0,
            75.0,
            50.0,
            25.0,
            0.0,
        ]
        assert data["generated_at"]

    def test_sections_can_be_switched_off(
        self, client, auth_headers, personality_result
    ):
        response = client.get(
            f"/v1/results/{personality_result['id']}/report",
            params={
                "include_detailed_analysis": False,
                "include_recommendations": False,
                "include_trait_explanations": False,
                "include_charts": False,
            },
            headers=auth_headers,
        )

        content = response.json()["content"]
        assert content["summary"]
        assert content["detailed_analysis"] is None
        assert content["recommendations"] == []
        assert content["trait_explanations"] is None
        assert content["charts_data"] is None

    def test_report_without_traits_has_no_charts(self, client, auth_headers, iq_result):
        content = client.get(
            f"/v1/results/{iq_result['id']}/report", headers=auth_headers
        ).json()["content"]

        assert "- Score: 70/100" in content["summary"]
        assert content["charts_data"] is None
        assert content["trait_explanations"] is None

    def test_other_participants_report(self, client, other_auth_headers, iq_result):
        response = client.get(
            f"/v1/results/{iq_result['id']}/report", headers=other_auth_headers
        )
        assert response.status_code == 403
