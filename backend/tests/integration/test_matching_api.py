"""
Integration tests for the physician matching endpoint.
"""

from unittest.mock import AsyncMock, patch

from services.matching_service import MatchingError, Physician
from tests.utils import auth_headers, create_user

VALID_BODY = {
    "chiefConcern": "Recurring migraines",
    "location": "Denver, CO",
    "urgency": "routine",
}


class TestMatchPhysicians:

    def test_requires_authentication(self, client):
        assert client.post("/api/match-physicians", json=VALID_BODY).status_code == 401

    def test_success_returns_camel_case_physicians(self, client, db_session):
        patient = create_user(db_session, "pat@example.com", role="patient")
        physician = Physician.model_validate({
            "id": "p1", "name": "Dr. Ada Lane", "specialty": "Neurology", "matchScore": 93,
            "practiceName": "Front Range Neurology",
        })

        with patch("api.matching.matching_service.match", new=AsyncMock(return_value=[physician])) as mock_match:
            response = client.post("/api/match-physicians", headers=auth_headers(patient), json=VALID_BODY)

        assert response.status_code == 200
        result = response.json()["physicians"]
        assert result[0]["name"] == "Dr. Ada Lane"
        assert result[0]["matchScore"] == 93
        assert result[0]["practiceName"] == "Front Range Neurology"
        assert mock_match.await_args.args[0].chief_concern == "Recurring migraines"

    def test_overlong_concern_rejected_before_upstream_call(self, client, db_session):
        patient = create_user(db_session, "pat@example.com", role="patient")
        body = dict(VALID_BODY, chiefConcern="x" * 1001)

        with patch("api.matching.matching_service.match", new=AsyncMock()) as mock_match:
            response = client.post("/api/match-physicians", headers=auth_headers(patient), json=body)

        assert response.status_code == 400
        assert response.json()["physicians"] == []
        assert "chiefConcern" in response.json()["error"]
        mock_match.assert_not_awaited()

    def test_blank_concern_rejected(self, client, db_session):
        patient = create_user(db_session, "pat@example.com", role="patient")

        with patch("api.matching.matching_service.match", new=AsyncMock()) as mock_match:
            response = client.post(
                "/api/match-physicians", headers=auth_headers(patient), json=dict(VALID_BODY, chiefConcern="   "),
            )

        assert response.status_code == 400
        mock_match.assert_not_awaited()

    def test_unknown_urgency_rejected(self, client, db_session):
        patient = create_user(db_session, "pat@example.com", role="patient")

        response = client.post(
            "/api/match-physicians", headers=auth_headers(patient), json=dict(VALID_BODY, urgency="yesterday"),
        )

        assert response.status_code == 400

    def test_missing_urgency_rejected_before_upstream_call(self, client, db_session):
        patient = create_user(db_session, "pat@example.com", role="patient")
        body = {key: value for key, value in VALID_BODY.items() if key != "urgency"}

        with patch("api.matching.matching_service.match", new=AsyncMock()) as mock_match:
            response = client.post("/api/match-physicians", headers=auth_headers(patient), json=body)

        assert response.status_code == 400
        assert response.json()["physicians"] == []
        assert "urgency" in response.json()["error"]
        mock_match.assert_not_awaited()

    def test_malformed_json_body(self, client, db_session):
        patient = create_user(db_session, "pat@example.com", role="patient")
        headers = dict(auth_headers(patient), **{"Content-Type": "application/json"})

        response = client.post("/api/match-physicians", headers=headers, content=b"{not json")

        assert response.status_code == 400
        assert response.json() == {"error": "Request body must be valid JSON", "physicians": []}

    def test_upstream_failure_returns_empty_list(self, client, db_session):
        patient = create_user(db_session, "pat@example.com", role="patient")

        with patch(
            "api.matching.matching_service.match",
            new=AsyncMock(side_effect=MatchingError("AI API error: 503")),
        ):
            response = client.post("/api/match-physicians", headers=auth_headers(patient), json=VALID_BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "AI API error: 503", "physicians": []}

    def test_unexpected_failure_is_generic(self, client, db_session):
        patient = create_user(db_session, "pat@example.com", role="patient")

        with patch("api.matching.matching_service.match", new=AsyncMock(side_effect=KeyError("choices"))):
            response = client.post("/api/match-physicians", headers=auth_headers(patient), json=VALID_BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "Unknown error", "physicians": []}

    def test_missing_api_key_is_reported(self, client, db_session):
        patient = create_user(db_session, "pat@example.com", role="patient")

        with patch("services.matching_service.config.MODEL_GATEWAY_API_KEY", ""):
            response = client.post("/api/match-physicians", headers=auth_headers(patient), json=VALID_BODY)

        assert response.status_code == 500
        assert response.json()["physicians"] == []
        assert "MODEL_GATEWAY_API_KEY" in response.json()["error"]
