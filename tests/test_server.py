"""Tests for the HTTP API."""

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from assessment_gateway.error_classifier import ErrorClassification
from assessment_gateway.gateway import ProviderGateway
from assessment_gateway.pipeline import ContentPipeline
from assessment_gateway.server import create_app

SAMPLE_TEXT = "Yesterday I go to the market and buyed some apples."


def _quiz_items(count):
    return [
        {
            "question": f"Question {n}?",
            "options": ["a", "b", "c", "d"],
            "correctAnswer": 1,
            "explanation": "Because.",
        }
        for n in range(1, count + 1)
    ]


@pytest.fixture
def client_factory(pipeline_factory):
    """Fixture building a TestClient over scripted providers."""

    def _factory(*args, **kwargs):
        pipeline = pipeline_factory(*args, **kwargs)
        return TestClient(create_app(pipeline=pipeline)), pipeline

    return _factory


class TestHealth:
    def test_health_check(self, client_factory):
        client, _ = client_factory(with_backup=False)

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["providers"] == {"primary": True, "backup": False}
        assert "api_calls" in data["metrics"]

    def test_request_id_is_echoed(self, client_factory):
        client, _ = client_factory()

        response = client.get("/health", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"

    def test_request_id_is_generated(self, client_factory):
        client, _ = client_factory()
        assert client.get("/health").headers["X-Request-ID"]


class TestGenerationEndpoints:
    """Tests for question-producing endpoints."""

    def test_quiz(self, client_factory):
        client, _ = client_factory([json.dumps(_quiz_items(3))])

        response = client.post(
            "/quiz", json={"topic": "Travel", "difficulty": "beginner", "count": 3}
        )

        assert response.status_code == 200
        data = response.json()
        assert [q["id"] for q in data] == [1, 2, 3]
        assert all(q["option_count"] == 4 for q in data)

    def test_quiz_validation_error(self, client_factory):
        client, _ = client_factory()

        response = client.post("/quiz", json={"topic": "Travel", "count": 0})

        assert response.status_code == 422

    def test_quiz_invalid_credential_is_502(self, client_factory):
        client, _ = client_factory([ErrorClassification.INVALID_CREDENTIAL])

        response = client.post("/quiz", json={"topic": "Travel"})

        assert response.status_code == 502
        data = response.json()
        assert data["kind"] == "invalid_credential"
        assert "GROQ_API_KEY" in data["detail"]

    def test_reading(self, client_factory):
        reply = {"passage": "A text.", "questions": _quiz_items(2)}
        client, _ = client_factory([json.dumps(reply)])

        response = client.post("/reading", json={"question_count": 2, "cefr_level": "B1"})

        assert response.status_code == 200
        assert response.json()["passage"] == "A text."

    def test_placement_falls_back_when_unconfigured(self, metrics):
        pipeline = ContentPipeline(ProviderGateway(None, None, metrics=metrics))
        client = TestClient(create_app(pipeline=pipeline))

        response = client.post("/placement", json={"count": 6})

        assert response.status_code == 200
        assert len(response.json()) == 6

    def test_ielts_fallback(self, client_factory):
        client, _ = client_factory(["[]"])

        response = client.post("/ielts")

        assert response.status_code == 200
        assert all(q["section"] in (1, 2, 3) for q in response.json())

    def test_tips(self, client_factory):
        client, _ = client_factory([json.dumps(["a", "b", "c", "d"])])

        response = client.post(
            "/tips", json={"category": "quiz", "context": {"quiz_avg_score": 72.5}}
        )

        assert response.status_code == 200
        assert response.json() == {"tips": ["a", "b", "c", "d"]}

    def test_progress_insight(self, client_factory):
        client, pipeline = client_factory(["Writing is at 0%. Try one essay this week."])

        response = client.post(
            "/progress/insight",
            json={
                "stats": {"totalActivities": 8, "averageScore": 55, "cefrLevel": "A2"},
                "skills": [{"name": "Writing", "value": 0}],
                "thisWeekActivities": 2,
                "lastWeekActivities": 4,
            },
        )

        assert response.status_code == 200
        assert response.json() == {"insight": "Writing is at 0%. Try one essay this week."}
        assert "Last week activities: 4" in pipeline.gateway.primary.calls[0]["prompt"]

    def test_recommendations_fall_back_when_providers_fail(self, client_factory):
        client, _ = client_factory([ErrorClassification.TRANSIENT], with_backup=False)

        response = client.post(
            "/recommendations",
            json={
                "stats": {"totalActivities": 3, "averageScore": 40, "streak": 0},
                "weakness": {"weakAreas": [{"skill": "Speaking", "score": 20}]},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data[0]["id"] == "improve-speaking"
        assert data[0]["priority"] == "high"


class TestAnalysisEndpoints:
    """Tests for analysis endpoints and error mapping."""

    def test_writing_analysis(self, client_factory):
        client, _ = client_factory([json.dumps({"overallScore": 70})])

        response = client.post("/writing/analysis", json={"text": SAMPLE_TEXT})

        assert response.status_code == 200
        assert response.json()["overall_score"] == 70

    def test_short_text_is_400(self, client_factory):
        client, _ = client_factory()

        response = client.post("/writing/correction", json={"text": "short"})

        assert response.status_code == 400

    def test_internal_value_error_is_500(self, client_factory):
        client, pipeline = client_factory()
        client = TestClient(create_app(pipeline=pipeline), raise_server_exceptions=False)

        with patch.object(
            pipeline, "generate_placement_test", side_effect=ValueError("bad reply model")
        ):
            response = client.post("/placement", json={"count": 3})

        assert response.status_code == 500

    def test_all_rate_limited_is_429(self, client_factory):
        client, _ = client_factory(
            [ErrorClassification.RATE_LIMITED], [ErrorClassification.RATE_LIMITED]
        )

        response = client.post("/writing/correction", json={"text": SAMPLE_TEXT})

        assert response.status_code == 429
        assert response.json()["kind"] == "all_rate_limited"

    def test_all_failed_is_502(self, client_factory):
        client, _ = client_factory(
            [ErrorClassification.TRANSIENT], [ErrorClassification.RATE_LIMITED]
        )

        response = client.post("/writing/analysis", json={"text": SAMPLE_TEXT})

        assert response.status_code == 502
        assert response.json()["kind"] == "all_failed"

    def test_not_configured_is_503(self, metrics):
        pipeline = ContentPipeline(ProviderGateway(None, None, metrics=metrics))
        client = TestClient(create_app(pipeline=pipeline))

        response = client.post("/writing/analysis", json={"text": SAMPLE_TEXT})

        assert response.status_code == 503

    def test_speaking_upload(self, client_factory):
        client, pipeline = client_factory([json.dumps({"overallScore": 66})])
        pipeline.gateway.primary.transcripts = ["I would like to order a coffee please."]

        response = client.post(
            "/speaking", files={"audio": ("speech.webm", b"audio-bytes", "audio/webm")}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["transcript"] == "I would like to order a coffee please."
        assert data["feedback"]["overall_score"] == 66

    def test_empty_speaking_upload_is_400(self, client_factory):
        client, _ = client_factory()

        response = client.post("/speaking", files={"audio": ("speech.webm", b"", "audio/webm")})

        assert response.status_code == 400
