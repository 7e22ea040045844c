"""Tests for provider error classification."""

import json

import httpx
import openai
import pytest

from assessment_gateway.error_classifier import (
    ErrorClassification,
    classify,
    classify_exception,
)


def _openai_error(cls, status_code, body):
    request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
    response = httpx.Response(status_code, request=request, json={"error": body})
    return cls(message=body.get("message", "error"), response=response, body=body)


class TestClassifyStructuredBodies:
    """Structured error fields take precedence over everything else."""

    def test_openai_invalid_api_key_code(self):
        body = json.dumps({"error": {"code": "invalid_api_key", "message": "Invalid API Key"}})
        assert classify(400, body) is ErrorClassification.INVALID_CREDENTIAL

    def test_openai_rate_limit_code(self):
        body = json.dumps({"error": {"code": "rate_limit_exceeded", "type": "tokens"}})
        assert classify(400, body) is ErrorClassification.RATE_LIMITED

    def test_gemini_resource_exhausted(self):
        body = json.dumps({"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}})
        assert classify(None, body) is ErrorClassification.RATE_LIMITED

    def test_gemini_api_key_invalid_reason(self):
        body = json.dumps(
            {
                "error": {
                    "code": 400,
                    "status": "INVALID_ARGUMENT",
                    "details": [{"reason": "API_KEY_INVALID"}],
                }
            }
        )
        assert classify(400, body) is ErrorClassification.INVALID_CREDENTIAL

    def test_gemini_array_wrapped_error(self):
        body = json.dumps([{"error": {"code": 401, "status": "UNAUTHENTICATED"}}])
        assert classify(None, body) is ErrorClassification.INVALID_CREDENTIAL

    def test_credential_wins_over_rate_limit_status(self):
        """A body naming both is a credential problem."""
        body = json.dumps({"error": {"code": "invalid_api_key"}})
        assert classify(429, body) is ErrorClassification.INVALID_CREDENTIAL


class TestClassifyStatusAndText:
    """HTTP status and plain-text fallbacks."""

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_auth_statuses(self, status_code):
        assert classify(status_code, "") is ErrorClassification.INVALID_CREDENTIAL

    def test_too_many_requests_status(self):
        assert classify(429, "slow down") is ErrorClassification.RATE_LIMITED

    @pytest.mark.parametrize(
        "text",
        ["API key not valid. Please pass a valid API key.", "Incorrect API key provided"],
    )
    def test_credential_phrases(self, text):
        assert classify(400, text) is ErrorClassification.INVALID_CREDENTIAL

    @pytest.mark.parametrize(
        "text", ["You exceeded your current quota", "Rate limit reached", "Too Many Requests"]
    )
    def test_rate_limit_phrases(self, text):
        assert classify(500, text) is ErrorClassification.RATE_LIMITED

    def test_unknown_failure_is_transient(self):
        assert classify(500, "Internal server error") is ErrorClassification.TRANSIENT

    def test_no_status_no_body_is_transient(self):
        assert classify(None, "") is ErrorClassification.TRANSIENT

    def test_three_classifications(self):
        assert {c.value for c in ErrorClassification} == {
            "invalid_credential",
            "rate_limited",
            "transient",
        }


class TestClassifyException:
    """Tests for classifying SDK exceptions."""

    def test_openai_authentication_error(self):
        error = _openai_error(
            openai.AuthenticationError,
            401,
            {"message": "Invalid API Key", "code": "invalid_api_key"},
        )
        assert classify_exception(error) is ErrorClassification.INVALID_CREDENTIAL

    def test_openai_rate_limit_error(self):
        error = _openai_error(
            openai.RateLimitError,
            429,
            {"message": "Rate limit reached", "code": "rate_limit_exceeded", "type": "tokens"},
        )
        assert classify_exception(error) is ErrorClassification.RATE_LIMITED

    def test_openai_server_error(self):
        error = _openai_error(
            openai.InternalServerError, 503, {"message": "Service unavailable"}
        )
        assert classify_exception(error) is ErrorClassification.TRANSIENT

    def test_connection_error_is_transient(self):
        error = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.groq.com/openai/v1")
        )
        assert classify_exception(error) is ErrorClassification.TRANSIENT

    def test_error_with_details_attribute(self):
        """google-genai errors expose the decoded body as ``details``."""

        class FakeGenaiError(Exception):
            def __init__(self):
                super().__init__("429 RESOURCE_EXHAUSTED")
                self.code = 429
                self.details = {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}}

        assert classify_exception(FakeGenaiError()) is ErrorClassification.RATE_LIMITED

    def test_plain_exception_message(self):
        error = RuntimeError("API key expired. Please renew the API key.")
        assert classify_exception(error) is ErrorClassification.INVALID_CREDENTIAL
