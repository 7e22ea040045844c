"""Error classification for LLM API failures.

Providers report errors in different shapes: the OpenAI-compatible API uses
``{"error": {"code": "rate_limit_exceeded", "type": "tokens"}}`` while Gemini
uses ``{"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}}``, and either may
return a plain-text body. Classification therefore runs an ordered rule table:
structured body fields first, then the HTTP status, then case-insensitive
substring matching on the raw text.

The classification decides failover policy in the gateway:

- ``INVALID_CREDENTIAL``: fatal, the operator must fix the key
- ``RATE_LIMITED``: recoverable by trying the next provider
- ``TRANSIENT``: any other failure, recoverable by trying the next provider
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class ErrorClassification(Enum):
    """Categories of provider failures that drive failover."""

    INVALID_CREDENTIAL = "invalid_credential"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class ErrorContext:
    """Normalized view of a failed HTTP exchange."""

    status_code: Optional[int]
    body_text: str
    error: Dict[str, Any]

    @property
    def lowered(self) -> str:
        return self.body_text.lower()


@dataclass(frozen=True)
class ClassificationRule:
    """One entry of the ordered rule table."""

    name: str
    classification: ErrorClassification
    matches: Callable[[ErrorContext], bool]


CREDENTIAL_CODES = {"invalid_api_key", "api_key_invalid", "unauthenticated"}
CREDENTIAL_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED"}
CREDENTIAL_REASONS = {"API_KEY_INVALID", "API_KEY_EXPIRED"}

RATE_LIMIT_CODES = {"rate_limit_exceeded", "insufficient_quota", "429"}
RATE_LIMIT_TYPES = {"tokens", "requests", "rate_limit_error"}
RATE_LIMIT_STATUSES = {"RESOURCE_EXHAUSTED"}

CREDENTIAL_PHRASES = [
    "invalid api key",
    "invalid_api_key",
    "incorrect api key",
    "api key not valid",
    "api_key_invalid",
    "api key expired",
]

RATE_LIMIT_PHRASES = [
    "rate limit",
    "rate_limit",
    "quota",
    "resource_exhausted",
    "too many requests",
]


def _error_object(body_text: str) -> Dict[str, Any]:
    """Extract the ``error`` object from a JSON body, if there is one."""
    try:
        data = json.loads(body_text)
    except (TypeError, ValueError):
        return {}
    if isinstance(data, list) and data:
        # Gemini sometimes wraps the error payload in a one-element array
        data = data[0]
    if not isinstance(data, dict):
        return {}
    error = data.get("error")
    return error if isinstance(error, dict) else {}


def _field(ctx: ErrorContext, name: str) -> str:
    value = ctx.error.get(name)
    return "" if value is None else str(value)


def _reasons(ctx: ErrorContext) -> List[str]:
    details = ctx.error.get("details")
    if not isinstance(details, list):
        return []
    return [
        str(detail.get("reason"))
        for detail in details
        if isinstance(detail, dict) and detail.get("reason")
    ]


RULES: List[ClassificationRule] = [
    # Structured body fields
    ClassificationRule(
        "credential_code",
        ErrorClassification.INVALID_CREDENTIAL,
        lambda ctx: _field(ctx, "code").lower() in CREDENTIAL_CODES,
    ),
    ClassificationRule(
        "credential_reason",
        ErrorClassification.INVALID_CREDENTIAL,
        lambda ctx: any(r in CREDENTIAL_REASONS for r in _reasons(ctx)),
    ),
    ClassificationRule(
        "credential_status",
        ErrorClassification.INVALID_CREDENTIAL,
        lambda ctx: _field(ctx, "status") in CREDENTIAL_STATUSES,
    ),
    ClassificationRule(
        "rate_limit_code",
        ErrorClassification.RATE_LIMITED,
        lambda ctx: _field(ctx, "code").lower() in RATE_LIMIT_CODES,
    ),
    ClassificationRule(
        "rate_limit_type",
        ErrorClassification.RATE_LIMITED,
        lambda ctx: _field(ctx, "type").lower() in RATE_LIMIT_TYPES,
    ),
    ClassificationRule(
        "rate_limit_status",
        ErrorClassification.RATE_LIMITED,
        lambda ctx: _field(ctx, "status") in RATE_LIMIT_STATUSES,
    ),
    # HTTP status
    ClassificationRule(
        "http_unauthorized",
        ErrorClassification.INVALID_CREDENTIAL,
        lambda ctx: ctx.status_code in (401, 403),
    ),
    ClassificationRule(
        "http_too_many_requests",
        ErrorClassification.RATE_LIMITED,
        lambda ctx: ctx.status_code == 429,
    ),
    # Raw text fallback
    ClassificationRule(
        "credential_phrase",
        ErrorClassification.INVALID_CREDENTIAL,
        lambda ctx: any(p in ctx.lowered for p in CREDENTIAL_PHRASES),
    ),
    ClassificationRule(
        "rate_limit_phrase",
        ErrorClassification.RATE_LIMITED,
        lambda ctx: any(p in ctx.lowered for p in RATE_LIMIT_PHRASES),
    ),
]


def classify(status_code: Optional[int], body_text: str) -> ErrorClassification:
    """Classify a failed provider response.

    Args:
        status_code: HTTP status code, or None when no response was received
        body_text: Raw response body (JSON or plain text)

    Returns:
        The first matching classification, ``TRANSIENT`` if no rule matches
    """
    body_text = body_text or ""
    ctx = ErrorContext(
        status_code=status_code,
        body_text=body_text,
        error=_error_object(body_text),
    )
    for rule in RULES:
        if rule.matches(ctx):
            return rule.classification
    return ErrorClassification.TRANSIENT


def _exception_body(error: Exception) -> str:
    # google-genai APIError keeps the decoded body in ``details``
    details = getattr(error, "details", None)
    if isinstance(details, (dict, list)):
        return json.dumps(details, default=str)

    response = getattr(error, "response", None)
    text = getattr(response, "text", None)
    if isinstance(text, str) and text:
        return text

    # openai keeps only the inner ``error`` object in ``body``
    body = getattr(error, "body", None)
    if isinstance(body, dict):
        if "error" not in body:
            body = {"error": body}
        return json.dumps(body, default=str)

    return str(error)


def _exception_status(error: Exception) -> Optional[int]:
    for attr in ("status_code", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def classify_exception(error: Exception) -> ErrorClassification:
    """Classify an exception raised by a provider SDK.

    Works with ``openai.APIStatusError`` (``status_code`` + ``response``),
    ``google.genai.errors.APIError`` (``code`` + ``details``) and any other
    exception via its string form.

    Args:
        error: The exception that was raised

    Returns:
        ErrorClassification for the failure
    """
    classification = classify(_exception_status(error), _exception_body(error))
    if classification is ErrorClassification.TRANSIENT:
        # The decoded body can miss hints that only the message carries
        message_classification = classify(None, str(error))
        if message_classification is not ErrorClassification.TRANSIENT:
            return message_classification
    return classification
