"""Pytest configuration and shared fixtures for gateway tests."""

import random
from typing import Callable, List, Optional, Union

import pytest

from assessment_gateway.config import ProviderConfig
from assessment_gateway.error_classifier import ErrorClassification
from assessment_gateway.gateway import ProviderGateway
from assessment_gateway.metrics import GatewayMetrics
from assessment_gateway.models import Question
from assessment_gateway.pipeline import ContentPipeline
from assessment_gateway.providers.base import BaseLLMProvider, ProviderError

Reply = Union[str, ErrorClassification, Exception]


class FakeProvider(BaseLLMProvider):
    """Provider that replays scripted replies instead of calling an API.

    Each scripted reply is either the text to return, an ErrorClassification
    to fail with, or an exception to raise as-is. The last reply repeats once
    the script is used up.
    """

    def __init__(self, config: ProviderConfig, replies: Optional[List[Reply]] = None):
        super().__init__(config)
        self.replies: List[Reply] = list(replies or ["[]"])
        self.transcripts: List[Reply] = ["this is a spoken answer"]
        self.calls: List[dict] = []
        self.transcribe_calls = 0

    def _next(self, script: List[Reply], index: int) -> str:
        reply = script[min(index, len(script) - 1)]
        if isinstance(reply, ErrorClassification):
            raise ProviderError(self.get_provider_name(), reply, f"scripted {reply.value}")
        if isinstance(reply, Exception):
            raise reply
        return reply

    def generate_completion(self, prompt, system_prompt, max_tokens, temperature=0.7):
        self.calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        return self._next(self.replies, len(self.calls) - 1)

    def transcribe(self, audio, mime_type):
        self.transcribe_calls += 1
        return self._next(self.transcripts, self.transcribe_calls - 1)


def make_config(provider_id: str = "groq", api_key: str = "test-key", **kwargs) -> ProviderConfig:
    defaults = {
        "chat_endpoint": "https://api.example.test/v1",
        "model_name": f"{provider_id}-model",
        "key_env_var": f"{provider_id.upper()}_API_KEY",
    }
    defaults.update(kwargs)
    return ProviderConfig(id=provider_id, api_key=api_key, **defaults)


def make_question(
    id: int = 1,
    correct_index: int = 0,
    options: Optional[List[str]] = None,
    **kwargs,
) -> Question:
    options = options if options is not None else ["alpha", "beta", "gamma", "delta"]
    return Question(
        id=id,
        prompt_text=kwargs.pop("prompt_text", f"Question {id}?"),
        options=options,
        correct_index=correct_index,
        **kwargs,
    )


@pytest.fixture
def metrics() -> GatewayMetrics:
    """Fixture providing an isolated metrics tracker."""
    return GatewayMetrics()


@pytest.fixture
def rng() -> random.Random:
    """Fixture providing a seeded random source."""
    return random.Random(1234)


@pytest.fixture
def primary_config() -> ProviderConfig:
    return make_config("groq")


@pytest.fixture
def backup_config() -> ProviderConfig:
    return make_config("gemini", chat_endpoint=None)


@pytest.fixture
def primary(primary_config) -> FakeProvider:
    """Fixture providing a scripted primary provider."""
    return FakeProvider(primary_config)


@pytest.fixture
def backup(backup_config) -> FakeProvider:
    """Fixture providing a scripted backup provider."""
    return FakeProvider(backup_config)


@pytest.fixture
def gateway(primary, backup, metrics) -> ProviderGateway:
    return ProviderGateway(primary, backup, metrics=metrics)


@pytest.fixture
def pipeline_factory(metrics, rng) -> Callable[..., ContentPipeline]:
    """Fixture building a pipeline over scripted providers.

    Usage: ``pipeline_factory(["reply 1", ErrorClassification.TRANSIENT], backup=None)``
    """
    from assessment_gateway.balancer import AnswerBalancer

    def _factory(
        primary_replies: Optional[List[Reply]] = None,
        backup_replies: Optional[List[Reply]] = None,
        with_backup: bool = True,
    ) -> ContentPipeline:
        primary = FakeProvider(make_config("groq"), primary_replies)
        backup = (
            FakeProvider(make_config("gemini", chat_endpoint=None), backup_replies)
            if with_backup
            else None
        )
        gateway = ProviderGateway(primary, backup, metrics=metrics)
        return ContentPipeline(gateway, balancer=AnswerBalancer(rng=rng, metrics=metrics))

    return _factory
