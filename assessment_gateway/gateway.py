"""Dual-provider invocation gateway with failover.

The gateway tries the primary provider, then the backup, strictly in order.
A success from the primary short-circuits the chain. A rejected credential
stops the chain immediately: silently switching providers would hide a
misconfiguration the operator has to fix.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from .config import (
    BACKUP_PROVIDER_ID,
    ProviderConfig,
    Settings,
    build_provider_configs,
)
from .error_classifier import ErrorClassification
from .metrics import GatewayMetrics, get_metrics
from .providers.base import BaseLLMProvider, ProviderError
from .providers.google_provider import GoogleProvider
from .providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1500
MIN_TRANSCRIPT_CHARS = 5
DEFAULT_AUDIO_MIME_TYPE = "audio/webm"


class GatewayFailureKind(str, Enum):
    """Terminal outcomes of a gateway call."""

    NOT_CONFIGURED = "not_configured"
    INVALID_CREDENTIAL = "invalid_credential"
    ALL_RATE_LIMITED = "all_rate_limited"
    ALL_FAILED = "all_failed"


@dataclass(frozen=True)
class InvocationRequest:
    """A single text-generation request."""

    prompt: str
    system_prompt: str
    max_tokens: int = DEFAULT_MAX_TOKENS


@dataclass(frozen=True)
class InvocationSuccess:
    text: str
    provider_id: str


@dataclass(frozen=True)
class InvocationFailure:
    provider_id: str
    classification: ErrorClassification
    message: str


InvocationOutcome = Union[InvocationSuccess, InvocationFailure]


class GatewayError(Exception):
    """Base class for terminal gateway failures."""

    kind: GatewayFailureKind = GatewayFailureKind.ALL_FAILED

    def __init__(self, message: str, failures: Optional[List[InvocationFailure]] = None):
        self.message = message
        self.failures: List[InvocationFailure] = list(failures or [])
        super().__init__(message)


class ProviderNotConfiguredError(GatewayError):
    """No provider has an API key."""

    kind = GatewayFailureKind.NOT_CONFIGURED


class InvalidCredentialError(GatewayError):
    """A provider rejected its API key."""

    kind = GatewayFailureKind.INVALID_CREDENTIAL

    def __init__(
        self,
        provider_id: str,
        key_env_var: str,
        failures: Optional[List[InvocationFailure]] = None,
    ):
        self.provider_id = provider_id
        self.key_env_var = key_env_var
        super().__init__(
            f"The {provider_id} API key is missing or invalid. Set a valid key in "
            f"{key_env_var} (without quotes) and restart the service.",
            failures,
        )


class AllProvidersRateLimitedError(GatewayError):
    """Every attempted provider reported a rate limit or exhausted quota."""

    kind = GatewayFailureKind.ALL_RATE_LIMITED


class AllProvidersFailedError(GatewayError):
    """Every attempted provider failed."""

    kind = GatewayFailureKind.ALL_FAILED


def build_provider(config: ProviderConfig) -> Optional[BaseLLMProvider]:
    """Create the provider client for a configuration, if it has a key.

    Args:
        config: Provider configuration

    Returns:
        Provider instance, or None when the provider is not configured
    """
    if not config.is_configured:
        return None
    if config.id == BACKUP_PROVIDER_ID:
        return GoogleProvider(config)
    return OpenAIProvider(config)


class ProviderGateway:
    """Invokes the primary provider and fails over to the backup.

    Providers are called sequentially, one attempt each, with no backoff.
    """

    def __init__(
        self,
        primary: Optional[BaseLLMProvider],
        backup: Optional[BaseLLMProvider],
        metrics: Optional[GatewayMetrics] = None,
    ):
        """Initialize the gateway.

        Args:
            primary: Primary provider, or None if not configured
            backup: Backup provider, or None if not configured
            metrics: Metrics tracker (uses the process-wide one if not provided)
        """
        self.primary = primary
        self.backup = backup
        self.metrics = metrics or get_metrics()

        configured = [p.get_provider_name() for p in self._providers()]
        if configured:
            logger.info(f"ProviderGateway initialized with providers: {configured}")
        else:
            logger.warning(
                "ProviderGateway initialized without providers; "
                "set GROQ_API_KEY and/or GEMINI_API_KEY"
            )

    @classmethod
    def from_settings(
        cls, settings: Settings, metrics: Optional[GatewayMetrics] = None
    ) -> "ProviderGateway":
        primary_config, backup_config = build_provider_configs(settings)
        return cls(
            primary=build_provider(primary_config),
            backup=build_provider(backup_config),
            metrics=metrics,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._providers())

    def _providers(self) -> List[BaseLLMProvider]:
        return [p for p in (self.primary, self.backup) if p is not None]

    def invoke(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Generate text with failover from primary to backup.

        Args:
            prompt: User prompt
            system_prompt: Instructions for the model
            max_tokens: Maximum tokens to generate

        Returns:
            The raw reply text of the first provider that succeeds

        Raises:
            ProviderNotConfiguredError: If no provider has a key
            InvalidCredentialError: If a provider rejects its key
            AllProvidersRateLimitedError: If every attempt was rate limited
            AllProvidersFailedError: If every attempt failed
        """
        request = InvocationRequest(prompt, system_prompt, max_tokens)
        return self._run_chain(
            "completion",
            self._providers(),
            lambda provider: provider.generate_completion(
                request.prompt,
                request.system_prompt,
                request.max_tokens,
                temperature=provider.config.temperature,
            ),
        )

    def transcribe(self, audio: bytes, mime_type: str = DEFAULT_AUDIO_MIME_TYPE) -> str:
        """Transcribe audio with the same failover policy as ``invoke``.

        A transcript shorter than ``MIN_TRANSCRIPT_CHARS`` counts as a
        transient failure so that the backup gets a chance.

        Args:
            audio: Raw audio bytes
            mime_type: MIME type of the audio

        Returns:
            The trimmed transcript
        """

        def _call(provider: BaseLLMProvider) -> str:
            transcript = provider.transcribe(audio, mime_type).strip()
            if len(transcript) < MIN_TRANSCRIPT_CHARS:
                raise ProviderError(
                    provider=provider.get_provider_name(),
                    classification=ErrorClassification.TRANSIENT,
                    message="transcription returned empty or too short result",
                )
            return transcript

        providers = [p for p in self._providers() if p.supports_audio]
        return self._run_chain("transcription", providers, _call)

    def _attempt(
        self,
        provider: BaseLLMProvider,
        call: Callable[[BaseLLMProvider], str],
    ) -> InvocationOutcome:
        name = provider.get_provider_name()
        self.metrics.record_api_call(name)
        try:
            text = call(provider)
        except ProviderError as e:
            self.metrics.record_failure(name, e.classification)
            return InvocationFailure(name, e.classification, e.message)
        self.metrics.record_success(name)
        return InvocationSuccess(text, name)

    def _run_chain(
        self,
        operation: str,
        providers: List[BaseLLMProvider],
        call: Callable[[BaseLLMProvider], str],
    ) -> str:
        if not providers:
            self.metrics.record_terminal_failure()
            raise ProviderNotConfiguredError(
                f"No AI provider is configured for {operation}. "
                "Set GROQ_API_KEY and/or GEMINI_API_KEY and restart the service."
            )

        failures: List[InvocationFailure] = []
        for position, provider in enumerate(providers):
            if position > 0:
                self.metrics.record_failover(
                    failures[-1].provider_id, provider.get_provider_name()
                )
                logger.warning(
                    f"{failures[-1].provider_id} {operation} failed "
                    f"({failures[-1].classification.value}), "
                    f"trying {provider.get_provider_name()}"
                )

            outcome = self._attempt(provider, call)
            if isinstance(outcome, InvocationSuccess):
                if failures:
                    logger.info(
                        f"Using {outcome.provider_id} {operation} after "
                        f"{len(failures)} failed attempt(s)"
                    )
                return outcome.text

            failures.append(outcome)
            if outcome.classification is ErrorClassification.INVALID_CREDENTIAL:
                logger.error(
                    f"{outcome.provider_id} rejected its API key; not failing over"
                )
                self.metrics.record_terminal_failure()
                raise InvalidCredentialError(
                    outcome.provider_id, provider.config.key_env_var, failures
                )

        self.metrics.record_terminal_failure()
        if all(f.classification is ErrorClassification.RATE_LIMITED for f in failures):
            logger.error(f"All AI providers are rate limited for {operation}")
            raise AllProvidersRateLimitedError(
                "All AI providers are currently rate limited or out of quota. "
                "Please wait a few minutes and try again.",
                failures,
            )

        details = "; ".join(f"{f.provider_id}: {f.message}" for f in failures)
        logger.error(f"All AI providers failed for {operation}: {details}")
        raise AllProvidersFailedError(
            f"All AI providers failed for {operation}. Please check your API keys. "
            f"{details}",
            failures,
        )
