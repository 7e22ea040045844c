"""Base class for LLM providers."""

from abc import ABC, abstractmethod
from typing import Optional

from ..config import ProviderConfig
from ..error_classifier import ErrorClassification, classify_exception

DEFAULT_TEMPERATURE = 0.7
TRANSCRIPTION_INSTRUCTION = (
    "Transcribe this audio to text. Return only the transcribed text "
    "without any additional commentary."
)


class ProviderError(Exception):
    """Exception raised by LLM providers with classification.

    Attributes:
        provider: Identifier of the provider that failed
        classification: How the failure affects failover
        message: Human-readable description
        original_exception: The SDK exception, if any
    """

    def __init__(
        self,
        provider: str,
        classification: ErrorClassification,
        message: str,
        original_exception: Optional[Exception] = None,
    ):
        self.provider = provider
        self.classification = classification
        self.message = message
        self.original_exception = original_exception
        super().__init__(f"{provider}: {classification.value} - {message}")


class BaseLLMProvider(ABC):
    """Abstract base class for LLM provider integrations.

    Each provider makes exactly one attempt per call; retrying and failover
    are the gateway's concern.
    """

    def __init__(self, config: ProviderConfig):
        """
        Initialize the LLM provider.

        Args:
            config: Immutable connection settings for this provider
        """
        self.config = config
        self.model = config.model_name

    @abstractmethod
    def generate_completion(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str:
        """
        Generate a completion from the LLM.

        Args:
            prompt: The user prompt
            system_prompt: Instructions for the model
            max_tokens: Maximum number of tokens to generate
            temperature: Sampling temperature

        Returns:
            The raw text reply

        Raises:
            ProviderError: If the call fails or returns no text
        """
        pass

    @abstractmethod
    def transcribe(self, audio: bytes, mime_type: str) -> str:
        """
        Transcribe an audio clip to text.

        Args:
            audio: Raw audio bytes
            mime_type: MIME type of the audio (e.g. ``audio/webm``)

        Returns:
            The transcript (may be short; the gateway validates length)

        Raises:
            ProviderError: If the call fails
        """
        pass

    @property
    def supports_audio(self) -> bool:
        return self.config.supports_audio

    def get_provider_name(self) -> str:
        """Get the configured identifier of this provider."""
        return self.config.id

    def _handle_api_error(self, error: Exception) -> ProviderError:
        """Classify and wrap an API error.

        Args:
            error: The exception that was raised

        Returns:
            ProviderError carrying the classification
        """
        return ProviderError(
            provider=self.get_provider_name(),
            classification=classify_exception(error),
            message=str(error),
            original_exception=error,
        )

    def _empty_reply_error(self, what: str = "completion") -> ProviderError:
        return ProviderError(
            provider=self.get_provider_name(),
            classification=ErrorClassification.TRANSIENT,
            message=f"{self.get_provider_name()} returned an empty {what}",
        )
