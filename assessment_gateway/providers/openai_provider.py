"""OpenAI-compatible LLM provider integration (Groq by default)."""

import openai
from openai import OpenAI

from ..config import ProviderConfig
from .base import DEFAULT_TEMPERATURE, BaseLLMProvider

AUDIO_FILENAME = "speech.webm"


class OpenAIProvider(BaseLLMProvider):
    """Chat completion and Whisper transcription over an OpenAI-compatible API."""

    def __init__(self, config: ProviderConfig):
        """
        Initialize OpenAI-compatible provider.

        Args:
            config: Provider settings; ``chat_endpoint`` is the API base URL
        """
        super().__init__(config)
        # max_retries=0: one attempt per provider, failover happens upstream
        self.client = OpenAI(
            api_key=config.api_key,
            base_url=config.chat_endpoint,
            max_retries=0,
        )
        if config.audio_endpoint and config.audio_endpoint != config.chat_endpoint:
            self.audio_client = OpenAI(
                api_key=config.api_key,
                base_url=config.audio_endpoint,
                max_retries=0,
            )
        else:
            self.audio_client = self.client

    def generate_completion(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str:
        """
        Generate a text completion using the chat completions API.

        Args:
            prompt: The user prompt
            system_prompt: Instructions for the model
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature

        Returns:
            The generated text completion

        Raises:
            ProviderError: If the API call fails or the reply is empty
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.OpenAIError as e:
            raise self._handle_api_error(e)

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise self._empty_reply_error()
        return content

    def transcribe(self, audio: bytes, mime_type: str) -> str:
        """
        Transcribe audio with the Whisper-compatible transcription endpoint.

        Args:
            audio: Raw audio bytes
            mime_type: MIME type sent with the multipart upload

        Returns:
            Trimmed transcript text
        """
        try:
            transcription = self.audio_client.audio.transcriptions.create(
                file=(AUDIO_FILENAME, audio, mime_type),
                model=self.config.audio_model_name or self.model,
                response_format="json",
            )
        except openai.OpenAIError as e:
            raise self._handle_api_error(e)

        return (transcription.text or "").strip()
