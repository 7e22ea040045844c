"""Google Gemini provider integration."""

from typing import Optional

from google import genai
from google.genai import types

from ..config import ProviderConfig
from .base import DEFAULT_TEMPERATURE, TRANSCRIPTION_INSTRUCTION, BaseLLMProvider

TRANSCRIPTION_TEMPERATURE = 0.1
TRANSCRIPTION_MAX_TOKENS = 1000


class GoogleProvider(BaseLLMProvider):
    """Google Gemini integration for generation and audio transcription."""

    def __init__(self, config: ProviderConfig):
        """
        Initialize Google provider.

        Args:
            config: Provider settings; ``chat_endpoint`` overrides the API base URL
        """
        super().__init__(config)
        http_options: Optional[types.HttpOptions] = None
        if config.chat_endpoint:
            http_options = types.HttpOptions(base_url=config.chat_endpoint)
        self.client = genai.Client(api_key=config.api_key, http_options=http_options)

    def generate_completion(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str:
        """
        Generate a text completion using the Gemini API.

        Gemini receives the system prompt and the user prompt as one text
        part separated by a blank line.

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
            response = self.client.models.generate_content(
                model=self.model,
                contents=f"{system_prompt}\n\n{prompt}",
                config=types.GenerateContentConfig(
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                ),
            )
            text = response.text
        except Exception as e:
            raise self._handle_api_error(e)

        if not text or not text.strip():
            raise self._empty_reply_error()
        return text

    def transcribe(self, audio: bytes, mime_type: str) -> str:
        """
        Transcribe audio by sending it inline with a transcription instruction.

        Args:
            audio: Raw audio bytes
            mime_type: MIME type of the audio

        Returns:
            Trimmed transcript text
        """
        try:
            response = self.client.models.generate_content(
                model=self.config.audio_model_name or self.model,
                contents=[
                    types.Part.from_bytes(data=audio, mime_type=mime_type),
                    TRANSCRIPTION_INSTRUCTION,
                ],
                config=types.GenerateContentConfig(
                    temperature=TRANSCRIPTION_TEMPERATURE,
                    max_output_tokens=TRANSCRIPTION_MAX_TOKENS,
                ),
            )
            text = response.text
        except Exception as e:
            raise self._handle_api_error(e)

        return (text or "").strip()
