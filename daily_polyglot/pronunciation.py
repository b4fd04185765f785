"""
Pronunciation audio generated with OpenAI text-to-speech
"""

import logging

from openai import AsyncOpenAI

from .config import get_settings
from .utils import log_execution_time

logger = logging.getLogger(__name__)

VOICE_MAP = {
    "de": "onyx",
    "en": "alloy",
    "es": "nova",
}


class PronunciationService:
    """Synthesizes spoken audio for words; never raises to the caller"""

    def __init__(self, api_key: str | None = None):
        settings = get_settings()
        self.client = AsyncOpenAI(
            api_key=api_key or settings.openai_api_key, timeout=settings.api_timeout
        )
        self.model = settings.tts_model
        self.enabled = settings.tts_enabled

    async def speak(self, text: str, language: str = "de") -> bytes | None:
        """
        Synthesize pronunciation audio

        Args:
            text: Word or phrase to pronounce
            language: Language code used to pick a voice

        Returns:
            OGG/Opus audio bytes, or None if disabled or synthesis failed
        """
        if not self.enabled or not text or not text.strip():
            return None

        try:
            return await self._synthesize(text.strip(), language)
        except Exception as e:
            logger.warning(f"TTS failed for '{text}': {e}")
            return None

    @log_execution_time
    async def _synthesize(self, text: str, language: str) -> bytes:
        response = await self.client.audio.speech.create(
            model=self.model,
            voice=VOICE_MAP.get(language, "alloy"),
            input=text,
            instructions="Say the word clearly in its native language.",
            response_format="opus",
        )
        return response.content
