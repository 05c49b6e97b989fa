"""Text-to-speech for AI turns. Audio is an opaque file reference."""

import asyncio
import logging
import os
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from openai import AsyncOpenAI

from argument_ace.errors import ServiceFailure
from config.config_loader import SpeechConfig

logger = logging.getLogger(__name__)


class SpeechSynthesizer(ABC):
    """Turns text into a playable audio reference."""

    @abstractmethod
    async def synthesize(self, text: str, role: str | None = None) -> str:
        """Return an audio reference for ``text``.

        Raises:
            ServiceFailure: When no audio could be produced.
        """
        ...


class OpenAISpeechSynthesizer(SpeechSynthesizer):
    """Writes mp3 files from the OpenAI speech endpoint into ``audio_dir``."""

    def __init__(self, config: SpeechConfig, audio_dir: Path) -> None:
        self._config = config
        self._audio_dir = audio_dir
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ServiceFailure("speech", f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key)

    def voice_for(self, role: str | None) -> str:
        if role and role in self._config.role_voices:
            return self._config.role_voices[role]
        return self._config.voice

    async def synthesize(self, text: str, role: str | None = None) -> str:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.audio.speech.create(
                    model=self._config.model,
                    voice=self.voice_for(role),
                    input=text,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ServiceFailure("speech", f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ServiceFailure("speech", f"API call failed: {exc}") from exc

        path = self._audio_dir / f"{uuid.uuid4().hex}.mp3"
        await asyncio.to_thread(self._write, path, response.content)
        logger.info("Speech: %d chars -> %s in %.2fs", len(text), path.name, time.monotonic() - start)
        return str(path)

    @staticmethod
    def _write(path: Path, audio: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(audio)
