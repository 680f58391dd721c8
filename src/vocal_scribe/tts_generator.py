"""
Text-to-Speech Module
Synthesizes the voiceover with ElevenLabs, or Edge-TTS when no API key is set up.
"""

import asyncio
import io
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import requests

from .captions import estimated_duration
from .errors import MalformedResponseError, NotAuthenticatedError, ServiceError


@dataclass(frozen=True)
class VoiceSettings:
    """Voice tuning passed through to the synthesis provider."""
    stability: float = 0.5
    similarity_boost: float = 0.75

    def __post_init__(self):
        for name in ("stability", "similarity_boost"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")


@dataclass(frozen=True)
class Voice:
    voice_id: str
    name: str
    category: str


@dataclass
class SpeechRequest:
    """Everything needed for one synthesis call."""
    text: str
    voice_id: str
    settings: VoiceSettings = field(default_factory=VoiceSettings)
    model: str = "eleven_multilingual_v2"


class SpeechSynthesizer(ABC):
    """A text-to-speech provider."""

    @abstractmethod
    async def list_voices(self) -> list[Voice]:
        """Returns the voices the provider offers."""

    @abstractmethod
    async def synthesize(self, request: SpeechRequest) -> bytes:
        """Returns the spoken audio (MP3) for request.text."""


class ElevenLabsSynthesizer(SpeechSynthesizer):
    """ElevenLabs REST API."""

    BASE_URL = "https://api.elevenlabs.io/v1"

    def __init__(self, api_key: str, timeout: float = 60):
        if not api_key:
            raise NotAuthenticatedError("ElevenLabs API key is missing")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"xi-api-key": api_key})

    async def list_voices(self) -> list[Voice]:
        return await asyncio.to_thread(self._fetch_voices)

    def _fetch_voices(self) -> list[Voice]:
        try:
            response = self.session.get(f"{self.BASE_URL}/voices", timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise ServiceError(f"Failed to fetch voices: {e}") from e
        except ValueError as e:
            raise MalformedResponseError("Voice list is not JSON") from e

        return parse_voices(data)

    async def synthesize(self, request: SpeechRequest) -> bytes:
        return await asyncio.to_thread(self._request_speech, request)

    def _request_speech(self, request: SpeechRequest) -> bytes:
        body = {
            "text": request.text,
            "model_id": request.model,
            "voice_settings": {
                "stability": request.settings.stability,
                "similarity_boost": request.settings.similarity_boost,
            },
        }

        try:
            response = self.session.post(
                f"{self.BASE_URL}/text-to-speech/{request.voice_id}",
                json=body,
                headers={"Accept": "audio/mpeg"},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ServiceError(f"Failed to generate speech: {e}") from e

        if not response.ok:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            raise ServiceError(f"Failed to generate speech: {response.status_code} {detail}")

        if not response.content:
            raise MalformedResponseError("Speech response has no audio")
        return response.content


def parse_voices(data: Any) -> list[Voice]:
    """Validates an ElevenLabs /voices payload."""
    if not isinstance(data, dict) or not isinstance(data.get("voices"), list):
        raise MalformedResponseError("Voice list has no 'voices' array")

    voices = []
    for entry in data["voices"]:
        if not isinstance(entry, dict):
            raise MalformedResponseError("Voice entry is not an object")
        values = [entry.get(key) for key in ("voice_id", "name", "category")]
        if not all(isinstance(v, str) for v in values):
            raise MalformedResponseError(f"Voice entry is incomplete: {entry!r}")
        voices.append(Voice(*values))
    return voices


class EdgeSynthesizer(SpeechSynthesizer):
    """Microsoft Edge online TTS. Needs no key; voice settings are not supported."""

    def __init__(self, rate: str = "+0%", pitch: str = "+0Hz", locale_prefix: str = "en-"):
        self.rate = rate
        self.pitch = pitch
        self.locale_prefix = locale_prefix

    async def list_voices(self) -> list[Voice]:
        import edge_tts

        try:
            raw = await edge_tts.list_voices()
        except Exception as e:
            raise ServiceError(f"Failed to fetch Edge voices: {e}") from e

        voices = []
        for entry in raw:
            short_name = entry.get("ShortName")
            if not isinstance(short_name, str):
                raise MalformedResponseError(f"Edge voice has no ShortName: {entry!r}")
            if not short_name.startswith(self.locale_prefix):
                continue
            voices.append(Voice(
                voice_id=short_name,
                name=entry.get("FriendlyName") or short_name,
                category=entry.get("Gender") or "edge"
            ))
        return voices

    async def synthesize(self, request: SpeechRequest) -> bytes:
        import edge_tts

        communicate = edge_tts.Communicate(
            request.text,
            request.voice_id,
            rate=self.rate,
            pitch=self.pitch
        )

        audio = bytearray()
        try:
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio.extend(chunk["data"])
        except Exception as e:
            raise ServiceError(f"Edge TTS failed: {e}") from e

        if not audio:
            raise MalformedResponseError("Edge TTS returned no audio")
        return bytes(audio)


def build_synthesizer(settings, api_key: str = "") -> SpeechSynthesizer:
    """Picks the synthesis backend named in settings."""
    if settings.speech_backend == "edge":
        return EdgeSynthesizer()
    return ElevenLabsSynthesizer(
        api_key or settings.elevenlabs_api_key,
        timeout=max(settings.request_timeout, 60)
    )


def measure_duration(audio: bytes, text: str = "") -> float:
    """
    Returns the length of MP3 audio in seconds.

    Falls back to a word-rate estimate of text when the audio cannot be
    decoded (e.g. ffmpeg is not installed).
    """
    from pydub import AudioSegment
    from pydub.exceptions import CouldntDecodeError

    try:
        segment = AudioSegment.from_file(io.BytesIO(audio), format="mp3")
        return len(segment) / 1000.0  # Convert ms to seconds
    except (CouldntDecodeError, OSError) as e:
        print(f"⚠️ Could not measure audio length ({e}), estimating from text")
        return estimated_duration(text)
