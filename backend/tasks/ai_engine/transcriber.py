# tasks/ai_engine/transcriber.py
"""
Speech-to-text for voice task entry, backed by OpenAI Whisper.

Unlike the scorer, failures here are raised as ``TranscriptionError`` so the
view can return the matching HTTP status to the client.
"""

from __future__ import annotations

import logging
from typing import IO, Optional, Tuple, Union

from django.conf import settings
from openai import (
    APIConnectionError,
    APIStatusError,
    AuthenticationError,
    BadRequestError,
    OpenAI,
    PermissionDeniedError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

KEY_SOURCE_HEADER = "header"
KEY_SOURCE_SETTINGS = "settings"
KEY_SOURCE_ENV = "env_openai"
KEY_SOURCE_NONE = "none"


class TranscriptionError(Exception):
    """Transcription failed; ``status_code`` is the HTTP status to report."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def resolve_openai_key(
    header_key: Optional[str] = None, settings_key: Optional[str] = None
) -> Tuple[Optional[str], str]:
    """Request header beats the user's saved key, which beats OPENAI_API_KEY."""
    if header_key:
        return header_key, KEY_SOURCE_HEADER
    if settings_key:
        return settings_key, KEY_SOURCE_SETTINGS
    env_key = getattr(settings, "OPENAI_API_KEY", None)
    if env_key:
        return env_key, KEY_SOURCE_ENV
    return None, KEY_SOURCE_NONE


class AudioTranscriber:
    MODEL: str = "whisper-1"

    def __init__(self, api_key: Optional[str], timeout: Optional[float] = None):
        if not api_key:
            raise TranscriptionError(
                500,
                "OpenAI API key not configured. Set the OPENAI_API_KEY environment "
                "variable or provide it in the app settings.",
            )
        self.client = OpenAI(api_key=api_key, timeout=timeout or getattr(settings, "AI_REQUEST_TIMEOUT", 30.0))

    def transcribe(self, audio: Union[IO[bytes], Tuple[str, bytes]]) -> str:
        """
        Args:
            audio: A named file object or a ``(filename, bytes)`` tuple.

        Returns:
            The transcribed text.

        Raises:
            TranscriptionError: On any provider or transport failure.
        """
        try:
            result = self.client.audio.transcriptions.create(model=self.MODEL, file=audio)
        except (AuthenticationError, PermissionDeniedError) as e:
            logger.error(f"Whisper authentication failed: {e}")
            raise TranscriptionError(
                401,
                "OpenAI API key is invalid or has insufficient permissions. "
                "Please verify the key used by the server or provided in settings.",
            ) from e
        except RateLimitError as e:
            logger.warning(f"Whisper rate limit hit: {e}")
            raise TranscriptionError(
                429,
                "OpenAI API rate limit exceeded or quota is full. "
                "Please check your OpenAI account status and try again later.",
            ) from e
        except BadRequestError as e:
            logger.error(f"Whisper bad request: {e}")
            detail = getattr(e, "message", None) or (
                "Invalid audio data or request format. Ensure the audio is not empty "
                "and is in a supported format."
            )
            raise TranscriptionError(400, f"OpenAI API Bad Request: {detail}") from e
        except APIStatusError as e:
            logger.error(f"Whisper API status error: {e.status_code} - {e}")
            raise TranscriptionError(502, f"OpenAI API error ({e.status_code}): {e.message}") from e
        except APIConnectionError as e:
            logger.error(f"Whisper connection error: {e}")
            raise TranscriptionError(502, "Transcription service error: could not reach OpenAI.") from e

        text = getattr(result, "text", "") or ""
        logger.info(f"Transcribed audio ({len(text)} chars)")
        return text
