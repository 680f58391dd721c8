"""
Configuration Module
Loads runtime settings from environment variables (and .env).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Get project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent.resolve()

SPEECH_BACKENDS = ("elevenlabs", "edge")
PUBLISH_BACKENDS = ("mock", "youtube")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name, "").strip().lower()
    if not value:
        return default
    return value in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Runtime configuration for the wizard and its adapters."""
    reddit_client_id: str = ""
    reddit_client_secret: str = ""
    reddit_redirect_uri: str = "http://localhost:8080"
    reddit_user_agent: str = "python:reddit-vocal-scribe:1.0.0"
    elevenlabs_api_key: str = ""
    elevenlabs_model: str = "eleven_multilingual_v2"
    speech_backend: str = "elevenlabs"
    publish_backend: str = "mock"
    youtube_client_id: str = ""
    youtube_client_secret: str = ""
    youtube_refresh_token: str = ""
    youtube_api_key: str = ""
    youtube_client_secrets_file: str = str(PROJECT_ROOT / "config" / "client_secrets.json")
    output_dir: str = str(PROJECT_ROOT / "output")
    session_file: Optional[str] = str(PROJECT_ROOT / "config" / "session.json")
    invalidate_stale_artifacts: bool = False
    request_timeout: float = 10.0

    def __post_init__(self):
        if self.speech_backend not in SPEECH_BACKENDS:
            raise ValueError(
                f"Unknown speech backend: {self.speech_backend!r} "
                f"(expected one of {', '.join(SPEECH_BACKENDS)})"
            )
        if self.publish_backend not in PUBLISH_BACKENDS:
            raise ValueError(
                f"Unknown publish backend: {self.publish_backend!r} "
                f"(expected one of {', '.join(PUBLISH_BACKENDS)})"
            )

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """
        Builds settings from the environment.

        Every field falls back to its default when the variable is unset
        or blank.
        """
        if dotenv:
            load_dotenv()

        defaults = cls()

        def get(name: str, default: str) -> str:
            return os.getenv(name, "").strip() or default

        return cls(
            reddit_client_id=get("REDDIT_CLIENT_ID", defaults.reddit_client_id),
            reddit_client_secret=get("REDDIT_CLIENT_SECRET", defaults.reddit_client_secret),
            reddit_redirect_uri=get("REDDIT_REDIRECT_URI", defaults.reddit_redirect_uri),
            reddit_user_agent=get("REDDIT_USER_AGENT", defaults.reddit_user_agent),
            elevenlabs_api_key=get("ELEVENLABS_API_KEY", defaults.elevenlabs_api_key),
            elevenlabs_model=get("ELEVENLABS_MODEL", defaults.elevenlabs_model),
            speech_backend=get("SPEECH_BACKEND", defaults.speech_backend).lower(),
            publish_backend=get("PUBLISH_BACKEND", defaults.publish_backend).lower(),
            youtube_client_id=get("YOUTUBE_CLIENT_ID", defaults.youtube_client_id),
            youtube_client_secret=get("YOUTUBE_CLIENT_SECRET", defaults.youtube_client_secret),
            youtube_refresh_token=get("YOUTUBE_REFRESH_TOKEN", defaults.youtube_refresh_token),
            youtube_api_key=get("YOUTUBE_API_KEY", defaults.youtube_api_key),
            youtube_client_secrets_file=get(
                "YOUTUBE_CLIENT_SECRETS_FILE", defaults.youtube_client_secrets_file
            ),
            output_dir=get("OUTPUT_DIR", defaults.output_dir),
            session_file=get("SESSION_FILE", defaults.session_file or "") or None,
            invalidate_stale_artifacts=_env_flag("INVALIDATE_STALE_ARTIFACTS"),
            request_timeout=float(get("REQUEST_TIMEOUT", str(defaults.request_timeout))),
        )
