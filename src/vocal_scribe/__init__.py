"""
Reddit Vocal Scribe
Turns Reddit posts into captioned voiceovers and publishes them to YouTube.
"""

from .captions import CaptionSegment, segment_captions, find_active
from .caption_renderer import CaptionRenderer, CaptionPreview, RenderConfig
from .config import Settings
from .errors import ServiceError, MalformedResponseError, NotAuthenticatedError
from .reddit_client import RedditClient, RedditOAuth, RedditPost
from .session import Session
from .tts_generator import (
    ElevenLabsSynthesizer,
    EdgeSynthesizer,
    SpeechRequest,
    SpeechSynthesizer,
    Voice,
    VoiceSettings,
)
from .wizard import WizardController, WizardState
from .youtube_uploader import (
    MockPublisher,
    VideoMetadata,
    VideoPublisher,
    YouTubeCredentials,
    YouTubePublisher,
)
from .main import VocalScribeApp, VideoArtifact, Notification

__all__ = [
    "CaptionSegment",
    "segment_captions",
    "find_active",
    "CaptionRenderer",
    "CaptionPreview",
    "RenderConfig",
    "Settings",
    "ServiceError",
    "MalformedResponseError",
    "NotAuthenticatedError",
    "RedditClient",
    "RedditOAuth",
    "RedditPost",
    "Session",
    "ElevenLabsSynthesizer",
    "EdgeSynthesizer",
    "SpeechRequest",
    "SpeechSynthesizer",
    "Voice",
    "VoiceSettings",
    "WizardController",
    "WizardState",
    "MockPublisher",
    "VideoMetadata",
    "VideoPublisher",
    "YouTubeCredentials",
    "YouTubePublisher",
    "VocalScribeApp",
    "VideoArtifact",
    "Notification",
]

__version__ = "1.0.0"
