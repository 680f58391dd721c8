"""
YouTube Uploader Module
Publishes the finished video through the YouTube Data API v3, or a mock for local runs.
"""

import io
import os
import random
import string
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from .errors import MalformedResponseError, NotAuthenticatedError, ServiceError


# YouTube API scopes
SCOPES = ['https://www.googleapis.com/auth/youtube.upload']

PRIVACY_STATUSES = ("private", "public", "unlisted")


@dataclass
class YouTubeCredentials:
    """Credentials for the publishing backend."""
    client_id: str
    api_key: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    client_secrets_file: Optional[str] = None


@dataclass
class VideoMetadata:
    """Snippet and status for an upload."""
    title: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    category: str = "22"  # People & Blogs
    privacy_status: str = "private"

    def __post_init__(self):
        if self.privacy_status not in PRIVACY_STATUSES:
            raise ValueError(
                f"privacy_status must be one of {', '.join(PRIVACY_STATUSES)}"
            )


def get_video_url(video_id: str) -> str:
    return f"https://youtube.com/watch?v={video_id}"


class VideoPublisher(ABC):
    """Somewhere a finished video can be published."""

    @abstractmethod
    def authenticate(self, credentials: YouTubeCredentials) -> str:
        """Returns an access token."""

    @abstractmethod
    def publish(
        self,
        data: bytes,
        metadata: VideoMetadata,
        token: str,
        mime_type: str = "video/mp4"
    ) -> str:
        """Uploads data and returns the published item's ID."""

    def get_public_url(self, video_id: str) -> str:
        return get_video_url(video_id)


class YouTubePublisher(VideoPublisher):
    """Uploads videos to YouTube using the Data API v3."""

    TOKEN_URI = 'https://oauth2.googleapis.com/token'

    def authenticate(self, credentials: YouTubeCredentials) -> str:
        """
        Obtains an access token.

        Uses the refresh token when one is configured (CI-friendly),
        otherwise runs the installed-app consent flow in a local browser.
        """
        if not credentials.client_id:
            raise NotAuthenticatedError("YouTube client ID is missing")

        try:
            if credentials.refresh_token:
                creds = Credentials(
                    token=None,
                    refresh_token=credentials.refresh_token,
                    token_uri=self.TOKEN_URI,
                    client_id=credentials.client_id,
                    client_secret=credentials.client_secret,
                    scopes=SCOPES
                )
                creds.refresh(Request())
            else:
                flow = self._build_flow(credentials)
                creds = flow.run_local_server(port=0)
        except (GoogleAuthError, OSError, ValueError) as e:
            raise ServiceError(f"YouTube authentication failed: {e}") from e

        if not creds.token:
            raise MalformedResponseError("YouTube returned no access token")
        return creds.token

    def _build_flow(self, credentials: YouTubeCredentials) -> InstalledAppFlow:
        if credentials.client_secrets_file and os.path.exists(credentials.client_secrets_file):
            return InstalledAppFlow.from_client_secrets_file(
                credentials.client_secrets_file, SCOPES
            )
        if not credentials.client_secret:
            raise NotAuthenticatedError(
                "YouTube client secret (or a client secrets file) is required"
            )
        client_config = {
            "installed": {
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": self.TOKEN_URI,
                "redirect_uris": ["http://localhost"],
            }
        }
        return InstalledAppFlow.from_client_config(client_config, SCOPES)

    def publish(
        self,
        data: bytes,
        metadata: VideoMetadata,
        token: str,
        mime_type: str = "video/mp4"
    ) -> str:
        if not token:
            raise NotAuthenticatedError("Not authenticated. Call authenticate() first.")

        youtube = build(
            'youtube', 'v3',
            credentials=Credentials(token=token),
            cache_discovery=False
        )

        # Truncate title if too long
        title = metadata.title
        if len(title) > 100:
            title = title[:97] + "..."

        body = {
            'snippet': {
                'title': title,
                'description': metadata.description,
                'tags': metadata.tags,
                'categoryId': metadata.category
            },
            'status': {
                'privacyStatus': metadata.privacy_status,
                'selfDeclaredMadeForKids': False,
            }
        }

        # Single-request upload
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)

        try:
            response = youtube.videos().insert(
                part='snippet,status',
                body=body,
                media_body=media
            ).execute()
        except HttpError as e:
            raise ServiceError(f"YouTube upload failed: {e}") from e

        video_id = response.get('id') if isinstance(response, dict) else None
        if not isinstance(video_id, str):
            raise MalformedResponseError("YouTube upload response has no video ID")
        return video_id


class MockPublisher(VideoPublisher):
    """Stand-in publisher: pretends to authenticate and upload."""

    VIDEO_ID = "dQw4w9WgXcQ"

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.uploads = []

    def authenticate(self, credentials: YouTubeCredentials) -> str:
        if not credentials.client_id or not credentials.api_key:
            raise NotAuthenticatedError("YouTube client ID and API key are required")
        time.sleep(self.delay)
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=11))
        return f"mock_youtube_token_{suffix}"

    def publish(
        self,
        data: bytes,
        metadata: VideoMetadata,
        token: str,
        mime_type: str = "video/mp4"
    ) -> str:
        if not token:
            raise NotAuthenticatedError("Not authenticated. Call authenticate() first.")
        time.sleep(self.delay)
        self.uploads.append((len(data), metadata, mime_type))
        return self.VIDEO_ID


def build_publisher(settings) -> VideoPublisher:
    """Picks the publisher named in settings."""
    if settings.publish_backend == "youtube":
        return YouTubePublisher()
    return MockPublisher()


def credentials_from_settings(settings) -> YouTubeCredentials:
    return YouTubeCredentials(
        client_id=settings.youtube_client_id,
        api_key=settings.youtube_api_key,
        client_secret=settings.youtube_client_secret,
        refresh_token=settings.youtube_refresh_token,
        client_secrets_file=settings.youtube_client_secrets_file or None,
    )
