"""
Reddit Vocal Scribe - Main Orchestrator
Turns Reddit posts into a captioned voiceover and publishes it to YouTube, one wizard step at a time.
"""

import argparse
import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .caption_renderer import CaptionPreview
from .captions import CaptionSegment, segment_captions
from .config import PUBLISH_BACKENDS, SPEECH_BACKENDS, Settings
from .errors import ServiceError
from .reddit_client import RedditClient, RedditOAuth, RedditPost, narration_text
from .session import Session
from .title_generator import default_metadata, parse_tags
from .tts_generator import (
    SpeechRequest,
    SpeechSynthesizer,
    Voice,
    VoiceSettings,
    build_synthesizer,
    measure_duration,
)
from .wizard import LAST_STEP, WizardController
from .youtube_uploader import (
    PRIVACY_STATUSES,
    VideoMetadata,
    VideoPublisher,
    YouTubeCredentials,
    build_publisher,
    credentials_from_settings,
)


VOICE_TEST_TEXT = "This is a test of the selected voice. How does it sound?"


@dataclass
class Notification:
    """A user-facing message with a fixed title and description."""
    title: str
    description: str
    destructive: bool = False


@dataclass
class VideoArtifact:
    """The voiceover together with its caption track and rendered preview."""
    data: bytes
    segments: list[CaptionSegment]
    duration: float
    mime_type: str = "audio/mpeg"
    preview_path: Optional[str] = None


def print_notification(notification: Notification):
    marker = "❌" if notification.destructive else "✅"
    print(f"{marker} {notification.title}: {notification.description}")


class VocalScribeApp:
    """One async action per wizard step, each guarded at its call site."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[Session] = None,
        publisher: Optional[VideoPublisher] = None,
        synthesizer: Optional[SpeechSynthesizer] = None,
        reddit_client_factory: Optional[Callable[[str], RedditClient]] = None,
        notify: Callable[[Notification], None] = print_notification
    ):
        self.settings = settings or Settings()
        self.session = session or Session()
        self.wizard = WizardController(
            invalidate_stale=self.settings.invalidate_stale_artifacts
        )
        self.publisher = publisher or build_publisher(self.settings)
        self._synthesizer = synthesizer
        self._reddit_client_factory = reddit_client_factory or self._default_reddit_client
        self._notify = notify
        self.notifications: list[Notification] = []
        self.output_dir = Path(self.settings.output_dir)
        self.youtube_token: Optional[str] = None

    @property
    def state(self):
        return self.wizard.state

    def notify(self, title: str, description: str, destructive: bool = False):
        notification = Notification(title, description, destructive)
        self.notifications.append(notification)
        self._notify(notification)

    def _complete_step(self, step: int, value) -> bool:
        """Records a step's artifact and moves on if the user is still on that step."""
        if not self.wizard.record_artifact(step, value):
            return False
        if self.wizard.step == step and step < LAST_STEP:
            self.wizard.advance_to(step + 1)
        return True

    # Step 1: Reddit

    def _default_reddit_client(self, token: str) -> RedditClient:
        return RedditClient(
            token,
            user_agent=self.settings.reddit_user_agent,
            timeout=self.settings.request_timeout
        )

    def _oauth(self) -> RedditOAuth:
        return RedditOAuth(
            self.session.reddit_client_id,
            self.session.reddit_client_secret,
            self.session.reddit_redirect_uri,
            user_agent=self.settings.reddit_user_agent,
            timeout=self.settings.request_timeout
        )

    def restore_reddit_login(self) -> bool:
        """Picks up a token saved by an earlier run."""
        if not self.session.is_reddit_authenticated:
            return False
        return self._complete_step(1, self.session.reddit_access_token)

    def start_reddit_login(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None
    ) -> Optional[str]:
        """Stores the app credentials and returns the Reddit consent URL."""
        client_id = client_id or self.settings.reddit_client_id
        if not client_id:
            self.notify(
                "Missing Information",
                "Please enter your Reddit Client ID",
                destructive=True
            )
            return None

        state = RedditOAuth.new_state()
        self.session.remember_reddit_app(
            client_id,
            client_secret if client_secret is not None else self.settings.reddit_client_secret,
            redirect_uri or self.settings.reddit_redirect_uri,
            state
        )
        return self._oauth().authorization_url(state)

    async def complete_reddit_login(self, redirect_url: str) -> bool:
        """Exchanges the code from the redirect URL for an access token."""
        try:
            code = RedditOAuth.parse_redirect(redirect_url, self.session.reddit_auth_state)
            token = await asyncio.to_thread(self._oauth().exchange_code, code)
        except (ServiceError, ValueError) as e:
            print(f"❌ Reddit login failed: {e}")
            self.notify(
                "Authentication Failed",
                "Could not authenticate with Reddit. Please try again.",
                destructive=True
            )
            return False

        self.session.login_reddit(token)
        self._complete_step(1, token)
        self.notify(
            "Authentication Successful",
            "You've been successfully authenticated with Reddit"
        )
        return True

    def logout(self):
        self.session.logout()
        self.wizard.reset()
        self.youtube_token = None
        self.notify("Logged Out", "You've been logged out of Reddit")

    # Step 2: posts

    async def load_subreddits(self) -> list[str]:
        try:
            client = self._reddit_client_factory(self.state.auth_token)
            return await asyncio.to_thread(client.list_subscribed_subreddits)
        except ServiceError as e:
            print(f"❌ Error fetching subreddits: {e}")
            self.notify(
                "Failed to Load Subreddits",
                "Could not load your subreddits. Please try again.",
                destructive=True
            )
            return []

    async def load_posts(self, subreddit: str, limit: int = 25) -> list[RedditPost]:
        try:
            client = self._reddit_client_factory(self.state.auth_token)
            return await asyncio.to_thread(client.list_posts, subreddit, limit=limit)
        except ServiceError as e:
            print(f"❌ Error fetching posts from r/{subreddit}: {e}")
            self.notify(
                "Failed to Load Posts",
                f"Could not load posts from r/{subreddit}. Please try again.",
                destructive=True
            )
            return []

    def select_posts(self, posts: list[RedditPost]) -> bool:
        # Selection is by post ID
        seen = set()
        unique = []
        for post in posts:
            if post.id not in seen:
                seen.add(post.id)
                unique.append(post)

        if not unique:
            self.notify(
                "No Posts Selected",
                "Please select at least one post to continue.",
                destructive=True
            )
            return False
        return self._complete_step(2, unique)

    # Step 3: voiceover

    @property
    def narration(self) -> str:
        return narration_text(self.state.selected_posts)

    def _synthesizer_for(self, api_key: Optional[str]) -> SpeechSynthesizer:
        if self._synthesizer is not None:
            return self._synthesizer
        return build_synthesizer(self.settings, api_key or self.session.elevenlabs_api_key)

    async def load_voices(self, api_key: Optional[str] = None) -> list[Voice]:
        if api_key:
            self.session.set_elevenlabs_key(api_key)
        try:
            synthesizer = self._synthesizer_for(api_key)
            return await synthesizer.list_voices()
        except ServiceError as e:
            print(f"❌ Error fetching voices: {e}")
            self.notify(
                "Voice Fetch Failed",
                "Could not load voices from ElevenLabs. Please check your API key.",
                destructive=True
            )
            return []

    async def test_voice(
        self,
        voice_id: str,
        voice_settings: Optional[VoiceSettings] = None,
        api_key: Optional[str] = None
    ) -> Optional[str]:
        """
        Speaks a short sample with the chosen voice and saves it.

        The sample is only for listening; it is not the step's voiceover
        and does not unlock the next step.
        """
        if not voice_id:
            self.notify(
                "Missing Information",
                "Please provide API key and select a voice to test.",
                destructive=True
            )
            return None

        request = SpeechRequest(
            text=VOICE_TEST_TEXT,
            voice_id=voice_id,
            settings=voice_settings or VoiceSettings(),
            model=self.settings.elevenlabs_model
        )

        print("🔊 Testing voice...")
        try:
            audio = await self._synthesizer_for(api_key).synthesize(request)
            sample_path = self.output_dir / "audio" / f"voice_test_{voice_id}.mp3"
            sample_path.parent.mkdir(parents=True, exist_ok=True)
            sample_path.write_bytes(audio)
        except (ServiceError, OSError) as e:
            print(f"❌ Error testing voice: {e}")
            self.notify(
                "Voice Test Failed",
                "Could not test the selected voice. Please check your API key and try again.",
                destructive=True
            )
            return None

        self.notify("Voice Test Ready", f"Listen to the sample at {sample_path}")
        return str(sample_path)

    async def generate_voiceover(
        self,
        voice_id: str,
        voice_settings: Optional[VoiceSettings] = None,
        api_key: Optional[str] = None
    ) -> Optional[bytes]:
        text = self.narration
        if not voice_id or not text:
            self.notify(
                "Missing Information",
                "Please provide API key, select a voice, and ensure text content is available.",
                destructive=True
            )
            return None

        request = SpeechRequest(
            text=text,
            voice_id=voice_id,
            settings=voice_settings or VoiceSettings(),
            model=self.settings.elevenlabs_model
        )

        print("🎙️ Generating speech...")
        try:
            audio = await self._synthesizer_for(api_key).synthesize(request)
        except ServiceError as e:
            print(f"❌ Error generating speech: {e}")
            self.notify(
                "Voiceover Generation Failed",
                "Could not generate the voiceover. Please check your API key and try again.",
                destructive=True
            )
            return None

        self._complete_step(3, audio)
        self.notify("Voiceover Generated", "Your voiceover has been successfully generated!")
        return audio

    # Step 4: captioned preview

    def _render_preview(self, audio: bytes, fps: int):
        """Saves the voiceover and its caption preview; returns (duration, segments, preview path)."""
        text = self.narration
        duration = measure_duration(audio, text)
        segments = segment_captions(text, duration)

        name = "_".join(post.id for post in self.state.selected_posts) or "voiceover"
        audio_path = self.output_dir / "audio" / f"{name}.mp3"
        audio_path.parent.mkdir(parents=True, exist_ok=True)
        audio_path.write_bytes(audio)

        preview = CaptionPreview(segments, duration)
        preview_path = preview.export_gif(
            str(self.output_dir / "previews" / f"{name}.gif"),
            fps=fps
        )
        return duration, segments, preview_path

    async def create_video(self, fps: int = 10) -> Optional[VideoArtifact]:
        audio = self.state.audio
        if not audio:
            self.notify(
                "Missing Information",
                "Please generate voiceover first",
                destructive=True
            )
            return None

        print("🎬 Building caption preview...")
        try:
            duration, segments, preview_path = await asyncio.to_thread(
                self._render_preview, audio, fps
            )
        except (OSError, ValueError) as e:
            print(f"❌ Failed to create video: {e}")
            self.notify(
                "Video Creation Failed",
                "Could not create the video. Please try again.",
                destructive=True
            )
            return None

        artifact = VideoArtifact(
            data=audio,
            segments=segments,
            duration=duration,
            preview_path=preview_path
        )
        self._complete_step(4, artifact)
        self.notify("Video Created", "Your video has been generated successfully!")
        return artifact

    # Step 5: publish

    def default_metadata(self, privacy_status: str = "private") -> VideoMetadata:
        return default_metadata(self.state.selected_posts, privacy_status=privacy_status)

    async def authenticate_youtube(
        self,
        credentials: Optional[YouTubeCredentials] = None
    ) -> bool:
        credentials = credentials or credentials_from_settings(self.settings)
        if not credentials.client_id:
            self.notify(
                "Missing Information",
                "Please provide YouTube Client ID and API Key",
                destructive=True
            )
            return False

        try:
            self.youtube_token = await asyncio.to_thread(self.publisher.authenticate, credentials)
        except ServiceError as e:
            print(f"❌ Failed to authenticate with YouTube: {e}")
            self.notify(
                "Authentication Failed",
                "Could not authenticate with YouTube. Please check your credentials.",
                destructive=True
            )
            return False

        self.notify("Authentication Successful", "Successfully connected to YouTube")
        return True

    async def upload(self, metadata: Optional[VideoMetadata] = None) -> Optional[str]:
        """Publishes the video and returns its public URL."""
        video = self.state.video
        if video is None:
            self.notify("Missing Information", "Please create video first", destructive=True)
            return None
        if not self.youtube_token:
            self.notify(
                "Not Authenticated",
                "Please authenticate with YouTube before uploading",
                destructive=True
            )
            return None

        metadata = metadata or self.default_metadata()
        if not metadata.title:
            self.notify(
                "Missing Information",
                "Please provide a title for the video",
                destructive=True
            )
            return None

        print("📤 Uploading to YouTube...")
        try:
            video_id = await asyncio.to_thread(
                self.publisher.publish,
                video.data,
                metadata,
                self.youtube_token,
                mime_type=video.mime_type
            )
        except ServiceError as e:
            print(f"❌ Failed to upload video to YouTube: {e}")
            self.notify(
                "Upload Failed",
                "Could not upload the video to YouTube. Please try again.",
                destructive=True
            )
            return None

        self._complete_step(5, video_id)
        self.notify(
            "Upload Successful",
            "Your video has been successfully uploaded to YouTube"
        )
        return self.publisher.get_public_url(video_id)


class ConsoleWizard:
    """Interactive terminal front end for VocalScribeApp."""

    def __init__(self, app: VocalScribeApp, prompt: Callable[[str], str] = input):
        self.app = app
        self.prompt = prompt
        self.public_url: Optional[str] = None
        self.handlers = {
            1: self.connect_reddit,
            2: self.choose_posts,
            3: self.record_voiceover,
            4: self.build_video,
            5: self.publish,
        }

    def _ask(self, question: str, default: str = "") -> str:
        suffix = f" [{default}]" if default else ""
        answer = self.prompt(f"{question}{suffix}: ").strip()
        return answer or default

    def _choose(self, items: list, label: Callable) -> Optional[int]:
        for i, item in enumerate(items, 1):
            print(f"  {i}. {label(item)}")
        answer = self._ask("Choose a number")
        if not answer.isdigit() or not 1 <= int(answer) <= len(items):
            print("⚠️ Invalid choice")
            return None
        return int(answer) - 1

    async def connect_reddit(self):
        if self.app.state.auth_token:
            if self._ask("Already connected. Log out? (y/n)", "n").lower() == "y":
                self.app.logout()
            return

        client_id = self._ask("Reddit client ID", self.app.settings.reddit_client_id)
        client_secret = self._ask("Reddit client secret", self.app.settings.reddit_client_secret)
        redirect_uri = self._ask("Redirect URI", self.app.settings.reddit_redirect_uri)

        url = self.app.start_reddit_login(client_id, client_secret, redirect_uri)
        if not url:
            return
        print(f"\n🔗 Open this URL and approve access:\n{url}\n")
        redirect = self._ask("Paste the URL you were redirected to")
        await self.app.complete_reddit_login(redirect)

    async def choose_posts(self):
        subreddits = await self.app.load_subreddits()
        if not subreddits:
            return
        index = self._choose(subreddits, lambda name: f"r/{name}")
        if index is None:
            return

        subreddit = subreddits[index]
        print(f"📥 Fetching posts from r/{subreddit}...")
        posts = await self.app.load_posts(subreddit)
        if not posts:
            print("No posts with enough text found")
            return

        for i, post in enumerate(posts, 1):
            print(f"  {i}. [{post.score}] {post.title} (u/{post.author}, {post.num_comments} comments)")
        answer = self._ask("Posts to use (comma-separated numbers)")
        chosen = [
            posts[int(n) - 1]
            for n in answer.split(",")
            if n.strip().isdigit() and 1 <= int(n) <= len(posts)
        ]
        self.app.select_posts(chosen)

    async def record_voiceover(self):
        api_key = None
        if self.app.settings.speech_backend == "elevenlabs":
            api_key = self._ask(
                "ElevenLabs API key",
                self.app.session.elevenlabs_api_key or self.app.settings.elevenlabs_api_key
            )

        voices = await self.app.load_voices(api_key)
        if not voices:
            return
        index = self._choose(voices, lambda v: f"{v.name} ({v.category})")
        if index is None:
            return

        try:
            voice_settings = VoiceSettings(
                stability=float(self._ask("Stability", "0.5")),
                similarity_boost=float(self._ask("Similarity boost", "0.75"))
            )
        except ValueError as e:
            print(f"⚠️ {e}")
            return

        voice_id = voices[index].voice_id
        if self._ask("Test the voice first? (y/n)", "n").lower() == "y":
            sample = await self.app.test_voice(voice_id, voice_settings, api_key)
            if sample and self._ask("Use this voice? (y/n)", "y").lower() != "y":
                return

        await self.app.generate_voiceover(voice_id, voice_settings, api_key)

    async def build_video(self):
        artifact = await self.app.create_video()
        if artifact:
            print(f"🎞️ {len(artifact.segments)} captions over {artifact.duration:.1f}s")
            print(f"🖼️ Preview: {artifact.preview_path}")

    async def publish(self):
        if not self.app.youtube_token:
            if not await self.app.authenticate_youtube():
                return

        defaults = self.app.default_metadata()
        privacy = self._ask("Privacy (private/public/unlisted)", defaults.privacy_status)
        if privacy not in PRIVACY_STATUSES:
            print("⚠️ Invalid privacy setting")
            return

        metadata = VideoMetadata(
            title=self._ask("Title", defaults.title),
            description=self._ask("Description", defaults.description),
            tags=parse_tags(self._ask("Tags (comma-separated)", ", ".join(defaults.tags))),
            category=defaults.category,
            privacy_status=privacy
        )
        self.public_url = await self.app.upload(metadata)
        if self.public_url:
            print(f"✅ Uploaded: {self.public_url}")

    async def run(self) -> Optional[str]:
        wizard = self.app.wizard
        self.app.restore_reddit_login()

        print("\n" + "=" * 50)
        print("🤖 Reddit Vocal Scribe")
        print("=" * 50)

        while self.public_url is None:
            print(f"\nStep {wizard.step}/{LAST_STEP}: {wizard.title()}")
            print(wizard.description())
            command = self._ask("[r]un step, [n]ext, [p]revious, [q]uit", "r").lower()

            if command == "q":
                break
            if command == "n":
                if not wizard.next_step():
                    print("⚠️ Finish this step first")
            elif command == "p":
                wizard.previous_step()
            elif command == "r":
                await self.handlers[wizard.step]()

        return self.public_url


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert Reddit posts to YouTube videos with voiceovers and subtitles"
    )
    parser.add_argument(
        "--speech-backend",
        choices=SPEECH_BACKENDS,
        help="Text-to-speech provider"
    )
    parser.add_argument(
        "--publish-backend",
        choices=PUBLISH_BACKENDS,
        help="Where to publish ('mock' only pretends to upload)"
    )
    parser.add_argument(
        "--invalidate-stale",
        action="store_true",
        help="Discard later steps' results when an earlier step is redone"
    )
    parser.add_argument(
        "--no-session",
        action="store_true",
        help="Keep credentials in memory only"
    )
    parser.add_argument(
        "--output-dir",
        help="Where audio and previews are written"
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if args.speech_backend:
        settings.speech_backend = args.speech_backend
    if args.publish_backend:
        settings.publish_backend = args.publish_backend
    if args.invalidate_stale:
        settings.invalidate_stale_artifacts = True
    if args.no_session:
        settings.session_file = None
    if args.output_dir:
        settings.output_dir = args.output_dir
    return settings


async def main_async(argv: Optional[list[str]] = None) -> Optional[str]:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    app = VocalScribeApp(settings=settings, session=Session.load(settings.session_file))
    return await ConsoleWizard(app).run()


def main():
    """Main entry point."""
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        print("\n👋 Bye")


if __name__ == "__main__":
    main()
