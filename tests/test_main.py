"""Tests for the wizard orchestrator and its console front end."""

import asyncio
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from vocal_scribe.config import Settings
from vocal_scribe.errors import MalformedResponseError, ServiceError
from vocal_scribe.main import (
    VOICE_TEST_TEXT,
    ConsoleWizard,
    Notification,
    VocalScribeApp,
    build_parser,
    settings_from_args,
)
from vocal_scribe.reddit_client import RedditOAuth
from vocal_scribe.session import Session
from vocal_scribe.tts_generator import SpeechSynthesizer, Voice, VoiceSettings
from vocal_scribe.youtube_uploader import MockPublisher, VideoMetadata, YouTubeCredentials


class FakeRedditClient:
    def __init__(self, posts, fail=False):
        self.posts = posts
        self.fail = fail

    def list_subscribed_subreddits(self):
        if self.fail:
            raise ServiceError("boom")
        return ["tifu", "AmItheAsshole"]

    def list_posts(self, subreddit, limit=25):
        if self.fail:
            raise MalformedResponseError("bad listing")
        return [p for p in self.posts if p.subreddit == subreddit]


class FakeSynthesizer(SpeechSynthesizer):
    def __init__(self, fail=False):
        self.fail = fail
        self.requests = []

    async def list_voices(self):
        if self.fail:
            raise ServiceError("401")
        return [Voice("v1", "Rachel", "premade")]

    async def synthesize(self, request):
        if self.fail:
            raise ServiceError("401")
        self.requests.append(request)
        return b"ID3 fake mp3"


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def make_app(tmp_path, sample_posts):
    def factory(reddit_fail=False, synth_fail=False, **settings):
        settings.setdefault("output_dir", str(tmp_path / "output"))
        settings.setdefault("reddit_client_id", "cid")
        settings.setdefault("youtube_client_id", "ycid")
        settings.setdefault("youtube_api_key", "ykey")
        app = VocalScribeApp(
            settings=Settings(**settings),
            session=Session(),
            publisher=MockPublisher(),
            synthesizer=FakeSynthesizer(fail=synth_fail),
            reddit_client_factory=lambda token: FakeRedditClient(sample_posts, fail=reddit_fail),
            notify=lambda n: None,
        )
        return app
    return factory


def login(app):
    url = app.start_reddit_login(client_secret="secret")
    state = app.session.reddit_auth_state
    with patch.object(RedditOAuth, "exchange_code", return_value="reddit-token"):
        assert run(app.complete_reddit_login(f"http://localhost:8080/?state={state}&code=c"))
    return url


def walk_to_step(app, sample_posts, step):
    login(app)
    if step > 2:
        app.select_posts(sample_posts)
    if step > 3:
        run(app.generate_voiceover("v1"))
    if step > 4:
        with patch("vocal_scribe.main.measure_duration", return_value=3.0):
            run(app.create_video(fps=2))


def titles(app):
    return [n.title for n in app.notifications]


def test_full_wizard_run(make_app, sample_posts, tmp_path):
    app = make_app()

    url = login(app)
    assert "client_id=cid" in url
    assert app.state.auth_token == "reddit-token"
    assert app.session.reddit_access_token == "reddit-token"
    assert app.wizard.step == 2

    assert run(app.load_subreddits()) == ["tifu", "AmItheAsshole"]
    posts = run(app.load_posts("tifu"))
    assert [p.id for p in posts] == ["p1"]
    assert app.select_posts(sample_posts)
    assert app.wizard.step == 3

    audio = run(app.generate_voiceover("v1", VoiceSettings(stability=0.2)))
    assert audio == b"ID3 fake mp3"
    request = app._synthesizer.requests[0]
    assert request.settings.stability == 0.2
    assert request.text.startswith("TIFU by asking about the tuba")
    assert app.wizard.step == 4

    with patch("vocal_scribe.main.measure_duration", return_value=3.0):
        artifact = run(app.create_video(fps=2))
    assert artifact.duration == 3.0
    assert artifact.segments[0].start_time == 0.0
    assert Path(artifact.preview_path).exists()
    assert (tmp_path / "output" / "audio" / "p1_p2.mp3").read_bytes() == audio
    assert app.wizard.step == 5

    assert run(app.authenticate_youtube())
    assert run(app.upload()) == "https://youtube.com/watch?v=dQw4w9WgXcQ"
    assert app.state.published_video_id == "dQw4w9WgXcQ"
    assert app.publisher.uploads[0][2] == "audio/mpeg"
    assert "Upload Successful" in titles(app)


def test_login_requires_client_id(make_app):
    app = make_app(reddit_client_id="")
    assert app.start_reddit_login() is None
    assert app.notifications[-1].title == "Missing Information"
    assert app.notifications[-1].destructive


def test_login_failure_keeps_step_locked(make_app):
    app = make_app()
    app.start_reddit_login(client_secret="secret")

    assert not run(app.complete_reddit_login("http://localhost:8080/?state=wrong&code=c"))
    assert app.notifications[-1].title == "Authentication Failed"
    assert app.state.auth_token is None
    assert app.wizard.advance_to(2) is False


def test_restore_login_from_session(make_app):
    app = make_app()
    app.session.login_reddit("saved")
    assert app.restore_reddit_login()
    assert app.wizard.step == 2


def test_logout_resets(make_app, sample_posts):
    app = make_app()
    walk_to_step(app, sample_posts, 3)

    app.logout()

    assert app.wizard.step == 1
    assert app.state.auth_token is None
    assert not app.session.is_reddit_authenticated
    assert titles(app)[-1] == "Logged Out"


def test_reddit_failures_notify(make_app, sample_posts):
    app = make_app(reddit_fail=True)
    login(app)

    assert run(app.load_subreddits()) == []
    assert run(app.load_posts("tifu")) == []
    assert titles(app)[-2:] == ["Failed to Load Subreddits", "Failed to Load Posts"]
    assert app.notifications[-1].description == "Could not load posts from r/tifu. Please try again."


def test_select_posts_dedupes_and_requires_one(make_app, sample_posts):
    app = make_app()
    login(app)

    assert not app.select_posts([])
    assert titles(app)[-1] == "No Posts Selected"

    assert app.select_posts(sample_posts + sample_posts)
    assert [p.id for p in app.state.selected_posts] == ["p1", "p2"]


def test_voiceover_failure_leaves_audio_unset(make_app, sample_posts):
    app = make_app(synth_fail=True)
    walk_to_step(app, sample_posts, 3)

    assert run(app.load_voices()) == []
    assert run(app.generate_voiceover("v1")) is None
    assert titles(app)[-2:] == ["Voice Fetch Failed", "Voiceover Generation Failed"]
    assert app.state.audio is None
    assert app.wizard.advance_to(4) is False


def test_voiceover_needs_voice(make_app, sample_posts):
    app = make_app()
    walk_to_step(app, sample_posts, 3)
    assert run(app.generate_voiceover("")) is None
    assert titles(app)[-1] == "Missing Information"


def test_voiceover_without_api_key_fails_cleanly(tmp_path, sample_posts):
    app = VocalScribeApp(
        settings=Settings(output_dir=str(tmp_path)),
        session=Session(),
        publisher=MockPublisher(),
        reddit_client_factory=lambda token: FakeRedditClient(sample_posts),
        notify=lambda n: None,
    )
    app.wizard.record_artifact(1, "t")
    app.select_posts(sample_posts)

    assert run(app.generate_voiceover("v1")) is None
    assert app.notifications[-1].title == "Voiceover Generation Failed"


def test_load_voices_remembers_key(make_app):
    app = make_app()
    run(app.load_voices("xi-key"))
    assert app.session.elevenlabs_api_key == "xi-key"


def test_create_video_requires_audio(make_app, sample_posts):
    app = make_app()
    walk_to_step(app, sample_posts, 3)
    assert run(app.create_video()) is None
    assert titles(app)[-1] == "Missing Information"


def test_create_video_failure(make_app, sample_posts):
    app = make_app()
    walk_to_step(app, sample_posts, 4)

    with patch("vocal_scribe.main.measure_duration", return_value=3.0), \
            patch("vocal_scribe.main.CaptionPreview.export_gif", side_effect=OSError("disk full")):
        assert run(app.create_video()) is None

    assert titles(app)[-1] == "Video Creation Failed"
    assert app.state.video is None


def test_upload_requires_authentication(make_app, sample_posts):
    app = make_app()
    walk_to_step(app, sample_posts, 5)

    assert run(app.upload()) is None
    assert titles(app)[-1] == "Not Authenticated"


def test_youtube_authentication_failure(make_app, sample_posts):
    app = make_app(youtube_api_key="")
    walk_to_step(app, sample_posts, 5)

    assert not run(app.authenticate_youtube())
    assert titles(app)[-1] == "Authentication Failed"


def test_upload_requires_title(make_app, sample_posts):
    app = make_app()
    walk_to_step(app, sample_posts, 5)
    run(app.authenticate_youtube(YouTubeCredentials(client_id="c", api_key="k")))

    assert run(app.upload(VideoMetadata(title=""))) is None
    assert titles(app)[-1] == "Missing Information"


def test_upload_failure(make_app, sample_posts):
    app = make_app()
    walk_to_step(app, sample_posts, 5)
    run(app.authenticate_youtube())

    with patch.object(MockPublisher, "publish", side_effect=ServiceError("500")):
        assert run(app.upload()) is None
    assert titles(app)[-1] == "Upload Failed"
    assert app.state.published_video_id is None


def test_console_wizard_blocks_next_without_artifact(make_app, capsys):
    app = make_app()
    answers = iter(["n", "q"])
    wizard = ConsoleWizard(app, prompt=lambda question: next(answers))

    assert run(wizard.run()) is None
    assert "Finish this step first" in capsys.readouterr().out
    assert app.wizard.step == 1


def test_console_wizard_choose_posts(make_app, sample_posts):
    app = make_app()
    login(app)
    answers = iter(["1", "1"])
    wizard = ConsoleWizard(app, prompt=lambda question: next(answers))

    run(wizard.choose_posts())

    assert [p.id for p in app.state.selected_posts] == ["p1"]
    assert app.wizard.step == 3


def test_parser_overrides_settings(monkeypatch):
    monkeypatch.delenv("PUBLISH_BACKEND", raising=False)
    args = build_parser().parse_args(
        ["--speech-backend", "edge", "--invalidate-stale", "--no-session"]
    )
    with patch("vocal_scribe.config.load_dotenv"):
        settings = settings_from_args(args)

    assert settings.speech_backend == "edge"
    assert settings.invalidate_stale_artifacts is True
    assert settings.session_file is None


def test_voice_test_saves_sample_without_unlocking(make_app, sample_posts, tmp_path):
    app = make_app()
    walk_to_step(app, sample_posts, 3)

    path = run(app.test_voice("v1", VoiceSettings(stability=0.9)))

    assert path == str(tmp_path / "output" / "audio" / "voice_test_v1.mp3")
    assert Path(path).read_bytes() == b"ID3 fake mp3"
    request = app._synthesizer.requests[-1]
    assert request.text == VOICE_TEST_TEXT
    assert request.settings.stability == 0.9
    assert titles(app)[-1] == "Voice Test Ready"
    assert app.state.audio is None
    assert app.wizard.frontier == 3
    assert app.wizard.step == 3


def test_voice_test_failure_notifies(make_app, sample_posts):
    app = make_app(synth_fail=True)
    walk_to_step(app, sample_posts, 3)

    assert run(app.test_voice("v1")) is None
    assert app.notifications[-1] == Notification(
        "Voice Test Failed",
        "Could not test the selected voice. Please check your API key and try again.",
        destructive=True
    )
    assert app.state.audio is None


def test_voice_test_needs_voice(make_app):
    app = make_app()
    assert run(app.test_voice("")) is None
    assert app.notifications[-1].description == "Please provide API key and select a voice to test."


def test_console_wizard_tests_voice_before_generating(make_app, sample_posts):
    app = make_app()
    walk_to_step(app, sample_posts, 3)
    # API key, voice, stability, similarity, test it, keep it
    answers = iter(["xi-key", "1", "", "", "y", "y"])
    wizard = ConsoleWizard(app, prompt=lambda question: next(answers))

    run(wizard.record_voiceover())

    texts = [request.text for request in app._synthesizer.requests]
    assert texts[0] == VOICE_TEST_TEXT
    assert texts[1].startswith("TIFU by asking about the tuba")
    assert app.wizard.step == 4


def test_console_wizard_edits_description_and_tags(make_app, sample_posts):
    app = make_app()
    walk_to_step(app, sample_posts, 5)
    # privacy, title, description, tags
    answers = iter(["unlisted", "My title", "Told by Reddit.", "reddit, tifu ,, story "])
    wizard = ConsoleWizard(app, prompt=lambda question: next(answers))

    run(wizard.publish())

    metadata = app.publisher.uploads[0][1]
    assert metadata.title == "My title"
    assert metadata.description == "Told by Reddit."
    assert metadata.tags == ["reddit", "tifu", "story"]
    assert metadata.privacy_status == "unlisted"
    assert wizard.public_url == "https://youtube.com/watch?v=dQw4w9WgXcQ"


def test_console_wizard_keeps_default_metadata(make_app, sample_posts):
    app = make_app()
    walk_to_step(app, sample_posts, 5)
    answers = iter(["", "", "", ""])
    wizard = ConsoleWizard(app, prompt=lambda question: next(answers))

    run(wizard.publish())

    defaults = app.default_metadata()
    metadata = app.publisher.uploads[0][1]
    assert metadata.description == defaults.description
    assert metadata.tags == defaults.tags


def test_blocking_calls_run_off_the_event_loop(make_app, sample_posts):
    app = make_app()
    threads = []

    def on_worker(result):
        def call(*args, **kwargs):
            threads.append(threading.current_thread())
            return result
        return call

    with patch.object(RedditOAuth, "exchange_code", side_effect=on_worker("reddit-token")):
        app.start_reddit_login(client_secret="secret")
        state = app.session.reddit_auth_state
        assert run(app.complete_reddit_login(f"http://localhost:8080/?state={state}&code=c"))
    with patch.object(FakeRedditClient, "list_subscribed_subreddits", side_effect=on_worker(["tifu"])), \
            patch.object(FakeRedditClient, "list_posts", side_effect=on_worker(sample_posts)):
        assert run(app.load_subreddits()) == ["tifu"]
        assert run(app.load_posts("tifu")) == sample_posts
    app.select_posts(sample_posts)
    run(app.generate_voiceover("v1"))
    with patch("vocal_scribe.main.measure_duration", side_effect=on_worker(3.0)):
        run(app.create_video(fps=2))
    with patch.object(MockPublisher, "authenticate", side_effect=on_worker("yt-token")), \
            patch.object(MockPublisher, "publish", side_effect=on_worker("vid123")):
        assert run(app.authenticate_youtube())
        assert run(app.upload()) == "https://youtube.com/watch?v=vid123"

    assert len(threads) == 6
    assert threading.main_thread() not in threads
