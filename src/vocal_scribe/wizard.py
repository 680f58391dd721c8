"""
Wizard Module
Step sequencing and artifact bookkeeping for the five-step flow.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .reddit_client import RedditPost


FIRST_STEP = 1
LAST_STEP = 5

STEP_TITLES = {
    1: "Connect Reddit Account",
    2: "Select Reddit Posts",
    3: "Generate Voiceover",
    4: "Create Video",
    5: "Upload to YouTube",
}

STEP_DESCRIPTIONS = {
    1: "Connect your Reddit account to get started",
    2: "Select posts from your joined subreddits",
    3: "Convert selected posts to speech using ElevenLabs",
    4: "Create a video with voiceover and subtitles",
    5: "Upload your video to YouTube",
}

# Attribute on WizardState holding each step's output
ARTIFACT_FIELDS = {
    1: "auth_token",
    2: "selected_posts",
    3: "audio",
    4: "video",
    5: "published_video_id",
}


@dataclass
class WizardState:
    step: int = FIRST_STEP
    frontier: int = FIRST_STEP
    auth_token: Optional[str] = None
    selected_posts: list[RedditPost] = field(default_factory=list)
    audio: Optional[bytes] = None
    video: Optional[Any] = None
    published_video_id: Optional[str] = None

    def artifact(self, step: int) -> Any:
        return getattr(self, ARTIFACT_FIELDS[step])

    def has_artifact(self, step: int) -> bool:
        return _is_present(self.artifact(step))


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, bytes, list, tuple)):
        return len(value) > 0
    return True


def _empty_value(step: int) -> Any:
    return [] if step == 2 else None


class WizardController:
    """
    Owns the WizardState and enforces the step order.

    Moving back is always allowed. Moving forward is one step at a time and
    never past the frontier, which only grows when a step records its
    artifact. Invalid moves are ignored and reported by returning False.

    Going back does not discard later artifacts. With invalidate_stale
    set, recording a different artifact for a step clears everything
    downstream of it instead.
    """

    def __init__(self, invalidate_stale: bool = False):
        self.state = WizardState()
        self.invalidate_stale = invalidate_stale

    @property
    def step(self) -> int:
        return self.state.step

    @property
    def frontier(self) -> int:
        return self.state.frontier

    def can_advance_to(self, target: int) -> bool:
        return FIRST_STEP <= target <= min(self.state.step + 1, self.state.frontier)

    def advance_to(self, target: int) -> bool:
        if not self.can_advance_to(target):
            return False
        self.state.step = target
        return True

    def can_advance(self) -> bool:
        """Whether the Next action is available from the current step."""
        return self.state.step < LAST_STEP and self.can_advance_to(self.state.step + 1)

    def next_step(self) -> bool:
        if self.state.step >= LAST_STEP:
            return False
        return self.advance_to(self.state.step + 1)

    def previous_step(self) -> bool:
        if self.state.step <= FIRST_STEP:
            return False
        return self.advance_to(self.state.step - 1)

    def record_artifact(self, step: int, value: Any) -> bool:
        """
        Stores the output of step and unlocks the step after it.

        Returns False (and changes nothing) for empty values.
        """
        if step not in ARTIFACT_FIELDS:
            raise ValueError(f"No such step: {step}")
        if not _is_present(value):
            return False

        previous = self.state.artifact(step)
        if step == 2:
            value = list(value)
        setattr(self.state, ARTIFACT_FIELDS[step], value)

        if self.invalidate_stale and _is_present(previous) and previous != value:
            self._clear_after(step)
            self.state.frontier = min(step + 1, LAST_STEP)
        else:
            self.state.frontier = max(self.state.frontier, min(step + 1, LAST_STEP))
        return True

    def _clear_after(self, step: int):
        for later in range(step + 1, LAST_STEP + 1):
            setattr(self.state, ARTIFACT_FIELDS[later], _empty_value(later))
        if self.state.step > step + 1:
            self.state.step = step + 1

    def title(self, step: Optional[int] = None) -> str:
        step = step or self.state.step
        return STEP_TITLES.get(step, f"Step {step}")

    def description(self, step: Optional[int] = None) -> str:
        return STEP_DESCRIPTIONS.get(step or self.state.step, "")

    def reset(self):
        self.state = WizardState()
