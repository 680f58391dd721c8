"""
Caption Renderer Module
Draws the active caption onto a preview surface and plays it back frame by frame.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from .captions import CaptionSegment, find_active


@dataclass
class RenderConfig:
    """Configuration for caption rendering."""
    width: int = 640
    height: int = 360
    font_size: int = 24
    line_height: int = 30
    horizontal_padding: int = 40
    background_color: tuple = (0, 0, 0, 178)  # black at 70% opacity
    text_color: tuple = (255, 255, 255, 255)


class CaptionRenderer:
    """Renders word-wrapped caption text onto a Pillow image."""

    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()
        self.font = self._load_font(self.config.font_size)

    def _find_font(self) -> str:
        """Finds a suitable bold font."""
        candidates = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
            "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
            "/Library/Fonts/Arial Bold.ttf",
            "C:/Windows/Fonts/arialbd.ttf",
        ]
        for font in candidates:
            if os.path.exists(font):
                return font
        return candidates[0]

    def _load_font(self, size: int):
        try:
            return ImageFont.truetype(self._find_font(), size)
        except OSError:
            return ImageFont.load_default()

    def measure(self, text: str) -> float:
        """Rendered width of text in pixels."""
        return ImageDraw.Draw(Image.new("RGBA", (1, 1))).textlength(text, font=self.font)

    def wrap(self, text: str, max_width: float) -> list[str]:
        """
        Greedy word wrap.

        Words are added to the current line until the next one would push
        it past max_width. A single word wider than max_width gets a line
        of its own.
        """
        lines = []
        current = ""

        for word in text.split():
            candidate = f"{current} {word}" if current else word
            if current and self.measure(candidate) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate

        if current:
            lines.append(current)
        return lines

    def render(self, surface: Image.Image, active_text: str) -> Image.Image:
        """
        Clears the surface and draws active_text centered on a dark backdrop.

        Calling this again with the same surface size and text produces the
        same pixels.
        """
        cfg = self.config
        width, height = surface.size

        # Clear, then paint the translucent backdrop
        surface.paste((0, 0, 0, 0), (0, 0, width, height))
        overlay = Image.new("RGBA", surface.size, cfg.background_color)
        surface.alpha_composite(overlay)

        if not active_text:
            return surface

        draw = ImageDraw.Draw(surface)
        lines = self.wrap(active_text, width - cfg.horizontal_padding)

        start_y = (height - len(lines) * cfg.line_height) / 2
        for i, line in enumerate(lines):
            line_width = draw.textlength(line, font=self.font)
            x = (width - line_width) / 2
            y = start_y + i * cfg.line_height
            draw.text((x, y), line, font=self.font, fill=cfg.text_color)

        return surface


class CaptionPreview:
    """Plays a caption track against a playback clock on a single surface."""

    def __init__(
        self,
        segments: list[CaptionSegment],
        duration: float,
        renderer: Optional[CaptionRenderer] = None
    ):
        self.segments = segments
        self.duration = duration
        self.renderer = renderer or CaptionRenderer()
        cfg = self.renderer.config
        self.surface = Image.new("RGBA", (cfg.width, cfg.height))
        self.current_text = ""
        self.playing = False

    def update(self, current_time: float) -> str:
        """Selects the caption for current_time and redraws the surface."""
        active = find_active(self.segments, current_time)
        self.current_text = active.text if active else ""
        self.renderer.render(self.surface, self.current_text)
        return self.current_text

    def play(self):
        self.playing = True

    def pause(self):
        self.playing = False

    def frames(
        self,
        fps: int = 30,
        start_time: float = 0.0
    ) -> Iterator[Tuple[float, Image.Image]]:
        """
        Per-frame render loop.

        Yields (time, frame) for each tick until the audio ends or pause()
        is called. Frames are copies; the surface itself is reused.
        """
        if fps <= 0:
            raise ValueError("fps must be positive")

        self.play()
        tick = 0
        while self.playing:
            current_time = start_time + tick / fps
            if current_time > self.duration:
                self.pause()
                break
            self.update(current_time)
            yield current_time, self.surface.copy()
            tick += 1

    def caption_spans(self, fps: int = 10) -> List[Tuple[str, int]]:
        """
        Groups the ticks of a full playback into runs of identical captions.

        Returns (text, tick_count) pairs in playback order. The tick counts
        add up to the number of frames frames(fps) would yield.
        """
        if fps <= 0:
            raise ValueError("fps must be positive")

        spans: List[Tuple[str, int]] = []
        tick = 0
        while tick / fps <= self.duration:
            active = find_active(self.segments, tick / fps)
            text = active.text if active else ""
            if spans and spans[-1][0] == text:
                spans[-1] = (text, spans[-1][1] + 1)
            else:
                spans.append((text, 1))
            tick += 1
        return spans

    def export_gif(self, path: str, fps: int = 10) -> str:
        """
        Writes the whole preview as an animated GIF.

        Each caption is drawn once and held for as long as it is on screen,
        so memory use follows the number of captions, not the length of the
        audio.
        """
        spans = self.caption_spans(fps) or [("", 1)]

        def render_span(text: str) -> Image.Image:
            self.current_text = text
            self.renderer.render(self.surface, text)
            return self.surface.copy()

        first = render_span(spans[0][0])
        rest = (render_span(text) for text, _ in spans[1:])

        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        first.save(
            output_path,
            save_all=True,
            append_images=rest,
            duration=[max(1, round(count * 1000 / fps)) for _, count in spans],
            loop=0
        )
        return str(output_path)
