from dataclasses import dataclass, field
from typing import List, Optional

import pytest

from narrator.errors import RectUnavailable
from narrator.readalong.controller import NarrationController, NarrationOptions
from narrator.readalong.overlay import FrameQueue, OverlayTracker, Rect
from narrator.readalong.speech_engine import Voice
from narrator.readalong.word_segmenter import segment_words


@dataclass(eq=False)
class FakeRun:
    """Text run laid out as fixed-width characters on one line."""

    text: str
    left: float = 0.0
    top: float = 0.0
    char_width: float = 10.0
    height: float = 12.0
    broken: bool = False  # range query raises
    degenerate: bool = False  # range query returns 0x0
    missing: bool = False  # no geometry at all
    crashing: bool = False  # both queries raise a plain error

    def range_rect(self, start: int, end: int) -> Rect:
        if self.broken or self.missing or self.crashing:
            raise ValueError("layout not ready")
        if self.degenerate:
            return Rect(self.left, self.top, 0, 0)
        return Rect(self.left + start * self.char_width, self.top, (end - start) * self.char_width, self.height)

    def bounding_rect(self) -> Rect:
        if self.crashing:
            raise ValueError("layout not ready")
        if self.missing:
            raise RectUnavailable("no layout")
        return Rect(self.left, self.top, len(self.text) * self.char_width, self.height)


class RecordingEngine:
    """Speech engine double that records calls and fires callbacks on demand."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.sessions = []

    @property
    def starts(self) -> List[tuple]:
        return [c for c in self.calls if c[0] == "start"]

    @property
    def callbacks(self):
        return self.sessions[-1]

    def start(self, text, rate, pitch, voice_id, callbacks) -> None:
        self.calls.append(("start", text, rate, pitch, voice_id))
        self.sessions.append(callbacks)

    def pause(self) -> None:
        self.calls.append(("pause",))

    def resume(self) -> None:
        self.calls.append(("resume",))

    def cancel(self) -> None:
        self.calls.append(("cancel",))

    def voices(self) -> List[Voice]:
        return [Voice("v1", "Alice", "en"), Voice("v2", "Bob", "en")]


@dataclass
class RecordingRenderer:
    target: Optional[object] = None
    rect: Optional[Rect] = None
    active: bool = False
    paused: bool = False
    caption: str = ""
    highlight_updates: int = 0
    history: List[Optional[Rect]] = field(default_factory=list)

    def set_pointer_target(self, target) -> None:
        self.target = target

    def set_highlight_rect(self, rect) -> None:
        self.rect = rect
        self.highlight_updates += 1
        self.history.append(rect)

    def set_active(self, active: bool) -> None:
        self.active = active

    def set_paused(self, paused: bool) -> None:
        self.paused = paused

    def set_caption(self, text: str) -> None:
        self.caption = text


def make_words(*texts: str, top: float = 0.0):
    """One run per argument, stacked vertically 20 units apart."""
    runs = [FakeRun(text, top=top + i * 20) for i, text in enumerate(texts)]
    return segment_words(runs)


@pytest.fixture
def engine() -> RecordingEngine:
    return RecordingEngine()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def frames() -> FrameQueue:
    return FrameQueue()


@pytest.fixture
def tracker(renderer, frames) -> OverlayTracker:
    return OverlayTracker(renderer, frames)


@pytest.fixture
def navigator():
    pages = []

    def go_to(page: int) -> None:
        pages.append(page)

    go_to.pages = pages
    return go_to


@pytest.fixture
def make_controller(engine, tracker, navigator):
    def factory(**options) -> NarrationController:
        return NarrationController(
            engine,
            tracker,
            navigator=navigator,
            options=NarrationOptions(**options),
        )

    return factory
