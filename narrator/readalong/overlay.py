"""
Overlay Module

Resolves where the current word sits on screen and keeps the pointer
and highlight aimed at it while the view scrolls or resizes.
"""

from dataclasses import dataclass
from itertools import count
from typing import Callable, Dict, Iterable, Optional, Protocol, Sequence

from narrator.readalong.word_segmenter import WordUnit
from narrator.utils import logger
from narrator.utils.config import config


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in viewport coordinates."""

    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def is_degenerate(self) -> bool:
        """True when layout has not produced a size yet."""
        return self.width == 0 and self.height == 0

    @classmethod
    def enclosing(cls, rects: Iterable["Rect"]) -> Optional["Rect"]:
        """Smallest rectangle containing all ``rects``, or None."""
        rects = list(rects)
        if not rects:
            return None
        left = min(r.left for r in rects)
        top = min(r.top for r in rects)
        right = max(r.right for r in rects)
        bottom = max(r.bottom for r in rects)
        return cls(left, top, right - left, bottom - top)


@dataclass(frozen=True)
class PointerTarget:
    """Point the pointer should aim at, in viewport coordinates."""

    x: float
    y: float


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def derive_pointer_target(rect: Rect) -> PointerTarget:
    """Aim at the center of the word."""
    return PointerTarget(
        x=rect.left + rect.width / 2,
        y=rect.top + rect.height / 2,
    )


def derive_highlight_rect(
    rect: Rect,
    pad: Optional[float] = None,
    min_width: Optional[float] = None,
    min_height: Optional[float] = None,
    max_size: Optional[float] = None,
) -> Rect:
    """
    Pad a word rectangle into a highlight rectangle.

    Args:
        rect: Word rectangle
        pad: Padding on every side (default from config)
        min_width: Smallest highlight width
        min_height: Smallest highlight height
        max_size: Largest highlight width and height

    Returns:
        Highlight rectangle with clamped size
    """
    pad = config.overlay_padding if pad is None else pad
    min_width = config.overlay_min_width if min_width is None else min_width
    min_height = config.overlay_min_height if min_height is None else min_height
    max_size = config.overlay_max_size if max_size is None else max_size

    return Rect(
        left=rect.left - pad,
        top=rect.top - pad,
        width=clamp(rect.width + pad * 2, min_width, max_size),
        height=clamp(rect.height + pad * 2, min_height, max_size),
    )


class OverlayRenderer(Protocol):
    """Draws the pointer and the highlight."""

    def set_pointer_target(self, target: Optional[PointerTarget]) -> None: ...

    def set_highlight_rect(self, rect: Optional[Rect]) -> None: ...

    def set_active(self, active: bool) -> None: ...

    def set_paused(self, paused: bool) -> None: ...

    def set_caption(self, text: str) -> None: ...


class FrameScheduler(Protocol):
    """Runs callbacks once per rendered frame on the host thread."""

    def request_frame(self, callback: Callable[[], None]) -> int: ...

    def cancel_frame(self, handle: int) -> None: ...


class FrameQueue:
    """
    Frame scheduler driven by the host loop.

    Callbacks requested during a frame run on the next call to
    ``run_frame``.
    """

    def __init__(self):
        self._pending: Dict[int, Callable[[], None]] = {}
        self._handles = count(1)

    def request_frame(self, callback: Callable[[], None]) -> int:
        handle = next(self._handles)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def run_frame(self) -> int:
        """Run every callback queued before this frame started."""
        callbacks = list(self._pending.values())
        self._pending.clear()
        for callback in callbacks:
            callback()
        return len(callbacks)


class OverlayPositioner:
    """Resolves the on-screen rectangle of a word."""

    def resolve_rect(self, word: WordUnit) -> Optional[Rect]:
        """
        Find where a word is drawn.

        Queries the exact character range first. When that fails or
        comes back empty (layout still settling) the whole run is used.

        Args:
            word: Word to locate

        Returns:
            Rect in viewport coordinates, or None if nothing is available
        """
        run = word.source_run

        try:
            rect = run.range_rect(word.start_offset, word.end_offset)
        except Exception as e:
            logger.debug(f"Range rect failed for word {word.index} ({e}), using run rect")
            rect = None

        if rect is None or rect.is_degenerate:
            try:
                rect = run.bounding_rect()
            except Exception as e:
                logger.debug(f"No geometry for word {word.index}: {e}")
                return None

        if rect is None or rect.is_degenerate:
            return None
        return rect


class OverlayTracker:
    """
    Keeps the renderer's pointer and highlight on the current word.

    The word index only changes through ``show_word``; scroll and resize
    notifications re-resolve the same word. Several notifications within
    one frame produce a single recompute.
    """

    def __init__(
        self,
        renderer: OverlayRenderer,
        scheduler: FrameScheduler,
        positioner: Optional[OverlayPositioner] = None,
    ):
        self.renderer = renderer
        self.scheduler = scheduler
        self.positioner = positioner or OverlayPositioner()
        self.words: Sequence[WordUnit] = ()
        self.current_index = -1
        self._frame: Optional[int] = None

    def set_words(self, words: Sequence[WordUnit]) -> None:
        self.words = tuple(words)

    def show_word(self, index: int) -> bool:
        """Make ``index`` the current word and move the overlay to it."""
        self.current_index = index
        if 0 <= index < len(self.words):
            self.renderer.set_caption(self.words[index].text)
        return self.refresh(index)

    def refresh(self, index: int) -> bool:
        """
        Recompute pointer and highlight for a word.

        When the word has no geometry the previous overlay is kept.

        Returns:
            True if the renderer was updated
        """
        if index < 0 or index >= len(self.words):
            return False

        rect = self.positioner.resolve_rect(self.words[index])
        if rect is None:
            logger.debug(f"Keeping previous overlay, word {index} has no rect")
            return False

        self.renderer.set_pointer_target(derive_pointer_target(rect))
        self.renderer.set_highlight_rect(derive_highlight_rect(rect))
        return True

    def on_viewport_changed(self) -> None:
        """Scroll or resize happened; recompute on the next frame."""
        if self.current_index < 0:
            return
        if self._frame is not None:
            return
        self._frame = self.scheduler.request_frame(self._recompute)

    def _recompute(self) -> None:
        self._frame = None
        self.refresh(self.current_index)

    def clear(self) -> None:
        """Forget the current word and remove pointer and highlight."""
        if self._frame is not None:
            self.scheduler.cancel_frame(self._frame)
            self._frame = None
        self.current_index = -1
        self.renderer.set_caption("")
        self.renderer.set_pointer_target(None)
        self.renderer.set_highlight_rect(None)


class ConsoleOverlayRenderer:
    """Prints pointer and highlight updates to the console."""

    def __init__(self):
        self.target: Optional[PointerTarget] = None
        self.rect: Optional[Rect] = None
        self.active = False
        self.paused = False
        self.caption = ""

    def set_pointer_target(self, target: Optional[PointerTarget]) -> None:
        self.target = target

    def set_highlight_rect(self, rect: Optional[Rect]) -> None:
        self.rect = rect
        if rect is None or self.target is None:
            return
        logger.console.print(
            f"[highlight]{self.caption:<20}[/highlight] "
            f"pointer ({self.target.x:7.1f}, {self.target.y:7.1f})  "
            f"highlight [{rect.left:.1f}, {rect.top:.1f}, {rect.width:.1f}x{rect.height:.1f}]"
        )

    def set_active(self, active: bool) -> None:
        self.active = active

    def set_paused(self, paused: bool) -> None:
        if paused and not self.paused:
            logger.info("Paused")
        self.paused = paused

    def set_caption(self, text: str) -> None:
        self.caption = text
