"""
Page Reader Module

Ties a document's text source to the narration controller and runs
the single-threaded host loop: pump the speech engine, run frame
callbacks, repeat until narration is finished.
"""

import time
from typing import List, Optional, Protocol

from narrator.readalong.controller import NarrationController, NarrationOptions, NarrationStatus
from narrator.readalong.overlay import (
    ConsoleOverlayRenderer,
    FrameQueue,
    OverlayRenderer,
    OverlayTracker,
)
from narrator.readalong.speech_engine import SpeechEngine
from narrator.readalong.word_segmenter import TextRun, WordSegmenter, WordUnit
from narrator.utils import logger
from narrator.utils.config import config


class TextSource(Protocol):
    """Provides the text runs of each page of a document."""

    @property
    def page_count(self) -> int: ...

    def runs(self, page_number: int) -> List[TextRun]: ...

    def scroll_to(self, x: float, y: float) -> None: ...

    def set_zoom(self, zoom: float) -> None: ...


class PageReader:
    """
    Reads a document aloud page by page.

    Page text is delivered on the frame after navigation, the same way a
    renderer makes a page's text available once it has been laid out.
    """

    def __init__(
        self,
        source: TextSource,
        engine: Optional[SpeechEngine],
        renderer: Optional[OverlayRenderer] = None,
        options: Optional[NarrationOptions] = None,
    ):
        """
        Initialize the page reader.

        Args:
            source: Document text source
            engine: Speech engine, or None if speech is unavailable
            renderer: Overlay renderer (default prints to the console)
            options: Narration options (default from config)
        """
        self.source = source
        self.engine = engine
        self.frames = FrameQueue()
        self.tracker = OverlayTracker(renderer or ConsoleOverlayRenderer(), self.frames)
        self.segmenter = WordSegmenter()
        self.controller = NarrationController(
            engine,
            self.tracker,
            navigator=self._request_words,
            options=options,
        )

    def open(self, page: int = 1) -> None:
        """Load the document and request the first page's words."""
        self.controller.load_document(self.source.page_count, page)
        self._request_words(self.controller.state.page)

    def go_to(self, page: int) -> None:
        """Navigate to a page; cancels narration of the current one."""
        self.controller.change_page(page)
        self._request_words(self.controller.state.page)

    def scroll_to(self, x: float, y: float) -> None:
        """Scroll the source view; the overlay follows on the next frame."""
        self.source.scroll_to(x, y)
        self.controller.on_viewport_changed()

    def set_zoom(self, zoom: float) -> None:
        self.source.set_zoom(zoom)
        self.controller.on_viewport_changed()

    def _request_words(self, page: int) -> None:
        self.frames.request_frame(lambda: self._deliver_words(page))

    def _deliver_words(self, page: int) -> None:
        words = self.words_for(page)
        logger.info(f"Page {page}: {len(words)} words detected")
        self.controller.words_ready(page, words)
        state = self.controller.state
        if not words and state.pending_advance and state.page == page:
            logger.warning(f"Page {page} has no text, stopping")
            self.controller.stop()

    def words_for(self, page: int) -> List[WordUnit]:
        return self.segmenter.split(self.source.runs(page))

    @property
    def busy(self) -> bool:
        """True while narration or a page load is still in progress."""
        state = self.controller.state
        return (
            state.status != NarrationStatus.IDLE
            or state.pending_advance
            or self.frames.pending > 0
        )

    def tick(self) -> None:
        """Run one iteration of the host loop."""
        pump = getattr(self.engine, "pump", None)
        if pump is not None:
            pump()
        self.frames.run_frame()

    def read(self, page: int = 1, poll_interval: Optional[float] = None) -> bool:
        """
        Narrate from ``page`` until narration stops.

        Args:
            page: First page to read
            poll_interval: Seconds to sleep between loop iterations

        Returns:
            False if narration could not start
        """
        poll_interval = config.poll_interval if poll_interval is None else poll_interval

        if not self.controller.engine_available:
            logger.error("No speech engine available, cannot narrate")
            return False

        self.open(page)
        while self.frames.pending:
            self.frames.run_frame()

        if not self.controller.start():
            logger.warning(f"Could not start narration on page {self.controller.state.page}")
            return False

        try:
            while self.busy:
                self.tick()
                if poll_interval:
                    time.sleep(poll_interval)
        except KeyboardInterrupt:
            logger.warning("Interrupted")
            self.controller.stop()

        logger.success(f"Finished on page {self.controller.state.page}")
        return True
