"""
Read-Along Narration Module

Speaks a page of text while pointing at the word being spoken.
Splits page text into words, maps speech progress offsets back to
words and keeps the pointer and highlight on screen in sync.
"""

from narrator.readalong.word_segmenter import TextRun, WordSegmenter, WordUnit, segment_words
from narrator.readalong.offset_index import (
    NarrationOffsetTable,
    build_offset_table,
    flatten_words,
    lookup_word_index,
)
from narrator.readalong.overlay import (
    FrameQueue,
    OverlayPositioner,
    OverlayTracker,
    PointerTarget,
    Rect,
    derive_highlight_rect,
    derive_pointer_target,
)
from narrator.readalong.speech_engine import EngineCallbacks, SpeechEngine, Voice, select_voice
from narrator.readalong.controller import (
    NarrationController,
    NarrationOptions,
    NarrationState,
    NarrationStatus,
    reduce,
)
from narrator.readalong.page_reader import PageReader

__all__ = [
    "TextRun",
    "WordSegmenter",
    "WordUnit",
    "segment_words",
    "NarrationOffsetTable",
    "build_offset_table",
    "flatten_words",
    "lookup_word_index",
    "FrameQueue",
    "OverlayPositioner",
    "OverlayTracker",
    "PointerTarget",
    "Rect",
    "derive_highlight_rect",
    "derive_pointer_target",
    "EngineCallbacks",
    "SpeechEngine",
    "Voice",
    "select_voice",
    "NarrationController",
    "NarrationOptions",
    "NarrationState",
    "NarrationStatus",
    "reduce",
    "PageReader",
]
