"""
Word Segmenter Module

Splits a page's text runs into addressable word units.
Each word keeps a back-reference to the run it came from so its
on-screen position can be queried later.
"""

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, List, Protocol, Sequence

if TYPE_CHECKING:
    from narrator.readalong.overlay import Rect


WORD_PATTERN = re.compile(r"\S+")


class TextRun(Protocol):
    """A contiguous piece of rendered page text."""

    text: str

    def range_rect(self, start: int, end: int) -> "Rect":
        """Viewport rectangle of the characters ``[start, end)``."""
        ...

    def bounding_rect(self) -> "Rect":
        """Viewport rectangle of the whole run."""
        ...


@dataclass(frozen=True)
class WordUnit:
    """A single whitespace-delimited word on a page."""

    index: int  # Position in reading order, 0-based
    text: str  # The word, punctuation included
    source_run: Any = field(repr=False)  # TextRun the word was found in
    start_offset: int  # First character of the word within the run
    end_offset: int  # One past the last character

    def __len__(self) -> int:
        return len(self.text)


class WordSegmenter:
    """
    Turns ordered text runs into ordered word units.

    A word is a maximal run of non-whitespace characters. Punctuation
    stays attached to its word. Runs without any visible character
    contribute nothing.
    """

    def split(self, runs: Iterable[TextRun]) -> List[WordUnit]:
        """
        Segment runs into words.

        Args:
            runs: Text runs in reading order

        Returns:
            List of WordUnit with contiguous indices starting at 0
        """
        words: List[WordUnit] = []

        for run in runs:
            text = getattr(run, "text", None) or ""
            if not text:
                continue

            for match in WORD_PATTERN.finditer(text):
                words.append(WordUnit(
                    index=len(words),
                    text=match.group(0),
                    source_run=run,
                    start_offset=match.start(),
                    end_offset=match.end(),
                ))

        return words


def segment_words(runs: Sequence[TextRun]) -> List[WordUnit]:
    """
    Convenience function to segment runs into words.

    Args:
        runs: Text runs in reading order

    Returns:
        List of WordUnit objects
    """
    return WordSegmenter().split(runs)


if __name__ == "__main__":
    # Segment a couple of plain runs
    @dataclass
    class _Run:
        text: str

    for word in segment_words([_Run("The quick"), _Run("  "), _Run("brown fox.")]):
        print(f"[{word.index}] {word.text!r} ({word.start_offset}-{word.end_offset})")
