"""
Offset Index Module

Maps character offsets in the flattened narration text back to words.
The speech engine reports progress as offsets into the exact string
produced by ``flatten_words``; the offset table is derived with the same
joining rule so the two never disagree.
"""

from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Sequence, Tuple

from narrator.readalong.word_segmenter import WordUnit

SEPARATOR = " "


@dataclass(frozen=True)
class NarrationOffsetTable:
    """Start offset of every word in the flattened narration text."""

    offsets: Tuple[int, ...] = ()

    def __len__(self) -> int:
        return len(self.offsets)

    def __getitem__(self, index: int) -> int:
        return self.offsets[index]

    def __iter__(self) -> Iterator[int]:
        return iter(self.offsets)

    def lookup(self, char_index: int) -> int:
        """Index of the word that owns ``char_index``."""
        return lookup_word_index(self, char_index)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON export."""
        return {
            "wordCount": len(self.offsets),
            "offsets": list(self.offsets),
        }


def flatten_words(words: Sequence[WordUnit]) -> str:
    """
    Join words into the text handed to the speech engine.

    Args:
        words: Word units in reading order

    Returns:
        Words joined by a single space
    """
    return SEPARATOR.join(word.text for word in words)


def build_offset_table(words: Sequence[WordUnit]) -> NarrationOffsetTable:
    """
    Build the offset table for a page's words.

    Args:
        words: Word units in reading order

    Returns:
        NarrationOffsetTable with one strictly increasing entry per word
    """
    offsets = []
    position = 0
    for word in words:
        offsets.append(position)
        position += len(word.text) + len(SEPARATOR)

    return NarrationOffsetTable(tuple(offsets))


def lookup_word_index(table: NarrationOffsetTable, char_index: int) -> int:
    """
    Find the greatest word index whose start offset is <= char_index.

    Offsets before the first word resolve to word 0 and offsets past the
    end resolve to the last word. An empty table returns -1.

    Args:
        table: Offset table built for the current words
        char_index: Offset reported by the speech engine

    Returns:
        Word index
    """
    if not table.offsets:
        return -1

    i = bisect_right(table.offsets, char_index) - 1
    return max(i, 0)
