"""
Page Narrator

Reads paginated documents aloud while pointing at the word being spoken.
"""

__version__ = "1.0.0"
