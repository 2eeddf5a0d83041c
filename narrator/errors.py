"""
Narration error taxonomy.

Collaborators raise these; the narration state machine turns them into
rejected requests or state transitions and never lets them escape.
"""


class NarrationError(Exception):
    """Base class for narration failures."""
    pass


class EmptySegmentation(NarrationError):
    """Raised when a page has no words to narrate."""
    pass


class RectUnavailable(NarrationError):
    """Raised when a word's on-screen geometry cannot be resolved."""
    pass


class EngineUnavailable(NarrationError):
    """Raised when the host has no usable speech capability."""
    pass


class EngineError(NarrationError):
    """Raised when the speech engine fails mid-session."""
    pass
