"""
Speech Engine Module

Interface the narration controller drives, plus a system TTS adapter
built on pyttsx3 (SAPI5 on Windows, NSSpeechSynthesizer on macOS,
espeak on Linux).
"""

from dataclasses import dataclass
from itertools import count
from typing import Any, Callable, List, Optional, Protocol, Sequence

from narrator.errors import EngineError, EngineUnavailable
from narrator.utils import logger
from narrator.utils.config import config


@dataclass(frozen=True)
class EngineCallbacks:
    """Notifications for one narration session."""

    on_boundary: Callable[[int], None]
    on_end: Callable[[], None]
    on_error: Callable[[EngineError], None]


@dataclass(frozen=True)
class Voice:
    """A voice offered by the speech engine."""

    id: str
    name: str
    language: str = ""


class SpeechEngine(Protocol):
    """Speaks text and reports progress as character offsets."""

    def start(
        self,
        text: str,
        rate: float,
        pitch: float,
        voice_id: Optional[str],
        callbacks: EngineCallbacks,
    ) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def cancel(self) -> None: ...

    def voices(self) -> List[Voice]: ...


def select_voice(voices: Sequence[Voice], voice_id: Optional[str]) -> Optional[Voice]:
    """
    Pick a voice.

    An exact id wins, then a case-insensitive match on part of the id
    or name. Falls back to the first voice.

    Args:
        voices: Voices the engine offers
        voice_id: Requested voice, or None for the default

    Returns:
        Selected Voice, or None if there are no voices
    """
    if not voices:
        return None
    if not voice_id:
        return voices[0]

    for voice in voices:
        if voice.id == voice_id:
            return voice

    wanted = voice_id.lower()
    for voice in voices:
        if wanted in voice.id.lower() or wanted in voice.name.lower():
            return voice

    return voices[0]


class Pyttsx3SpeechEngine:
    """
    Speech engine backed by pyttsx3.

    pyttsx3 runs in an externally driven loop: call ``pump`` from the
    host loop so word and completion notifications are delivered on the
    host thread. pyttsx3 cannot pause, so pausing stops the utterance
    and resuming speaks the rest of the text from the last reported
    word, shifting offsets back into the original text.
    """

    def __init__(self, base_rate: Optional[int] = None):
        """
        Initialize the pyttsx3 engine.

        Args:
            base_rate: Words per minute at rate 1.0 (default from config)

        Raises:
            EngineUnavailable: If no speech driver can be loaded
        """
        self.base_rate = base_rate or config.engine_base_rate
        self._engine = self._load_engine()
        self._engine.connect("started-word", self._on_word)
        self._engine.connect("finished-utterance", self._on_finished)
        self._engine.connect("error", self._on_error)
        self._engine.startLoop(False)

        self._names = count(1)
        self._utterance: Optional[str] = None
        self._callbacks: Optional[EngineCallbacks] = None
        self._text = ""
        self._base = 0
        self._last_location = 0
        self._paused = False

    def _load_engine(self) -> Any:
        try:
            import pyttsx3

            logger.info("Loading pyttsx3 speech engine...")
            engine = pyttsx3.init()
        except ImportError as e:
            logger.error("pyttsx3 not installed")
            raise EngineUnavailable(
                "pyttsx3 not found. Install with: pip install pyttsx3"
            ) from e
        except (RuntimeError, OSError) as e:
            logger.error(f"No speech driver available: {e}")
            raise EngineUnavailable(str(e)) from e

        logger.success("pyttsx3 speech engine loaded")
        return engine

    def voices(self) -> List[Voice]:
        result = []
        for v in self._engine.getProperty("voices") or []:
            languages = getattr(v, "languages", None) or []
            language = languages[0] if languages else ""
            if isinstance(language, bytes):
                language = language.decode("utf-8", errors="ignore").strip("\x05")
            result.append(Voice(id=v.id, name=v.name or v.id, language=str(language)))
        return result

    def start(
        self,
        text: str,
        rate: float,
        pitch: float,
        voice_id: Optional[str],
        callbacks: EngineCallbacks,
    ) -> None:
        self.cancel()

        voice = select_voice(self.voices(), voice_id)
        if voice:
            self._engine.setProperty("voice", voice.id)
        self._engine.setProperty("rate", int(self.base_rate * rate))
        try:
            self._engine.setProperty("pitch", pitch)
        except (KeyError, AttributeError):
            logger.debug("Speech driver has no pitch control")

        self._callbacks = callbacks
        self._text = text
        self._paused = False
        self._speak_from(0)

    def _speak_from(self, offset: int) -> None:
        self._base = offset
        self._last_location = offset
        self._utterance = f"narration-{next(self._names)}"
        self._engine.say(self._text[offset:], self._utterance)

    def pause(self) -> None:
        if self._utterance is None:
            return
        self._paused = True
        self._utterance = None
        self._engine.stop()

    def resume(self) -> None:
        if not self._paused or self._callbacks is None:
            return
        self._paused = False
        self._speak_from(self._last_location)

    def cancel(self) -> None:
        had_session = self._utterance is not None or self._paused
        self._utterance = None
        self._callbacks = None
        self._paused = False
        if had_session:
            self._engine.stop()

    def pump(self) -> None:
        """Deliver pending driver events on the calling thread."""
        self._engine.iterate()

    def close(self) -> None:
        self.cancel()
        self._engine.endLoop()

    def _on_word(self, name: str, location: int, length: int) -> None:
        if name != self._utterance or self._callbacks is None:
            return
        self._last_location = self._base + location
        self._callbacks.on_boundary(self._last_location)

    def _on_finished(self, name: str, completed: bool) -> None:
        if name != self._utterance or self._callbacks is None:
            return
        callbacks = self._callbacks
        self._utterance = None
        self._callbacks = None
        if completed:
            callbacks.on_end()
        else:
            callbacks.on_error(EngineError("utterance interrupted"))

    def _on_error(self, name: str, exception: Exception) -> None:
        if name != self._utterance or self._callbacks is None:
            return
        callbacks = self._callbacks
        self._utterance = None
        self._callbacks = None
        callbacks.on_error(EngineError(str(exception)))
