"""
Narration Controller Module

State machine that drives narration of one page at a time.

``reduce`` is a pure function: it takes the current ``NarrationState``
and an event and returns the next state plus a list of effects (engine
calls, overlay updates, page turns). ``NarrationController`` owns the
state, feeds events through ``reduce`` one at a time and applies the
effects to the speech engine, the overlay tracker and the page
navigator.

Every engine session gets an epoch. Engine callbacks carry the epoch
of the session they belong to, and callbacks from a cancelled session
are ignored.
"""

from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Tuple, Union

from narrator.errors import (
    EmptySegmentation,
    EngineError,
    EngineUnavailable,
    NarrationError,
)
from narrator.readalong.offset_index import (
    NarrationOffsetTable,
    build_offset_table,
    flatten_words,
)
from narrator.readalong.overlay import OverlayTracker
from narrator.readalong.speech_engine import EngineCallbacks, SpeechEngine
from narrator.readalong.word_segmenter import WordUnit
from narrator.utils import logger
from narrator.utils.config import config


class NarrationStatus(str, Enum):
    IDLE = "idle"
    SPEAKING = "speaking"
    PAUSED = "paused"


@dataclass(frozen=True)
class NarrationOptions:
    """User-facing narration settings."""

    rate: float = 1.0  # Speech speed multiplier
    pitch: float = 1.0  # Speech pitch multiplier
    voice_id: Optional[str] = None  # None selects the first voice
    auto_page_turn: bool = True  # Turn the page when narration ends
    auto_continue: bool = False  # Speak the next page once its words arrive

    @property
    def continues(self) -> bool:
        """Auto-continue only applies together with auto page-turn."""
        return self.auto_page_turn and self.auto_continue

    @classmethod
    def from_config(cls) -> "NarrationOptions":
        return cls(
            rate=config.rate,
            pitch=config.pitch,
            voice_id=config.voice,
            auto_page_turn=config.auto_page_turn,
            auto_continue=config.auto_continue,
        )


@dataclass(frozen=True)
class NarrationSession:
    """Text and offsets handed to the engine for one session."""

    epoch: int
    text: str
    table: NarrationOffsetTable


@dataclass(frozen=True)
class NarrationState:
    status: NarrationStatus = NarrationStatus.IDLE
    page: int = 1
    page_count: Optional[int] = None
    words: Tuple[WordUnit, ...] = ()
    current_word: int = -1
    pending_advance: bool = False
    epoch: int = 0
    session: Optional[NarrationSession] = None
    options: NarrationOptions = field(default_factory=NarrationOptions)

    @property
    def has_next_page(self) -> bool:
        return self.page_count is not None and self.page < self.page_count

    def is_current(self, epoch: int) -> bool:
        """True if ``epoch`` belongs to the live session."""
        return self.session is not None and self.session.epoch == epoch


# Events


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Resume:
    pass


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class PageChanged:
    page: int


@dataclass(frozen=True)
class DocumentLoaded:
    page_count: int
    page: int = 1


@dataclass(frozen=True)
class WordsReady:
    page: int
    words: Tuple[WordUnit, ...]


@dataclass(frozen=True)
class Boundary:
    epoch: int
    char_index: int


@dataclass(frozen=True)
class End:
    epoch: int


@dataclass(frozen=True)
class Error:
    epoch: int
    error: Optional[EngineError] = None


@dataclass(frozen=True)
class SetOptions:
    options: NarrationOptions


Event = Union[
    Start, Pause, Resume, Stop, PageChanged, DocumentLoaded,
    WordsReady, Boundary, End, Error, SetOptions,
]


# Effects


@dataclass(frozen=True)
class StartEngine:
    epoch: int
    text: str
    rate: float
    pitch: float
    voice_id: Optional[str]


@dataclass(frozen=True)
class PauseEngine:
    pass


@dataclass(frozen=True)
class ResumeEngine:
    pass


@dataclass(frozen=True)
class CancelEngine:
    pass


@dataclass(frozen=True)
class SetWords:
    words: Tuple[WordUnit, ...]


@dataclass(frozen=True)
class ShowWord:
    index: int  # -1 releases the current word without clearing the overlay


@dataclass(frozen=True)
class ClearOverlay:
    pass


@dataclass(frozen=True)
class SetActive:
    active: bool


@dataclass(frozen=True)
class SetPaused:
    paused: bool


@dataclass(frozen=True)
class TurnPage:
    page: int


Effect = Union[
    StartEngine, PauseEngine, ResumeEngine, CancelEngine, SetWords,
    ShowWord, ClearOverlay, SetActive, SetPaused, TurnPage,
]


@dataclass
class Transition:
    """Result of feeding one event to the state machine."""

    state: NarrationState
    effects: List[Effect] = field(default_factory=list)
    rejected: Optional[NarrationError] = None


def _start(state: NarrationState, event: Start) -> Transition:
    if state.status == NarrationStatus.SPEAKING:
        return Transition(state, rejected=NarrationError("already speaking"))

    text = flatten_words(state.words)
    if not state.words or not text.strip():
        return Transition(state, rejected=EmptySegmentation(f"no words on page {state.page}"))

    epoch = state.epoch + 1
    session = NarrationSession(epoch=epoch, text=text, table=build_offset_table(state.words))
    options = state.options
    return Transition(
        replace(
            state,
            status=NarrationStatus.SPEAKING,
            current_word=-1,
            epoch=epoch,
            session=session,
        ),
        [
            CancelEngine(),
            ShowWord(-1),
            StartEngine(epoch, text, options.rate, options.pitch, options.voice_id),
            SetActive(True),
            SetPaused(False),
        ],
    )


def _pause(state: NarrationState, event: Pause) -> Transition:
    if state.status != NarrationStatus.SPEAKING:
        return Transition(state)
    return Transition(
        replace(state, status=NarrationStatus.PAUSED),
        [PauseEngine(), SetPaused(True)],
    )


def _resume(state: NarrationState, event: Resume) -> Transition:
    if state.status != NarrationStatus.PAUSED:
        return Transition(state)
    return Transition(
        replace(state, status=NarrationStatus.SPEAKING),
        [ResumeEngine(), SetPaused(False)],
    )


def _reset(state: NarrationState) -> Transition:
    """Cancel any session and clear everything the session produced."""
    effects: List[Effect] = []
    epoch = state.epoch
    if state.session is not None:
        effects.append(CancelEngine())
        epoch += 1
    effects.extend([ClearOverlay(), SetActive(False), SetPaused(False)])

    return Transition(
        replace(
            state,
            status=NarrationStatus.IDLE,
            current_word=-1,
            pending_advance=False,
            epoch=epoch,
            session=None,
        ),
        effects,
    )


def _stop(state: NarrationState, event: Stop) -> Transition:
    return _reset(state)


def _page_changed(state: NarrationState, event: PageChanged) -> Transition:
    page = max(1, event.page)
    if state.page_count is not None:
        page = min(page, state.page_count)
    if page == state.page:
        return Transition(state)

    transition = _reset(state)
    transition.state = replace(transition.state, page=page, words=())
    transition.effects.append(SetWords(()))
    return transition


def _document_loaded(state: NarrationState, event: DocumentLoaded) -> Transition:
    page_count = max(0, event.page_count)
    page = min(max(1, event.page), max(1, page_count))

    transition = _reset(state)
    transition.state = replace(transition.state, page=page, page_count=page_count, words=())
    transition.effects.append(SetWords(()))
    return transition


def _words_ready(state: NarrationState, event: WordsReady) -> Transition:
    if event.page != state.page:
        return Transition(state, rejected=NarrationError(
            f"words for page {event.page} arrived while on page {state.page}"
        ))
    words = tuple(event.words)
    return Transition(replace(state, words=words), [SetWords(words)])


def _boundary(state: NarrationState, event: Boundary) -> Transition:
    if not state.is_current(event.epoch) or state.status != NarrationStatus.SPEAKING:
        return Transition(state)

    index = state.session.table.lookup(event.char_index)
    if index < 0:
        return Transition(state)
    return Transition(replace(state, current_word=index), [ShowWord(index)])


def _end(state: NarrationState, event: End) -> Transition:
    if not state.is_current(event.epoch) or state.status != NarrationStatus.SPEAKING:
        return Transition(state)

    next_state = replace(
        state,
        status=NarrationStatus.IDLE,
        current_word=-1,
        session=None,
    )
    effects: List[Effect] = [ShowWord(-1), SetActive(False), SetPaused(False)]

    if state.options.auto_page_turn and state.has_next_page:
        next_page = state.page + 1
        next_state = replace(
            next_state,
            page=next_page,
            words=(),
            pending_advance=state.options.continues,
        )
        effects.extend([ClearOverlay(), SetWords(()), TurnPage(next_page)])

    return Transition(next_state, effects)


def _error(state: NarrationState, event: Error) -> Transition:
    if not state.is_current(event.epoch):
        return Transition(state)

    return Transition(
        replace(
            state,
            status=NarrationStatus.IDLE,
            current_word=-1,
            pending_advance=False,
            session=None,
        ),
        [ShowWord(-1), SetActive(False), SetPaused(False)],
        rejected=event.error or EngineError("speech engine error"),
    )


def _set_options(state: NarrationState, event: SetOptions) -> Transition:
    pending = state.pending_advance and event.options.continues
    return Transition(replace(state, options=event.options, pending_advance=pending))


_HANDLERS: Dict[type, Callable[[NarrationState, Any], Transition]] = {
    Start: _start,
    Pause: _pause,
    Resume: _resume,
    Stop: _stop,
    PageChanged: _page_changed,
    DocumentLoaded: _document_loaded,
    WordsReady: _words_ready,
    Boundary: _boundary,
    End: _end,
    Error: _error,
    SetOptions: _set_options,
}


def reduce(state: NarrationState, event: Event) -> Transition:
    """
    Apply one event to the narration state.

    After the event is handled, a pending auto-continue is consumed if
    narration is idle and the current page has words: the flag is
    cleared and narration starts. Because the flag is cleared when it
    fires, it fires once per page turn.

    Args:
        state: Current state
        event: Event to apply

    Returns:
        Transition with the new state and the effects to apply
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown narration event: {event!r}")

    transition = handler(state, event)

    current = transition.state
    if current.pending_advance and current.status == NarrationStatus.IDLE and current.words:
        follow = _start(replace(current, pending_advance=False), Start())
        transition.state = follow.state
        transition.effects.extend(follow.effects)
        if follow.rejected is not None:
            transition.rejected = follow.rejected

    return transition


PageNavigator = Callable[[int], None]


class NarrationController:
    """
    Applies narration transitions to the engine and the overlay.

    Events are processed strictly one at a time. An event raised while
    effects are being applied (for example an engine callback delivered
    synchronously) is queued and handled after the current one.
    """

    def __init__(
        self,
        engine: Optional[SpeechEngine],
        tracker: OverlayTracker,
        navigator: Optional[PageNavigator] = None,
        options: Optional[NarrationOptions] = None,
    ):
        """
        Initialize the controller.

        Args:
            engine: Speech engine, or None when the host cannot speak
            tracker: Overlay tracker that owns the pointer and highlight
            navigator: Called with a page number when narration turns the page
            options: Narration options (default from config)
        """
        self.engine = engine
        self.tracker = tracker
        self.navigator = navigator
        self.state = NarrationState(options=options or NarrationOptions.from_config())
        self._queue: Deque[Event] = deque()
        self._draining = False
        self._failed_epoch = 0

    @property
    def engine_available(self) -> bool:
        return self.engine is not None

    @property
    def status(self) -> NarrationStatus:
        return self.state.status

    @property
    def current_word(self) -> Optional[WordUnit]:
        index = self.state.current_word
        if 0 <= index < len(self.state.words):
            return self.state.words[index]
        return None

    def dispatch(self, event: Event) -> Optional[Transition]:
        """
        Feed an event to the state machine and apply its effects.

        Returns:
            The Transition for ``event``, or None if it was queued behind
            an event that is still being applied
        """
        if self.engine is None and isinstance(event, (Start, Pause, Resume)):
            logger.debug(f"Ignoring {type(event).__name__}: no speech engine")
            return Transition(self.state, rejected=EngineUnavailable("no speech engine"))

        self._queue.append(event)
        if self._draining:
            return None

        result = None
        self._draining = True
        try:
            while self._queue:
                queued = self._queue.popleft()
                transition = self._process(queued)
                if queued is event and result is None:
                    result = transition
        finally:
            self._draining = False
        return result

    def _process(self, event: Event) -> Transition:
        transition = reduce(self.state, event)
        self.state = transition.state

        if isinstance(event, Error) and transition.rejected is not None:
            self._failed_epoch = event.epoch

        if transition.rejected is not None:
            if isinstance(transition.rejected, EngineError):
                logger.warning(f"Speech engine error: {transition.rejected}")
            else:
                logger.debug(f"{type(event).__name__} rejected: {transition.rejected}")

        for effect in transition.effects:
            self._apply(effect)
        return transition

    def _apply(self, effect: Effect) -> None:
        renderer = self.tracker.renderer

        if isinstance(effect, StartEngine):
            self._start_engine(effect)
        elif isinstance(effect, PauseEngine):
            self._call_engine(self.engine.pause)
        elif isinstance(effect, ResumeEngine):
            self._call_engine(self.engine.resume)
        elif isinstance(effect, CancelEngine):
            if self.engine is not None:
                self.engine.cancel()
        elif isinstance(effect, SetWords):
            self.tracker.set_words(effect.words)
        elif isinstance(effect, ShowWord):
            self.tracker.show_word(effect.index)
        elif isinstance(effect, ClearOverlay):
            self.tracker.clear()
        elif isinstance(effect, SetActive):
            renderer.set_active(effect.active)
        elif isinstance(effect, SetPaused):
            renderer.set_paused(effect.paused)
        elif isinstance(effect, TurnPage):
            logger.step(f"Turning to page {effect.page}")
            if self.navigator is not None:
                self.navigator(effect.page)

    def _start_engine(self, effect: StartEngine) -> None:
        epoch = effect.epoch
        callbacks = EngineCallbacks(
            on_boundary=lambda char_index: self.dispatch(Boundary(epoch, char_index)),
            on_end=lambda: self.dispatch(End(epoch)),
            on_error=lambda error: self.dispatch(Error(epoch, error)),
        )
        try:
            self.engine.start(effect.text, effect.rate, effect.pitch, effect.voice_id, callbacks)
        except Exception as e:
            self.dispatch(Error(epoch, EngineError(str(e))))

    def _call_engine(self, action: Callable[[], None]) -> None:
        epoch = self.state.epoch
        try:
            action()
        except Exception as e:
            self.dispatch(Error(epoch, EngineError(str(e))))

    # Host-facing operations

    def start(self) -> bool:
        """Start narrating the current page. Returns False if rejected."""
        transition = self.dispatch(Start())
        if transition is None:
            return True
        if transition.rejected is not None:
            return False
        return self._failed_epoch != transition.state.epoch

    def pause(self) -> None:
        self.dispatch(Pause())

    def resume(self) -> None:
        self.dispatch(Resume())

    def stop(self) -> None:
        self.dispatch(Stop())

    def change_page(self, page: int) -> None:
        self.dispatch(PageChanged(page))

    def load_document(self, page_count: int, page: int = 1) -> None:
        self.dispatch(DocumentLoaded(page_count, page))

    def words_ready(self, page: int, words: Sequence[WordUnit]) -> None:
        self.dispatch(WordsReady(page, tuple(words)))

    def set_options(self, **changes: Any) -> None:
        """Change narration options, e.g. ``set_options(auto_continue=True)``."""
        self.dispatch(SetOptions(replace(self.state.options, **changes)))

    def on_viewport_changed(self) -> None:
        """Scroll or resize notification from the host."""
        self.tracker.on_viewport_changed()

    def summary(self) -> Dict[str, Any]:
        """Status values shown next to the controls."""
        word = self.current_word
        return {
            "status": self.state.status.value,
            "page": self.state.page,
            "pageCount": self.state.page_count,
            "wordsDetected": len(self.state.words),
            "currentWord": word.text if word else None,
            "pendingAdvance": self.state.pending_advance,
        }
