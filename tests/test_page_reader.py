from collections import deque

from conftest import FakeRun, RecordingRenderer

from narrator.readalong.controller import NarrationOptions, NarrationStatus
from narrator.readalong.offset_index import build_offset_table, flatten_words
from narrator.readalong.overlay import Rect
from narrator.readalong.page_reader import PageReader
from narrator.readalong.word_segmenter import segment_words


class FakeSource:
    def __init__(self, *pages):
        self.pages = [[FakeRun(text) for text in page] for page in pages]
        self.requested = []

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def runs(self, page_number: int):
        self.requested.append(page_number)
        return self.pages[page_number - 1]

    def scroll_to(self, x: float, y: float) -> None:
        for run in self.all_runs():
            run.left = -x
            run.top = -y

    def set_zoom(self, zoom: float) -> None:
        for run in self.all_runs():
            run.char_width = 10.0 * zoom
            run.height = 12.0 * zoom

    def all_runs(self):
        return [run for page in self.pages for run in page]


class ScriptedEngine:
    """Reports every word boundary, one per pump, then finishes."""

    def __init__(self):
        self.spoken = []
        self.events = deque()

    def start(self, text, rate, pitch, voice_id, callbacks) -> None:
        self.spoken.append(text)
        words = segment_words([FakeRun(text)])
        for offset in build_offset_table(words):
            self.events.append(lambda offset=offset: callbacks.on_boundary(offset))
        self.events.append(callbacks.on_end)

    def pause(self) -> None:
        pass

    def resume(self) -> None:
        pass

    def cancel(self) -> None:
        self.events.clear()

    def voices(self):
        return []

    def pump(self) -> None:
        if self.events:
            self.events.popleft()()


def test_reads_through_every_page_with_auto_continue() -> None:
    source = FakeSource(["Page one."], ["Page two", "has more."], ["The end."])
    engine = ScriptedEngine()
    renderer = RecordingRenderer()
    reader = PageReader(source, engine, renderer, NarrationOptions(auto_continue=True))

    assert reader.read(1, poll_interval=0) is True

    assert engine.spoken == ["Page one.", "Page two has more.", "The end."]
    assert reader.controller.state.page == 3
    assert reader.controller.status == NarrationStatus.IDLE
    assert not reader.busy
    assert renderer.active is False


def test_stops_after_one_page_without_auto_continue() -> None:
    source = FakeSource(["Page one."], ["Page two"])
    engine = ScriptedEngine()
    reader = PageReader(source, engine, RecordingRenderer(), NarrationOptions(auto_continue=False))

    reader.read(1, poll_interval=0)

    assert engine.spoken == ["Page one."]
    assert reader.controller.state.page == 2
    assert reader.controller.state.words != ()


def test_pointer_follows_spoken_words() -> None:
    source = FakeSource(["alpha beta gamma"])
    engine = ScriptedEngine()
    renderer = RecordingRenderer()
    reader = PageReader(source, engine, renderer, NarrationOptions(auto_page_turn=False))

    reader.read(1, poll_interval=0)

    lefts = [rect.left for rect in renderer.history if rect is not None]
    assert lefts == [-2, 58, 108]


def test_blank_next_page_ends_auto_continue() -> None:
    source = FakeSource(["Page one."], ["   "], ["Page three"])
    engine = ScriptedEngine()
    reader = PageReader(source, engine, RecordingRenderer(), NarrationOptions(auto_continue=True))

    reader.read(1, poll_interval=0)

    assert engine.spoken == ["Page one."]
    assert reader.controller.state.page == 2
    assert reader.controller.state.pending_advance is False


def test_read_refuses_empty_page() -> None:
    engine = ScriptedEngine()
    reader = PageReader(FakeSource([""]), engine, RecordingRenderer(), NarrationOptions())

    assert reader.read(1, poll_interval=0) is False
    assert engine.spoken == []


def test_read_without_engine() -> None:
    reader = PageReader(FakeSource(["words"]), None, RecordingRenderer(), NarrationOptions())

    assert reader.read(1, poll_interval=0) is False


def test_go_to_loads_words_on_next_frame() -> None:
    source = FakeSource(["one"], ["two words"])
    reader = PageReader(source, ScriptedEngine(), RecordingRenderer(), NarrationOptions())
    reader.open(1)
    reader.tick()

    reader.go_to(2)
    assert reader.controller.state.words == ()
    reader.tick()

    assert flatten_words(reader.controller.state.words) == "two words"
    assert source.requested == [1, 2]


class FailingEngine(ScriptedEngine):
    def start(self, text, rate, pitch, voice_id, callbacks) -> None:
        raise RuntimeError("driver crashed")


def test_read_reports_engine_failure() -> None:
    reader = PageReader(FakeSource(["words"]), FailingEngine(), RecordingRenderer(), NarrationOptions())

    assert reader.read(1, poll_interval=0) is False
    assert reader.controller.status == NarrationStatus.IDLE


def test_scroll_and_zoom_move_the_overlay() -> None:
    source = FakeSource(["alpha beta"])
    engine = ScriptedEngine()
    renderer = RecordingRenderer()
    reader = PageReader(source, engine, renderer, NarrationOptions(auto_page_turn=False))
    reader.open(1)
    reader.tick()
    assert reader.controller.start() is True
    engine.pump()
    assert renderer.rect == Rect(-2, -2, 54, 16)

    reader.scroll_to(0, 100)
    assert renderer.rect == Rect(-2, -2, 54, 16)
    reader.frames.run_frame()
    assert renderer.rect == Rect(-2, -102, 54, 16)

    reader.set_zoom(2.0)
    reader.frames.run_frame()
    assert renderer.rect == Rect(-2, -102, 104, 28)


def test_scroll_while_idle_schedules_nothing() -> None:
    reader = PageReader(FakeSource(["alpha beta"]), ScriptedEngine(), RecordingRenderer(), NarrationOptions())
    reader.open(1)
    reader.tick()

    reader.scroll_to(0, 50)

    assert reader.frames.pending == 0
