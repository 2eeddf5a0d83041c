from conftest import FakeRun

from narrator.readalong.overlay import (
    FrameQueue,
    OverlayPositioner,
    PointerTarget,
    Rect,
    derive_highlight_rect,
    derive_pointer_target,
)
from narrator.readalong.word_segmenter import segment_words


def test_pointer_aims_at_center() -> None:
    assert derive_pointer_target(Rect(10, 20, 30, 12)) == PointerTarget(25, 26)


def test_highlight_is_padded() -> None:
    assert derive_highlight_rect(Rect(10, 20, 30, 12)) == Rect(8, 18, 34, 16)


def test_highlight_size_is_clamped() -> None:
    tiny = derive_highlight_rect(Rect(0, 0, 1, 1))
    huge = derive_highlight_rect(Rect(0, 0, 5000, 3000))

    assert (tiny.width, tiny.height) == (6, 10)
    assert (huge.width, huge.height) == (2000, 2000)


def test_enclosing_rect() -> None:
    rect = Rect.enclosing([Rect(0, 0, 5, 5), Rect(10, 2, 5, 8)])

    assert rect == Rect(0, 0, 15, 10)
    assert Rect.enclosing([]) is None


def test_resolve_uses_exact_character_range() -> None:
    word = segment_words([FakeRun("The quick", left=100, top=50)])[1]

    assert OverlayPositioner().resolve_rect(word) == Rect(140, 50, 50, 12)


def test_resolve_falls_back_to_run_rect() -> None:
    positioner = OverlayPositioner()
    broken = segment_words([FakeRun("The quick", broken=True)])[1]
    degenerate = segment_words([FakeRun("The quick", degenerate=True)])[1]

    assert positioner.resolve_rect(broken) == Rect(0, 0, 90, 12)
    assert positioner.resolve_rect(degenerate) == Rect(0, 0, 90, 12)


def test_resolve_gives_up_without_geometry() -> None:
    word = segment_words([FakeRun("gone", missing=True)])[0]

    assert OverlayPositioner().resolve_rect(word) is None


def test_resolve_absorbs_unexpected_run_errors() -> None:
    word = segment_words([FakeRun("gone", crashing=True)])[0]

    assert OverlayPositioner().resolve_rect(word) is None


def test_show_word_updates_renderer(tracker, renderer) -> None:
    tracker.set_words(segment_words([FakeRun("The quick", top=40)]))

    assert tracker.show_word(1)
    assert renderer.caption == "quick"
    assert renderer.target == PointerTarget(65, 46)
    assert renderer.rect == Rect(38, 38, 54, 16)


def test_missing_geometry_keeps_previous_highlight(tracker, renderer) -> None:
    runs = [FakeRun("one two three"), FakeRun("four", missing=True)]
    tracker.set_words(segment_words(runs))

    tracker.show_word(2)
    previous = renderer.rect
    assert not tracker.show_word(3)

    assert renderer.rect == previous
    assert renderer.rect is not None
    assert tracker.current_index == 3


def test_viewport_changes_coalesce_into_one_frame(tracker, renderer, frames) -> None:
    run = FakeRun("The quick", top=100)
    tracker.set_words(segment_words([run]))
    tracker.show_word(1)
    updates = renderer.highlight_updates

    for _ in range(3):
        tracker.on_viewport_changed()
    assert frames.pending == 1

    run.top = 40  # scrolled up by 60
    assert frames.run_frame() == 1

    assert renderer.highlight_updates == updates + 1
    assert renderer.rect.top == 38
    assert tracker.current_index == 1


def test_viewport_change_without_current_word_is_ignored(tracker, frames) -> None:
    tracker.set_words(segment_words([FakeRun("idle page")]))

    tracker.on_viewport_changed()

    assert frames.pending == 0


def test_clear_cancels_pending_recompute(tracker, renderer, frames) -> None:
    tracker.set_words(segment_words([FakeRun("The quick")]))
    tracker.show_word(0)
    tracker.on_viewport_changed()

    tracker.clear()

    assert frames.pending == 0
    assert renderer.target is None
    assert renderer.rect is None
    assert tracker.current_index == -1


def test_frame_queue_runs_callbacks_once() -> None:
    frames = FrameQueue()
    ran = []
    frames.request_frame(lambda: ran.append("a"))
    handle = frames.request_frame(lambda: ran.append("b"))
    frames.cancel_frame(handle)

    assert frames.run_frame() == 1
    assert frames.run_frame() == 0
    assert ran == ["a"]
