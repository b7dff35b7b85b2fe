import pytest
from PySide6.QtCore import Qt

from fakes import FakeDecoder, TimerSpy
from picsorpix.utils.image import BLANK_PLACEHOLDER, ERROR_PLACEHOLDER, ImageSlot
from picsorpix.widgets import modal_navigator as modal_module
from picsorpix.widgets.modal_navigator import (NEXT, PREVIOUS, ModalNavigator,
                                               ModalPhase, SwipeTracker,
                                               classify_swipe)


@pytest.fixture
def timer_spy(monkeypatch):
    TimerSpy.reset()
    monkeypatch.setattr(modal_module, "QTimer", TimerSpy)
    yield TimerSpy
    TimerSpy.reset()


def _slots(count):
    slots = []
    for i in range(count):
        slot = ImageSlot(index=i, full_url=f"file:///{i}.jpg",
                         placeholder_url=f"file:///{i}-320.webp")
        slot.mark_loading()
        slot.mark_loaded(1600, 900)
        slots.append(slot)
    return slots


def _open_navigator(count=3, index=0):
    decoder = FakeDecoder()
    navigator = ModalNavigator(decoder, fade_ms=300)
    slots = _slots(count)
    assert navigator.open(slots, index) is True
    return navigator, decoder, slots


def test_open_shows_placeholder_until_image_is_ready(timer_spy):
    navigator, decoder, _ = _open_navigator()

    assert navigator.is_open
    assert navigator.current_index == 0
    assert navigator.phase == ModalPhase.AWAITING_IMAGE
    assert navigator.displayed_url == "file:///0-320.webp"
    assert decoder.requested_urls() == ["file:///0.jpg"]

    decoder.resolve("file:///0.jpg", width=1600, height=900)

    assert navigator.phase == ModalPhase.SHOWN
    assert navigator.displayed_url == "file:///0.jpg"
    assert navigator.displayed_image == "image:file:///0.jpg"
    assert navigator.content_visible


def test_previous_from_first_wraps_to_last(timer_spy):
    navigator, decoder, _ = _open_navigator()
    decoder.resolve("file:///0.jpg")

    assert navigator.previous() is True
    assert navigator.current_index == 2
    assert navigator.phase == ModalPhase.FADING_OUT
    assert not navigator.content_visible
    assert timer_spy.calls[0][0] == 300

    timer_spy.fire_all()
    assert navigator.phase == ModalPhase.AWAITING_IMAGE
    decoder.resolve("file:///2.jpg")

    assert navigator.displayed_url == "file:///2.jpg"
    assert navigator.content_visible


def test_next_cycles_through_every_index(timer_spy):
    navigator, decoder, _ = _open_navigator(count=4, index=1)
    seen = []

    for _ in range(4):
        navigator.next()
        timer_spy.fire_all()
        seen.append(navigator.current_index)

    assert seen == [2, 3, 0, 1]


def test_previous_cycles_back_to_the_start(timer_spy):
    navigator, decoder, _ = _open_navigator(count=5, index=3)
    seen = []

    for _ in range(5):
        assert navigator.previous() is True
        timer_spy.fire_all()
        seen.append(navigator.current_index)

    assert seen == [2, 1, 0, 4, 3]
    assert navigator.phase == ModalPhase.AWAITING_IMAGE


def test_rapid_navigation_coalesces_into_one_fade(timer_spy):
    navigator, decoder, _ = _open_navigator(count=5)
    decoder.resolve("file:///0.jpg")
    changes = []
    navigator.index_changed.connect(changes.append)

    navigator.next()
    navigator.next()
    navigator.next()

    assert changes == [1, 2, 3]
    assert len(timer_spy.calls) == 1
    timer_spy.fire_all()
    decoder.resolve("file:///1.jpg")
    assert navigator.displayed_url == "file:///3-320.webp"
    decoder.resolve("file:///3.jpg")
    assert navigator.displayed_url == "file:///3.jpg"


def test_preloaded_image_is_swapped_in_right_after_fade(timer_spy):
    navigator, decoder, _ = _open_navigator()
    decoder.resolve("file:///0.jpg")

    navigator.next()
    decoder.resolve("file:///1.jpg")
    assert navigator.displayed_url == "file:///0.jpg"

    timer_spy.fire_all()
    assert navigator.phase == ModalPhase.SHOWN
    assert navigator.displayed_url == "file:///1.jpg"


def test_failed_preload_shows_error_placeholder(timer_spy):
    navigator, decoder, _ = _open_navigator()

    decoder.resolve("file:///0.jpg", error="OSError: gone")

    assert navigator.displayed_url == ERROR_PLACEHOLDER
    assert navigator.phase == ModalPhase.SHOWN


def test_slot_without_placeholder_shows_blank():
    decoder = FakeDecoder()
    navigator = ModalNavigator(decoder)
    slot = ImageSlot(index=0, full_url="file:///0.jpg")

    navigator.open([slot], 0)

    assert navigator.displayed_url == BLANK_PLACEHOLDER


@pytest.mark.parametrize("index", [-1, 3, 10])
def test_open_out_of_range_is_a_no_op(index):
    navigator = ModalNavigator(FakeDecoder())

    assert navigator.open(_slots(3), index) is False
    assert not navigator.is_open
    assert navigator.current_index is None


def test_open_with_no_slots_is_a_no_op():
    navigator = ModalNavigator(FakeDecoder())

    assert navigator.open([], 0) is False


def test_close_keeps_index_and_slots(timer_spy):
    navigator, decoder, slots = _open_navigator(index=1)
    closed = []
    navigator.closed.connect(lambda: closed.append(True))

    assert navigator.close() is True
    assert navigator.phase == ModalPhase.CLOSING
    assert navigator.close() is False
    timer_spy.fire_all()

    assert not navigator.is_open
    assert closed == [True]
    assert navigator.current_index == 1
    assert navigator.state.bound_slots is slots


def test_navigation_is_ignored_while_closed(timer_spy):
    navigator, _, _ = _open_navigator(index=1)
    navigator.close()
    timer_spy.fire_all()

    assert navigator.next() is False
    assert navigator.previous() is False
    assert navigator.handle_key(Qt.Key.Key_Right) is False
    assert navigator.current_index == 1


def test_close_during_fade_cancels_the_swap(timer_spy):
    navigator, decoder, _ = _open_navigator()
    decoder.resolve("file:///0.jpg")

    navigator.next()
    navigator.close()
    timer_spy.fire_all()

    assert not navigator.is_open
    assert navigator.phase == ModalPhase.CLOSED
    assert navigator.displayed_url == "file:///0.jpg"


def test_keys_navigate_and_close(timer_spy):
    navigator, decoder, _ = _open_navigator()

    assert navigator.handle_key(Qt.Key.Key_Right) is True
    assert navigator.current_index == 1
    assert navigator.handle_key(Qt.Key.Key_Left) is True
    assert navigator.current_index == 0
    assert navigator.handle_key(Qt.Key.Key_Space) is False
    assert navigator.handle_key(Qt.Key.Key_Escape) is True
    timer_spy.fire_all()
    assert not navigator.is_open


def test_rebind_closes_and_forgets_previous_grid(timer_spy):
    navigator, decoder, _ = _open_navigator()
    closed = []
    navigator.closed.connect(lambda: closed.append(True))
    new_slots = _slots(2)

    navigator.rebind(new_slots)
    decoder.resolve("file:///0.jpg")

    assert closed == [True]
    assert not navigator.is_open
    assert navigator.current_index is None
    assert navigator.state.bound_slots is new_slots
    assert navigator.displayed_url is None


@pytest.mark.parametrize(("dx", "dy", "elapsed", "expected"), [
    (-60, 5, 100, NEXT),
    (60, 0, 100, PREVIOUS),
    (50, 0, 100, PREVIOUS),
    (-49, 0, 100, None),
    (-80, 100, 100, None),
    (-80, 0, 300, NEXT),
    (-80, 0, 301, None),
])
def test_classify_swipe(dx, dy, elapsed, expected):
    assert classify_swipe(dx, dy, elapsed) == expected


def test_multi_touch_is_never_a_swipe():
    tracker = SwipeTracker()

    assert tracker.begin(200, 100, 0, touch_count=2) is False
    assert tracker.end(0, 100, 50) is None


def test_swipe_left_moves_to_next_image(timer_spy):
    navigator, _, _ = _open_navigator()

    assert navigator.touch_begin(300, 200, 1000) is True
    assert navigator.touch_end(150, 210, 1120) is True
    assert navigator.current_index == 1


def test_touch_is_ignored_while_closed():
    navigator = ModalNavigator(FakeDecoder())

    assert navigator.touch_begin(300, 200, 0) is False
    assert navigator.touch_end(100, 200, 50) is False
