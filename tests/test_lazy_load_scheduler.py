import pytest

from fakes import FakeDecoder, FakeElement, FakeObserver, FakeTimer
from picsorpix.utils.image import ImageSlot, SlotState
from picsorpix.widgets import lazy_load_scheduler as lazy_module
from picsorpix.widgets.lazy_load_scheduler import LazyLoadScheduler


def _slots(count):
    return [ImageSlot(index=i, full_url=f"file:///{i}.jpg") for i in range(count)]


def _observer_scheduler(decoder):
    observers = []

    def factory(callback):
        observers.append(FakeObserver(callback))
        return observers[-1]

    scheduler = LazyLoadScheduler(decoder, observer_factory=factory, decode_width=1200)
    return scheduler, observers[0]


def _record(signal):
    received = []
    signal.connect(lambda slot: received.append(slot))
    return received


def test_visible_slot_is_fetched_exactly_once():
    decoder = FakeDecoder()
    scheduler, observer = _observer_scheduler(decoder)
    slot, = _slots(1)
    element = FakeElement()
    loaded = _record(scheduler.loaded)

    assert scheduler.register(slot, element) is True
    observer.report_visible(element)
    observer.report_visible(element)

    assert decoder.requested_urls() == ["file:///0.jpg"]
    assert decoder.requests[0][2] == 1200
    assert slot.state == SlotState.LOADING
    assert element not in observer.observed

    decoder.resolve("file:///0.jpg", width=1600, height=900)
    observer.report_visible(element)

    assert slot.state == SlotState.LOADED
    assert (slot.natural_width, slot.natural_height) == (1600, 900)
    assert slot.decoded == "image:file:///0.jpg"
    assert loaded == [slot]
    assert decoder.requests == []


def test_failed_fetch_is_terminal():
    decoder = FakeDecoder()
    scheduler, observer = _observer_scheduler(decoder)
    slot, = _slots(1)
    element = FakeElement()
    failed = _record(scheduler.failed)
    scheduler.register(slot, element)

    observer.report_visible(element)
    decoder.resolve("file:///0.jpg", error="OSError: truncated")

    assert slot.state == SlotState.FAILED
    assert failed == [slot]
    assert scheduler.register(slot, element) is False
    observer.report_visible(element)
    assert decoder.requests == []


def test_only_pending_slots_can_register():
    decoder = FakeDecoder()
    scheduler, _ = _observer_scheduler(decoder)
    slot, = _slots(1)
    slot.mark_loading()

    assert scheduler.register(slot, FakeElement()) is False
    assert scheduler.pending_count == 0


def test_duplicate_registration_is_ignored():
    decoder = FakeDecoder()
    scheduler, observer = _observer_scheduler(decoder)
    slot, = _slots(1)
    element = FakeElement()

    assert scheduler.register(slot, element) is True
    assert scheduler.register(slot, element) is False
    assert observer.observed == [element]


def test_unregistered_element_is_not_fetched():
    decoder = FakeDecoder()
    scheduler, observer = _observer_scheduler(decoder)
    slot, = _slots(1)
    element = FakeElement()
    scheduler.register(slot, element)

    scheduler.unregister(element)
    observer.report_visible(element)

    assert decoder.requests == []
    assert slot.state == SlotState.PENDING


def test_clear_drops_results_of_running_fetches():
    decoder = FakeDecoder()
    scheduler, observer = _observer_scheduler(decoder)
    first, second = _slots(2)
    first_element, second_element = FakeElement(), FakeElement(top=400)
    loaded = _record(scheduler.loaded)
    scheduler.register(first, first_element)
    scheduler.register(second, second_element)
    observer.report_visible(first_element)

    scheduler.clear()
    decoder.resolve("file:///0.jpg", width=10, height=10)

    assert loaded == []
    assert first.state == SlotState.LOADING
    assert scheduler.pending_count == 0
    assert observer.observed == []


def test_refresh_and_shutdown_reach_the_observer():
    scheduler, observer = _observer_scheduler(FakeDecoder())

    scheduler.refresh()
    scheduler.shutdown()

    assert observer.refresh_calls == 1
    assert observer.shut_down is True
    assert scheduler.mode == "visibility"


def test_polling_needs_a_viewport_range():
    with pytest.raises(ValueError):
        LazyLoadScheduler(FakeDecoder())


def test_polling_loads_elements_inside_the_margin(monkeypatch):
    monkeypatch.setattr(lazy_module, "QTimer", FakeTimer)
    decoder = FakeDecoder()
    viewport = [(0, 600)]
    scheduler = LazyLoadScheduler(decoder, viewport_range=lambda: viewport[0],
                                  margin=250, poll_interval_ms=20)
    timer = scheduler._poll_timer
    near, far = _slots(2)
    near_element, far_element = FakeElement(top=800, height=300), FakeElement(top=900, height=300)

    scheduler.register(near, near_element)
    scheduler.register(far, far_element)
    assert timer.interval == 20
    assert timer.isActive()

    timer.fire()
    assert decoder.requested_urls() == ["file:///0.jpg"]

    # Same viewport again: nothing to do.
    timer.fire()
    assert decoder.requested_urls() == ["file:///0.jpg"]

    viewport[0] = (100, 700)
    timer.fire()
    assert decoder.requested_urls() == ["file:///0.jpg", "file:///1.jpg"]
    assert not timer.isActive()
    assert scheduler.mode == "polling"


def test_polling_refresh_rechecks_after_layout_moves(monkeypatch):
    monkeypatch.setattr(lazy_module, "QTimer", FakeTimer)
    decoder = FakeDecoder()
    scheduler = LazyLoadScheduler(decoder, viewport_range=lambda: (0, 600), margin=0)
    slot, = _slots(1)
    element = FakeElement(top=1000)
    scheduler.register(slot, element)

    scheduler.poll()
    assert decoder.requests == []

    element.top = 500
    scheduler.refresh()

    assert decoder.requested_urls() == ["file:///0.jpg"]


def test_pending_count_drops_as_fetches_start():
    decoder = FakeDecoder()
    scheduler, observer = _observer_scheduler(decoder)
    elements = [FakeElement(top=i * 300) for i in range(3)]
    for slot, element in zip(_slots(3), elements):
        scheduler.register(slot, element)

    assert scheduler.pending_count == 3
    observer.report_visible(elements[0])
    assert scheduler.pending_count == 2
