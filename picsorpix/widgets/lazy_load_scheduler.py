"""Deferred, at-most-once loading of grid images as they near the viewport."""

from functools import partial

from PySide6.QtCore import QObject, QTimer, Signal

from picsorpix.utils.flow_log import log_flow
from picsorpix.utils.image import ImageSlot, SlotState


class _Entry:
    __slots__ = ('slot', 'element')

    def __init__(self, slot: ImageSlot, element):
        self.slot = slot
        self.element = element


class LazyLoadScheduler(QObject):
    """
    Starts the full-resolution fetch of a registered slot once its element
    comes within `margin` pixels of the viewport.

    Two strategies share one contract:

    - visibility: an observer built by `observer_factory(callback)` reports
      elements entering the expanded viewport (`observe`, `unobserve`,
      `refresh` and `shutdown` are used on it).
    - polling: without an observer, a timer checks `viewport_range()`
      against each element's `y()`/`height()` every `poll_interval_ms`.

    Each slot is fetched at most once; the outcome is reported through
    `loaded` or `failed`. Failures are terminal and never retried.
    """

    loading = Signal(object)  # ImageSlot
    loaded = Signal(object)   # ImageSlot
    failed = Signal(object)   # ImageSlot

    def __init__(self, decoder, *, observer_factory=None, viewport_range=None,
                 margin: int = 250, poll_interval_ms: int = 20,
                 decode_width: int = 1200, parent=None):
        super().__init__(parent)
        if observer_factory is None and viewport_range is None:
            raise ValueError('Polling mode needs a viewport_range callable')
        self._decoder = decoder
        self.margin = max(0, int(margin))
        self.decode_width = decode_width
        self._viewport_range = viewport_range
        self._entries: dict[int, _Entry] = {}        # id(slot) -> entry
        self._by_element: dict[int, _Entry] = {}     # id(element) -> entry
        self._in_flight: dict[int, ImageSlot] = {}
        self._generation = 0
        self._last_polled_range = None
        self._observer = None
        self._poll_timer = None

        if observer_factory is not None:
            self._observer = observer_factory(self._on_elements_visible)
        else:
            self._poll_timer = QTimer(self)
            self._poll_timer.setInterval(max(1, int(poll_interval_ms)))
            self._poll_timer.timeout.connect(self.poll)

    @property
    def mode(self) -> str:
        return 'visibility' if self._observer is not None else 'polling'

    @property
    def pending_count(self) -> int:
        return len(self._entries)

    def register(self, slot: ImageSlot, element) -> bool:
        """Start watching `element` on behalf of a pending slot."""
        if slot.state != SlotState.PENDING:
            log_flow("LAZY", f"Slot {slot.index} is {slot.state.value}, not registering",
                     level="WARNING")
            return False
        if id(slot) in self._entries or id(element) in self._by_element:
            return False

        entry = _Entry(slot, element)
        self._entries[id(slot)] = entry
        self._by_element[id(element)] = entry
        if self._observer is not None:
            self._observer.observe(element)
        else:
            self._last_polled_range = None
            if not self._poll_timer.isActive():
                self._poll_timer.start()
        return True

    def unregister(self, element):
        """Stop watching `element`; an already started fetch is unaffected."""
        entry = self._by_element.pop(id(element), None)
        if entry is None:
            return
        self._entries.pop(id(entry.slot), None)
        if self._observer is not None:
            self._observer.unobserve(element)
        elif not self._entries:
            self._poll_timer.stop()

    def clear(self):
        """Forget every registration; results of fetches still running are dropped."""
        for entry in list(self._entries.values()):
            self.unregister(entry.element)
        if self._in_flight:
            log_flow("LAZY", f"Discarding {len(self._in_flight)} in-flight fetches")
        self._in_flight.clear()
        self._generation += 1
        self._last_polled_range = None

    def refresh(self):
        """Re-check visibility now, e.g. after a layout pass moved elements."""
        if self._observer is not None:
            self._observer.refresh()
        else:
            self._last_polled_range = None
            self.poll()

    def poll(self):
        """Polling strategy: load every watched element inside the lookahead band."""
        if not self._entries or self._viewport_range is None:
            if self._poll_timer is not None and not self._entries:
                self._poll_timer.stop()
            return
        viewport_top, viewport_bottom = self._viewport_range()
        if (viewport_top, viewport_bottom) == self._last_polled_range:
            return
        self._last_polled_range = (viewport_top, viewport_bottom)

        band_top = viewport_top - self.margin
        band_bottom = viewport_bottom + self.margin
        for entry in list(self._entries.values()):
            element_top = entry.element.y()
            element_bottom = element_top + entry.element.height()
            if element_bottom >= band_top and element_top <= band_bottom:
                self._start_fetch(entry)

    def shutdown(self):
        if self._observer is not None:
            self._observer.shutdown()
        elif self._poll_timer is not None:
            self._poll_timer.stop()

    def _on_elements_visible(self, elements):
        for element in list(elements):
            entry = self._by_element.get(id(element))
            if entry is not None:
                self._start_fetch(entry)

    def _start_fetch(self, entry: _Entry):
        slot = entry.slot
        self.unregister(entry.element)
        if slot.state != SlotState.PENDING:
            return
        slot.mark_loading()
        self._in_flight[id(slot)] = slot
        self.loading.emit(slot)
        log_flow("LAZY", f"Fetching slot {slot.index}: {slot.full_url}",
                 throttle_key="lazy_fetch", every_s=0.1)
        self._decoder.fetch(slot.full_url,
                            partial(self._on_decoded, slot, self._generation),
                            max_width=self.decode_width)

    def _on_decoded(self, slot: ImageSlot, generation: int, result):
        if generation != self._generation:
            # The owning grid was discarded while the fetch was running.
            return
        self._in_flight.pop(id(slot), None)
        if slot.state != SlotState.LOADING:
            return
        if result.ok:
            slot.decoded = result.image
            slot.mark_loaded(result.width, result.height)
            self.loaded.emit(slot)
        else:
            log_flow("LAZY", f"Slot {slot.index} failed: {result.error}", level="WARNING")
            slot.mark_failed()
            self.failed.emit(slot)
