"""Full-screen image navigator shared by every portfolio grid."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from functools import partial

from PySide6.QtCore import QObject, Qt, QTimer, Signal

from picsorpix.utils.flow_log import log_flow
from picsorpix.utils.image import BLANK_PLACEHOLDER, ERROR_PLACEHOLDER, ImageSlot

NEXT = 'next'
PREVIOUS = 'previous'


class ModalPhase(str, Enum):
    CLOSED = 'closed'
    SHOWN = 'shown'
    AWAITING_IMAGE = 'awaiting_image'  # placeholder visible, preload running
    FADING_OUT = 'fading_out'
    CLOSING = 'closing'


@dataclass
class ModalState:
    is_open: bool = False
    current_index: int | None = None
    bound_slots: list[ImageSlot] | None = None


def classify_swipe(dx: float, dy: float, elapsed_ms: float, *,
                   threshold_px: float = 50, timeout_ms: float = 300) -> str | None:
    """
    Classify a finished single-finger gesture.

    Returns NEXT for a quick leftward swipe, PREVIOUS for a quick rightward
    one, and None for anything that looks like a tap or a vertical scroll.
    """
    if elapsed_ms > timeout_ms:
        return None
    if abs(dx) < threshold_px:
        return None
    if abs(dy) > abs(dx):
        return None
    return PREVIOUS if dx > 0 else NEXT


class SwipeTracker:
    """Tracks one touch sequence from press to release."""

    def __init__(self, threshold_px: float = 50, timeout_ms: float = 300):
        self.threshold_px = threshold_px
        self.timeout_ms = timeout_ms
        self._start = None  # (x, y, time_ms)

    @property
    def active(self) -> bool:
        return self._start is not None

    def begin(self, x: float, y: float, time_ms: float, touch_count: int = 1) -> bool:
        if touch_count > 1:
            # Multi-finger gestures (pinch) are never navigation.
            self._start = None
            return False
        self._start = (x, y, time_ms)
        return True

    def end(self, x: float, y: float, time_ms: float) -> str | None:
        if self._start is None:
            return None
        start_x, start_y, start_time = self._start
        self._start = None
        return classify_swipe(x - start_x, y - start_y, time_ms - start_time,
                              threshold_px=self.threshold_px,
                              timeout_ms=self.timeout_ms)

    def cancel(self):
        self._start = None


class ModalNavigator(QObject):
    """
    Open/closed state machine over the ordered slot list of the shown grid.

    Keyboard, button and swipe input all end up in `open`, `next`,
    `previous` and `close`. The index changes synchronously; the visible
    image follows after a fade-out of `fade_ms`, and only once the target
    image has been preloaded. Rapid navigation during a fade-out does not
    queue extra fades: the pending swap shows whatever index is current
    when the fade-out ends.
    """

    opened = Signal()
    closed = Signal()
    index_changed = Signal(int)
    display_changed = Signal(str)
    content_visibility_changed = Signal(bool)

    PRELOAD_CACHE_SIZE = 6

    def __init__(self, decoder, fade_ms: int = 300, decode_width: int = 2560,
                 swipe_threshold_px: float = 50, swipe_timeout_ms: float = 300,
                 parent=None):
        super().__init__(parent)
        self._decoder = decoder
        self.fade_ms = max(0, int(fade_ms))
        self.decode_width = decode_width
        self.state = ModalState()
        self.swipe = SwipeTracker(swipe_threshold_px, swipe_timeout_ms)
        self._phase = ModalPhase.CLOSED
        self._displayed_url: str | None = None
        self.displayed_image = None
        self._content_visible = False
        self._preloaded: OrderedDict[str, object] = OrderedDict()
        self._preloading: set[str] = set()
        # Bumped on every transition; stale timer callbacks compare against it.
        self._transition_token = 0

    @property
    def phase(self) -> ModalPhase:
        return self._phase

    @property
    def is_open(self) -> bool:
        return self.state.is_open

    @property
    def current_index(self) -> int | None:
        return self.state.current_index

    @property
    def current_url(self) -> str | None:
        slots = self.state.bound_slots
        index = self.state.current_index
        if not slots or index is None or not 0 <= index < len(slots):
            return None
        return slots[index].full_url

    @property
    def displayed_url(self) -> str | None:
        return self._displayed_url

    @property
    def content_visible(self) -> bool:
        return self._content_visible

    def open(self, slots: list[ImageSlot], index: int) -> bool:
        if not slots or not 0 <= index < len(slots):
            log_flow("MODAL", f"Refusing to open at index {index} "
                              f"of {len(slots) if slots else 0} images", level="WARNING")
            return False

        was_open = self.state.is_open
        if slots is not self.state.bound_slots:
            self._forget_preloads()
        self.state.bound_slots = slots
        self.state.current_index = index
        self.state.is_open = True
        self._transition_token += 1
        self.index_changed.emit(index)

        self._phase = ModalPhase.AWAITING_IMAGE
        self._show_placeholder()
        self._set_content_visible(True)
        if not was_open:
            self.opened.emit()
        self._swap_when_ready()
        log_flow("MODAL", f"Opened at {index}/{len(slots)}")
        return True

    def next(self) -> bool:
        return self._step(1)

    def previous(self) -> bool:
        return self._step(-1)

    def close(self) -> bool:
        if not self.state.is_open or self._phase == ModalPhase.CLOSING:
            return False
        self.swipe.cancel()
        self._phase = ModalPhase.CLOSING
        self._set_content_visible(False)
        self._transition_token += 1
        QTimer.singleShot(self.fade_ms, partial(self._finish_close, self._transition_token))
        return True

    def rebind(self, slots: list[ImageSlot] | None):
        """Associate a new grid; an open modal is closed at once."""
        if self.state.is_open:
            self._transition_token += 1
            self.state.is_open = False
            self._phase = ModalPhase.CLOSED
            self._set_content_visible(False)
            self.closed.emit()
        self._forget_preloads()
        self.state.bound_slots = slots
        self.state.current_index = None
        self._displayed_url = None
        self.displayed_image = None

    def handle_key(self, key) -> bool:
        """Arrow keys navigate and Escape closes, only while open."""
        if not self.state.is_open:
            return False
        if key == Qt.Key.Key_Right:
            self.next()
        elif key == Qt.Key.Key_Left:
            self.previous()
        elif key == Qt.Key.Key_Escape:
            self.close()
        else:
            return False
        return True

    def handle_swipe(self, direction: str | None) -> bool:
        if not self.state.is_open or direction is None:
            return False
        if direction == NEXT:
            return self.next()
        if direction == PREVIOUS:
            return self.previous()
        return False

    def touch_begin(self, x: float, y: float, time_ms: float, touch_count: int = 1) -> bool:
        if not self.state.is_open:
            return False
        return self.swipe.begin(x, y, time_ms, touch_count)

    def touch_end(self, x: float, y: float, time_ms: float) -> bool:
        if not self.state.is_open:
            self.swipe.cancel()
            return False
        return self.handle_swipe(self.swipe.end(x, y, time_ms))

    def _step(self, delta: int) -> bool:
        slots = self.state.bound_slots
        if (not self.state.is_open or not slots or self.state.current_index is None
                or self._phase == ModalPhase.CLOSING):
            return False
        self.state.current_index = (self.state.current_index + delta) % len(slots)
        self.index_changed.emit(self.state.current_index)

        if self._phase == ModalPhase.FADING_OUT:
            # A fade-out is already running; its swap will pick up this index.
            self._request_preload(self.current_url)
            return True

        self._phase = ModalPhase.FADING_OUT
        self._set_content_visible(False)
        self._transition_token += 1
        self._request_preload(self.current_url)
        QTimer.singleShot(self.fade_ms, partial(self._finish_fade_out, self._transition_token))
        return True

    def _finish_fade_out(self, token: int):
        if token != self._transition_token or self._phase != ModalPhase.FADING_OUT:
            return
        self._phase = ModalPhase.AWAITING_IMAGE
        self._show_placeholder()
        self._set_content_visible(True)
        self._swap_when_ready()

    def _finish_close(self, token: int):
        if token != self._transition_token:
            return
        self.state.is_open = False
        self._phase = ModalPhase.CLOSED
        self.closed.emit()
        log_flow("MODAL", "Closed")

    def _swap_when_ready(self):
        url = self.current_url
        result = self._preloaded.get(url)
        if result is not None:
            self._show_result(url, result)
            self._phase = ModalPhase.SHOWN
        else:
            self._request_preload(url)

    def _request_preload(self, url: str | None):
        if url is None or url in self._preloaded or url in self._preloading:
            return
        self._preloading.add(url)
        self._decoder.fetch(url, partial(self._on_preloaded, url),
                            max_width=self.decode_width)

    def _on_preloaded(self, url: str, result):
        if url not in self._preloading:
            # Preloads forgotten by a rebind.
            return
        self._preloading.discard(url)
        self._preloaded[url] = result
        self._preloaded.move_to_end(url)
        while len(self._preloaded) > self.PRELOAD_CACHE_SIZE:
            self._preloaded.popitem(last=False)

        if (self.state.is_open and url == self.current_url
                and self._phase == ModalPhase.AWAITING_IMAGE):
            self._show_result(url, result)
            self._phase = ModalPhase.SHOWN

    def _show_placeholder(self):
        slot = self.state.bound_slots[self.state.current_index]
        self._display(slot.placeholder_url or BLANK_PLACEHOLDER, None)

    def _show_result(self, url: str, result):
        if result.ok:
            self._display(url, result.image)
        else:
            self._display(ERROR_PLACEHOLDER, None)

    def _display(self, url: str, image):
        self.displayed_image = image
        if url != self._displayed_url:
            self._displayed_url = url
            self.display_changed.emit(url)

    def _set_content_visible(self, visible: bool):
        if visible != self._content_visible:
            self._content_visible = visible
            self.content_visibility_changed.emit(visible)

    def _forget_preloads(self):
        self._preloaded.clear()
        self._preloading.clear()
