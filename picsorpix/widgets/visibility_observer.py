"""Reports child widgets of a scroll area that come near its viewport."""

from PySide6.QtCore import QEvent, QObject, QTimer


class ViewportVisibilityObserver(QObject):
    """
    Event-driven visibility detection for widgets laid out inside a
    QScrollArea: re-checks on scroll, on viewport resize and when elements
    are added, and calls `callback(elements)` with the observed elements
    whose vertical extent intersects the viewport grown by `margin`.
    """

    def __init__(self, scroll_area, callback, margin: int = 250):
        super().__init__(scroll_area)
        self._scroll_area = scroll_area
        self._callback = callback
        self.margin = margin
        self._observed: dict[int, object] = {}
        self._check_scheduled = False

        self._scroll_bar = scroll_area.verticalScrollBar()
        self._scroll_bar.valueChanged.connect(self._schedule_check)
        scroll_area.viewport().installEventFilter(self)

    def observe(self, element):
        self._observed[id(element)] = element
        self._schedule_check()

    def unobserve(self, element):
        self._observed.pop(id(element), None)

    def refresh(self):
        self._schedule_check()

    def shutdown(self):
        self._observed.clear()
        try:
            self._scroll_bar.valueChanged.disconnect(self._schedule_check)
        except (RuntimeError, TypeError):
            pass
        self._scroll_area.viewport().removeEventFilter(self)

    def eventFilter(self, watched, event):
        if event.type() in (QEvent.Type.Resize, QEvent.Type.Show):
            self._schedule_check()
        return False

    def _schedule_check(self, *_):
        # Coalesce bursts of scroll/resize events into one check per event-loop turn.
        if self._check_scheduled:
            return
        self._check_scheduled = True
        QTimer.singleShot(0, self._check)

    def _check(self):
        self._check_scheduled = False
        if not self._observed:
            return
        viewport_top = self._scroll_bar.value()
        viewport_bottom = viewport_top + self._scroll_area.viewport().height()
        band_top = viewport_top - self.margin
        band_bottom = viewport_bottom + self.margin

        visible = []
        for element in list(self._observed.values()):
            if not element.isVisible() and element.height() <= 0:
                continue
            element_top = element.y()
            element_bottom = element_top + element.height()
            if element_bottom >= band_top and element_top <= band_bottom:
                visible.append(element)
        if visible:
            self._callback(visible)
