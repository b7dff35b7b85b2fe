"""Full-window overlay that renders the ModalNavigator state."""

import time

from PySide6.QtCore import QEasingCurve, QEvent, QPropertyAnimation, Qt, Slot
from PySide6.QtGui import QColor, QPainter, QPixmap
from PySide6.QtWidgets import (QGraphicsOpacityEffect, QHBoxLayout, QLabel,
                               QPushButton, QSizePolicy, QVBoxLayout, QWidget)

from picsorpix.utils.image import BLANK_PLACEHOLDER, ERROR_PLACEHOLDER
from picsorpix.utils.image_files import url_to_path
from picsorpix.widgets.modal_navigator import ModalNavigator

BUTTON_STYLE = """
QPushButton {
    color: white;
    background: transparent;
    border: none;
    font-size: 36px;
    padding: 12px;
}
QPushButton:hover { color: #ccc; }
"""


class ModalOverlay(QWidget):
    """Backdrop, image, previous/next/close buttons and input plumbing."""

    def __init__(self, navigator: ModalNavigator, parent: QWidget):
        super().__init__(parent)
        self.navigator = navigator
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setStyleSheet(BUTTON_STYLE)
        self.hide()

        self.previous_button = QPushButton('‹', self)
        self.previous_button.setAccessibleName('Previous image')
        self.next_button = QPushButton('›', self)
        self.next_button.setAccessibleName('Next image')
        self.close_button = QPushButton('×', self)
        self.close_button.setAccessibleName('Close modal')
        for button in (self.previous_button, self.next_button, self.close_button):
            button.setFocusPolicy(Qt.FocusPolicy.NoFocus)
            button.setCursor(Qt.CursorShape.PointingHandCursor)

        self.image_label = QLabel(self)
        self.image_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.image_label.setSizePolicy(QSizePolicy.Policy.Ignored, QSizePolicy.Policy.Ignored)
        self.image_label.setStyleSheet('color: #ddd; font-size: 18px;')
        self.image_label.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.image_label.installEventFilter(self)
        self._opacity_effect = QGraphicsOpacityEffect(self.image_label)
        self._opacity_effect.setOpacity(0.0)
        self.image_label.setGraphicsEffect(self._opacity_effect)
        self._fade = QPropertyAnimation(self._opacity_effect, b'opacity', self)
        self._fade.setDuration(navigator.fade_ms)
        self._fade.setEasingCurve(QEasingCurve.Type.InOutQuad)
        self._source_pixmap: QPixmap | None = None

        top_row = QHBoxLayout()
        top_row.addStretch()
        top_row.addWidget(self.close_button)
        middle_row = QHBoxLayout()
        middle_row.addWidget(self.previous_button)
        middle_row.addWidget(self.image_label, stretch=1)
        middle_row.addWidget(self.next_button)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 24)
        layout.addLayout(top_row)
        layout.addLayout(middle_row, stretch=1)

        # Buttons consume their own clicks, so they never reach the backdrop handler.
        self.previous_button.clicked.connect(navigator.previous)
        self.next_button.clicked.connect(navigator.next)
        self.close_button.clicked.connect(navigator.close)
        navigator.opened.connect(self._on_opened)
        navigator.closed.connect(self.hide)
        navigator.display_changed.connect(self._on_display_changed)
        navigator.content_visibility_changed.connect(self._on_content_visibility_changed)

    @Slot()
    def _on_opened(self):
        self.setGeometry(self.parentWidget().rect())
        self.show()
        self.raise_()
        self.setFocus()

    @Slot(str)
    def _on_display_changed(self, url: str):
        if url == ERROR_PLACEHOLDER:
            self._source_pixmap = None
            self.image_label.setText('⚠ Image unavailable')
        elif url == BLANK_PLACEHOLDER:
            self._source_pixmap = None
            self.image_label.setText('')
        else:
            self.image_label.setText('')
            image = self.navigator.displayed_image
            if image is not None:
                self._source_pixmap = QPixmap.fromImage(image)
            else:
                pixmap = QPixmap(str(url_to_path(url)))
                self._source_pixmap = None if pixmap.isNull() else pixmap
        self._rescale()

    @Slot(bool)
    def _on_content_visibility_changed(self, visible: bool):
        self._fade.stop()
        self._fade.setStartValue(self._opacity_effect.opacity())
        self._fade.setEndValue(1.0 if visible else 0.0)
        self._fade.start()

    def _rescale(self):
        if self._source_pixmap is None:
            self.image_label.setPixmap(QPixmap())
            return
        self.image_label.setPixmap(self._source_pixmap.scaled(
            self.image_label.size(), Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation))

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(0, 0, 0, 230))
        painter.end()
        super().paintEvent(event)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._rescale()

    def keyPressEvent(self, event):
        if self.navigator.handle_key(event.key()):
            event.accept()
            return
        super().keyPressEvent(event)

    def mousePressEvent(self, event):
        # A click on the backdrop (outside image and buttons) closes the modal.
        if self.childAt(event.position().toPoint()) is None:
            self.navigator.close()
            event.accept()
            return
        super().mousePressEvent(event)

    def eventFilter(self, watched, event):
        if watched is self.image_label and self._handle_touch(event):
            return True
        return super().eventFilter(watched, event)

    def event(self, event):
        if self._handle_touch(event):
            return True
        return super().event(event)

    def _handle_touch(self, event) -> bool:
        event_type = event.type()
        if event_type == QEvent.Type.TouchBegin:
            points = event.points()
            if points:
                pos = points[0].position()
                self.navigator.touch_begin(pos.x(), pos.y(), time.monotonic() * 1000,
                                           touch_count=len(points))
            event.accept()
            return True
        if event_type == QEvent.Type.TouchUpdate:
            if len(event.points()) > 1:
                self.navigator.swipe.cancel()
            event.accept()
            return True
        if event_type == QEvent.Type.TouchEnd:
            points = event.points()
            if points:
                pos = points[0].position()
                self.navigator.touch_end(pos.x(), pos.y(), time.monotonic() * 1000)
            event.accept()
            return True
        if event_type == QEvent.Type.TouchCancel:
            self.navigator.swipe.cancel()
            event.accept()
            return True
        return False
