"""Scrollable photo grid whose tiles are positioned by the masonry layout."""

from PySide6.QtCore import Qt, QTimer, Signal
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import QFrame, QLabel, QScrollArea, QWidget

from picsorpix.utils.image import (BLANK_PLACEHOLDER, ERROR_PLACEHOLDER,
                                   ImageSlot)
from picsorpix.utils.image_files import url_to_path

GRID_PADDING = 16
SHOW_GRID_DELAY_MS = 5

TILE_STYLE = """
SlotTile { background-color: rgba(128, 128, 128, 40); }
SlotTile[orientation="landscape"] { border-bottom: 2px solid rgba(0, 0, 0, 30); }
SlotTile[orientation="portrait"] { border-right: 2px solid rgba(0, 0, 0, 30); }
SlotTile[slotState="failed"] {
    background-color: rgba(160, 0, 0, 60);
    color: #a00;
    border: 1px dashed #a00;
}
"""


class SlotTile(QLabel):
    """One grid cell. Its look is a projection of the slot's state."""

    clicked = Signal(int)

    def __init__(self, slot: ImageSlot, parent=None):
        super().__init__(parent)
        self.slot = slot
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setScaledContents(False)
        self._source_pixmap: QPixmap | None = None
        self.sync_from_slot()

    def sync_from_slot(self):
        slot = self.slot
        self.setProperty('slotState', slot.state.value)
        self.setProperty('orientation', slot.orientation.value if slot.orientation else '')
        self.setAccessibleName(f'Photo {slot.index + 1}')

        url = slot.display_url
        if url == ERROR_PLACEHOLDER:
            self._source_pixmap = None
            self.setText('⚠ Image unavailable')
        elif url == BLANK_PLACEHOLDER:
            self._source_pixmap = None
            self.setText('')
        elif url == slot.full_url and slot.decoded is not None:
            self.setText('')
            self._source_pixmap = QPixmap.fromImage(slot.decoded)
        else:
            self.setText('')
            pixmap = QPixmap(str(url_to_path(url)))
            self._source_pixmap = None if pixmap.isNull() else pixmap

        # Re-evaluate [slotState=...] selectors after the property change.
        self.style().unpolish(self)
        self.style().polish(self)
        self._rescale()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._rescale()

    def _rescale(self):
        if self._source_pixmap is None or self.width() <= 0 or self.height() <= 0:
            self.setPixmap(QPixmap())
            return
        self.setPixmap(self._source_pixmap.scaled(
            self.size(), Qt.AspectRatioMode.IgnoreAspectRatio,
            Qt.TransformationMode.SmoothTransformation))

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton and self.rect().contains(event.position().toPoint()):
            self.clicked.emit(self.slot.index)
        super().mouseReleaseEvent(event)


class PhotoGridView(QScrollArea):
    """Hosts the tiles of one portfolio on an absolutely positioned canvas."""

    slot_clicked = Signal(int)
    viewport_resized = Signal(int)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setWidgetResizable(False)
        self._canvas = QWidget()
        self._canvas.setStyleSheet(TILE_STYLE)
        self.setWidget(self._canvas)
        self._tiles: dict[int, SlotTile] = {}

    def viewport_width(self) -> int:
        return self.viewport().width()

    def grid_width(self) -> int:
        return max(0, self.viewport_width() - 2 * GRID_PADDING)

    def visible_range(self) -> tuple[int, int]:
        """Vertical viewport extent in tile (canvas) coordinates."""
        top = self.verticalScrollBar().value()
        return top, top + self.viewport().height()

    def build_tiles(self, slots: list[ImageSlot]) -> dict[int, SlotTile]:
        self.clear()
        self._canvas.hide()
        for slot in slots:
            tile = SlotTile(slot, self._canvas)
            tile.clicked.connect(self.slot_clicked)
            self._tiles[slot.index] = tile
        return dict(self._tiles)

    def apply_layout(self, result):
        self._canvas.resize(self.viewport_width(),
                            int(result.container_height) + 2 * GRID_PADDING)
        for item in result.items:
            tile = self._tiles.get(item.index)
            if tile is None:
                continue
            tile.setGeometry(GRID_PADDING + round(item.x), GRID_PADDING + round(item.top),
                             round(item.width), round(item.height))
            tile.show()

    def reveal(self):
        QTimer.singleShot(SHOW_GRID_DELAY_MS, self._canvas.show)

    def update_slot(self, slot: ImageSlot):
        tile = self._tiles.get(slot.index)
        if tile is not None and tile.slot is slot:
            tile.sync_from_slot()

    def clear(self):
        for tile in self._tiles.values():
            tile.deleteLater()
        self._tiles.clear()
        self._canvas.resize(self.viewport_width(), 0)
        self.verticalScrollBar().setValue(0)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._canvas.resize(self.viewport_width(), self._canvas.height())
        self.viewport_resized.emit(self.viewport_width())
