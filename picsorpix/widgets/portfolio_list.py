"""Grid of portfolio covers shown on the start page."""

from functools import partial

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import (QFrame, QGridLayout, QLabel, QScrollArea,
                               QVBoxLayout, QWidget)

from picsorpix.models.image_source import Portfolio

CARD_WIDTH = 320
COVER_DECODE_WIDTH = 640
CAPTION_ALPHA = 0.7


class PortfolioCard(QFrame):
    clicked = Signal(str)

    def __init__(self, portfolio: Portfolio, parent=None):
        super().__init__(parent)
        self.portfolio = portfolio
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setFixedWidth(CARD_WIDTH)

        self.cover_label = QLabel()
        self.cover_label.setFixedSize(CARD_WIDTH, CARD_WIDTH * 2 // 3)
        self.cover_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.cover_label.setStyleSheet('background-color: rgba(128, 128, 128, 40);')
        self.name_label = QLabel(portfolio.name)
        self.name_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.name_label.setStyleSheet('padding: 8px; font-size: 18px;')

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)
        layout.addWidget(self.cover_label)
        layout.addWidget(self.name_label)

    def set_cover(self, image):
        pixmap = QPixmap.fromImage(image).scaled(
            self.cover_label.size(), Qt.AspectRatioMode.KeepAspectRatioByExpanding,
            Qt.TransformationMode.SmoothTransformation)
        self.cover_label.setPixmap(pixmap)

    def set_caption_color(self, rgb: tuple[int, int, int]):
        r, g, b = rgb
        self.name_label.setStyleSheet(
            f'padding: 8px; font-size: 18px; color: white; '
            f'background-color: rgba({r}, {g}, {b}, {CAPTION_ALPHA});')

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.clicked.emit(self.portfolio.name)
        super().mouseReleaseEvent(event)


class PortfolioListView(QScrollArea):
    portfolio_activated = Signal(str)

    def __init__(self, decoder, parent=None):
        super().__init__(parent)
        self._decoder = decoder
        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setWidgetResizable(True)
        self._container = QWidget()
        self._grid = QGridLayout(self._container)
        self._grid.setSpacing(16)
        self._grid.setAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignHCenter)
        self.setWidget(self._container)
        self._cards: list[PortfolioCard] = []
        self._generation = 0

    def set_portfolios(self, portfolios: list[Portfolio]):
        self._generation += 1
        for card in self._cards:
            card.deleteLater()
        self._cards.clear()

        columns = max(1, self.viewport().width() // (CARD_WIDTH + 16))
        for position, portfolio in enumerate(portfolios):
            card = PortfolioCard(portfolio, self._container)
            card.clicked.connect(self.portfolio_activated)
            self._grid.addWidget(card, position // columns, position % columns)
            self._cards.append(card)
            if portfolio.cover_url:
                self._decoder.fetch(portfolio.cover_url,
                                    partial(self._on_cover_decoded, card, self._generation),
                                    max_width=COVER_DECODE_WIDTH, with_color=True)

    def _on_cover_decoded(self, card: PortfolioCard, generation: int, result):
        if generation != self._generation or not result.ok:
            return
        card.set_cover(result.image)
        if result.dominant_color is not None:
            card.set_caption_color(result.dominant_color)
