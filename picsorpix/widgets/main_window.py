import os
from pathlib import Path

from PySide6.QtCore import Qt, Slot
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (QMainWindow, QPushButton, QStackedWidget,
                               QVBoxLayout, QWidget)

from picsorpix.controllers.gallery_controller import GalleryController
from picsorpix.models.image_source import FilesystemImageSource
from picsorpix.models.portfolio_themes import PortfolioThemes, Theme
from picsorpix.utils.flow_log import log_flow
from picsorpix.utils.image_decoder import ImageDecoder
from picsorpix.utils.settings import (get_file_formats, get_setting,
                                      parse_breakpoints, settings)
from picsorpix.widgets.lazy_load_scheduler import LazyLoadScheduler
from picsorpix.widgets.masonry_layout import MasonryLayout
from picsorpix.widgets.modal_navigator import ModalNavigator
from picsorpix.widgets.modal_overlay import ModalOverlay
from picsorpix.widgets.photo_grid import PhotoGridView
from picsorpix.widgets.portfolio_list import PortfolioListView
from picsorpix.widgets.visibility_observer import ViewportVisibilityObserver

SITE_TITLE = 'PICSORPIX'


def resolve_images_directory() -> Path:
    configured = get_setting('images_directory', str)
    if configured:
        return Path(configured)
    return Path(os.getenv('PICSORPIX_IMAGES_DIR', 'images'))


class MainWindow(QMainWindow):
    def __init__(self, app):
        super().__init__()
        self.app = app
        self.setWindowTitle(SITE_TITLE)

        images_root = resolve_images_directory()
        optimized_root = get_setting('optimized_images_directory', str)
        self.image_source = FilesystemImageSource(
            images_root,
            optimized_root=Path(optimized_root) if optimized_root else None,
            cover_file_name=get_setting('cover_file_name', str),
            file_formats=get_file_formats())
        self.themes = PortfolioThemes.load(images_root)
        self.decoder = ImageDecoder(parent=self)

        self.title_button = QPushButton(SITE_TITLE)
        self.title_button.setFlat(True)
        self.title_button.setCursor(Qt.CursorShape.PointingHandCursor)
        self.title_button.setStyleSheet('font-size: 32px; font-weight: bold; padding: 12px;')
        self.portfolio_list = PortfolioListView(self.decoder)
        self.photo_grid = PhotoGridView()
        self.stack = QStackedWidget()
        self.stack.addWidget(self.portfolio_list)
        self.stack.addWidget(self.photo_grid)

        central_widget = QWidget()
        layout = QVBoxLayout(central_widget)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.title_button, alignment=Qt.AlignmentFlag.AlignHCenter)
        layout.addWidget(self.stack, stretch=1)
        self.setCentralWidget(central_widget)

        # One navigator per window, rebound to whichever grid is shown.
        self.navigator = ModalNavigator(
            self.decoder,
            fade_ms=get_setting('modal_fade_ms', int),
            decode_width=get_setting('modal_decode_width', int),
            swipe_threshold_px=get_setting('swipe_threshold_px', int),
            swipe_timeout_ms=get_setting('swipe_timeout_ms', int),
            parent=self)
        self.modal_overlay = ModalOverlay(self.navigator, central_widget)

        self.controller = GalleryController(
            self.image_source,
            self._create_layout(),
            self._create_scheduler(),
            self.navigator,
            self.photo_grid,
            image_order=get_setting('image_order', str),
            resize_debounce_ms=get_setting('resize_debounce_ms', int),
            parent=self)

        self.title_button.clicked.connect(self.controller.show_portfolio_list)
        self.portfolio_list.portfolio_activated.connect(self.controller.open_portfolio)
        self.photo_grid.slot_clicked.connect(self.controller.activate_slot)
        self.photo_grid.viewport_resized.connect(self.controller.viewport_resized)
        self.controller.portfolios_listed.connect(self._on_portfolios_listed)
        self.controller.portfolio_opened.connect(self._on_portfolio_opened)

        if settings.contains('geometry'):
            self.restoreGeometry(settings.value('geometry', type=bytes))
        else:
            self.resize(1280, 900)
        self.controller.show_portfolio_list()

    def _create_layout(self) -> MasonryLayout:
        return MasonryLayout(
            gap=get_setting('masonry_gap', int),
            breakpoints=parse_breakpoints(get_setting('masonry_breakpoints', str)),
            max_columns=get_setting('masonry_max_columns', int),
            fallback_aspect_ratio=get_setting('fallback_aspect_ratio', float))

    def _create_scheduler(self) -> LazyLoadScheduler:
        margin = get_setting('lazy_load_margin', int)
        strategy = get_setting('lazy_load_strategy', str)
        observer_factory = None
        if strategy != 'polling':
            def observer_factory(callback):
                return ViewportVisibilityObserver(self.photo_grid, callback, margin)
        return LazyLoadScheduler(
            self.decoder,
            observer_factory=observer_factory,
            viewport_range=self.photo_grid.visible_range,
            margin=margin,
            poll_interval_ms=get_setting('lazy_load_poll_interval_ms', int),
            decode_width=get_setting('grid_decode_width', int),
            parent=self)

    @Slot(list)
    def _on_portfolios_listed(self, portfolios):
        self.apply_theme(Theme())
        self.portfolio_list.set_portfolios(portfolios)
        self.stack.setCurrentWidget(self.portfolio_list)
        if not portfolios:
            log_flow("GALLERY", f"No portfolios under {self.image_source.root}",
                     level="WARNING")

    @Slot(object)
    def _on_portfolio_opened(self, grid):
        self.apply_theme(self.themes.theme_for(grid.portfolio_name))
        self.stack.setCurrentWidget(self.photo_grid)

    def apply_theme(self, theme: Theme):
        if theme.is_default:
            self.centralWidget().setStyleSheet('')
            return
        self.centralWidget().setStyleSheet(
            f'QWidget {{ background-color: {theme.background}; color: {theme.foreground}; }}')

    def resizeEvent(self, event):
        super().resizeEvent(event)
        if self.modal_overlay.isVisible():
            self.modal_overlay.setGeometry(self.centralWidget().rect())

    def keyPressEvent(self, event):
        if self.navigator.handle_key(event.key()):
            event.accept()
            return
        super().keyPressEvent(event)

    def closeEvent(self, event: QCloseEvent):
        """Save the window geometry before closing."""
        settings.setValue('geometry', self.saveGeometry())
        self.controller.close_portfolio()
        self.controller.scheduler.shutdown()
        self.decoder.shutdown()
        super().closeEvent(event)
