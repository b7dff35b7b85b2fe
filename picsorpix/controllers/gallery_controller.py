"""Wires the image source, masonry layout, lazy loader and modal together."""

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from picsorpix.models.grid_state import GridState
from picsorpix.models.image_source import ImageSource, SourceListError, order_images
from picsorpix.utils.flow_log import log_flow
from picsorpix.utils.image import ImageSlot, SlotState
from picsorpix.widgets.lazy_load_scheduler import LazyLoadScheduler
from picsorpix.widgets.masonry_layout import MasonryLayout, MasonryResult
from picsorpix.widgets.modal_navigator import ModalNavigator


class GalleryController(QObject):
    """
    Owns the GridState of the portfolio on screen.

    The view is duck-typed: it must provide `build_tiles(slots)` returning a
    dict of index -> element, `apply_layout(result)`, `update_slot(slot)`,
    `reveal()`, `clear()`, `grid_width()` and `viewport_width()`.
    """

    portfolios_listed = Signal(list)
    portfolio_opened = Signal(object)  # GridState
    portfolio_closed = Signal()

    def __init__(self, image_source: ImageSource, layout: MasonryLayout,
                 scheduler: LazyLoadScheduler, navigator: ModalNavigator, view, *,
                 image_order: str = 'reverse', shuffle_seed: int | None = None,
                 resize_debounce_ms: int = 200, parent=None):
        super().__init__(parent)
        self.image_source = image_source
        self.layout = layout
        self.scheduler = scheduler
        self.navigator = navigator
        self.view = view
        self.image_order = image_order
        self.shuffle_seed = shuffle_seed
        self.grid: GridState | None = None
        self._elements: dict = {}

        self._resize_timer = QTimer(self)
        self._resize_timer.setSingleShot(True)
        self._resize_timer.setInterval(resize_debounce_ms)
        self._resize_timer.timeout.connect(self._on_resize_settled)

        scheduler.loading.connect(self._on_slot_changed)
        scheduler.loaded.connect(self._on_slot_loaded)
        scheduler.failed.connect(self._on_slot_changed)

    def show_portfolio_list(self) -> list:
        self.close_portfolio()
        try:
            portfolios = self.image_source.list_portfolios()
        except SourceListError as e:
            log_flow("GALLERY", f"Could not list portfolios: {e}", level="ERROR")
            portfolios = []
        self.portfolios_listed.emit(portfolios)
        return portfolios

    def open_portfolio(self, name: str) -> GridState:
        self.close_portfolio()
        try:
            images = self.image_source.list_images(name)
        except SourceListError as e:
            log_flow("GALLERY", f"Could not list images of {name}: {e}", level="ERROR")
            images = []
        images = order_images(images, self.image_order, self.shuffle_seed)

        # The display order is fixed from here on; index is the navigation key.
        slots = [ImageSlot(index=index, full_url=image.full_url,
                           placeholder_url=image.placeholder_url)
                 for index, image in enumerate(images)]
        self.grid = GridState(portfolio_name=name, slots=slots)
        self.navigator.rebind(slots)

        self._elements = self.view.build_tiles(slots)
        self.reflow()
        for slot in slots:
            self.scheduler.register(slot, self._elements[slot.index])
        self.view.reveal()
        log_flow("GALLERY", f"Opened {name} with {len(slots)} slots, "
                            f"{self.scheduler.pending_count} waiting for lazy loading "
                            f"via {self.scheduler.mode}")
        self.portfolio_opened.emit(self.grid)
        return self.grid

    def close_portfolio(self):
        if self.grid is None:
            return
        self.grid.discarded = True
        self._resize_timer.stop()
        self.scheduler.clear()
        self.navigator.rebind(None)
        self.view.clear()
        self._elements = {}
        self.grid = None
        self.portfolio_closed.emit()

    @Slot(int)
    def activate_slot(self, index: int) -> bool:
        """Open the modal on a grid slot, unless it has not started loading yet."""
        if self.grid is None:
            return False
        slot = self.grid.slot_at(index)
        if slot is None:
            log_flow("GALLERY", f"No slot at index {index}", level="WARNING")
            return False
        if slot.state == SlotState.PENDING:
            return False
        return self.navigator.open(self.grid.slots, index)

    @Slot(int)
    def viewport_resized(self, width: int):
        if self.grid is None:
            return
        # Restarting the single-shot timer drops superseded resize requests.
        self._resize_timer.start()

    def reflow(self) -> MasonryResult | None:
        if self.grid is None:
            return None
        column_count = self.layout.column_count_for_width(self.view.viewport_width())
        if column_count != self.grid.column_count:
            log_flow("MASONRY", f"Column count {self.grid.column_count} -> {column_count}")
        result = self.layout.calculate(self.grid.slots, self.view.grid_width(), column_count)
        self.grid.column_count = result.column_count
        self.grid.container_height = result.container_height
        self.view.apply_layout(result)
        self.scheduler.refresh()
        return result

    @Slot()
    def _on_resize_settled(self):
        self.reflow()

    @Slot(object)
    def _on_slot_changed(self, slot: ImageSlot):
        if self.grid is not None and self.grid.owns(slot):
            self.view.update_slot(slot)

    @Slot(object)
    def _on_slot_loaded(self, slot: ImageSlot):
        if self.grid is None or not self.grid.owns(slot):
            return
        self.view.update_slot(slot)
        self.reflow()
