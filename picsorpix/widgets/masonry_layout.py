"""Masonry layout calculator for the portfolio photo grid."""

import math
from dataclasses import dataclass, field

from picsorpix.utils.flow_log import log_flow
from picsorpix.utils.image import ImageSlot

DEFAULT_BREAKPOINTS = ((600, 1), (1200, 2))


@dataclass
class MasonryItem:
    """Represents a positioned item in the masonry layout."""
    index: int
    column: int
    x: float
    top: float
    width: float
    height: float
    aspect_ratio: float


@dataclass
class MasonryResult:
    items: list[MasonryItem] = field(default_factory=list)
    column_count: int = 1
    column_width: float = 0.0
    container_height: float = 0.0


class MasonryLayout:
    """Calculates masonry (Pinterest-style) layout positions for slots.

    Placement is greedy shortest-column in ascending slot index order, so the
    result only depends on the slots, the grid width and the column count,
    never on the order in which images finished loading.
    """

    def __init__(self, gap: float = 16,
                 breakpoints=DEFAULT_BREAKPOINTS,
                 max_columns: int = 3,
                 fallback_aspect_ratio: float = 4 / 3):
        """
        Args:
            gap: Spacing between items (horizontal and vertical) in pixels
            breakpoints: Ascending (max_viewport_width, columns) pairs
            max_columns: Column count above the last breakpoint
            fallback_aspect_ratio: width / height used when the real ratio is
                unknown or unusable
        """
        if not (math.isfinite(fallback_aspect_ratio) and fallback_aspect_ratio > 0):
            raise ValueError(f'Invalid fallback aspect ratio: {fallback_aspect_ratio}')
        self.gap = max(0.0, float(gap))
        self.breakpoints = sorted((int(width), max(1, int(columns)))
                                  for width, columns in breakpoints)
        self.max_columns = max(1, int(max_columns))
        self.fallback_aspect_ratio = float(fallback_aspect_ratio)

    def column_count_for_width(self, viewport_width: float) -> int:
        """Number of columns for a viewport width (fixed breakpoints)."""
        for max_width, columns in self.breakpoints:
            if viewport_width <= max_width:
                return columns
        return self.max_columns

    def aspect_ratio_for(self, slot: ImageSlot) -> float:
        """Best-known width / height for a slot, always finite and positive."""
        ratio = slot.aspect_ratio
        if ratio is None:
            return self.fallback_aspect_ratio
        if not math.isfinite(ratio) or ratio <= 0:
            log_flow("MASONRY", f"Slot {slot.index}: unusable aspect ratio {ratio}, "
                                f"using fallback", level="WARNING")
            return self.fallback_aspect_ratio
        return ratio

    def column_width(self, grid_width: float, column_count: int) -> float:
        width = (grid_width - (column_count - 1) * self.gap) / column_count
        return max(0.0, width)

    def calculate(self, slots: list[ImageSlot], grid_width: float,
                  column_count: int | None = None) -> MasonryResult:
        """
        Position every slot and write `column_index`, `top` and `height` onto it.

        Args:
            slots: Slots of one portfolio (placed by ascending `index`)
            grid_width: Width of the grid container in pixels
            column_count: Columns to use; derived from `grid_width` if omitted

        Returns:
            MasonryResult with one MasonryItem per slot, in index order
        """
        if column_count is None:
            column_count = self.column_count_for_width(grid_width)
        column_count = max(1, int(column_count))
        column_width = self.column_width(grid_width, column_count)

        # Fresh column heights every pass; nothing carries over between passes.
        column_heights = [0.0] * column_count
        items = []
        for slot in sorted(slots, key=lambda s: s.index):
            aspect_ratio = self.aspect_ratio_for(slot)
            item_height = column_width / aspect_ratio
            if not math.isfinite(item_height) or item_height < 0:
                aspect_ratio = self.fallback_aspect_ratio
                item_height = column_width / aspect_ratio

            # Shortest column; min() keeps the lowest index on ties.
            shortest_col = min(range(column_count), key=lambda i: column_heights[i])
            top = column_heights[shortest_col]

            slot.column_index = shortest_col
            slot.top = top
            slot.height = item_height
            items.append(MasonryItem(
                index=slot.index,
                column=shortest_col,
                x=shortest_col * (column_width + self.gap),
                top=top,
                width=column_width,
                height=item_height,
                aspect_ratio=aspect_ratio,
            ))
            column_heights[shortest_col] += item_height + self.gap

        container_height = max(column_heights) if items else 0.0
        result = MasonryResult(items=items, column_count=column_count,
                               column_width=column_width,
                               container_height=container_height)
        log_flow("MASONRY", f"Placed {len(items)} slots in {column_count} columns, "
                            f"height={container_height:.0f}",
                 throttle_key="masonry_calc", every_s=0.25)
        return result
