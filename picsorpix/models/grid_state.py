from dataclasses import dataclass, field

from picsorpix.utils.image import ImageSlot


@dataclass
class GridState:
    """The live view of one opened portfolio."""

    portfolio_name: str
    slots: list[ImageSlot] = field(default_factory=list)
    column_count: int = 1
    container_height: float = 0.0
    discarded: bool = False

    def slot_at(self, index: int) -> ImageSlot | None:
        if 0 <= index < len(self.slots):
            return self.slots[index]
        return None

    def owns(self, slot: ImageSlot) -> bool:
        return (not self.discarded and slot is not None
                and self.slot_at(slot.index) is slot)
