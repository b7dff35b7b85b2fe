from enum import Enum
from dataclasses import dataclass, field

# Stand-ins rendered by the views instead of a real image resource.
BLANK_PLACEHOLDER = 'placeholder:blank'
ERROR_PLACEHOLDER = 'placeholder:error'


class SlotState(str, Enum):
    PENDING = 'pending'
    LOADING = 'loading'
    LOADED = 'loaded'
    FAILED = 'failed'


class Orientation(str, Enum):
    LANDSCAPE = 'landscape'
    PORTRAIT = 'portrait'


class SlotTransitionError(RuntimeError):
    """Raised when a slot is asked to move backwards or skip a state."""


_ALLOWED_TRANSITIONS = {
    SlotState.PENDING: {SlotState.LOADING},
    SlotState.LOADING: {SlotState.LOADED, SlotState.FAILED},
    SlotState.LOADED: set(),
    SlotState.FAILED: set(),
}


def classify_orientation(width: int, height: int) -> Orientation:
    """Landscape when the image is at least as wide as it is tall."""
    return Orientation.LANDSCAPE if width >= height else Orientation.PORTRAIT


@dataclass
class ImageSlot:
    index: int
    full_url: str
    placeholder_url: str | None = None
    state: SlotState = SlotState.PENDING
    natural_width: int | None = None
    natural_height: int | None = None
    column_index: int | None = None
    top: float | None = None
    height: float | None = None
    # Decoded preview for the grid tile; owned by the view layer.
    decoded: object = field(default=None, repr=False, compare=False)

    def _transition(self, new_state: SlotState):
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise SlotTransitionError(
                f'Slot {self.index}: illegal transition '
                f'{self.state.value} -> {new_state.value}')
        self.state = new_state

    def mark_loading(self):
        self._transition(SlotState.LOADING)

    def mark_loaded(self, width: int | None, height: int | None):
        self._transition(SlotState.LOADED)
        self.natural_width = width
        self.natural_height = height

    def mark_failed(self):
        self._transition(SlotState.FAILED)

    @property
    def has_dimensions(self) -> bool:
        return bool(self.natural_width and self.natural_height
                    and self.natural_width > 0 and self.natural_height > 0)

    @property
    def orientation(self) -> Orientation | None:
        if not self.has_dimensions:
            return None
        return classify_orientation(self.natural_width, self.natural_height)

    @property
    def aspect_ratio(self) -> float | None:
        """Natural width / height, or None while unknown or degenerate."""
        if self.state != SlotState.LOADED or not self.has_dimensions:
            return None
        return self.natural_width / self.natural_height

    @property
    def display_url(self) -> str:
        """What the grid tile should currently show for this slot."""
        if self.state == SlotState.LOADED:
            return self.full_url
        if self.state == SlotState.FAILED:
            return ERROR_PLACEHOLDER
        return self.placeholder_url or BLANK_PLACEHOLDER
