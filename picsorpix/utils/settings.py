from PySide6.QtCore import QSettings, Signal

# Defaults for settings that are accessed from multiple places.
DEFAULT_SETTINGS = {
    'images_directory': '',  # Empty = $PICSORPIX_IMAGES_DIR, then ./images
    'optimized_images_directory': '',  # Empty = sibling "images-optimized"
    'cover_file_name': 'cover.jpg',
    'image_file_formats': 'bmp, gif, jpg, jpeg, png, tif, tiff, webp',
    'image_order': 'reverse',  # reverse, name or shuffle
    # Masonry grid
    'masonry_gap': 16,
    'masonry_breakpoints': '600:1, 1200:2',  # max viewport width : columns
    'masonry_max_columns': 3,
    'fallback_aspect_ratio': 4 / 3,
    'resize_debounce_ms': 200,
    # Lazy loading
    'lazy_load_margin': 250,
    'lazy_load_strategy': 'visibility',  # visibility or polling
    'lazy_load_poll_interval_ms': 20,
    'grid_decode_width': 1200,
    # Modal
    'modal_decode_width': 2560,
    'modal_fade_ms': 300,
    'swipe_threshold_px': 50,
    'swipe_timeout_ms': 300,
    'verbose_flow_logs': False,
}


class Settings(QSettings):
    # Signal that shows that the setting with the given string was changes
    change = Signal(str, object, name='settingsChanged')

    def __init__(self):
        super().__init__('picsorpix', 'picsorpix')

    def setValue(self, key, value):
        super().setValue(key, value)
        self.change.emit(key, value)

# Common shared instance to ensure the Signal is also shared
settings = Settings()


def get_setting(key: str, value_type=None):
    """Read a setting, falling back to its entry in `DEFAULT_SETTINGS`."""
    default = DEFAULT_SETTINGS[key]
    if value_type is None:
        value_type = type(default)
    return settings.value(key, defaultValue=default, type=value_type)


def parse_breakpoints(value: str) -> list[tuple[int, int]]:
    """Parse `"600:1, 1200:2"` into `[(600, 1), (1200, 2)]`, sorted by width."""
    breakpoints = []
    for part in str(value).split(','):
        part = part.strip()
        if not part:
            continue
        width, _, columns = part.partition(':')
        breakpoints.append((int(width), max(1, int(columns))))
    return sorted(breakpoints)


def get_file_formats() -> set[str]:
    formats = get_setting('image_file_formats', str)
    return {f'.{suffix.strip().lstrip(".").lower()}'
            for suffix in formats.split(',') if suffix.strip()}
