"""Pillow helpers for reading portfolio image files."""

from pathlib import Path
from urllib.parse import unquote, urlparse

import imagesize
from PIL import Image as pilimage
from PIL import ImageOps, ImageStat

# EXIF orientation values that swap width and height.
_ROTATED_ORIENTATIONS = (5, 6, 7, 8)
_EXIF_ORIENTATION_TAG = 274
# Formats imagesize can size on its own; they never carry EXIF orientation.
_EXIF_FREE_SUFFIXES = ('.bmp', '.gif')


def url_to_path(url: str) -> Path:
    """Turn a `file://` URL (or a plain path) into a local path."""
    parsed = urlparse(url)
    if parsed.scheme == 'file':
        return Path(unquote(parsed.path))
    return Path(url)


def read_natural_size(path: Path) -> tuple[int, int]:
    """
    Read the displayed pixel size of an image, honoring EXIF rotation.

    The header is read with imagesize first. Suspicious results and every
    format that can carry an EXIF orientation (JPEG, TIFF, WebP, PNG) are
    re-read with Pillow, which also rotates them in `load_preview`.
    """
    width, height = imagesize.get(str(path))
    suspicious = width <= 0 or height <= 0
    if not suspicious:
        aspect_ratio = width / height
        # Corrupted headers tend to report absurd shapes or sizes.
        if aspect_ratio < 0.2 or aspect_ratio > 5.0 or max(width, height) > 12000:
            suspicious = True

    if suspicious or path.suffix.lower() not in _EXIF_FREE_SUFFIXES:
        with pilimage.open(path) as image:
            width, height = image.size
            exif = image.getexif()
            if exif and exif.get(_EXIF_ORIENTATION_TAG) in _ROTATED_ORIENTATIONS:
                width, height = height, width
    return width, height


def load_preview(path: Path, max_width: int) -> pilimage.Image:
    """Fully decode an image, apply EXIF rotation and shrink it to `max_width`."""
    with pilimage.open(path) as image:
        if image.format == 'JPEG' and max_width > 0:
            # Let the JPEG decoder skip detail we are about to throw away.
            image.draft('RGB', (max_width, max_width * 8))
        image.load()
        image = ImageOps.exif_transpose(image)
    if max_width > 0 and image.width > max_width:
        new_height = max(1, round(image.height * max_width / image.width))
        image = image.resize((max_width, new_height), pilimage.Resampling.LANCZOS)
    return image


def dominant_color(image: pilimage.Image) -> tuple[int, int, int]:
    """Average RGB color of an already decoded image."""
    if image.width > 64:
        image = image.resize((64, max(1, round(image.height * 64 / image.width))),
                             pilimage.Resampling.BOX)
    mean = ImageStat.Stat(image.convert('RGB')).mean
    return int(mean[0]), int(mean[1]), int(mean[2])
