"""Portfolio and image listings backed by a directory tree."""

import random
import re
from dataclasses import dataclass
from pathlib import Path

from picsorpix.utils.flow_log import log_flow
from picsorpix.utils.image_files import url_to_path

IMAGE_ORDERS = ('reverse', 'name', 'shuffle')
_VARIANT_PATTERN = re.compile(r'^(?P<stem>.+)-(?P<width>\d+)$')


class SourceListError(Exception):
    """The image source could not produce a listing."""


@dataclass(frozen=True)
class Portfolio:
    name: str
    cover_url: str | None


@dataclass(frozen=True)
class PortfolioImage:
    full_url: str
    placeholder_url: str | None = None


def natural_sort_key(value: str):
    """
    Generate a key for natural/alphanumeric sorting.
    Converts 'file1', 'file2', 'file11' to sort naturally instead of lexicographically.
    """
    parts = []
    for part in re.split(r'(\d+)', value):
        if part.isdigit():
            parts.append(int(part))
        else:
            parts.append(part.lower())
    return parts


def order_images(images: list[PortfolioImage], order: str,
                 seed: int | None = None) -> list[PortfolioImage]:
    """Return a new list in display order; the input list is left untouched."""
    if order not in IMAGE_ORDERS:
        raise ValueError(f'Unknown image order {order!r}, expected one of {IMAGE_ORDERS}')
    # Sort on the decoded file name, not on the percent-encoded URL.
    ordered = sorted(images, key=lambda image: natural_sort_key(url_to_path(image.full_url).name))
    if order == 'reverse':
        ordered.reverse()
    elif order == 'shuffle':
        # Fisher-Yates shuffle, seeded for reproducible sessions.
        random.Random(seed).shuffle(ordered)
    return ordered


class ImageSource:
    """Supplies portfolios and their ordered image URLs."""

    def list_portfolios(self) -> list[Portfolio]:
        raise NotImplementedError

    def list_images(self, portfolio_name: str) -> list[PortfolioImage]:
        raise NotImplementedError


class FilesystemImageSource(ImageSource):
    """
    Portfolios are the sub-directories of `root`.

    Each portfolio may have a cover file (excluded from its image list) and,
    under `optimized_root`, responsive `<stem>-<width>.webp` variants; the
    smallest variant becomes the image's placeholder.
    """

    def __init__(self, root: Path, *, optimized_root: Path | None = None,
                 cover_file_name: str = 'cover.jpg',
                 file_formats: set[str] | None = None):
        self.root = Path(root)
        self.optimized_root = (Path(optimized_root) if optimized_root
                               else self.root.parent / 'images-optimized')
        self.cover_file_name = cover_file_name
        self.file_formats = file_formats or {'.bmp', '.gif', '.jpg', '.jpeg',
                                             '.png', '.tif', '.tiff', '.webp'}
        self._cache: dict[str, list] = {}

    def clear_cache(self, key: str | None = None):
        if key is None:
            self._cache.clear()
        else:
            self._cache.pop(key, None)

    def list_portfolios(self) -> list[Portfolio]:
        if 'portfolios' in self._cache:
            return list(self._cache['portfolios'])
        try:
            folders = sorted((path for path in self.root.iterdir() if path.is_dir()),
                             key=lambda path: natural_sort_key(path.name))
        except OSError as e:
            log_flow("SOURCE", f"Cannot list portfolios in {self.root}: {e}", level="ERROR")
            return []

        portfolios = []
        for folder in folders:
            cover = folder / self.cover_file_name
            portfolios.append(Portfolio(
                name=folder.name,
                cover_url=cover.resolve().as_uri() if cover.is_file() else None))
        self._cache['portfolios'] = portfolios
        log_flow("SOURCE", f"Found {len(portfolios)} portfolios in {self.root}")
        return list(portfolios)

    def list_images(self, portfolio_name: str) -> list[PortfolioImage]:
        cache_key = f'portfolio_{portfolio_name}'
        if cache_key in self._cache:
            return list(self._cache[cache_key])

        folder = self.root / portfolio_name
        # Refuse names that escape the images root.
        if Path(portfolio_name).name != portfolio_name or not folder.is_dir():
            raise SourceListError(f'Portfolio not found: {portfolio_name}')
        try:
            files = sorted(path for path in folder.iterdir()
                           if path.is_file()
                           and path.name != self.cover_file_name
                           and path.suffix.lower() in self.file_formats)
        except OSError as e:
            raise SourceListError(f'Cannot read portfolio {portfolio_name}: {e}') from e

        variants = self._placeholder_variants(portfolio_name)
        images = [
            PortfolioImage(full_url=path.resolve().as_uri(),
                           placeholder_url=variants.get(path.stem))
            for path in files
        ]
        self._cache[cache_key] = images
        log_flow("SOURCE", f"Portfolio {portfolio_name}: {len(images)} images, "
                           f"{sum(1 for image in images if image.placeholder_url)} placeholders")
        return list(images)

    def _placeholder_variants(self, portfolio_name: str) -> dict[str, str]:
        """Map image stem -> URL of its smallest responsive variant."""
        folder = self.optimized_root / portfolio_name
        if not folder.is_dir():
            return {}
        smallest: dict[str, tuple[int, Path]] = {}
        for path in folder.glob('*.webp'):
            match = _VARIANT_PATTERN.match(path.stem)
            if not match:
                continue
            stem, width = match.group('stem'), int(match.group('width'))
            if stem not in smallest or width < smallest[stem][0]:
                smallest[stem] = (width, path)
        return {stem: path.resolve().as_uri() for stem, (_, path) in smallest.items()}
