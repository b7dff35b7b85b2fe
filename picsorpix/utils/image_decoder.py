"""Asynchronous image decoding for the grid and the modal."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from PySide6.QtCore import QObject, Signal, Slot
from PySide6.QtGui import QImage

from picsorpix.utils.flow_log import log_flow
from picsorpix.utils.image_files import (dominant_color, load_preview,
                                         read_natural_size, url_to_path)


@dataclass
class DecodeResult:
    url: str
    width: int | None = None
    height: int | None = None
    image: QImage | None = None
    dominant_color: tuple[int, int, int] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def pil_to_qimage(pil_image) -> QImage:
    """Convert PIL image to QImage properly"""
    pil_image = pil_image.convert("RGBA")
    data = pil_image.tobytes("raw", "RGBA")
    qimage = QImage(data, pil_image.width, pil_image.height, QImage.Format_RGBA8888)
    # Detach from the Python buffer before it is garbage collected.
    return qimage.copy()


def decode_image(url: str, max_width: int, with_color: bool = False) -> DecodeResult:
    """Decode one image (runs on a worker thread - QImage is thread-safe).

    With `with_color`, the average color of the preview is computed here too,
    so the UI thread never touches the file.
    """
    try:
        path = url_to_path(url)
        width, height = read_natural_size(path)
        preview = load_preview(path, max_width)
        return DecodeResult(url=url, width=width, height=height,
                            image=pil_to_qimage(preview),
                            dominant_color=dominant_color(preview) if with_color else None)
    except Exception as e:
        return DecodeResult(url=url, error=f'{type(e).__name__}: {e}')


class ImageDecoder(QObject):
    """Decodes images on worker threads and reports back on the UI thread."""

    # Emitted from worker threads; queued onto the thread owning the decoder.
    _finished = Signal(object, object)

    def __init__(self, max_workers: int = 4, parent=None):
        super().__init__(parent)
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="image_decode")
        self._finished.connect(self._deliver)

    def fetch(self, url: str, callback, max_width: int = 0, with_color: bool = False):
        """Start decoding `url`; `callback(DecodeResult)` runs on the UI thread."""
        future = self._executor.submit(decode_image, url, max_width, with_color)
        future.add_done_callback(
            lambda done: self._finished.emit(callback, self._result_of(url, done)))

    @staticmethod
    def _result_of(url, future) -> DecodeResult:
        try:
            return future.result()
        except Exception as e:
            return DecodeResult(url=url, error=f'{type(e).__name__}: {e}')

    @Slot(object, object)
    def _deliver(self, callback, result: DecodeResult):
        if not result.ok:
            log_flow("DECODE", f"Failed to decode {result.url}: {result.error}",
                     level="WARNING")
        callback(result)

    def shutdown(self):
        self._executor.shutdown(wait=False, cancel_futures=True)
