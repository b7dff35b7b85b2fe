import faulthandler
import logging
import os
import signal
import sys
import threading
import traceback
import warnings
from datetime import datetime
from pathlib import Path

from PySide6.QtCore import qInstallMessageHandler
from PySide6.QtGui import QImageReader
from PySide6.QtWidgets import QApplication, QMessageBox

from picsorpix.utils.settings import settings
from picsorpix.widgets.main_window import MainWindow

APP_NAME = 'PICSORPIX'
CRASH_LOG_PATH = Path('picsorpix_crash.log').absolute()
FATAL_LOG_PATH = Path('picsorpix_fatal.log').absolute()
ENABLE_FATAL_CRASH_DUMPS = os.getenv('PICSORPIX_ENABLE_FAULTHANDLER', '0') == '1'
_fatal_log_handle = None
_NOISY_QT_MESSAGES = ('QPainter', 'Paint device returned engine')


def qt_message_handler(msg_type, msg_context, msg_string):
    """Drop QPainter chatter; pass nothing else through outside development."""
    if any(noise in msg_string for noise in _NOISY_QT_MESSAGES):
        return
    if os.getenv('PICSORPIX_ENVIRONMENT') == 'development':
        print(f"[Qt] {msg_string}")


def _append_crash_log(title: str, exc_info=None):
    """Append a timestamped crash entry to the crash log."""
    if exc_info is None:
        details = traceback.format_exc()
    else:
        details = ''.join(traceback.format_exception(*exc_info))
    separator = '=' * 80
    entry = (f"\n{separator}\n{datetime.now():%Y-%m-%d %H:%M:%S} | {title}\n"
             f"{separator}\n{details}\n")
    try:
        with open(CRASH_LOG_PATH, 'a', encoding='utf-8') as f:
            f.write(entry)
    except OSError as log_error:
        print(f"[CRASH] Failed to write crash log: {log_error}")
        return
    print(f"[CRASH] Details written to: {CRASH_LOG_PATH}")


def _enable_fatal_dumps():
    global _fatal_log_handle
    try:
        _fatal_log_handle = open(FATAL_LOG_PATH, 'a', encoding='utf-8', buffering=1)
    except OSError as e:
        print(f"[WARNING] Could not open {FATAL_LOG_PATH}: {e}")
        return
    _fatal_log_handle.write(f"\n{datetime.now().isoformat()} | "
                            f"SESSION START pid={os.getpid()}\n")
    faulthandler.enable(file=_fatal_log_handle, all_threads=True)
    print(f"[CRASH] Fatal trace dumps enabled: {FATAL_LOG_PATH}")


def install_crash_handlers():
    """Log uncaught exceptions from the UI and decoder threads; native dumps are opt-in."""
    if sys.excepthook is not sys.__excepthook__:
        return

    def _unhandled_exception(exc_type, exc_value, exc_traceback):
        _append_crash_log("UNHANDLED EXCEPTION", (exc_type, exc_value, exc_traceback))
        sys.__excepthook__(exc_type, exc_value, exc_traceback)

    def _thread_exception(args):
        _append_crash_log(f"THREAD EXCEPTION ({getattr(args.thread, 'name', 'unknown')})",
                          (args.exc_type, args.exc_value, args.exc_traceback))

    sys.excepthook = _unhandled_exception
    threading.excepthook = _thread_exception
    if ENABLE_FATAL_CRASH_DUMPS:
        _enable_fatal_dumps()


def suppress_warnings():
    """Suppress all warnings when not in a development environment."""
    if os.getenv('PICSORPIX_ENVIRONMENT') == 'development':
        print('Running in development environment.')
        return
    logging.basicConfig(level=logging.ERROR)
    # Pillow reports every skipped EXIF chunk at DEBUG/INFO.
    logging.getLogger('PIL').setLevel(logging.ERROR)
    warnings.simplefilter('ignore')


def run_gui() -> int:
    os.environ.setdefault('QT_LOGGING_RULES', '*.debug=false')
    qInstallMessageHandler(qt_message_handler)

    app = QApplication([])
    app.setApplicationName(APP_NAME)
    app.setApplicationDisplayName(APP_NAME)
    app.setStyle('Fusion')
    # Portfolio originals can exceed Qt's default 256 MB decode limit.
    QImageReader.setAllocationLimit(0)

    main_window = MainWindow(app)
    main_window.show()

    def _save_and_quit(signum, frame):
        print(f"\n[SHUTDOWN] Signal {signum}, saving window geometry...")
        # closeEvent does not run when the process is terminated.
        settings.setValue('geometry', main_window.saveGeometry())
        settings.sync()
        main_window.close()
        sys.exit(0)

    signal.signal(signal.SIGINT, _save_and_quit)
    signal.signal(signal.SIGTERM, _save_and_quit)
    return int(app.exec())


def main():
    suppress_warnings()
    install_crash_handlers()
    try:
        sys.exit(run_gui())
    except Exception as exception:
        _append_crash_log("TOP-LEVEL EXCEPTION", sys.exc_info())
        error_message_box = QMessageBox()
        error_message_box.setWindowTitle(f'{APP_NAME} error')
        error_message_box.setIcon(QMessageBox.Icon.Critical)
        error_message_box.setText(str(exception))
        error_message_box.setDetailedText(traceback.format_exc())
        error_message_box.exec()
        sys.exit(1)


if __name__ == '__main__':
    main()
