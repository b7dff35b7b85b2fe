import pytest
from PySide6.QtCore import QCoreApplication


@pytest.fixture(scope="session", autouse=True)
def qt_core_app():
    # Signals and QObject parents need an application object, never a display.
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
