import os

import pytest
from PIL import Image


@pytest.fixture(scope="session")
def qapp():
    """A QApplication on the offscreen platform, shared by the Qt tests."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    QtWidgets = pytest.importorskip("PyQt6.QtWidgets", reason="PyQt6 is required for Qt tests")
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    yield app


def gradient_image(width: int, height: int) -> Image.Image:
    """RGB image whose pixels encode their own coordinates."""
    img = Image.new("RGB", (width, height))
    img.putdata([
        (x % 256, y % 256, (x // 256) * 16 + (y // 256))
        for y in range(height)
        for x in range(width)
    ])
    return img


@pytest.fixture
def gradient():
    return gradient_image
