import pytest

pytest.importorskip("PyQt6.QtGui", reason="PyQt6 is required for renderer tests")

from PIL import Image  # noqa: E402
from PyQt6.QtCore import QPointF  # noqa: E402
from PyQt6.QtGui import QColor, QImage, QPainter  # noqa: E402

from kroppit.config import OVERLAY_ALWAYS, OVERLAY_HIDE_WHILE_DRAGGING  # noqa: E402
from kroppit.gestures import DRAGGING, IDLE, RESIZING  # noqa: E402
from kroppit.models import CIRCLE, CropRegion  # noqa: E402
from kroppit.renderer import (  # noqa: E402
    draw_base, draw_handles, draw_overlay, draw_result, fit_rect, overlay_path,
    pil_to_qimage, pil_to_qpixmap, should_draw_overlay,
)


def test_overlay_policy():
    assert should_draw_overlay(OVERLAY_ALWAYS, DRAGGING, False)
    assert not should_draw_overlay(OVERLAY_HIDE_WHILE_DRAGGING, DRAGGING, False)
    assert should_draw_overlay(OVERLAY_HIDE_WHILE_DRAGGING, RESIZING, False)
    assert should_draw_overlay(OVERLAY_HIDE_WHILE_DRAGGING, IDLE, False)
    assert not should_draw_overlay(OVERLAY_ALWAYS, IDLE, True)


def test_rectangle_overlay_excludes_crop_area(qapp):
    path = overlay_path(CropRegion(50, 50, 100, 80), 300, 200)
    assert path.contains(QPointF(10, 10))
    assert path.contains(QPointF(290, 190))
    assert not path.contains(QPointF(100, 90))


def test_circle_overlay_excludes_inscribed_circle_only(qapp):
    path = overlay_path(CropRegion(100, 60, 60, 60, CIRCLE), 300, 200)
    assert not path.contains(QPointF(130, 90))
    # Corner of the bounding square lies outside the circle
    assert path.contains(QPointF(102, 62))


def test_fit_rect_centers_and_keeps_aspect():
    rect = fit_rect(400, 200, 320, 240)
    assert (rect.width(), rect.height()) == (320, 160)
    assert (rect.x(), rect.y()) == (0, 40)
    assert fit_rect(0, 10, 100, 100).isEmpty()


def test_pil_to_qimage_preserves_pixels(qapp):
    img = Image.new("RGB", (3, 2), (10, 200, 30))
    qimg = pil_to_qimage(img)
    assert (qimg.width(), qimg.height()) == (3, 2)
    assert qimg.pixelColor(2, 1) == QColor(10, 200, 30)


def _paint(width, height, fn):
    target = QImage(width, height, QImage.Format.Format_ARGB32)
    target.fill(QColor(0, 0, 0))
    painter = QPainter(target)
    fn(painter)
    painter.end()
    return target


def test_overlay_dims_outside_and_leaves_inside(qapp):
    pixmap = pil_to_qpixmap(Image.new("RGB", (300, 200), (200, 200, 200)))
    region = CropRegion(50, 50, 100, 80)

    def paint(painter):
        draw_base(painter, pixmap, 300, 200)
        draw_overlay(painter, region, 300, 200)
        draw_handles(painter, region)

    out = _paint(300, 200, paint)
    assert out.pixelColor(10, 10).red() < 200
    assert out.pixelColor(75, 70) == QColor(200, 200, 200)


def test_draw_result_fits_cropped_image(qapp):
    pixmap = pil_to_qpixmap(Image.new("RGBA", (100, 100), (255, 0, 0, 255)))
    holder = {}

    def paint(painter):
        holder["rect"] = draw_result(painter, pixmap, 300, 200)

    out = _paint(300, 200, paint)
    rect = holder["rect"]
    assert (rect.width(), rect.height()) == (200, 200)
    assert out.pixelColor(150, 100) == QColor(255, 0, 0)
