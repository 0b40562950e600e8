"""
Painting helpers for the crop editor.

All drawing happens in canvas (display-space) coordinates; the widget
translates the painter to the canvas origin before calling in here.
The dimmed overlay is a single path: the canvas rectangle with the crop
shape cut out of it using the odd-even fill rule.
"""

from PIL import Image
from PyQt6.QtCore import Qt, QPointF, QRectF
from PyQt6.QtGui import QBrush, QColor, QImage, QPainter, QPainterPath, QPen, QPixmap, QPolygonF

from kroppit.config import OVERLAY_HIDE_WHILE_DRAGGING
from kroppit.gestures import DRAGGING, handle_positions
from kroppit.models import CIRCLE, CropRegion

DIM_COLOR = QColor(0, 0, 0, 140)
BORDER_COLOR = QColor(255, 255, 255)
GUIDE_COLOR = QColor(255, 255, 255, 80)
HANDLE_DRAW_SIZE = 8
CHECKER_CELL = 8
CHECKER_LIGHT = QColor(200, 200, 200)
CHECKER_DARK = QColor(150, 150, 150)


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qimage(pil_img: Image.Image) -> QImage:
    """Convert a PIL Image to a QImage that owns its pixels."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, img_rgba.width * 4, QImage.Format.Format_RGBA8888)
    return qimg.copy()


def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    return QPixmap.fromImage(pil_to_qimage(pil_img))


# =============================================================================
# Geometry
# =============================================================================

def should_draw_overlay(policy: str, gesture_mode: str, show_result: bool) -> bool:
    """Whether the crop overlay and handles are painted this frame."""
    if show_result:
        return False
    if policy == OVERLAY_HIDE_WHILE_DRAGGING and gesture_mode == DRAGGING:
        return False
    return True


def overlay_path(region: CropRegion, canvas_w: float, canvas_h: float) -> QPainterPath:
    """Canvas-sized path with the crop shape cut out (odd-even fill)."""
    path = QPainterPath()
    path.setFillRule(Qt.FillRule.OddEvenFill)
    path.addPolygon(QPolygonF([
        QPointF(0, 0), QPointF(canvas_w, 0),
        QPointF(canvas_w, canvas_h), QPointF(0, canvas_h),
    ]))
    if region.shape == CIRCLE:
        radius = min(region.width, region.height) / 2
        center = region.center
        path.addEllipse(QPointF(center.x, center.y), radius, radius)
    else:
        # Inner rectangle traversed the other way round
        path.addPolygon(QPolygonF([
            QPointF(region.x, region.y), QPointF(region.x, region.bottom),
            QPointF(region.right, region.bottom), QPointF(region.right, region.y),
        ]))
    return path


def fit_rect(content_w: float, content_h: float, box_w: float, box_h: float) -> QRectF:
    """Largest rect with the content's aspect ratio, centered in the box."""
    if content_w <= 0 or content_h <= 0:
        return QRectF()
    aspect = content_w / content_h
    w, h = box_w, box_w / aspect
    if h > box_h:
        h = box_h
        w = box_h * aspect
    return QRectF((box_w - w) / 2, (box_h - h) / 2, w, h)


# =============================================================================
# Painting
# =============================================================================

def draw_base(painter: QPainter, pixmap: QPixmap, canvas_w: float, canvas_h: float) -> None:
    """Clear the canvas and draw the full image scaled onto it."""
    target = QRectF(0, 0, canvas_w, canvas_h)
    painter.fillRect(target, QColor(30, 30, 30))
    painter.drawPixmap(target, pixmap, QRectF(pixmap.rect()))


def draw_overlay(painter: QPainter, region: CropRegion, canvas_w: float, canvas_h: float) -> None:
    """Dim everything outside the crop shape and outline it."""
    painter.save()
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.fillPath(overlay_path(region, canvas_w, canvas_h), QBrush(DIM_COLOR))

    rect = QRectF(region.x, region.y, region.width, region.height)
    painter.setBrush(Qt.BrushStyle.NoBrush)
    if region.shape == CIRCLE:
        # Bounding square, dashed, so the handles have something to sit on
        painter.setPen(QPen(GUIDE_COLOR, 1, Qt.PenStyle.DashLine))
        painter.drawRect(rect)
        painter.setPen(QPen(BORDER_COLOR, 2))
        painter.drawEllipse(rect)
    else:
        painter.setPen(QPen(BORDER_COLOR, 2))
        painter.drawRect(rect)
        # Rule-of-thirds lines
        painter.setPen(QPen(GUIDE_COLOR, 1, Qt.PenStyle.DashLine))
        for i in range(1, 3):
            x = rect.left() + rect.width() * i / 3
            painter.drawLine(QPointF(x, rect.top()), QPointF(x, rect.bottom()))
            y = rect.top() + rect.height() * i / 3
            painter.drawLine(QPointF(rect.left(), y), QPointF(rect.right(), y))
    painter.restore()


def draw_handles(painter: QPainter, region: CropRegion) -> None:
    painter.save()
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(QPen(QColor(0, 0, 0), 1))
    painter.setBrush(QBrush(BORDER_COLOR))
    half = HANDLE_DRAW_SIZE / 2
    for pos in handle_positions(region).values():
        rect = QRectF(pos.x - half, pos.y - half, HANDLE_DRAW_SIZE, HANDLE_DRAW_SIZE)
        if region.shape == CIRCLE:
            painter.drawEllipse(rect)
        else:
            painter.drawRect(rect)
    painter.restore()


def draw_size_label(painter: QPainter, region: CropRegion, scale: float) -> None:
    """Source-pixel size of the selection, just above it."""
    painter.save()
    painter.setPen(BORDER_COLOR)
    label = f"{round(region.width / scale)} × {round(region.height / scale)}"
    area = QRectF(region.x, region.y - 20, region.width, 20)
    painter.drawText(area, Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom, label)
    painter.restore()


def draw_checkerboard(painter: QPainter, rect: QRectF, cell: int = CHECKER_CELL) -> None:
    """Checkered backdrop that makes transparent pixels visible."""
    painter.save()
    painter.setClipRect(rect)
    painter.fillRect(rect, CHECKER_LIGHT)
    rows = int(rect.height() // cell) + 1
    cols = int(rect.width() // cell) + 1
    for row in range(rows):
        for col in range(row % 2, cols, 2):
            painter.fillRect(
                QRectF(rect.left() + col * cell, rect.top() + row * cell, cell, cell),
                CHECKER_DARK,
            )
    painter.restore()


def draw_result(painter: QPainter, pixmap: QPixmap, canvas_w: float, canvas_h: float) -> QRectF:
    """Draw the cropped result fitted and centered on the canvas."""
    painter.fillRect(QRectF(0, 0, canvas_w, canvas_h), QColor(30, 30, 30))
    target = fit_rect(pixmap.width(), pixmap.height(), canvas_w, canvas_h)
    if target.isEmpty():
        return target
    if pixmap.hasAlphaChannel():
        draw_checkerboard(painter, target)
    painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
    painter.drawPixmap(target, pixmap, QRectF(pixmap.rect()))
    return target
