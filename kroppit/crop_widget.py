"""
Interactive crop-overlay widget and the background image loader.

``ImageCropWidget`` paints an ``EditorSession`` (image, overlay, handles,
or the cropped result) and feeds it normalized pointer input: mouse and
the first touch point both become display-space ``Point``s before they
reach the gesture controller.  Pointer moves are coalesced and applied
once per frame.
"""

from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QEvent, QPointF, QTimer, QThread, pyqtSignal
from PyQt6.QtGui import (
    QColor, QKeyEvent, QMouseEvent, QPainter, QPaintEvent, QPixmap, QTouchEvent,
)

from kroppit.config import (
    DISPLAY_MAX_WIDTH, DISPLAY_MAX_HEIGHT, FRAME_INTERVAL_MS,
    NUDGE_SMALL, NUDGE_LARGE, OVERLAY_ALWAYS,
)
from kroppit.gestures import BODY
from kroppit.image_io import decode_image
from kroppit.models import Point
from kroppit.renderer import (
    draw_base, draw_handles, draw_overlay, draw_result, draw_size_label,
    pil_to_qpixmap, should_draw_overlay,
)
from kroppit.session import EditorSession

_CURSORS = {
    BODY: Qt.CursorShape.SizeAllCursor,
    "n": Qt.CursorShape.SizeVerCursor,
    "s": Qt.CursorShape.SizeVerCursor,
    "e": Qt.CursorShape.SizeHorCursor,
    "w": Qt.CursorShape.SizeHorCursor,
    "nw": Qt.CursorShape.SizeFDiagCursor,
    "se": Qt.CursorShape.SizeFDiagCursor,
    "ne": Qt.CursorShape.SizeBDiagCursor,
    "sw": Qt.CursorShape.SizeBDiagCursor,
    "circle-nw": Qt.CursorShape.SizeFDiagCursor,
    "circle-se": Qt.CursorShape.SizeFDiagCursor,
    "circle-ne": Qt.CursorShape.SizeBDiagCursor,
    "circle-sw": Qt.CursorShape.SizeBDiagCursor,
}


# =============================================================================
# Background image loader
# =============================================================================

class ImageLoaderThread(QThread):
    """Background thread for decoding image bytes (especially large PSDs)."""
    loaded = pyqtSignal(object)  # PIL.Image.Image
    error = pyqtSignal(object)   # KroppitError

    def __init__(self, data: bytes, mime_type: str, parent=None):
        super().__init__(parent)
        self._data = data
        self._mime_type = mime_type

    def run(self):
        try:
            image = decode_image(self._data, self._mime_type)
            self.loaded.emit(image)
        except Exception as e:
            self.error.emit(e)


# =============================================================================
# Image Crop Widget: interactive crop overlay on image
# =============================================================================

class ImageCropWidget(QWidget):
    """Widget that displays an image with an interactive, resizable crop overlay."""

    region_changed = pyqtSignal()
    gesture_finished = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(DISPLAY_MAX_WIDTH + 40, DISPLAY_MAX_HEIGHT + 40)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents)
        self.setMouseTracking(True)

        self._session: EditorSession | None = None
        self._pixmap: QPixmap | None = None
        self._result_pixmap: QPixmap | None = None
        self._overlay_policy = OVERLAY_ALWAYS
        self._loading = False
        self._touch_gesture = False

        self._frame_timer = QTimer(self)
        self._frame_timer.setSingleShot(True)
        self._frame_timer.setInterval(FRAME_INTERVAL_MS)
        self._frame_timer.timeout.connect(self._on_frame)

    # --- State ---

    def set_loading(self, loading: bool):
        """Show/hide loading indicator."""
        self._loading = loading
        self.update()

    def set_session(self, session: EditorSession):
        """Display a session whose image has just been loaded (or cleared)."""
        self._loading = False
        self._touch_gesture = False
        self._session = session
        self._frame_timer.stop()
        self._pixmap = pil_to_qpixmap(session.image) if session.has_image else None
        self.refresh()

    def set_overlay_policy(self, policy: str):
        self._overlay_policy = policy
        self.update()

    def refresh(self):
        """Repaint after the session changed outside the widget (crop, reset, presets)."""
        session = self._session
        if session is not None and session.extracted is not None:
            self._result_pixmap = pil_to_qpixmap(session.extracted.image)
        else:
            self._result_pixmap = None
        self.update()

    def has_image(self) -> bool:
        """Return True if an image is loaded and ready for crop operations."""
        return self._session is not None and self._session.has_image

    def _editable(self) -> bool:
        return self.has_image() and not self._session.show_cropped_result

    # --- Coordinate mapping ---

    def _canvas_origin(self) -> QPointF:
        """Top-left of the canvas inside the widget (canvas is centered)."""
        cw, ch = self._session.canvas_size
        return QPointF((self.width() - cw) / 2, (self.height() - ch) / 2)

    def _to_canvas(self, pos: QPointF) -> Point:
        origin = self._canvas_origin()
        return Point(pos.x() - origin.x(), pos.y() - origin.y())

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        if not self.has_image() or self._pixmap is None:
            painter.setPen(QColor(128, 128, 128))
            msg = "Processing image…" if self._loading else "Upload your photo\nDrag & drop or open a file"
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        session = self._session
        cw, ch = session.canvas_size
        painter.translate(self._canvas_origin())

        if self._result_pixmap is not None:
            draw_result(painter, self._result_pixmap, cw, ch)
            painter.end()
            return

        draw_base(painter, self._pixmap, cw, ch)
        if should_draw_overlay(self._overlay_policy, session.gestures.mode, session.show_cropped_result):
            region = session.region
            draw_overlay(painter, region, cw, ch)
            draw_handles(painter, region)
            draw_size_label(painter, region, session.scale)
        painter.end()

    # --- Pointer handling ---

    def _begin(self, pos: QPointF) -> bool:
        if not self._editable():
            return False
        started = self._session.gestures.pointer_down(self._to_canvas(pos))
        if started:
            self.update()
        return started

    def _move(self, pos: QPointF):
        self._session.gestures.queue_move(self._to_canvas(pos))
        if not self._frame_timer.isActive():
            self._frame_timer.start()

    def _finish(self, pos: QPointF | None, cancelled: bool = False):
        self._frame_timer.stop()
        self._touch_gesture = False
        gestures = self._session.gestures
        if cancelled:
            changed = gestures.pointer_cancel()
        else:
            changed = gestures.pointer_up(self._to_canvas(pos) if pos is not None else None)
        if changed:
            self.region_changed.emit()
        self.gesture_finished.emit()
        self.update()

    def _on_frame(self):
        if self._session is not None and self._session.gestures.flush():
            self.region_changed.emit()
            self.update()

    def _update_cursor(self, pos: QPointF):
        target = self._session.gestures.hit_test(self._to_canvas(pos)) if self._editable() else None
        self.setCursor(_CURSORS.get(target, Qt.CursorShape.ArrowCursor))

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self._editable():
            return
        self._begin(event.position())

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self.has_image():
            return
        # Qt keeps delivering moves to this widget after a press, even
        # outside it, until the button is released
        if self._session.gestures.is_active and not self._touch_gesture:
            if event.buttons() & Qt.MouseButton.LeftButton:
                self._move(event.position())
                return
            # The release went elsewhere (modal dialog, window switch)
            self._finish(None, cancelled=True)
        if not self._session.gestures.is_active:
            self._update_cursor(event.position())

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self.has_image() and self._session.gestures.is_active:
            self._finish(event.position())

    def event(self, event: QEvent) -> bool:
        etype = event.type()
        if etype in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate,
                     QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            return self._touch_event(event)
        if etype in (QEvent.Type.UngrabMouse, QEvent.Type.FocusOut):
            self._cancel_lost_gesture(etype)
        return super().event(event)

    def _cancel_lost_gesture(self, etype: QEvent.Type):
        if not self.has_image() or not self._session.gestures.is_active:
            return
        if etype == QEvent.Type.UngrabMouse and self._touch_gesture:
            return
        self._finish(None, cancelled=True)

    def _touch_event(self, event: QTouchEvent) -> bool:
        """Single-touch gestures; only the first touch point is read."""
        etype = event.type()
        points = event.points()
        pos = points[0].position() if points else None
        active = self.has_image() and self._session.gestures.is_active

        if etype == QEvent.Type.TouchBegin:
            if pos is not None and self._begin(pos):
                self._touch_gesture = True
                event.accept()
                return True
            event.ignore()
            return False
        if not active:
            return False
        if etype == QEvent.Type.TouchUpdate and pos is not None:
            self._move(pos)
        elif etype == QEvent.Type.TouchEnd:
            self._finish(pos)
        elif etype == QEvent.Type.TouchCancel:
            self._finish(None, cancelled=True)
        event.accept()
        return True

    # --- Keyboard nudge ---

    def keyPressEvent(self, event: QKeyEvent):
        if not self._editable():
            super().keyPressEvent(event)
            return
        amount = NUDGE_LARGE if event.modifiers() & Qt.KeyboardModifier.ShiftModifier else NUDGE_SMALL
        steps = {
            Qt.Key.Key_Left: (-amount, 0),
            Qt.Key.Key_Right: (amount, 0),
            Qt.Key.Key_Up: (0, -amount),
            Qt.Key.Key_Down: (0, amount),
        }
        step = steps.get(event.key())
        if step is None:
            super().keyPressEvent(event)
            return
        if self._session.gestures.nudge(*step):
            self.region_changed.emit()
            self.update()
