import io

import pytest
from PIL import Image

from kroppit.errors import DecodeFailureError, InvalidCropStateError
from kroppit.gestures import IDLE
from kroppit.models import CIRCLE, RECTANGLE, CropRegion, Point
from kroppit.session import EditorSession


@pytest.fixture
def session(gradient):
    s = EditorSession()
    s.load_image(gradient(640, 480))
    return s


def test_load_computes_scale_canvas_and_default_region(session):
    assert session.scale == pytest.approx(0.5)
    assert session.canvas_size == (320, 240)
    assert session.region == CropRegion(60, 36, 200, 168)
    assert not session.show_cropped_result


def test_load_bytes_decodes():
    buf = io.BytesIO()
    Image.new("RGB", (100, 50), "green").save(buf, "PNG")
    s = EditorSession(max_width=320, max_height=320)
    s.load_bytes(buf.getvalue(), "image/png")
    assert s.scale == 1.0
    assert s.canvas_size == (100, 50)


def test_load_bytes_failure_leaves_no_image():
    s = EditorSession()
    with pytest.raises(DecodeFailureError):
        s.load_bytes(b"junk", "image/jpeg")
    assert not s.has_image


def test_crop_stores_result_at_source_resolution(session):
    result = session.crop()
    assert session.show_cropped_result
    assert session.extracted is result
    assert (result.width, result.height) == (400, 336)


def test_crop_without_image_raises():
    with pytest.raises(InvalidCropStateError):
        EditorSession().crop()


def test_crop_cancels_gesture_in_progress(session):
    gestures = session.gestures
    gestures.pointer_down(Point(160, 120))
    gestures.queue_move(Point(170, 120))
    session.crop()
    assert gestures.mode == IDLE
    assert session.region.x == 70


def test_reset_returns_to_default_rectangle(session):
    session.set_preset("circle")
    session.crop()
    session.reset()
    assert session.region.shape == RECTANGLE
    assert session.region == CropRegion(60, 36, 200, 168)
    assert session.extracted is None


def test_presets_and_anchors(session):
    session.set_preset("circle")
    assert session.region.shape == CIRCLE
    session.set_anchor("bottom-right")
    region = session.region
    assert region.right == pytest.approx(320)
    assert region.bottom == pytest.approx(240)


def test_load_replaces_previous_state(session, gradient):
    session.crop()
    session.load_image(gradient(100, 400))
    assert session.extracted is None
    assert session.canvas_size == (80, 320)


def test_clear_forgets_image(session):
    session.clear()
    assert not session.has_image
    assert session.canvas_size == (0, 0)
    session.set_preset("square")  # no image: ignored


def test_check_shareable(session):
    with pytest.raises(InvalidCropStateError):
        session.check_shareable()
    session.crop()
    assert session.check_shareable().ok
