import pytest

from kroppit.config import HANDLE_SIZE
from kroppit.gestures import (
    BODY, DRAGGING, IDLE, RESIZING, GestureController, handle_positions,
)
from kroppit.models import CIRCLE, CropRegion, Point

CANVAS = (300, 200)


@pytest.fixture
def controller():
    return GestureController(CANVAS, CropRegion(50, 50, 100, 80))


def test_handle_positions_for_each_shape():
    rect = handle_positions(CropRegion(50, 50, 100, 80))
    assert set(rect) == {"n", "s", "e", "w", "nw", "ne", "sw", "se"}
    assert rect["se"] == Point(150, 130)
    assert rect["n"] == Point(100, 50)

    circle = handle_positions(CropRegion(10, 10, 40, 40, CIRCLE))
    assert set(circle) == {"circle-nw", "circle-ne", "circle-sw", "circle-se"}


def test_hit_test(controller):
    assert controller.hit_test(Point(150 + HANDLE_SIZE, 130)) == "se"
    assert controller.hit_test(Point(100, 52)) == "n"
    assert controller.hit_test(Point(100, 90)) == BODY
    assert controller.hit_test(Point(5, 5)) is None


def test_pointer_down_outside_does_nothing(controller):
    assert controller.pointer_down(Point(5, 5)) is False
    assert controller.mode == IDLE


def test_drag_moves_region_and_returns_to_idle(controller):
    assert controller.pointer_down(Point(100, 90))
    assert controller.mode == DRAGGING
    assert controller.pointer_move(Point(110, 95))
    assert controller.region == CropRegion(60, 55, 100, 80)
    controller.pointer_up()
    assert controller.mode == IDLE
    assert controller.state.region_at_start is None


def test_drag_is_clamped_to_canvas(controller):
    controller.pointer_down(Point(100, 90))
    controller.pointer_move(Point(-500, 1000))
    assert controller.region == CropRegion(0, 120, 100, 80)


def test_resize_from_handle(controller):
    assert controller.pointer_down(Point(150, 130))
    assert controller.mode == RESIZING
    assert controller.state.handle == "se"
    controller.pointer_up(Point(190, 150))
    assert controller.region == CropRegion(50, 50, 140, 100)


def test_no_accumulation_of_deltas(controller):
    start = Point(150, 130)
    d1, d2 = Point(-90, 13), Point(37, -60)

    controller.pointer_down(start, target="se")
    controller.pointer_move(start + d1)
    controller.pointer_move(start + d1 + d2)
    stepwise = controller.region
    controller.pointer_up()

    single = GestureController(CANVAS, CropRegion(50, 50, 100, 80))
    single.pointer_down(start, target="se")
    single.pointer_move(start + d1 + d2)
    assert stepwise == single.region


def test_moves_are_coalesced_until_flush(controller):
    controller.pointer_down(Point(100, 90))
    controller.queue_move(Point(120, 90))
    controller.queue_move(Point(130, 100))
    assert controller.region == CropRegion(50, 50, 100, 80)
    assert controller.flush()
    assert controller.region == CropRegion(80, 60, 100, 80)
    assert controller.flush() is False


def test_pointer_up_flushes_pending_move(controller):
    controller.pointer_down(Point(100, 90))
    controller.queue_move(Point(105, 90))
    assert controller.pointer_up()
    assert controller.region.x == 55


def test_cancel_behaves_like_up(controller):
    controller.pointer_down(Point(150, 130))
    controller.pointer_move(Point(160, 140))
    controller.queue_move(Point(170, 150))
    controller.pointer_cancel()
    assert controller.mode == IDLE
    assert controller.region == CropRegion(50, 50, 120, 100)


def test_moves_while_idle_are_ignored(controller):
    controller.queue_move(Point(200, 150))
    assert controller.flush() is False
    assert controller.region == CropRegion(50, 50, 100, 80)


def test_circle_rejects_rectangle_handles():
    controller = GestureController(CANVAS, CropRegion(100, 60, 60, 60, CIRCLE))
    with pytest.raises(ValueError):
        controller.pointer_down(Point(160, 120), target="se")


def test_circle_resize_stays_square():
    controller = GestureController(CANVAS, CropRegion(100, 60, 60, 60, CIRCLE))
    assert controller.pointer_down(Point(160, 120))
    assert controller.state.handle == "circle-se"
    for dx, dy in [(10, 40), (50, -5), (400, 400), (-300, 10)]:
        controller.pointer_move(Point(160 + dx, 120 + dy))
        region = controller.region
        assert region.width == region.height
        assert (region.x, region.y) == (100, 60)
    controller.pointer_up()


def test_nudge_only_when_idle(controller):
    assert controller.nudge(-10, 0)
    assert controller.region.x == 40
    controller.pointer_down(Point(100, 90))
    assert controller.nudge(5, 5) is False
    controller.pointer_up()


def test_nudge_at_edge_reports_no_change():
    controller = GestureController(CANVAS, CropRegion(0, 0, 100, 80))
    assert controller.nudge(-1, 0) is False


def test_reset_drops_gesture(controller):
    controller.pointer_down(Point(100, 90))
    controller.queue_move(Point(120, 90))
    controller.reset(region=CropRegion(0, 0, 30, 30))
    assert controller.mode == IDLE
    assert controller.flush() is False
    assert controller.region == CropRegion(0, 0, 30, 30)


def test_circle_body_is_the_inscribed_disc():
    ctl = GestureController(CANVAS, CropRegion(100, 60, 60, 60, CIRCLE))
    # Inside the bounding square, outside the disc and clear of the corner handle
    assert ctl.hit_test(Point(109, 65)) is None
    assert ctl.hit_test(Point(130, 90)) == BODY
    assert not ctl.pointer_down(Point(109, 65))
