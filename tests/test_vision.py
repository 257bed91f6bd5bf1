import random

import mss.exception
import numpy as np
import pytest

from colorbot.errors import CaptureError
from colorbot.human_input import Point
from colorbot.vision import (
    ColorSignature, ScanResult, ScreenCapture, ScreenScanner, matches, scan_frame, select_target
)

RED = (200, 30, 40)


def test_matches_identical_colors_for_any_tolerance():
    for tol in (0, 1, 3, 255):
        assert matches((12, 34, 56), (12, 34, 56), tol)


def test_matches_rejects_any_channel_past_tolerance():
    assert matches((10, 13, 10), (10, 10, 10), 3)
    assert not matches((10, 14, 10), (10, 10, 10), 3)
    assert not matches((0, 10, 10), (10, 10, 10), 3)
    assert not matches((10, 10, 255), (10, 10, 0), 254)


def test_matches_defaults_to_tolerance_three():
    assert matches((103, 100, 100), (100, 100, 100))
    assert not matches((104, 100, 100), (100, 100, 100))


def test_rgb_target_ignores_sample_alpha():
    assert matches((1, 2, 3, 0), (1, 2, 3))


def test_signature_validation():
    with pytest.raises(ValueError):
        ColorSignature((1, 2))
    with pytest.raises(ValueError):
        ColorSignature((1, 2, 300))
    with pytest.raises(ValueError):
        ColorSignature((1, 2, 3), tolerance=-1)


def test_signature_reorders_into_capture_channel_order():
    assert ColorSignature((1, 2, 3)).in_order("BGRA") == (3, 2, 1)
    assert ColorSignature((1, 2, 3, 4)).in_order("BGRA") == (3, 2, 1, 4)


def test_scan_block_densities(frames):
    bgra_frame, paint = frames
    frame = paint(bgra_frame(10, 10), 2, 2, 7, 7, RED)

    result = scan_frame(frame, ColorSignature(RED))
    found = {(int(p.x), int(p.y)): d for p, d in result}

    assert len(found) == 25
    assert found[(4, 4)] == 9
    assert found[(2, 2)] == 4
    assert found[(4, 2)] == 6
    assert all(1 <= d <= 9 for d in found.values())


def test_scan_fully_surrounded_hit_has_density_nine(frames):
    bgra_frame, _ = frames
    result = scan_frame(bgra_frame(4, 4, RED), ColorSignature(RED))

    assert sorted(map(tuple, result.points.tolist())) == [(1, 1), (1, 2), (2, 1), (2, 2)]
    assert result.densities.tolist() == [9, 9, 9, 9]


def test_scan_isolated_pixel_has_density_one(frames):
    bgra_frame, paint = frames
    frame = paint(bgra_frame(10, 10), 5, 5, 6, 6, RED)

    result = scan_frame(frame, ColorSignature(RED))

    assert result.points.tolist() == [[5, 5]]
    assert result.densities.tolist() == [1]


def test_scan_never_reports_border_pixels(frames):
    bgra_frame, paint = frames
    frame = bgra_frame(10, 10)
    paint(frame, 0, 3, 1, 4, RED)
    paint(frame, 9, 9, 10, 10, RED)
    paint(frame, 4, 0, 5, 1, RED)

    assert scan_frame(frame, ColorSignature(RED)).empty


def test_scan_border_neighbours_still_count_toward_density(frames):
    bgra_frame, paint = frames
    frame = paint(bgra_frame(6, 6), 0, 0, 2, 2, RED)

    result = scan_frame(frame, ColorSignature(RED))

    assert result.points.tolist() == [[1, 1]]
    assert result.densities.tolist() == [4]


def test_scan_respects_tolerance(frames):
    bgra_frame, paint = frames
    frame = bgra_frame(10, 10)
    paint(frame, 3, 3, 4, 4, (203, 30, 40))
    paint(frame, 6, 6, 7, 7, (204, 30, 40))

    result = scan_frame(frame, ColorSignature(RED, tolerance=3))

    assert result.points.tolist() == [[3, 3]]


def test_scan_with_alpha_signature(frames):
    bgra_frame, paint = frames
    frame = paint(bgra_frame(8, 8), 3, 3, 4, 4, RED, alpha=255)

    assert len(scan_frame(frame, ColorSignature(RED + (255,)))) == 1
    assert scan_frame(frame, ColorSignature(RED + (0,))).empty


def test_scan_tiny_frame_is_empty(frames):
    bgra_frame, _ = frames
    assert scan_frame(bgra_frame(2, 2, RED), ColorSignature(RED)).empty


def test_scanner_is_idempotent_on_static_frame(frames, capture_factory):
    bgra_frame, paint = frames
    frame = paint(bgra_frame(20, 12), 4, 3, 11, 9, RED)
    scanner = ScreenScanner(capture_factory([frame]))

    first = scanner.scan(ColorSignature(RED))
    second = scanner.scan(ColorSignature(RED))

    assert np.array_equal(first.points, second.points)
    assert np.array_equal(first.densities, second.densities)


def test_scanner_grabs_fresh_frame_every_scan(frames, capture_factory):
    bgra_frame, paint = frames
    with_red = paint(bgra_frame(8, 8), 3, 3, 5, 5, RED)
    capture = capture_factory([with_red, bgra_frame(8, 8)])
    scanner = ScreenScanner(capture)

    assert not scanner.scan(ColorSignature(RED)).empty
    assert scanner.scan(ColorSignature(RED)).empty
    assert capture.grabs == 2


def test_scanner_missing_frame_is_empty_result(capture_factory):
    logs = []
    scanner = ScreenScanner(capture_factory([None]), log_fn=lambda m, l: logs.append(l))

    assert scanner.scan(ColorSignature(RED)).empty
    assert logs == ["DEBUG"]


def test_scan_result_iterates_points():
    result = ScanResult(points=np.array([[3, 4]]), densities=np.array([7]))
    assert list(result) == [(Point(3.0, 4.0), 7)]
    assert len(ScanResult()) == 0


def test_screen_capture_open_failure_is_fatal(monkeypatch):
    def boom():
        raise mss.exception.ScreenShotError("no display")

    monkeypatch.setattr("colorbot.vision.mss.mss", boom)

    with pytest.raises(CaptureError):
        ScreenCapture().grab()


class _DummySct:
    monitors = [{"width": 3840, "height": 1080}, {"left": 0, "top": 0, "width": 1920, "height": 1080}]

    def __init__(self, frame=None):
        self.frame = frame
        self.closed = False

    def grab(self, monitor):
        assert monitor["width"] == 1920
        if self.frame is None:
            raise mss.exception.ScreenShotError("busy")
        return self.frame

    def close(self):
        self.closed = True


def test_screen_capture_transient_grab_failure_returns_none():
    cap = ScreenCapture()
    cap._sct = _DummySct()
    assert cap.grab() is None


def test_screen_capture_uses_primary_monitor(frames):
    bgra_frame, _ = frames
    frame = bgra_frame(4, 4)
    sct = _DummySct(frame)
    cap = ScreenCapture()
    cap._sct = sct

    assert cap.size == (1920, 1080)
    assert cap.grab().shape == (4, 4, 4)
    cap.close()
    assert sct.closed


def test_select_target_empty_is_none():
    assert select_target(ScanResult()) is None


def test_select_target_single_point_stays_within_jitter():
    result = ScanResult(points=np.array([[10, 10]]), densities=np.array([9]))
    rng = random.Random(1234)
    for _ in range(200):
        p = select_target(result, rng)
        assert abs(p.x - 10) <= 5
        assert abs(p.y - 10) <= 5


def test_select_target_only_picks_top_quartile():
    points = [[100, 100], [200, 200]] + [[10 * i, 10 * i] for i in range(1, 7)]
    densities = [9, 9, 1, 2, 3, 1, 2, 3]
    result = ScanResult(points=np.array(points), densities=np.array(densities))
    rng = random.Random(7)

    picks = {select_target(result, rng, jitter=0.0) for _ in range(100)}

    assert picks <= {Point(100.0, 100.0), Point(200.0, 200.0)}


def test_select_target_keeps_at_least_one_point():
    result = ScanResult(points=np.array([[5, 5], [30, 30], [60, 60]]), densities=np.array([2, 8, 3]))
    rng = random.Random(3)
    for _ in range(20):
        assert select_target(result, rng, jitter=0.0) == Point(30.0, 30.0)


def test_select_target_clamps_at_zero():
    result = ScanResult(points=np.array([[1, 1]]), densities=np.array([9]))
    rng = random.Random(0)
    for _ in range(50):
        p = select_target(result, rng)
        assert p.x >= 0 and p.y >= 0


def test_signature_bounds_leave_unused_alpha_open():
    assert ColorSignature((10, 20, 254), tolerance=3).bounds("BGRA") == ((251, 17, 7, 0), (255, 23, 13, 255))
    assert ColorSignature((10, 20, 30, 40), tolerance=0).bounds("BGRA") == ((30, 20, 10, 40), (30, 20, 10, 40))


def test_scan_works_on_the_captured_frame_without_conversion(frames, monkeypatch):
    def no_conversion(*args, **kwargs):
        raise AssertionError("frame was colour-converted")

    monkeypatch.setattr("colorbot.vision.cv2.cvtColor", no_conversion)
    bgra_frame, paint = frames
    frame = paint(bgra_frame(10, 10), 2, 2, 7, 7, RED, alpha=17)

    result = scan_frame(frame, ColorSignature(RED))

    assert len(result) == 25


def test_hit_mask_is_zero_or_one(frames):
    from colorbot.vision import hit_mask

    bgra_frame, paint = frames
    mask = hit_mask(paint(bgra_frame(6, 6), 1, 1, 3, 3, RED), ColorSignature(RED))

    assert mask.dtype == np.uint8
    assert set(np.unique(mask).tolist()) == {0, 1}
    assert int(mask.sum()) == 4


def test_select_target_spreads_over_a_solid_blob(frames):
    bgra_frame, paint = frames
    frame = paint(bgra_frame(200, 200), 50, 50, 150, 150, RED)
    result = scan_frame(frame, ColorSignature(RED))
    rng = random.Random(11)

    ys = [select_target(result, rng, jitter=0.0).y for _ in range(500)]

    assert min(ys) < 100
    assert max(ys) >= 100
