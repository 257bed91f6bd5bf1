import numpy as np
import pytest

from colorbot.human_input import Point
from colorbot.vision import ScanResult


def make_hit(x=50, y=60, density=9):
    return ScanResult(points=np.array([[x, y]]), densities=np.array([density]))


class _DummyScanner:
    # Plays back results in order, the last one repeats forever
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0
        self.signatures = []

    def scan(self, signature):
        self.calls += 1
        self.signatures.append(signature)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class _DummyInjector:
    def __init__(self, start=Point(0.0, 0.0), fail_with=None):
        self.start = start
        self.fail_with = fail_with
        self.scripts = []

    def position(self):
        return self.start

    def run(self, script):
        if self.fail_with:
            raise self.fail_with
        self.scripts.append(script)


class _DummyCapture:
    channel_order = "BGRA"

    def __init__(self, frames):
        self.frames = list(frames)
        self.grabs = 0

    def grab(self):
        self.grabs += 1
        if len(self.frames) > 1:
            return self.frames.pop(0)
        return self.frames[0]


@pytest.fixture()
def hit():
    return make_hit


@pytest.fixture()
def scanner_factory():
    return _DummyScanner


@pytest.fixture()
def injector():
    return _DummyInjector()


@pytest.fixture()
def injector_factory():
    return _DummyInjector


@pytest.fixture()
def capture_factory():
    return _DummyCapture


class FakeClock:
    # Monotonic clock that only moves when something sleeps or ticks it
    def __init__(self, sleeps=None):
        self.now = 0.0
        self.sleeps = [] if sleeps is None else sleeps

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds

    def tick(self, seconds):
        self.now += seconds


@pytest.fixture()
def sleeps():
    return []


def bgra_frame(width, height, rgb=(0, 0, 0), alpha=255):
    frame = np.zeros((height, width, 4), dtype=np.uint8)
    paint(frame, 0, 0, width, height, rgb, alpha)
    return frame


def paint(frame, x0, y0, x1, y1, rgb, alpha=255):
    # Fill [x0, x1) x [y0, y1) with an RGB colour, stored BGRA like mss
    r, g, b = rgb
    frame[y0:y1, x0:x1, 0] = b
    frame[y0:y1, x0:x1, 1] = g
    frame[y0:y1, x0:x1, 2] = r
    frame[y0:y1, x0:x1, 3] = alpha
    return frame


@pytest.fixture()
def frames():
    return bgra_frame, paint
