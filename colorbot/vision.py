"""
colorbot/vision.py - Screen capture and colour scanning.
"""

import random
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence, Tuple, Callable

import cv2
import mss
import mss.exception
import numpy as np

from .errors import CaptureError
from .human_input import Point

DEFAULT_TOLERANCE = 3


def matches(sample: Sequence[int], target: Sequence[int], tolerance: int = DEFAULT_TOLERANCE) -> bool:
    # Every channel within tolerance. RGB target vs RGBA sample ignores the alpha.
    return all(abs(int(a) - int(b)) <= tolerance for a, b in zip(sample, target))


@dataclass(frozen=True)
class ColorSignature:
    # RGB(A) colour plus how sloppy we're allowed to be about it
    color: Tuple[int, ...]
    tolerance: int = DEFAULT_TOLERANCE

    def __post_init__(self) -> None:
        if len(self.color) not in (3, 4):
            raise ValueError(f"Colour needs 3 or 4 channels, got {len(self.color)}")
        if any(not 0 <= int(c) <= 255 for c in self.color):
            raise ValueError(f"Colour channels must be 0-255: {self.color}")
        if self.tolerance < 0:
            raise ValueError("Tolerance must be >= 0")

    @property
    def has_alpha(self) -> bool:
        return len(self.color) == 4

    def matches(self, sample: Sequence[int]) -> bool:
        return matches(sample, self.color, self.tolerance)

    def in_order(self, channel_order: str) -> Tuple[int, ...]:
        """Reorder the RGB(A) signature into a capture's channel order ("BGRA" etc.)."""
        lookup = dict(zip("RGBA", self.color))
        return tuple(lookup[ch] for ch in channel_order.upper() if ch in lookup)

    def bounds(self, channel_order: str) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        """
        Per-channel (lower, upper) in the capture's channel order. A channel
        the signature doesn't carry (alpha, for plain RGB) accepts 0-255.
        """
        lookup = dict(zip("RGBA", self.color))
        lower, upper = [], []
        for ch in channel_order.upper():
            if ch in lookup:
                lower.append(max(0, lookup[ch] - self.tolerance))
                upper.append(min(255, lookup[ch] + self.tolerance))
            else:
                lower.append(0)
                upper.append(255)
        return tuple(lower), tuple(upper)


@dataclass(frozen=True)
class ScanResult:
    # Hits from one frame. points[i] = (x, y), densities[i] in [1, 9]
    points: np.ndarray = field(default_factory=lambda: np.empty((0, 2), dtype=np.int64))
    densities: np.ndarray = field(default_factory=lambda: np.empty((0,), dtype=np.int64))

    def __len__(self) -> int:
        return int(self.densities.shape[0])

    def __iter__(self) -> Iterator[Tuple[Point, int]]:
        for (x, y), d in zip(self.points.tolist(), self.densities.tolist()):
            yield Point(float(x), float(y)), int(d)

    @property
    def empty(self) -> bool:
        return len(self) == 0


class ScreenCapture:
    # Screen grabber using mss (way faster than pyautogui)
    # Primary display only. mss monitor 0 is the virtual "all monitors" screen.

    channel_order = "BGRA"

    def __init__(self, monitor_index: int = 1) -> None:
        self._sct: Optional[mss.mss] = None
        self.monitor_index = monitor_index

    def __enter__(self):
        self._open()
        return self

    def __exit__(self, exc_type, exc_str, exc_tb):
        self.close()

    def _open(self):
        if not self._sct:
            try:
                self._sct = mss.mss()
            except mss.exception.ScreenShotError as e:
                raise CaptureError(f"Cannot open display: {e}") from e
        return self._sct

    def close(self) -> None:
        if self._sct:
            self._sct.close()
            self._sct = None

    def _monitor(self) -> dict:
        sct = self._open()
        idx = max(0, min(self.monitor_index, len(sct.monitors) - 1))
        return sct.monitors[idx]

    @property
    def size(self) -> Tuple[int, int]:
        mon = self._monitor()
        return mon["width"], mon["height"]

    def grab(self) -> Optional[np.ndarray]:
        """One BGRA frame (H x W x 4), or None if the frame isn't available right now."""
        monitor = self._monitor()
        try:
            img = self._sct.grab(monitor)
        except mss.exception.ScreenShotError:
            return None
        return np.asarray(img)


class ScreenScanner:
    """
    Finds every pixel of a colour signature and scores it by how many of
    its 3x3 neighbours (itself included) also match.
    """

    def __init__(self, capture, log_fn: Optional[Callable[[str, str], None]] = None) -> None:
        self._capture = capture
        self._log = log_fn or (lambda m, l: None)

    def scan(self, signature: ColorSignature) -> ScanResult:
        frame = self._capture.grab()
        if frame is None:
            self._log("No frame this cycle", "DEBUG")
            return ScanResult()
        return scan_frame(frame, signature, getattr(self._capture, "channel_order", "BGRA"))


def hit_mask(frame: np.ndarray, signature: ColorSignature, channel_order: str = "BGRA") -> np.ndarray:
    # uint8 mask, 1 where the pixel matches. Bounds follow the frame's layout,
    # no colour conversion of the frame.
    lower, upper = signature.bounds(channel_order[:frame.shape[2]])
    if not frame.flags["C_CONTIGUOUS"]:
        frame = np.ascontiguousarray(frame)

    mask = cv2.inRange(frame, np.array(lower, dtype=np.uint8), np.array(upper, dtype=np.uint8))
    np.right_shift(mask, 7, out=mask)  # 255 -> 1
    return mask


def scan_frame(frame: np.ndarray, signature: ColorSignature, channel_order: str = "BGRA") -> ScanResult:
    h, w = frame.shape[:2]
    if h < 3 or w < 3:
        return ScanResult()

    hits = hit_mask(frame, signature, channel_order)

    # 3x3 neighbour sum over the interior only, border ring is never scanned
    density = np.zeros((h - 2, w - 2), dtype=np.uint8)
    for dy in (0, 1, 2):
        for dx in (0, 1, 2):
            density += hits[dy:h - 2 + dy, dx:w - 2 + dx]

    ys, xs = np.nonzero(hits[1:h - 1, 1:w - 1])
    points = np.column_stack((xs + 1, ys + 1)).astype(np.int64)
    return ScanResult(points=points, densities=density[ys, xs].astype(np.int64))


def select_target(
    result: ScanResult,
    rng: Optional[random.Random] = None,
    jitter: float = 5.0
) -> Optional[Point]:
    """
    Pick a click point from a scan. Top density quartile only (blob interiors
    beat edge noise), uniform pick, then a little per-axis jitter.
    """
    if result.empty:
        return None
    rng = rng or random.Random()

    # Densest first, ties shuffled. A solid blob is mostly 9s and scan order
    # would otherwise keep only its top rows.
    tiebreak = np.random.default_rng(rng.getrandbits(64)).permutation(len(result))
    order = np.lexsort((tiebreak, -result.densities))
    keep = max(1, len(order) // 4)
    x, y = result.points[order[rng.randrange(keep)]].tolist()

    return Point(
        max(0.0, x + rng.uniform(-jitter, jitter)),
        max(0.0, y + rng.uniform(-jitter, jitter))
    )
