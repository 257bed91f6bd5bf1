# Mouse paths with bezier curves, and the move scripts the injectors play back

import math
import random
from dataclasses import dataclass
from typing import Tuple, List, Optional

# Samples per curve at speed 1. Higher speed = fewer samples = faster sweep.
BASE_SAMPLES = 500
MIN_SAMPLES = 10

# Max bearing wobble at deviation 100%
MAX_ANGLE_DEG = 30.0

DEFAULT_SETTLE = 0.25


@dataclass(frozen=True)
class Point:
    x: float
    y: float


def pascal_row(n: int) -> List[int]:
    # Generate Pascal's triangle row for bezier math
    result = [1]
    x = 1
    for i in range(1, n + 1):
        x = x * (n - i + 1) // i
        result.append(x)
    return result


_CUBIC = pascal_row(3)


@dataclass(frozen=True)
class MotionCurve:
    start: Point
    ctrl1: Point
    ctrl2: Point
    end: Point

    @property
    def control_points(self) -> Tuple[Point, Point, Point, Point]:
        return self.start, self.ctrl1, self.ctrl2, self.end

    def __call__(self, t: float) -> Point:
        # Endpoints returned as-is so curve(0)/curve(1) are exact
        if t <= 0.0:
            return self.start
        if t >= 1.0:
            return self.end
        # Bernstein polynomials
        result_x = 0.0
        result_y = 0.0
        for i, point in enumerate(self.control_points):
            bernstein = _CUBIC[i] * (t ** i) * ((1 - t) ** (3 - i))
            result_x += point.x * bernstein
            result_y += point.y * bernstein
        return Point(result_x, result_y)


def synthesize(
    start: Point,
    end: Point,
    deviation: float,
    rng: Optional[random.Random] = None
) -> MotionCurve:
    """
    Build a curved path from start to end.

    Each control point sits on the direct bearing at 1/3 and 2/3 of the way,
    the bearing gets a random wobble and the point gets shoved sideways by a
    random [d/2, d]% of the segment length. deviation=0 is a straight line.
    """
    rng = rng or random.Random()
    dev = max(0.0, min(100.0, float(deviation))) / 100.0

    dx = end.x - start.x
    dy = end.y - start.y
    length = math.hypot(dx, dy)
    bearing = math.atan2(dy, dx)
    # Unit normal to the segment
    nx, ny = (-dy / length, dx / length) if length else (0.0, 0.0)

    def ctrl(frac: float) -> Point:
        angle = bearing + math.radians(rng.uniform(-MAX_ANGLE_DEG, MAX_ANGLE_DEG)) * dev
        side = rng.choice((-1, 1))
        push = side * length * rng.uniform(dev / 2, dev)
        reach = length * frac
        x = start.x + math.cos(angle) * reach + nx * push
        y = start.y + math.sin(angle) * reach + ny * push
        return Point(max(0.0, x), max(0.0, y))

    if dev == 0.0:
        # Exactly on the segment, no trig rounding
        return MotionCurve(
            start,
            Point(start.x + dx / 3, start.y + dy / 3),
            Point(start.x + dx * 2 / 3, start.y + dy * 2 / 3),
            end
        )

    return MotionCurve(start, ctrl(1 / 3), ctrl(2 / 3), end)


# ═══════════════════════════════════════════════════════════════════════════════
# EMITTER - curve in, move list + final action out. Never touches the mouse.
# ═══════════════════════════════════════════════════════════════════════════════

CLICK = "click"
LEFT_CLICK = "left_click"
RIGHT_CLICK = "right_click"
SHIFT_CLICK = "shift_click"
KEY = "key"

ACTION_KINDS = (CLICK, LEFT_CLICK, RIGHT_CLICK, SHIFT_CLICK, KEY)


@dataclass(frozen=True)
class TerminalAction:
    kind: str
    key: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in ACTION_KINDS:
            raise ValueError(f"Unknown terminal action: {self.kind}")
        if self.kind == KEY and not self.key:
            raise ValueError("Key action needs a key token")


@dataclass(frozen=True)
class InputScript:
    moves: Tuple[Point, ...]
    settle: float
    action: TerminalAction


def sample_count(speed: float) -> int:
    speed = max(float(speed), 1.0)
    return max(MIN_SAMPLES, int(round(BASE_SAMPLES / speed)))


def emit(
    curve: MotionCurve,
    speed: float,
    action: TerminalAction,
    settle: float = DEFAULT_SETTLE
) -> InputScript:
    n = sample_count(speed)
    moves = tuple(curve(i / n) for i in range(n + 1))
    # Settle pause so the cursor is really there before the click lands
    return InputScript(moves=moves, settle=settle, action=action)


def emit_key(key: str) -> InputScript:
    return InputScript(moves=(), settle=0.0, action=TerminalAction(KEY, key))
