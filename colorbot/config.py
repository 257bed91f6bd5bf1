"""
colorbot/config.py - The Knobs and Dials

Everything the bot does that isn't in the script lives here.
Defaults are sane. The CLI can override the important ones per run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple, Optional

import yaml

from .errors import ConfigurationError
from .vision import DEFAULT_TOLERANCE


# ═══════════════════════════════════════════════════════════════════════════════
# MOUSE MOVEMENT
# ═══════════════════════════════════════════════════════════════════════════════
#
# Straight lines at constant speed are the giveaway. Curve it.
#

@dataclass
class MouseConfig:
    # How far the bezier control points may wander off the straight line. 0-100.
    # 0 = ruler-straight. 25 = lazy arc. 80+ = drunk.
    deviation_percent: float = 25.0

    # 1-10. Higher = fewer points on the curve = faster sweep.
    speed: float = 3.0

    # Random offset added to the chosen target pixel, per axis.
    target_jitter_px: float = 5.0

    # Pause between the last move and the click. Lets the cursor land.
    settle_ms: int = 250


# ═══════════════════════════════════════════════════════════════════════════════
# COLOUR MATCHING
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class MatchingConfig:
    # Per-channel slack. 3 survives capture noise without grabbing neighbours.
    # Crank it up only if your target has a gradient.
    tolerance: int = DEFAULT_TOLERANCE


# ═══════════════════════════════════════════════════════════════════════════════
# TIMING
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class TimingConfig:
    # How often to re-check a skip_if_vanished target while waiting.
    monitor_interval_ms: int = 100

    # Short breather after a skip (target gone), random in this range.
    skip_cooldown_min_ms: int = 250
    skip_cooldown_max_ms: int = 750

    @property
    def skip_cooldown_ms(self) -> Tuple[int, int]:
        return self.skip_cooldown_min_ms, self.skip_cooldown_max_ms


# ═══════════════════════════════════════════════════════════════════════════════
# GUARD - "Something is in the way" check before the run starts
# ═══════════════════════════════════════════════════════════════════════════════
#
# Example: a dialog with a known colour. While it's on screen, press the key,
# wait, look again. Gives up after max_wait_seconds (0 = wait forever).
#

@dataclass
class GuardConfig:
    enabled: bool = False
    color: Tuple[int, int, int] = (255, 0, 0)
    tolerance: int = DEFAULT_TOLERANCE
    key: str = "esc"
    backoff_ms: int = 1000
    max_wait_seconds: float = 60.0


@dataclass
class InputConfig:
    # "pyautogui" (anywhere) or "xdotool" (Linux/X11)
    backend: str = "pyautogui"


@dataclass
class HotkeysConfig:
    # STOP: finish the current sleep, skip the rest, exit.
    stop_bot: str = "f10"


@dataclass
class UIConfig:
    # Live dashboard. Off = plain coloured log lines.
    dashboard: bool = True
    refresh_rate_ms: int = 100


# ═══════════════════════════════════════════════════════════════════════════════
# MASTER CONFIG
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class AppConfig:
    """
    Everything bundled together. Use load_config() rather than building
    this by hand, it clamps values into range.
    """
    script: str = "scripts/example.json"
    runtime_seconds: int = 600
    debug: bool = False
    mouse: MouseConfig = field(default_factory=MouseConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    guard: GuardConfig = field(default_factory=GuardConfig)
    input: InputConfig = field(default_factory=InputConfig)
    hotkeys: HotkeysConfig = field(default_factory=HotkeysConfig)
    ui: UIConfig = field(default_factory=UIConfig)


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIG LOADER
# ═══════════════════════════════════════════════════════════════════════════════

def _get(data: dict, *keys, default=None):
    """Drill into nested dicts without KeyError explosions."""
    for key in keys:
        if not isinstance(data, dict):
            return default
        data = data.get(key)
        if data is None:
            return default
    return data


def _clamp(value, lo, hi):
    return max(lo, min(hi, value))


def clamp_config(cfg: AppConfig) -> AppConfig:
    # Pull out-of-range values back in. Used after CLI overrides too.
    # "speed: fast" and friends end up here as ConfigurationError.
    try:
        _clamp_values(cfg)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Bad config value: {e}") from e
    return cfg


def _clamp_values(cfg: AppConfig) -> None:
    cfg.runtime_seconds = max(0, int(cfg.runtime_seconds))
    cfg.mouse.deviation_percent = _clamp(float(cfg.mouse.deviation_percent), 0.0, 100.0)
    cfg.mouse.speed = _clamp(float(cfg.mouse.speed), 1.0, 10.0)
    cfg.mouse.target_jitter_px = max(0.0, float(cfg.mouse.target_jitter_px))
    cfg.mouse.settle_ms = max(0, int(cfg.mouse.settle_ms))
    cfg.matching.tolerance = _clamp(int(cfg.matching.tolerance), 0, 255)
    cfg.timing.monitor_interval_ms = max(1, int(cfg.timing.monitor_interval_ms))
    cfg.timing.skip_cooldown_min_ms = max(0, int(cfg.timing.skip_cooldown_min_ms))
    cfg.timing.skip_cooldown_max_ms = max(cfg.timing.skip_cooldown_min_ms, int(cfg.timing.skip_cooldown_max_ms))
    cfg.guard.backoff_ms = max(1, int(cfg.guard.backoff_ms))
    cfg.guard.max_wait_seconds = max(0.0, float(cfg.guard.max_wait_seconds))
    cfg.ui.refresh_rate_ms = _clamp(int(cfg.ui.refresh_rate_ms), 10, 1000)


def load_config(path: str = "config.yaml") -> AppConfig:
    """
    Load config from YAML. Missing file = all defaults. Missing keys = defaults.
    Robust handling for partial configs.
    """
    config_path = Path(path)

    if not config_path.exists():
        return AppConfig()  # No config found, using defaults.

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return AppConfig()  # Malformed YAML fallback.

    mouse = MouseConfig(
        deviation_percent=_get(data, "mouse", "deviation_percent", default=25.0),
        speed=_get(data, "mouse", "speed", default=3.0),
        target_jitter_px=_get(data, "mouse", "target_jitter_px", default=5.0),
        settle_ms=_get(data, "mouse", "settle_ms", default=250)
    )

    timing = TimingConfig(
        monitor_interval_ms=_get(data, "timing", "monitor_interval_ms", default=100),
        skip_cooldown_min_ms=_get(data, "timing", "skip_cooldown_min_ms", default=250),
        skip_cooldown_max_ms=_get(data, "timing", "skip_cooldown_max_ms", default=750)
    )

    color = _get(data, "guard", "color", default=[255, 0, 0])
    try:
        color = tuple(int(c) for c in color[:3])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"guard.color must be [r, g, b], got {color!r}") from e

    guard = GuardConfig(
        enabled=_get(data, "guard", "enabled", default=False),
        color=color,
        tolerance=_get(data, "guard", "tolerance", default=DEFAULT_TOLERANCE),
        key=_get(data, "guard", "key", default="esc"),
        backoff_ms=_get(data, "guard", "backoff_ms", default=1000),
        max_wait_seconds=_get(data, "guard", "max_wait_seconds", default=60.0)
    )

    return clamp_config(AppConfig(
        script=_get(data, "script", default="scripts/example.json"),
        runtime_seconds=_get(data, "runtime_seconds", default=600),
        debug=_get(data, "debug", default=False),
        mouse=mouse,
        matching=MatchingConfig(
            tolerance=_get(data, "matching", "tolerance", default=DEFAULT_TOLERANCE)
        ),
        timing=timing,
        guard=guard,
        input=InputConfig(
            backend=_get(data, "input", "backend", default="pyautogui")
        ),
        hotkeys=HotkeysConfig(
            stop_bot=_get(data, "hotkeys", "stop_bot", default="f10")
        ),
        ui=UIConfig(
            dashboard=_get(data, "ui", "dashboard", default=True),
            refresh_rate_ms=_get(data, "ui", "refresh_rate_ms", default=100)
        )
    ))
