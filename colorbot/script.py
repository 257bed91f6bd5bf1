"""
colorbot/script.py - Bot scripts: what to look for, what to press, how long to wait.

A script is an ordered list of events, loaded once and never touched again:

    {
      "name": "fishing",
      "events": [
        {"type": "pointer", "id": "cast", "color": [40, 200, 90],
         "action": "left_click", "delay_rng": [800, 1400],
         "repeat": 2, "skip_if_vanished": true},
        {"type": "key", "id": "reel", "key": "space", "delay_rng": [300, 500]}
      ]
    }

JSON or YAML, picked by file extension.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple, Union

import yaml

from .errors import ConfigurationError
from .human_input import LEFT_CLICK, RIGHT_CLICK, SHIFT_CLICK
from .vision import ColorSignature, DEFAULT_TOLERANCE

POINTER = "pointer"
KEY = "key"

POINTER_ACTIONS = (LEFT_CLICK, RIGHT_CLICK, SHIFT_CLICK)


def _check_timing(event_id: str, delay_ms: Tuple[int, int], repeat: int) -> None:
    lo, hi = delay_ms
    if lo < 0 or lo > hi:
        raise ConfigurationError(f"Event {event_id!r}: delay range {list(delay_ms)} needs 0 <= min <= max")
    if repeat < 1:
        raise ConfigurationError(f"Event {event_id!r}: repeat must be >= 1, got {repeat}")


@dataclass(frozen=True)
class PointerEvent:
    id: str
    action: str
    signature: ColorSignature
    delay_ms: Tuple[int, int]
    repeat: int = 1
    skip_if_vanished: bool = False
    type: str = field(default=POINTER, init=False)

    def __post_init__(self) -> None:
        _check_timing(self.id, self.delay_ms, self.repeat)


@dataclass(frozen=True)
class KeyEvent:
    id: str
    key: str
    delay_ms: Tuple[int, int]
    repeat: int = 1
    type: str = field(default=KEY, init=False)

    def __post_init__(self) -> None:
        _check_timing(self.id, self.delay_ms, self.repeat)


Event = Union[PointerEvent, KeyEvent]


@dataclass(frozen=True)
class Script:
    events: Tuple[Event, ...]
    name: str = "Unnamed Script"

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)


def _delay(raw: Any, where: str) -> Tuple[int, int]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ConfigurationError(f"{where}: delay_rng must be [min_ms, max_ms]")
    try:
        return int(raw[0]), int(raw[1])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{where}: delay_rng must be integers") from e


def _int(data: Dict[str, Any], key: str, default: int, where: str) -> int:
    try:
        return int(data.get(key, default))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{where}: {key} must be an integer") from e


def _bool(data: Dict[str, Any], key: str, default: bool, where: str) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"{where}: {key} must be true or false, got {value!r}")
    return value


def parse_event(data: Dict[str, Any], index: int = 0, tolerance: int = DEFAULT_TOLERANCE) -> Event:
    where = f"Event #{index}"
    if not isinstance(data, dict):
        raise ConfigurationError(f"{where}: expected a mapping, got {type(data).__name__}")

    # Old-style scripts had no type tag: colour + delay, always a left click
    kind = str(data.get("type") or (POINTER if "color" in data else "")).strip().lower()
    event_id = str(data.get("id", f"event-{index}"))
    where = f"{where} ({event_id})"
    delay = _delay(data.get("delay_rng"), where)
    repeat = _int(data, "repeat", 1, where)

    if kind == POINTER:
        action = str(data.get("action", LEFT_CLICK)).strip().lower()
        if action not in POINTER_ACTIONS:
            raise ConfigurationError(f"{where}: unknown action {action!r}, expected one of {POINTER_ACTIONS}")
        color = data.get("color")
        if not isinstance(color, (list, tuple)) or len(color) != 3:
            raise ConfigurationError(f"{where}: color must be [r, g, b]")
        try:
            signature = ColorSignature(
                tuple(int(c) for c in color),
                _int(data, "tolerance", tolerance, where)
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{where}: {e}") from e
        return PointerEvent(
            id=event_id,
            action=action,
            signature=signature,
            delay_ms=delay,
            repeat=repeat,
            skip_if_vanished=_bool(data, "skip_if_vanished", False, where)
        )

    if kind == KEY:
        key = data.get("key")
        if not key:
            raise ConfigurationError(f"{where}: key events need a 'key' token")
        return KeyEvent(id=event_id, key=str(key), delay_ms=delay, repeat=repeat)

    raise ConfigurationError(f"{where}: unknown event type {kind!r}")


def parse_script(data: Dict[str, Any], tolerance: int = DEFAULT_TOLERANCE) -> Script:
    if not isinstance(data, dict):
        raise ConfigurationError("Script must be a mapping with an 'events' list")
    raw = data.get("events")
    if not isinstance(raw, list) or not raw:
        raise ConfigurationError("Script has no events")
    events = tuple(parse_event(item, i, tolerance) for i, item in enumerate(raw))
    return Script(events=events, name=str(data.get("name", "Unnamed Script")))


def load_script(path: Union[str, Path], tolerance: int = DEFAULT_TOLERANCE) -> Script:
    script_path = Path(path)
    try:
        text = script_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read script {script_path}: {e}") from e

    try:
        if script_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot parse script {script_path}: {e}") from e

    return parse_script(data, tolerance)
