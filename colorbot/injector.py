"""
colorbot/injector.py - The hands. Plays an InputScript on the real desktop.

Two backends:
  pyautogui - in-process, cross platform (default)
  xdotool   - Linux/X11, renders a throwaway shell script and runs it

Anything that goes wrong here is an InjectorError and kills the run.
We never retry: re-sending half a click is how you buy the wrong item.
"""

import random
import shlex
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Optional, Tuple

from .errors import ConfigurationError, InjectorError
from .human_input import (
    InputScript, Point, CLICK, LEFT_CLICK, RIGHT_CLICK, SHIFT_CLICK, KEY
)

# Human hold time for a click, seconds
HOLD_RANGE: Tuple[float, float] = (0.06, 0.14)

_BUTTONS = {CLICK: "left", LEFT_CLICK: "left", RIGHT_CLICK: "right", SHIFT_CLICK: "left"}


class PyAutoGuiInjector:
    # Mouse + keyboard through pyautogui

    def __init__(self, hold_range: Tuple[float, float] = HOLD_RANGE, rng: Optional[random.Random] = None) -> None:
        # Imported here: pyautogui wants a live display the moment it loads
        try:
            import pyautogui
        except Exception as e:
            raise InjectorError(f"pyautogui unavailable: {e}") from e
        # Slam the cursor into a corner to abort. Keep it.
        pyautogui.FAILSAFE = True
        self._gui = pyautogui
        self.hold_rng = hold_range
        self._rng = rng or random.Random()

    def position(self) -> Point:
        try:
            x, y = self._gui.position()
        except Exception as e:
            raise InjectorError(f"Cannot read cursor position: {e}") from e
        return Point(x, y)

    def run(self, script: InputScript) -> None:
        try:
            for pos in script.moves:
                self._gui.moveTo(pos.x, pos.y, _pause=False)
            if script.settle > 0:
                time.sleep(script.settle)
            self._act(script)
        except InjectorError:
            raise
        except Exception as e:
            raise InjectorError(f"{script.action.kind} failed: {e}") from e

    def _click(self, button: str) -> None:
        # Click with human hold time
        self._gui.mouseDown(button=button)
        time.sleep(self._rng.uniform(*self.hold_rng))
        self._gui.mouseUp(button=button)

    def _act(self, script: InputScript) -> None:
        kind = script.action.kind
        if kind == KEY:
            self._gui.press(script.action.key)
        elif kind == SHIFT_CLICK:
            # Shift goes up no matter what happens mid-click
            self._gui.keyDown("shift")
            try:
                self._click("left")
            finally:
                self._gui.keyUp("shift")
        else:
            self._click(_BUTTONS[kind])


class XdotoolInjector:
    """
    Writes the moves as xdotool commands into a temp dir owned by this call,
    runs it with sh, and the dir is gone afterwards whatever happened.
    """

    def __init__(self, shell: str = "sh", xdotool: str = "xdotool") -> None:
        self.shell = shell
        self.xdotool = xdotool

    def position(self) -> Point:
        try:
            out = subprocess.run(
                [self.xdotool, "getmouselocation", "--shell"],
                check=True, capture_output=True, text=True
            ).stdout
        except (OSError, subprocess.CalledProcessError) as e:
            raise InjectorError(f"Cannot read cursor position: {e}") from e
        fields = dict(line.split("=", 1) for line in out.splitlines() if "=" in line)
        try:
            return Point(float(fields["X"]), float(fields["Y"]))
        except (KeyError, ValueError) as e:
            raise InjectorError(f"Unexpected xdotool output: {out!r}") from e

    def render(self, script: InputScript) -> str:
        xdo = shlex.quote(self.xdotool)
        lines = ["#!/bin/sh", "set -e"]
        lines += [f"{xdo} mousemove {round(p.x)} {round(p.y)}" for p in script.moves]
        if script.settle > 0:
            lines.append(f"sleep {script.settle:g}")

        kind = script.action.kind
        if kind == KEY:
            lines.append(f"{xdo} key {shlex.quote(script.action.key)}")
        elif kind == RIGHT_CLICK:
            lines.append(f"{xdo} click 3")
        elif kind == SHIFT_CLICK:
            lines.append(f"{xdo} keydown shift click 1 keyup shift")
        else:
            lines.append(f"{xdo} click 1")
        return "\n".join(lines) + "\n"

    def run(self, script: InputScript) -> None:
        with tempfile.TemporaryDirectory(prefix="colorbot-") as tmp:
            path = Path(tmp) / "input.sh"
            path.write_text(self.render(script), encoding="utf-8")
            try:
                subprocess.run([self.shell, str(path)], check=True)
            except (OSError, subprocess.CalledProcessError) as e:
                raise InjectorError(f"xdotool script failed: {e}") from e


def make_injector(backend: str = "pyautogui"):
    backend = (backend or "").strip().lower()
    if backend == "pyautogui":
        return PyAutoGuiInjector()
    if backend == "xdotool":
        return XdotoolInjector()
    raise ConfigurationError(f"Unknown input backend: {backend!r}")
