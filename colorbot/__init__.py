"""
colorbot package - Colour-triggered clicking, minus the robot wrists

vision.py      - Screen capture (mss), colour matching and density scan
human_input.py - Bezier mouse paths and move scripts
injector.py    - Plays move scripts via pyautogui or xdotool
script.py      - Event scripts (pointer/key) and their loader
executor.py    - Per-event state machine, guard and run loop
ui.py          - Rich terminal dashboard and loggers
config.py      - Typed configuration dataclasses
errors.py      - Fatal error types
"""

from .errors import ColorBotError, CaptureError, ConfigurationError, InjectorError, GuardTimeoutError
from .vision import ColorSignature, ScanResult, ScreenCapture, ScreenScanner, matches, select_target
from .human_input import Point, MotionCurve, TerminalAction, InputScript, synthesize, emit, emit_key
from .injector import PyAutoGuiInjector, XdotoolInjector, make_injector
from .script import PointerEvent, KeyEvent, Script, load_script, parse_script
from .executor import EventExecutor, ExecutorSettings, Guard, RunLoop, RunSummary
from .ui import Dashboard, Stats, make_logger, make_console_logger
from .config import AppConfig, load_config

__all__ = [
    "ColorBotError", "CaptureError", "ConfigurationError", "InjectorError", "GuardTimeoutError",
    "ColorSignature", "ScanResult", "ScreenCapture", "ScreenScanner", "matches", "select_target",
    "Point", "MotionCurve", "TerminalAction", "InputScript", "synthesize", "emit", "emit_key",
    "PyAutoGuiInjector", "XdotoolInjector", "make_injector",
    "PointerEvent", "KeyEvent", "Script", "load_script", "parse_script",
    "EventExecutor", "ExecutorSettings", "Guard", "RunLoop", "RunSummary",
    "Dashboard", "Stats", "make_logger", "make_console_logger",
    "AppConfig", "load_config"
]
