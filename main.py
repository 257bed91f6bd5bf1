# ColorBot - clicks things when they show up on screen
# Because babysitting a progress bar is not a personality

import argparse
import sys
import threading
import time
import traceback
from pathlib import Path
from typing import List, Optional

import keyboard

from colorbot import (
    AppConfig, load_config, load_script, ColorBotError,
    ScreenCapture, ScreenScanner, make_injector,
    EventExecutor, ExecutorSettings, Guard, RunLoop,
    Dashboard, make_logger, make_console_logger
)
from colorbot.config import clamp_config

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="colorbot", description="Colour-triggered mouse/keyboard automation")
    p.add_argument("-c", "--config", default="config.yaml", help="YAML config (default: config.yaml)")
    p.add_argument("-s", "--script", help="event script, JSON or YAML")
    p.add_argument("-r", "--runtime", type=int, help="total runtime in seconds")
    p.add_argument("-d", "--mouse-deviation", type=float, help="curve deviation percent, 0-100")
    p.add_argument("-m", "--mouse-speed", type=float, help="mouse speed, 1-10 (higher = faster)")
    p.add_argument("--debug", action="store_true", help="log DEBUG lines too")
    p.add_argument("--no-dashboard", action="store_true", help="plain log lines instead of the live dashboard")
    return p.parse_args(argv)


def apply_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    # CLI beats config.yaml
    if args.script: cfg.script = args.script
    if args.runtime is not None: cfg.runtime_seconds = args.runtime
    if args.mouse_deviation is not None: cfg.mouse.deviation_percent = args.mouse_deviation
    if args.mouse_speed is not None: cfg.mouse.speed = args.mouse_speed
    if args.debug: cfg.debug = True
    if args.no_dashboard: cfg.ui.dashboard = False
    return clamp_config(cfg)


class ColorBot:
    # Wires config, screen, hands and UI together, then runs the loop

    def __init__(self, cfg: AppConfig):
        self.cfg = cfg
        self.stop_event = threading.Event()
        self.dash: Optional[Dashboard] = None
        self.log = make_console_logger(debug=cfg.debug)
        self.screen: Optional[ScreenCapture] = None
        self.error: Optional[str] = None

    def bootstrap(self):
        if self.cfg.ui.dashboard:
            self.dash = Dashboard(
                script=Path(self.cfg.script).name,
                refresh_ms=self.cfg.ui.refresh_rate_ms,
                stop_key=self.cfg.hotkeys.stop_bot
            )
            self.log = make_logger(self.dash, debug=self.cfg.debug)
            self.dash.start()

        self._bind_hotkeys()

    def _bind_hotkeys(self):
        # Hotkey hooks need root on Linux. No hotkey = Ctrl+C only, not fatal.
        try:
            keyboard.add_hotkey(self.cfg.hotkeys.stop_bot, self._stop)
        except Exception as e:
            self.log(f"Stop hotkey unavailable ({e}), use Ctrl+C", "WARN")

    def _stop(self):
        self.stop_event.set()

    def run(self) -> int:
        try:
            self.bootstrap()
            script = load_script(self.cfg.script, tolerance=self.cfg.matching.tolerance)
            self.log(f"Loaded '{script.name}': {len(script)} events", "SUCCESS")

            self.screen = ScreenCapture()
            width, height = self.screen.size
            self.log(f"Display {width}x{height}", "INFO")

            executor = EventExecutor(
                scanner=ScreenScanner(self.screen, log_fn=self.log),
                injector=make_injector(self.cfg.input.backend),
                settings=ExecutorSettings.from_config(self.cfg),
                log_fn=self.log,
                dash=self.dash,
                stop_event=self.stop_event
            )
            summary = RunLoop(executor).run(
                script,
                self.cfg.runtime_seconds,
                guard=Guard.from_config(self.cfg.guard)
            )
            reason = "stopped" if self.stop_event.is_set() else "runtime elapsed"
            self.log(
                f"Done ({reason}): {summary.passes} passes, {summary.events} events, "
                f"{summary.actions} actions, {summary.misses} misses", "SUCCESS"
            )
            return EXIT_OK

        except KeyboardInterrupt:
            self.log("Interrupted", "WARN")
            return EXIT_INTERRUPTED
        except ColorBotError as e:
            self._fail(f"{type(e).__name__}: {e}")
            return EXIT_ERROR
        except Exception as e:
            self._fail(f"CRITICAL ERROR: {e}")
            traceback.print_exc()
            return EXIT_ERROR
        finally:
            self.shutdown()

    def _fail(self, msg: str):
        self.error = msg
        if self.dash:
            self.dash.stats.inc("errors")
            self.dash.set_status(Dashboard.STATUS_ERROR, msg)
        self.log(msg, "ERROR")
        if self.dash: time.sleep(3.0) # Give user time to see it

    def shutdown(self):
        try:
            keyboard.unhook_all()
        except Exception:
            pass
        if self.screen:
            self.screen.close()
            self.screen = None
        if self.dash:
            self.dash.stop()
            self.dash = None
            # Dashboard screen is gone, repeat the diagnostic where it stays visible
            if self.error:
                make_console_logger()(self.error, "ERROR")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        cfg = apply_overrides(load_config(args.config), args)
    except ColorBotError as e:
        make_console_logger()(f"{type(e).__name__}: {e}", "ERROR")
        return EXIT_ERROR
    return ColorBot(cfg).run()


if __name__ == "__main__":
    sys.exit(main())
