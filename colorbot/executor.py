"""
colorbot/executor.py - Scan, pick, move, click, wait. Repeat.

One pointer attempt:

    SCAN ──no hit──> skip_if_vanished? ──yes──> short cooldown
      │                                 └─no───> full drawn delay
      └─hit──> SELECT ──> MOVE+ACT ──> MONITOR (drawn delay)

MONITOR with skip_if_vanished re-scans every monitor interval and bails out
early (short cooldown) as soon as the colour is gone. That's a skip, not an
error. Key events just press, wait, repeat.
"""

import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from .config import AppConfig, GuardConfig
from .errors import ConfigurationError, GuardTimeoutError
from .human_input import (
    TerminalAction, LEFT_CLICK, RIGHT_CLICK, SHIFT_CLICK, emit, emit_key, synthesize
)
from .script import Event, KeyEvent, PointerEvent, Script
from .ui import Dashboard
from .vision import ColorSignature, select_target

POINTER_ACTIONS: Dict[str, TerminalAction] = {
    LEFT_CLICK: TerminalAction(LEFT_CLICK),
    RIGHT_CLICK: TerminalAction(RIGHT_CLICK),
    SHIFT_CLICK: TerminalAction(SHIFT_CLICK),
}


@dataclass
class ExecutorSettings:
    deviation: float = 25.0
    speed: float = 3.0
    jitter: float = 5.0
    settle: float = 0.25
    monitor_interval_ms: int = 100
    skip_cooldown_ms: Tuple[int, int] = (250, 750)

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "ExecutorSettings":
        return cls(
            deviation=cfg.mouse.deviation_percent,
            speed=cfg.mouse.speed,
            jitter=cfg.mouse.target_jitter_px,
            settle=cfg.mouse.settle_ms / 1000.0,
            monitor_interval_ms=cfg.timing.monitor_interval_ms,
            skip_cooldown_ms=cfg.timing.skip_cooldown_ms
        )


@dataclass
class EventOutcome:
    event_id: str
    attempts: int = 0
    actions: int = 0
    misses: int = 0
    cancelled: int = 0


@dataclass(frozen=True)
class Guard:
    # "Undesired state" colour, the key that clears it, and how long we'll keep trying
    signature: ColorSignature
    key: str
    backoff_ms: int = 1000
    max_wait_s: float = 60.0

    @classmethod
    def from_config(cls, cfg: GuardConfig) -> Optional["Guard"]:
        if not cfg.enabled:
            return None
        return cls(
            signature=ColorSignature(tuple(cfg.color), cfg.tolerance),
            key=cfg.key,
            backoff_ms=cfg.backoff_ms,
            max_wait_s=cfg.max_wait_seconds
        )


@dataclass
class RunSummary:
    passes: int = 0
    events: int = 0
    guard_presses: int = 0
    # Totals over all passes
    actions: int = 0
    misses: int = 0
    cancelled: int = 0

    def add(self, outcome: EventOutcome) -> None:
        self.events += 1
        self.actions += outcome.actions
        self.misses += outcome.misses
        self.cancelled += outcome.cancelled


class EventExecutor:
    """
    Runs single events against the live screen.

    scanner needs scan(signature) -> ScanResult, injector needs position()
    and run(InputScript). sleep defaults to a stop-aware sleep; tests swap
    it (and clock) for fakes.
    """

    def __init__(
        self,
        scanner,
        injector,
        settings: Optional[ExecutorSettings] = None,
        rng: Optional[random.Random] = None,
        sleep: Optional[Callable[[float], None]] = None,
        log_fn: Optional[Callable[[str, str], None]] = None,
        dash: Optional[Dashboard] = None,
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.scanner = scanner
        self.injector = injector
        self.settings = settings or ExecutorSettings()
        self.rng = rng or random.Random()
        self.dash = dash
        self.stop_event = stop_event or threading.Event()
        self._sleep = sleep or self.smart_sleep
        self._clock = clock
        self.log = log_fn or (lambda m, l: None)

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)

    def smart_sleep(self, duration: float) -> None:
        # Responsive sleep - wakes on stop, keeps the dashboard alive
        end_time = time.monotonic() + duration
        while not self.stop_event.is_set():
            remaining = end_time - time.monotonic()
            if remaining <= 0:
                break
            if self.dash: self.dash.update()
            self.stop_event.wait(min(0.05, remaining))

    def _status(self, status: str, detail: str = "") -> None:
        if self.dash:
            self.dash.set_status(status, detail)
            self.dash.update()

    def _count(self, name: str) -> None:
        if self.dash: self.dash.stats.inc(name)

    def _draw_ms(self, bounds: Tuple[int, int]) -> int:
        return self.rng.randint(*bounds)

    def execute(self, event: Event) -> EventOutcome:
        if isinstance(event, PointerEvent):
            return self._run_pointer(event)
        if isinstance(event, KeyEvent):
            return self._run_key(event)
        raise ConfigurationError(f"Unsupported event: {event!r}")

    # ── pointer ────────────────────────────────────────────────────────────────

    def _run_pointer(self, event: PointerEvent) -> EventOutcome:
        action = POINTER_ACTIONS.get(event.action)
        if action is None:
            raise ConfigurationError(f"Event {event.id!r}: unsupported action {event.action!r}")

        outcome = EventOutcome(event.id)
        for n in range(1, event.repeat + 1):
            if self.stopped:
                break
            if self.dash: self.dash.set_event(event.id, f"attempt {n}/{event.repeat}")
            self._attempt(event, action, outcome)
        return outcome

    def _attempt(self, event: PointerEvent, action: TerminalAction, outcome: EventOutcome) -> None:
        outcome.attempts += 1
        self._status(Dashboard.STATUS_SCANNING, f"Looking for {event.id}")
        result = self.scanner.scan(event.signature)
        self._count("scans")

        target = select_target(result, self.rng, self.settings.jitter)
        if target is None:
            outcome.misses += 1
            if event.skip_if_vanished:
                self._skip_cooldown(event, "not on screen")
            else:
                delay = self._draw_ms(event.delay_ms)
                self.log(f"No match for {event.id} {list(event.signature.color)}, waiting {delay}ms", "WARN")
                self._status(Dashboard.STATUS_MONITORING, f"No match, {delay}ms")
                self.sleep(delay / 1000.0)
            return

        self._count("hits")
        start = self.injector.position()
        curve = synthesize(start, target, self.settings.deviation, self.rng)
        script = emit(curve, self.settings.speed, action, self.settings.settle)

        self._status(Dashboard.STATUS_MOVING, f"{action.kind} @ {target.x:.0f},{target.y:.0f}")
        self.log(f"{event.id}: {len(result)} px matched, {action.kind} @ {target.x:.0f},{target.y:.0f}", "CLICK")
        self.injector.run(script)
        outcome.actions += 1
        self._count("clicks")

        delay = self._draw_ms(event.delay_ms)
        if not self._monitor(event, delay):
            outcome.cancelled += 1

    def _monitor(self, event: PointerEvent, delay_ms: int) -> bool:
        """Wait out the delay. False if the target vanished and we cut it short."""
        self._status(Dashboard.STATUS_MONITORING, f"{delay_ms}ms")
        self.log(f"Sleeping {delay_ms}ms", "DEBUG")
        if not event.skip_if_vanished:
            self.sleep(delay_ms / 1000.0)
            return True

        # Wall clock, so scan time counts against the delay too
        interval = self.settings.monitor_interval_ms / 1000.0
        started = self._clock()
        end = started + delay_ms / 1000.0
        while not self.stopped:
            remaining = end - self._clock()
            if remaining < 0.001:
                break
            self.sleep(min(interval, remaining))
            if self.scanner.scan(event.signature).empty:
                waited = int((self._clock() - started) * 1000)
                self._skip_cooldown(event, f"vanished after {waited}ms of {delay_ms}ms")
                return False
        return True

    def _skip_cooldown(self, event: PointerEvent, reason: str) -> None:
        cooldown = self._draw_ms(self.settings.skip_cooldown_ms)
        self.log(f"Skipping {event.id}: {reason} (cooldown {cooldown}ms)", "INFO")
        self._count("skips")
        self.sleep(cooldown / 1000.0)

    # ── key ────────────────────────────────────────────────────────────────────

    def _run_key(self, event: KeyEvent) -> EventOutcome:
        outcome = EventOutcome(event.id)
        for n in range(1, event.repeat + 1):
            if self.stopped:
                break
            if self.dash: self.dash.set_event(event.id, f"press {n}/{event.repeat}")
            self.log(f"{event.id}: key {event.key}", "CLICK")
            self.injector.run(emit_key(event.key))
            outcome.attempts += 1
            outcome.actions += 1
            self._count("keys")

            delay = self._draw_ms(event.delay_ms)
            self._status(Dashboard.STATUS_MONITORING, f"{delay}ms")
            self.sleep(delay / 1000.0)
        return outcome


class RunLoop:
    # Guard first, then whole passes over the script until the deadline.

    def __init__(self, executor: EventExecutor, clock: Callable[[], float] = time.monotonic) -> None:
        self.executor = executor
        self._clock = clock

    def _log(self, msg: str, level: str = "INFO") -> None:
        self.executor.log(msg, level)

    def wait_for_guard(self, guard: Guard) -> int:
        """Press guard.key until the guard colour is gone. Returns presses made."""
        ex = self.executor
        presses = 0
        waited_ms = 0
        while not ex.stopped:
            if ex.scanner.scan(guard.signature).empty:
                if presses:
                    self._log(f"Guard cleared after {presses} press(es)", "SUCCESS")
                return presses
            if guard.max_wait_s > 0 and waited_ms >= guard.max_wait_s * 1000:
                raise GuardTimeoutError(
                    f"Guard colour {list(guard.signature.color)} still on screen after {waited_ms / 1000:.1f}s"
                )
            self._log(f"Guard colour on screen, pressing {guard.key}", "WARN")
            if ex.dash: ex.dash.set_status(Dashboard.STATUS_GUARD, f"Pressing {guard.key}")
            ex.injector.run(emit_key(guard.key))
            presses += 1
            ex.sleep(guard.backoff_ms / 1000.0)
            waited_ms += guard.backoff_ms
        return presses

    def run(self, script: Script, runtime_s: float, guard: Optional[Guard] = None) -> RunSummary:
        ex = self.executor
        summary = RunSummary()
        if guard:
            summary.guard_presses = self.wait_for_guard(guard)

        deadline = self._clock() + runtime_s
        if ex.dash: ex.dash.set_deadline(runtime_s)
        # Deadline only checked between passes, a started pass always finishes
        while self._clock() < deadline and not ex.stopped:
            summary.passes += 1
            if ex.dash: ex.dash.stats.inc("passes")
            self._log(f"Pass {summary.passes} ({len(script)} events)", "DEBUG")
            for event in script:
                if ex.stopped:
                    break
                summary.add(ex.execute(event))

        if ex.dash: ex.dash.set_status(Dashboard.STATUS_IDLE, "Done")
        return summary
