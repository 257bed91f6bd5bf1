# Dashboard UI

import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from rich.align import Align
from rich.console import Console, Group, RenderableType
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

VERSION = "v0.3.0"

COLORS = {
    "border": "#334155",
    "muted": "#64748b",
    "text": "#e2e8f0",
    "text_dim": "#94a3b8",
    "heading": "#22d3ee",
    "success": "#10b981",
    "warn": "#f59e0b",
    "error": "#ef4444",
    "info": "#3b82f6",
    "debug": "#64748b",
    "click": "#10b981",
    "moving": "#a855f7",
}

HEADER = "▓▓▓ COLORBOT ▓▓▓"

LogFn = Callable[[str, str], None]
LogLine = Tuple[str, str, str]

COUNTERS = ("passes", "scans", "hits", "clicks", "keys", "skips", "errors")


def _clock_text(seconds: int) -> str:
    h, rest = divmod(max(0, seconds), 3600)
    return f"{h:02d}:{rest // 60:02d}:{rest % 60:02d}"


class Stats:
    # Session counters. Memory only, gone when the run ends.

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started = datetime.now()
        self._counts: Dict[str, int] = dict.fromkeys(COUNTERS, 0)

    def inc(self, name: str, amount: int = 1) -> None:
        if name not in self._counts:
            raise KeyError(f"Unknown counter {name!r}")
        with self._lock:
            self._counts[name] += amount

    def get(self) -> dict:
        """Snapshot: every counter plus runtime, runtime_sec and hit_rate (percent)."""
        with self._lock:
            data = dict(self._counts)
        elapsed = int((datetime.now() - self._started).total_seconds())
        data["runtime_sec"] = max(0, elapsed)
        data["runtime"] = _clock_text(elapsed)
        data["hit_rate"] = data["hits"] * 100 / data["scans"] if data["scans"] else 0
        return data


class LogBuffer:
    # Last N (timestamp, level, message) lines for the log panel

    def __init__(self, max_lines: int = 15) -> None:
        self._lines: deque = deque(maxlen=max_lines)
        self._lock = threading.Lock()

    def add(self, message: str, level: str = "INFO") -> None:
        line = (_now(), level, message)
        with self._lock:
            self._lines.append(line)

    def get_all(self) -> List[LogLine]:
        with self._lock:
            return list(self._lines)


def _now() -> str:
    return datetime.now().strftime("%H:%M:%S.%f")[:-3]


def _panel(body: RenderableType, title: str = "") -> Panel:
    return Panel(
        body,
        title=f"[{COLORS['heading']}]{title}[/]" if title else None,
        border_style=COLORS['border']
    )


class Dashboard:
    STATUS_IDLE = "idle"
    STATUS_SCANNING = "scanning"
    STATUS_MOVING = "moving"
    STATUS_MONITORING = "monitoring"
    STATUS_GUARD = "guard"
    STATUS_ERROR = "error"

    # status -> (badge text, colour key)
    BADGES = {
        STATUS_IDLE: ("● Idle", "muted"),
        STATUS_SCANNING: ("⚡ Scanning", "success"),
        STATUS_MOVING: ("➜ Moving", "moving"),
        STATUS_MONITORING: ("◔ Waiting", "info"),
        STATUS_GUARD: ("⚠ Guard", "warn"),
        STATUS_ERROR: ("✖ Error", "error"),
    }

    def __init__(
        self, script: str = "", refresh_ms: int = 100, stop_key: str = "f10",
        deadline: Optional[datetime] = None, console: Optional[Console] = None
    ) -> None:
        self._script = script or "None"
        self._refresh_ms = refresh_ms
        self._stop_key = stop_key.upper()
        self._deadline = deadline
        self._console = console or Console()
        self._stats = Stats()
        self._log = LogBuffer(max_lines=50)
        self._lock = threading.Lock()
        self._live: Optional[Live] = None
        self._status = self.STATUS_IDLE
        self._detail = ""
        self._event = ""
        self._attempt = ""

    @property
    def stats(self) -> Stats:
        return self._stats

    def log(self, message: str, level: str = "INFO") -> None:
        self._log.add(message, level)

    def set_status(self, status: str, detail: str = "") -> None:
        with self._lock:
            self._status, self._detail = status, detail

    def set_event(self, event_id: str, attempt: str = "") -> None:
        with self._lock:
            self._event, self._attempt = event_id, attempt

    def set_deadline(self, runtime_s: float) -> None:
        self._deadline = datetime.now() + timedelta(seconds=runtime_s)

    def start(self) -> None:
        fps = max(1, 1000 // self._refresh_ms)
        self._live = Live(self._render(), console=self._console, refresh_per_second=fps, screen=True)
        self._live.start()

    def update(self) -> None:
        if self._live is not None:
            self._live.update(self._render())

    def stop(self) -> None:
        live, self._live = self._live, None
        if live is not None:
            live.stop()

    # ── rendering ──────────────────────────────────────────────────────────────

    def _render(self) -> Layout:
        root = Layout()
        body = Layout(name="body", size=12)
        root.split(
            Layout(self._header(), name="header", size=4),
            body,
            Layout(self._log_panel(), name="log", ratio=1, minimum_size=5),
            Layout(self._footer(), name="footer", size=3)
        )
        body.split_row(
            Layout(self._stats_panel(), name="stats", ratio=2),
            Layout(self._event_panel(), name="event", ratio=1)
        )
        return root

    def _header(self) -> Panel:
        label, color = self.BADGES.get(self._status, (f"● {self._status}", "muted"))
        line = Text.assemble(
            (f"  {VERSION}  ", f"bold {COLORS['text_dim']}"),
            ("│ Script: ", COLORS['border']),
            (self._script, f"bold {COLORS['text']}"),
            ("  │  ", COLORS['border']),
            (f" {label} ", f"bold {COLORS[color]}"),
        )
        if self._detail:
            line.append(f"  {self._detail}", style=COLORS['text_dim'])
        title = Text(HEADER, style=COLORS['heading'])
        return _panel(Group(Align.center(title), Align.center(line)))

    def _stats_panel(self) -> Panel:
        data = self._stats.get()
        rate = data["hit_rate"]
        rate_color = "success" if rate >= 80 else "warn" if rate >= 50 else "error"

        rows: List[Tuple[str, RenderableType]] = [("Runtime", data["runtime"])]
        if self._deadline:
            rows.append(("Left", _clock_text(int((self._deadline - datetime.now()).total_seconds()))))
        rows += [(name.title(), str(data[name])) for name in ("passes", "scans")]
        rows.append(("Hit Rate", Text(f"{rate:.1f}%", style=f"bold {COLORS[rate_color]}")))
        rows += [(name.title(), str(data[name])) for name in ("clicks", "keys", "skips")]
        if data["errors"]:
            rows.append(("Errors", Text(str(data["errors"]), style=f"bold {COLORS['error']}")))

        grid = Table.grid(padding=(0, 2), expand=True)
        grid.add_column(justify="right", style=COLORS['muted'])
        grid.add_column(style=f"bold {COLORS['text']}")
        for label, value in rows:
            grid.add_row(label, value)
        return _panel(grid, "Live Stats")

    def _event_panel(self) -> Panel:
        if self._event:
            parts: List[RenderableType] = [Align.center(Text(self._event, style=f"bold {COLORS['text']}"))]
            if self._attempt:
                parts.append(Align.center(Text(self._attempt, style=COLORS['text_dim'])))
        else:
            parts = [Align.center(Text("○ STANDBY ○", style=COLORS['muted']))]
        parts += [
            Text(),
            Rule(style=COLORS['border']),
            Align.center(Text(self._detail or "Waiting...", style=COLORS['text_dim'])),
        ]
        return _panel(Group(*parts), "Event")

    def _log_panel(self) -> Panel:
        # Header, stats and footer take ~23 rows, the log gets the rest
        room = max(3, self._console.size.height - 23)
        lines = self._log.get_all()[-room:]
        if not lines:
            return _panel(Align.center(Text("Waiting...", style=COLORS['muted'])), "Log")

        text = Text()
        for ts, lvl, msg in lines:
            _append_line(text, ts, lvl, msg)
        return _panel(Align(text, vertical="bottom"), "Event Log")

    def _footer(self) -> Panel:
        keys = Text(f"  {self._stop_key} Stop  Ctrl+C Abort  ", style=COLORS['muted'])
        return _panel(Align.center(keys))


def _append_line(text: Text, ts: str, lvl: str, msg: str) -> None:
    color = COLORS.get(lvl.lower(), COLORS['info'])
    text.append(f" {ts} ", style=COLORS['text_dim'])
    text.append(f"[{lvl:^7}]", style=f"bold {color}")
    text.append(f" {msg}\n", style=COLORS['text'])


def make_logger(dash: Dashboard, debug: bool = False) -> LogFn:
    def log(msg: str, level: str = "INFO") -> None:
        if level != "DEBUG" or debug:
            dash.log(msg, level)
            dash.update()
    return log


def make_console_logger(console: Optional[Console] = None, debug: bool = False) -> LogFn:
    # No dashboard: same coloured lines, straight to the terminal
    out = console or Console()

    def log(msg: str, level: str = "INFO") -> None:
        if level == "DEBUG" and not debug:
            return
        line = Text()
        _append_line(line, _now(), level, msg)
        line.rstrip()
        out.print(line)
    return log
