"""
Terminal Renderer
Formats collected metrics for operator inspection
"""

import json
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Sequence, TextIO

from collectors.models import MonitoredProcess, RemoteMetrics, SystemStats

RESET = '\033[0m'
RED = '\033[31m'
GREEN = '\033[32m'
YELLOW = '\033[33m'
BLUE = '\033[34m'
CYAN = '\033[36m'
BOLD = '\033[1m'


@dataclass(frozen=True)
class RenderOptions:
    """Display settings passed to the renderer"""
    color: bool = True
    cpu_warn: float = 30.0
    cpu_crit: float = 70.0
    time_format: str = '%H:%M:%S'


class TerminalRenderer:
    """Writes host/process trees to a text stream"""

    def __init__(self, options: RenderOptions = None, stream: TextIO = None):
        self.options = options or RenderOptions()
        self.stream = stream or sys.stdout

    def _c(self, code: str, text: str) -> str:
        if not self.options.color:
            return text
        return f"{code}{text}{RESET}"

    def _write(self, line: str = '') -> None:
        self.stream.write(line + '\n')

    def _cpu_color(self, cpu: float) -> str:
        if cpu > self.options.cpu_crit:
            return RED
        if cpu > self.options.cpu_warn:
            return YELLOW
        return GREEN

    def render_system_stats(self, host: str, stats: SystemStats) -> None:
        self._write(
            f"[{stats.timestamp.strftime(self.options.time_format)}][{host}] "
            f"CPU: {stats.cpu_percent:.1f}% | "
            f"MEM: {stats.mem_used_mb:.0f}/{stats.mem_total_mb:.0f} MB | "
            f"DISK: {stats.disk_used_gb:.1f}/{stats.disk_total_gb:.1f} GB"
        )

    def render_processes(self, title: str, timestamp: datetime,
                         processes: Sequence[MonitoredProcess]) -> None:
        stamp = timestamp.strftime(self.options.time_format)
        self._write(f"{self._c(BOLD + CYAN, title)} [{stamp}]")

        for i, p in enumerate(processes):
            conn = '└──' if i == len(processes) - 1 else '├──'
            cpu_label = self._c(self._cpu_color(p.cpu_percent), 'CPU:')
            self._write(f"{conn} PID {p.pid:<6d}: {p.cmdline or p.name}")
            self._write(f"│   ├── {cpu_label} {p.cpu_percent:.1f}%   MEM: {p.mem_percent:.1f}%")
            self._write(f"│   └── Start: {p.start_time}   Stat: {p.status}   User: {self._c(BLUE, p.user)}")
        self._write()

    def render_metrics(self, metrics: RemoteMetrics, label: str = None) -> None:
        label = label or metrics.host
        if metrics.system_stats:
            self.render_system_stats(label, metrics.system_stats)
        self._write(f"[{metrics.timestamp.strftime(self.options.time_format)}][{label}] "
                    f"{len(metrics.processes)} processes matched")
        self.render_processes(label, metrics.timestamp, metrics.processes)

    def render_error(self, label: str, error: Exception) -> None:
        self._write(self._c(RED, f"Remote {label} error: {error}"))


def render_json(results: Mapping[str, RemoteMetrics], errors: Mapping[str, Exception] = None) -> str:
    """Serialize one cycle's results, keyed by target, as JSON"""
    return json.dumps({
        'hosts': [dict(m.to_dict(), target=key) for key, m in results.items()],
        'errors': {key: str(e) for key, e in (errors or {}).items()},
    }, indent=2, default=str)
