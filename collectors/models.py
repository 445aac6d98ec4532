"""
Collection Models
Immutable records shared by the local and remote collectors
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, Any, Iterable, Optional, Tuple


def _frozen(values: Optional[Iterable[str]]) -> frozenset:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        return frozenset([values])
    return frozenset(values)


@dataclass(frozen=True)
class ProcessFilterSpec:
    """Keyword, user and group criteria for selecting processes"""
    keywords: frozenset = field(default_factory=frozenset)
    users: frozenset = field(default_factory=frozenset)
    groups: frozenset = field(default_factory=frozenset)

    def __post_init__(self):
        # Accept lists/tuples from config and normalize to frozensets
        object.__setattr__(self, 'keywords', _frozen(self.keywords))
        object.__setattr__(self, 'users', _frozen(self.users))
        object.__setattr__(self, 'groups', _frozen(self.groups))

    def is_empty(self) -> bool:
        return not (self.keywords or self.users or self.groups)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'keywords': sorted(self.keywords),
            'users': sorted(self.users),
            'groups': sorted(self.groups),
        }


@dataclass(frozen=True)
class RemoteTarget:
    """One remote host to monitor over ssh"""
    host: str
    user: str
    ssh_key_path: str
    port: int = 22
    proxy_jump: str = ''
    process_filters: ProcessFilterSpec = field(default_factory=ProcessFilterSpec)

    @property
    def label(self) -> str:
        """Identifies the target among others on the same host"""
        return f"{self.user}@{self.host}:{self.port}"


@dataclass(frozen=True)
class MonitoredProcess:
    """A process that passed the configured filters"""
    pid: int
    user: str
    name: str
    cmdline: str
    cpu_percent: float
    mem_percent: float
    status: str
    start_time: str
    group: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SystemStats:
    """Host-wide CPU, memory (MB) and root disk (GB) usage"""
    timestamp: datetime
    cpu_percent: float
    mem_used_mb: float
    mem_total_mb: float
    disk_used_gb: float
    disk_total_gb: float

    @property
    def mem_percent(self) -> float:
        if self.mem_total_mb <= 0:
            return 0.0
        return round(self.mem_used_mb / self.mem_total_mb * 100, 1)

    @property
    def disk_percent(self) -> float:
        if self.disk_total_gb <= 0:
            return 0.0
        return round(self.disk_used_gb / self.disk_total_gb * 100, 1)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        data['mem_percent'] = self.mem_percent
        data['disk_percent'] = self.disk_percent
        return data


@dataclass(frozen=True)
class RemoteMetrics:
    """Everything collected from one host in one cycle"""
    host: str
    timestamp: datetime
    processes: Tuple[MonitoredProcess, ...] = ()
    system_stats: Optional[SystemStats] = None
    skipped_lines: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'processes', tuple(self.processes))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'host': self.host,
            'timestamp': self.timestamp.isoformat(),
            'processes': [p.to_dict() for p in self.processes],
            'system_stats': self.system_stats.to_dict() if self.system_stats else None,
            'skipped_lines': self.skipped_lines,
        }
