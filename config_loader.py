"""
Configuration Loader
Reads the YAML monitor configuration and validates every remote target
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from collectors.models import ProcessFilterSpec, RemoteTarget
from validation.validators import ValidationError, validate_filters, validate_target

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.getenv('SYSMESH_CONFIG', 'config.yaml')
DEFAULT_SSH_PORT = 22
MIN_INTERVAL = 1.0
MAX_INTERVAL = 24 * 3600.0

_DURATION_PART_RE = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)')
_DURATION_UNITS = {
    'ns': 1e-9, 'us': 1e-6, 'µs': 1e-6, 'ms': 1e-3,
    's': 1.0, 'm': 60.0, 'h': 3600.0,
}


class ConfigError(ValueError):
    """The configuration file is missing, malformed or unsafe"""


@dataclass(frozen=True)
class LocalMonitorConfig:
    """Local process monitoring settings"""
    enabled: bool = False
    process_filters: ProcessFilterSpec = field(default_factory=ProcessFilterSpec)


@dataclass(frozen=True)
class MonitorConfig:
    """Top level configuration"""
    interval: float
    interval_text: str
    local: LocalMonitorConfig = field(default_factory=LocalMonitorConfig)
    remote: Tuple[RemoteTarget, ...] = ()


def parse_duration(text: str) -> float:
    """Parse a duration such as '500ms', '5s' or '1h30m' into seconds"""
    if not isinstance(text, str) or not text:
        raise ConfigError(f"invalid duration: {text!r}")
    pos = 0
    total = 0.0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ConfigError(f"invalid duration: {text!r}")
    return total


def _parse_filters(data: Any, where: str) -> ProcessFilterSpec:
    if data is None:
        return ProcessFilterSpec()
    if not isinstance(data, dict):
        raise ConfigError(f"{where}.process_filters must be a mapping")

    values = {}
    for key in ('keywords', 'users', 'groups'):
        items = data.get(key) or []
        if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
            raise ConfigError(f"{where}.process_filters.{key} must be a list of strings")
        values[key] = items
    return ProcessFilterSpec(**values)


def _parse_target(data: Any, index: int) -> RemoteTarget:
    where = f"remote target {index}"
    if not isinstance(data, dict):
        raise ConfigError(f"{where} must be a mapping")

    target = RemoteTarget(
        host=data.get('host', ''),
        user=data.get('user', ''),
        port=data.get('port', DEFAULT_SSH_PORT),
        ssh_key_path=data.get('ssh_key', ''),
        proxy_jump=data.get('proxy_jump') or '',
        process_filters=_parse_filters(data.get('process_filters'), where)
    )
    try:
        validate_target(target)
    except ValidationError as e:
        raise ConfigError(f"{where} validation failed: {e}") from e
    return target


def load_config(path: str = None) -> MonitorConfig:
    """Load and validate the monitor configuration.

    Args:
        path: YAML file path; defaults to $SYSMESH_CONFIG or ./config.yaml.

    Raises:
        ConfigError: the file is missing, unreadable or fails validation.
    """
    p = Path(path or DEFAULT_CONFIG_PATH)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    try:
        with open(p) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"error reading config {p}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config {p} must be a YAML mapping")

    interval_text = data.get('interval')
    if not isinstance(interval_text, str):
        raise ConfigError("interval must be a quoted duration string such as \"5s\"")
    interval = parse_duration(interval_text)
    if not MIN_INTERVAL <= interval <= MAX_INTERVAL:
        raise ConfigError("interval must be between 1 second and 24 hours")

    monitor: Dict[str, Any] = data.get('monitor') or {}
    if not isinstance(monitor, dict) or 'local' not in monitor:
        raise ConfigError("missing required field: monitor.local")

    local_data = monitor.get('local') or {}
    if not isinstance(local_data, dict):
        raise ConfigError("monitor.local must be a mapping")
    local_filters = _parse_filters(local_data.get('process_filters'), 'monitor.local')
    try:
        validate_filters(local_filters)
    except ValidationError as e:
        raise ConfigError(f"local process filters validation failed: {e}") from e

    remote_data = monitor.get('remote') or []
    if not isinstance(remote_data, list):
        raise ConfigError("monitor.remote must be a list")
    targets = tuple(_parse_target(entry, i) for i, entry in enumerate(remote_data))

    logger.debug(f"Loaded config {p}: interval {interval_text}, {len(targets)} remote targets")
    return MonitorConfig(
        interval=interval,
        interval_text=interval_text,
        local=LocalMonitorConfig(
            enabled=bool(local_data.get('enabled', False)),
            process_filters=local_filters
        ),
        remote=targets
    )
