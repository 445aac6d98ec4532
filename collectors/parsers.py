"""
Output Parsers
Decodes `ps` and system stats probe output from remote hosts
"""

import logging
import math
import re
from datetime import datetime
from typing import List, Tuple

from collectors.filters import matches_filters
from collectors.models import MonitoredProcess, ProcessFilterSpec, SystemStats

logger = logging.getLogger(__name__)

MIN_PROCESS_FIELDS = 8
LSTART_FIELDS = 5
SYSTEM_STATS_FIELDS = ('cpu_percent', 'mem_used_mb', 'mem_total_mb', 'disk_used_gb', 'disk_total_gb')

# ASCII digits only, no underscores
INT_RE = re.compile(r"[+-]?[0-9]+")
FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class ParseError(ValueError):
    """Probe output could not be decoded"""


def decode_process_table(output: str, filters: ProcessFilterSpec) -> Tuple[List[MonitoredProcess], int]:
    """Decode `ps -o pid,user,%cpu,%mem,stat,lstart,args` output.

    Returns the matching processes in input order and the number of lines
    that could not be decoded. Undecodable lines are skipped, never defaulted.
    """
    processes = []
    skipped = 0

    for line in output.splitlines():
        fields = line.split()
        if not fields:
            continue
        if len(fields) < MIN_PROCESS_FIELDS:
            skipped += 1
            continue

        user = fields[1]
        start = ' '.join(fields[5:5 + LSTART_FIELDS])
        cmdline = ' '.join(fields[5 + LSTART_FIELDS:])

        candidate = MonitoredProcess(
            pid=0, user=user, name=cmdline, cmdline=cmdline,
            cpu_percent=0.0, mem_percent=0.0, status=fields[4], start_time=start,
        )
        if not matches_filters(candidate, filters):
            continue

        if not (INT_RE.fullmatch(fields[0]) and FLOAT_RE.fullmatch(fields[2])
                and FLOAT_RE.fullmatch(fields[3])):
            skipped += 1
            continue
        pid = int(fields[0])
        cpu = float(fields[2])
        mem = float(fields[3])
        if not (math.isfinite(cpu) and math.isfinite(mem)):
            skipped += 1
            continue

        processes.append(MonitoredProcess(
            pid=pid,
            user=user,
            name=cmdline,
            cmdline=cmdline,
            cpu_percent=cpu,
            mem_percent=mem,
            status=fields[4],
            start_time=start,
        ))

    if skipped:
        logger.debug(f"Skipped {skipped} unparseable process lines")
    return processes, skipped


def parse_process_output(output: str, filters: ProcessFilterSpec) -> List[MonitoredProcess]:
    """Decode `ps` output and keep only processes matching the filters"""
    processes, _ = decode_process_table(output, filters)
    return processes


def parse_system_stats_output(output: str) -> SystemStats:
    """Decode the five-number system stats probe output.

    Any missing or non-numeric value fails the whole record.
    """
    parts = output.split()
    if len(parts) < len(SYSTEM_STATS_FIELDS):
        raise ParseError(f"invalid system stats output: {output.strip()!r}")

    values = {}
    for name, token in zip(SYSTEM_STATS_FIELDS, parts):
        if not FLOAT_RE.fullmatch(token):
            raise ParseError(f"failed to parse {name}: {token!r}")
        value = float(token)
        if not math.isfinite(value):
            raise ParseError(f"failed to parse {name}: {token!r}")
        values[name] = value

    return SystemStats(timestamp=datetime.now(), **values)
