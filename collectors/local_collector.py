"""
Local Collector
Gathers system stats and filtered processes from the local host via psutil
"""

import grp
import logging
from datetime import datetime
from typing import List

import psutil

from collectors.filters import matches_filters
from collectors.models import MonitoredProcess, ProcessFilterSpec, RemoteMetrics, SystemStats

logger = logging.getLogger(__name__)

LOCAL_HOST = 'local'
MB = 1024 ** 2
GB = 1024 ** 3


def get_system_stats(disk_path: str = '/') -> SystemStats:
    """Get CPU, memory and disk usage for this host"""
    vm = psutil.virtual_memory()
    disk = psutil.disk_usage(disk_path)
    return SystemStats(
        timestamp=datetime.now(),
        cpu_percent=psutil.cpu_percent(interval=None),
        mem_used_mb=round(vm.used / MB, 1),
        mem_total_mb=round(vm.total / MB, 1),
        disk_used_gb=round(disk.used / GB, 1),
        disk_total_gb=round(disk.total / GB, 1)
    )


def _group_name(gids) -> str:
    if gids is None:
        return ''
    try:
        return grp.getgrgid(gids.real).gr_name
    except KeyError:
        return str(gids.real)


def get_filtered_processes(filters: ProcessFilterSpec) -> List[MonitoredProcess]:
    """Get local processes matching the filters"""
    processes = []
    for proc in psutil.process_iter(['pid', 'name', 'username', 'cmdline', 'gids',
                                      'cpu_percent', 'memory_percent',
                                      'status', 'create_time']):
        try:
            pinfo = proc.info
            create_time = pinfo['create_time']
            process = MonitoredProcess(
                pid=pinfo['pid'],
                user=pinfo['username'] or '',
                group=_group_name(pinfo['gids']),
                name=pinfo['name'] or '',
                cmdline=' '.join(pinfo['cmdline'] or []),
                cpu_percent=pinfo['cpu_percent'] or 0.0,
                mem_percent=round(pinfo['memory_percent'], 2) if pinfo['memory_percent'] else 0.0,
                status=pinfo['status'] or '',
                start_time=datetime.fromtimestamp(create_time).strftime('%H:%M:%S') if create_time else ''
            )
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue

        if matches_filters(process, filters):
            processes.append(process)

    return processes


def collect_local_stats(filters: ProcessFilterSpec) -> RemoteMetrics:
    """Collect local system stats and filtered processes in one record"""
    stats = get_system_stats()
    processes = get_filtered_processes(filters)
    logger.debug(f"Collected {len(processes)} local processes")
    return RemoteMetrics(
        host=LOCAL_HOST,
        timestamp=stats.timestamp,
        processes=processes,
        system_stats=stats
    )
