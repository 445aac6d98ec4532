"""
Process Filters
Selection rules shared by local and remote collection
"""

from collectors.models import MonitoredProcess, ProcessFilterSpec


def matches_filters(process: MonitoredProcess, filters: ProcessFilterSpec) -> bool:
    """Return True if any keyword, user or group criterion matches.

    An empty filter spec matches nothing.
    """
    for keyword in filters.keywords:
        if keyword in process.name or keyword in process.cmdline:
            return True
    if process.user in filters.users:
        return True
    if process.group and process.group in filters.groups:
        return True
    return False
