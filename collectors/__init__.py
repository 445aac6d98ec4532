"""Metrics collectors package"""
from .models import ProcessFilterSpec, RemoteTarget, MonitoredProcess, SystemStats, RemoteMetrics
from .remote_collector import RemoteCollector, CollectionError, collect_remote_stats, collect_targets
from .local_collector import collect_local_stats

__all__ = [
    'ProcessFilterSpec', 'RemoteTarget', 'MonitoredProcess', 'SystemStats', 'RemoteMetrics',
    'RemoteCollector', 'CollectionError', 'collect_remote_stats', 'collect_targets',
    'collect_local_stats',
]
