"""探测器模块"""

from .base import BaseProbe
from .factory import ProbeFactory, probe_factory, register_probe
from .storage_probe import StorageProbe
from .activity_probe import ActivityProbe
from .connection_probe import ConnectionPoolProbe
from .cache_probe import CacheProbe
from .http_probe import HttpDependencyProbe
from .request_stats_probe import RequestStatsProbe
from .host_probe import HostResourcesProbe

# 未配置 probes 时使用的探测器集合，顺序即 checkedComponents 的顺序
DEFAULT_PROBE_CONFIGS = [
    {'name': 'storage', 'type': 'storage', 'timeout': 5},
    {'name': 'activity', 'type': 'activity', 'timeout': 5},
    {'name': 'connections', 'type': 'connections', 'timeout': 5},
    {'name': 'requests', 'type': 'requests', 'timeout': 1},
]


def build_probes(probe_configs=None, **dependencies):
    """
    按配置创建探测器列表

    Args:
        probe_configs: 探测器配置列表，None时使用默认集合
        dependencies: 传给探测器的进程内依赖（例如 request_tracker）

    Returns:
        List[BaseProbe]: 探测器列表
    """
    if probe_configs is None:
        probe_configs = DEFAULT_PROBE_CONFIGS
    return probe_factory.create_probes(probe_configs, **dependencies)


__all__ = ['BaseProbe', 'ProbeFactory', 'probe_factory', 'register_probe',
           'StorageProbe', 'ActivityProbe', 'ConnectionPoolProbe', 'CacheProbe',
           'HttpDependencyProbe', 'RequestStatsProbe', 'HostResourcesProbe',
           'DEFAULT_PROBE_CONFIGS', 'build_probes']
