"""主机资源探测器"""

import asyncio
from typing import Dict

import psutil

from .base import BaseProbe
from .factory import register_probe
from ..models.health_check import ProbeReading, HealthStatus
from ..services.tenant_client import BaseTenantStore


@register_probe('host')
class HostResourcesProbe(BaseProbe):
    """读取磁盘和内存使用率（0-1之间的比例）"""

    metric_names = ('diskUtilization', 'memoryUtilization')

    def validate_config(self) -> bool:
        threshold = self.config.get('degraded_utilization', 0.9)
        if not isinstance(threshold, (int, float)) or not 0 < threshold <= 1:
            self.logger.error(f"degraded_utilization 必须在 (0, 1] 之间: {threshold}")
            return False
        return isinstance(self.config.get('disk_path', '/'), str)

    def _collect(self) -> Dict[str, float]:
        disk = psutil.disk_usage(self.config.get('disk_path', '/'))
        memory = psutil.virtual_memory()
        return {
            'diskUtilization': round(disk.percent / 100, 4),
            'memoryUtilization': round(memory.percent / 100, 4),
        }

    async def probe(self, client: BaseTenantStore) -> ProbeReading:
        loop = asyncio.get_running_loop()
        metrics = await loop.run_in_executor(None, self._collect)

        threshold = self.config.get('degraded_utilization', 0.9)
        exceeded = [name for name, value in metrics.items() if value >= threshold]
        if exceeded:
            self.logger.warning(f"主机资源使用率过高: {', '.join(exceeded)}")
            return ProbeReading(status=HealthStatus.DEGRADED, metrics=metrics,
                                message=f"资源使用率超过 {threshold:.0%}: {', '.join(exceeded)}")

        return ProbeReading(status=HealthStatus.HEALTHY, metrics=metrics)
