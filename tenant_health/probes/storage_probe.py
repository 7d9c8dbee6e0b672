"""租户存储连通性探测器"""

import time
from typing import Dict, Any

from .base import BaseProbe, latency_status
from .factory import register_probe
from ..models.health_check import ProbeReading, HealthStatus
from ..services.tenant_client import BaseTenantStore
from ..utils.exceptions import ProbeError, ErrorCode


@register_probe('storage')
class StorageProbe(BaseProbe):
    """租户存储探测器，执行 SELECT 1 并记录往返延迟"""

    metric_names = ('storageLatency',)

    def validate_config(self) -> bool:
        """
        验证存储探测器配置

        Returns:
            bool: 配置是否有效
        """
        degraded = self.config.get('degraded_latency_ms', 200)
        unhealthy = self.config.get('unhealthy_latency_ms', 1000)
        for value in (degraded, unhealthy):
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                self.logger.error(f"存储探测器延迟阈值无效: {value}")
                return False

        if unhealthy < degraded:
            self.logger.error(f"unhealthy_latency_ms ({unhealthy}) 不能小于 degraded_latency_ms ({degraded})")
            return False

        return True

    async def probe(self, client: BaseTenantStore) -> ProbeReading:
        """
        执行存储连通性探测

        Returns:
            ProbeReading: 包含 storageLatency（毫秒）的读数
        """
        self.logger.debug(f"开始探测租户 {client.tenant_id} 的存储")
        start = time.perf_counter()

        if not await client.ping():
            raise ProbeError("存储 PING 返回异常结果", ErrorCode.INVALID_RESPONSE,
                             probe_name=self.name, probe_type=self.probe_type)

        latency_ms = (time.perf_counter() - start) * 1000
        status = latency_status(
            latency_ms,
            self.config.get('degraded_latency_ms', 200),
            self.config.get('unhealthy_latency_ms', 1000)
        )

        message = None
        if status != HealthStatus.HEALTHY:
            message = f"存储响应缓慢: {latency_ms:.1f}ms"
            self.logger.warning(f"租户 {client.tenant_id} {message}")

        return ProbeReading(
            status=status,
            metrics={'storageLatency': round(latency_ms, 2)},
            message=message
        )
