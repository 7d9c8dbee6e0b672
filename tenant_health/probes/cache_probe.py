"""租户缓存探测器"""

import time

from .base import BaseProbe, latency_status
from .factory import register_probe
from ..models.health_check import ProbeReading
from ..services.tenant_client import BaseTenantStore
from ..utils.exceptions import ProbeError, ErrorCode


@register_probe('cache')
class CacheProbe(BaseProbe):
    """对租户缓存执行 PING 并记录延迟"""

    metric_names = ('cacheLatency',)

    def validate_config(self) -> bool:
        degraded = self.config.get('degraded_latency_ms', 100)
        if not isinstance(degraded, (int, float)) or degraded <= 0:
            self.logger.error(f"缓存探测器延迟阈值无效: {degraded}")
            return False
        return True

    async def probe(self, client: BaseTenantStore) -> ProbeReading:
        start = time.perf_counter()
        if not await client.ping_cache():
            raise ProbeError("缓存 PING 返回False", ErrorCode.INVALID_RESPONSE,
                             probe_name=self.name, probe_type=self.probe_type)

        latency_ms = (time.perf_counter() - start) * 1000
        return ProbeReading(
            status=latency_status(latency_ms, self.config.get('degraded_latency_ms', 100)),
            metrics={'cacheLatency': round(latency_ms, 2)}
        )
