"""数据库连接数探测器"""

from .base import BaseProbe
from .factory import register_probe
from ..models.health_check import ProbeReading, HealthStatus
from ..services.tenant_client import BaseTenantStore
from ..utils.exceptions import ProbeError, ErrorCode


@register_probe('connections')
class ConnectionPoolProbe(BaseProbe):
    """读取存储的当前连接数和最大连接数，计算连接使用率"""

    metric_names = ('databaseConnections', 'connectionUtilization')

    def validate_config(self) -> bool:
        threshold = self.config.get('degraded_utilization', 0.9)
        if not isinstance(threshold, (int, float)) or not 0 < threshold <= 1:
            self.logger.error(f"degraded_utilization 必须在 (0, 1] 之间: {threshold}")
            return False
        return True

    async def probe(self, client: BaseTenantStore) -> ProbeReading:
        connected, maximum = await client.connection_stats()
        if maximum <= 0:
            raise ProbeError(f"最大连接数无效: {maximum}", ErrorCode.INVALID_RESPONSE,
                             probe_name=self.name, probe_type=self.probe_type)

        utilization = round(connected / maximum, 4)
        status = HealthStatus.HEALTHY
        message = None
        if utilization >= self.config.get('degraded_utilization', 0.9):
            status = HealthStatus.DEGRADED
            message = f"连接使用率过高: {connected}/{maximum}"
            self.logger.warning(f"租户 {client.tenant_id} {message}")

        return ProbeReading(
            status=status,
            metrics={
                'databaseConnections': connected,
                'connectionUtilization': utilization,
            },
            message=message
        )
