"""请求统计探测器"""

from typing import Dict, Any, Optional

from .base import BaseProbe
from .factory import register_probe
from ..models.health_check import ProbeReading, HealthStatus
from ..services.request_tracker import RequestTracker
from ..services.tenant_client import BaseTenantStore


@register_probe('requests')
class RequestStatsProbe(BaseProbe):
    """基于进程内请求样本计算错误率、平均响应时间和菜单解析耗时"""

    metric_names = ('errorRate', 'responseTime', 'menuParseLatency')

    def __init__(self, name: str, config: Dict[str, Any],
                 request_tracker: Optional[RequestTracker] = None, **dependencies):
        super().__init__(name, config, **dependencies)
        self.request_tracker = request_tracker if request_tracker is not None else RequestTracker()

    def validate_config(self) -> bool:
        operation_filter = self.config.get('slow_operation', 'menu-parser')
        return isinstance(operation_filter, str) and bool(operation_filter)

    async def probe(self, client: BaseTenantStore) -> ProbeReading:
        stats = self.request_tracker.get_stats(self.config.get('slow_operation', 'menu-parser'))
        return ProbeReading(
            status=HealthStatus.HEALTHY,
            metrics={
                'errorRate': stats['error_rate'],
                'responseTime': stats['avg_duration_ms'],
                'menuParseLatency': stats['filtered_avg_duration_ms'],
            }
        )
