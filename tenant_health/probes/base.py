"""探测器基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Tuple, Optional

from ..models.health_check import ProbeReading, HealthMetrics, HealthStatus, UNAVAILABLE
from ..services.tenant_client import BaseTenantStore
from ..utils.log_manager import get_logger


def latency_status(latency_ms: float, degraded_ms: float,
                   unhealthy_ms: Optional[float] = None) -> HealthStatus:
    """按延迟阈值判断组件状态"""
    if unhealthy_ms is not None and latency_ms >= unhealthy_ms:
        return HealthStatus.UNHEALTHY
    if latency_ms >= degraded_ms:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


class BaseProbe(ABC):
    """探测器抽象基类

    每个探测器检查一个依赖，并声明它产出的指标名。探测失败时，
    这些指标会被填充为 UNAVAILABLE。
    """

    metric_names: Tuple[str, ...] = ()

    def __init__(self, name: str, config: Dict[str, Any], **dependencies):
        """
        初始化探测器

        Args:
            name: 组件名称
            config: 探测器配置参数
            dependencies: 探测器需要的进程内依赖
        """
        self.name = name
        self.config = config
        self.probe_type = self.__class__.__name__.replace('Probe', '').lower()
        self.logger = get_logger(f'probe.{self.probe_type}.{self.name}')

    @abstractmethod
    async def probe(self, client: BaseTenantStore) -> ProbeReading:
        """
        执行探测并返回读数

        Args:
            client: 租户存储句柄

        Returns:
            ProbeReading: 探测读数
        """

    @abstractmethod
    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """

    def get_timeout(self) -> float:
        """
        获取超时时间配置

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 5)

    def unavailable_metrics(self) -> HealthMetrics:
        """所有声明指标均为不可用的指标字典"""
        return {metric: UNAVAILABLE for metric in self.metric_names}
