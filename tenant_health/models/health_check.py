"""健康检查相关的数据模型"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional, List, Iterable, Union


class HealthStatus(str, Enum):
    """组件及整体健康状态，按严重程度递增排列"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def severity(self) -> int:
        """状态的严重程度序号"""
        return _STATUS_SEVERITY[self]

    @classmethod
    def worst(cls, statuses: Iterable['HealthStatus']) -> 'HealthStatus':
        """
        返回一组状态中最严重的状态

        Args:
            statuses: 状态序列

        Returns:
            HealthStatus: 最严重的状态，空序列返回HEALTHY
        """
        return max(statuses, key=lambda status: status.severity, default=cls.HEALTHY)


_STATUS_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
}


class AlertSeverity(str, Enum):
    """告警级别"""
    WARNING = "warning"
    CRITICAL = "critical"


class AlertKind(str, Enum):
    """告警类型"""
    THRESHOLD = "threshold"
    PROBE_UNAVAILABLE = "probe_unavailable"


class MetricUnavailable:
    """指标不可用哨兵值，探测失败时填充到对应的指标键上"""

    _instance: Optional['MetricUnavailable'] = None

    def __new__(cls) -> 'MetricUnavailable':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'UNAVAILABLE'

    def __str__(self) -> str:
        return 'unavailable'

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> 'MetricUnavailable':
        return self

    def __deepcopy__(self, memo) -> 'MetricUnavailable':
        return self

    def __reduce__(self):
        return (MetricUnavailable, ())


UNAVAILABLE = MetricUnavailable()

# 指标名 -> 数值或分类观测值
HealthMetrics = Dict[str, Any]


def is_unavailable(value: Any) -> bool:
    """判断指标值是否为不可用哨兵"""
    return value is UNAVAILABLE


def serialize_metric(value: Any) -> Any:
    """将指标值转换为可JSON序列化的形式"""
    if is_unavailable(value):
        return str(UNAVAILABLE)
    return value


@dataclass
class ProbeReading:
    """探测器成功执行后返回的读数"""
    status: HealthStatus
    metrics: HealthMetrics = field(default_factory=dict)
    message: Optional[str] = None


@dataclass(frozen=True)
class ProbeSuccess:
    """探测成功"""
    reading: ProbeReading
    latency_ms: float


@dataclass(frozen=True)
class ProbeFailure:
    """探测失败（超时或异常），已被捕获"""
    error: str
    latency_ms: float
    timed_out: bool = False


ProbeOutcome = Union[ProbeSuccess, ProbeFailure]


@dataclass
class ComponentProbeResult:
    """单个组件的探测结果"""
    name: str
    status: HealthStatus
    latency_ms: Optional[float]
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """转换为响应字段"""
        return {
            'name': self.name,
            'status': self.status.value,
            'latencyMs': round(self.latency_ms, 3) if self.latency_ms is not None else None,
            'error': self.error,
        }


@dataclass
class HealthCheckResult:
    """一次健康检查的聚合结果"""
    status: HealthStatus
    metrics: HealthMetrics
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    checked_components: List[ComponentProbeResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def get_component(self, name: str) -> Optional[ComponentProbeResult]:
        """按名称获取组件结果"""
        for component in self.checked_components:
            if component.name == name:
                return component
        return None

    def to_dict(self) -> Dict[str, Any]:
        """转换为响应字段"""
        data = {
            'status': self.status.value,
            'metrics': {name: serialize_metric(value) for name, value in self.metrics.items()},
            'timestamp': self.timestamp.isoformat(),
            'checkedComponents': [component.to_dict() for component in self.checked_components],
        }
        if self.error is not None:
            data['error'] = self.error
        return data


@dataclass(frozen=True)
class Alert:
    """由指标推导出的告警，不做持久化"""
    severity: AlertSeverity
    metric: str
    value: Any
    threshold: Optional[float]
    message: str
    kind: AlertKind = AlertKind.THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        """转换为响应字段"""
        return {
            'severity': self.severity.value,
            'metric': self.metric,
            'value': serialize_metric(self.value),
            'threshold': self.threshold,
            'message': self.message,
            'kind': self.kind.value,
        }
