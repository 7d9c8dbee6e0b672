"""测试数据模型"""

import copy
import json
import pickle
from datetime import datetime, timezone

from tenant_health.models.health_check import (
    Alert, AlertKind, AlertSeverity, ComponentProbeResult, HealthCheckResult, HealthStatus,
    MetricUnavailable, UNAVAILABLE, is_unavailable, serialize_metric
)


class TestHealthStatus:
    """测试HealthStatus"""

    def test_values(self):
        """测试状态值"""
        assert HealthStatus.HEALTHY.value == 'healthy'
        assert HealthStatus.DEGRADED.value == 'degraded'
        assert HealthStatus.UNHEALTHY.value == 'unhealthy'

    def test_severity_order(self):
        """测试严重程度顺序"""
        assert HealthStatus.HEALTHY.severity < HealthStatus.DEGRADED.severity
        assert HealthStatus.DEGRADED.severity < HealthStatus.UNHEALTHY.severity

    def test_worst(self):
        """测试取最严重状态"""
        assert HealthStatus.worst([HealthStatus.HEALTHY, HealthStatus.DEGRADED]) == HealthStatus.DEGRADED
        assert HealthStatus.worst(
            [HealthStatus.DEGRADED, HealthStatus.UNHEALTHY, HealthStatus.HEALTHY]) == HealthStatus.UNHEALTHY
        assert HealthStatus.worst([HealthStatus.HEALTHY]) == HealthStatus.HEALTHY

    def test_worst_of_empty(self):
        """测试空序列返回healthy"""
        assert HealthStatus.worst([]) == HealthStatus.HEALTHY


class TestMetricUnavailable:
    """测试不可用哨兵"""

    def test_singleton(self):
        """测试单例"""
        assert MetricUnavailable() is UNAVAILABLE
        assert copy.copy(UNAVAILABLE) is UNAVAILABLE
        assert copy.deepcopy({'a': UNAVAILABLE})['a'] is UNAVAILABLE
        assert pickle.loads(pickle.dumps(UNAVAILABLE)) is UNAVAILABLE

    def test_distinct_from_zero(self):
        """测试哨兵不等于0或None"""
        assert UNAVAILABLE != 0
        assert UNAVAILABLE is not None
        assert is_unavailable(UNAVAILABLE)
        assert not is_unavailable(0)
        assert not is_unavailable(None)

    def test_serialize(self):
        """测试序列化"""
        assert serialize_metric(UNAVAILABLE) == 'unavailable'
        assert serialize_metric(12.5) == 12.5
        assert serialize_metric('ok') == 'ok'


class TestComponentProbeResult:
    """测试ComponentProbeResult"""

    def test_to_dict(self):
        """测试转换为字典"""
        component = ComponentProbeResult('storage', HealthStatus.UNHEALTHY, 12.34567, 'timeout')

        assert component.to_dict() == {
            'name': 'storage',
            'status': 'unhealthy',
            'latencyMs': 12.346,
            'error': 'timeout',
        }

    def test_to_dict_without_latency(self):
        """测试没有延迟时的转换"""
        component = ComponentProbeResult('storage', HealthStatus.HEALTHY, None)
        assert component.to_dict()['latencyMs'] is None
        assert component.to_dict()['error'] is None


class TestHealthCheckResult:
    """测试HealthCheckResult"""

    def test_default_timestamp_is_utc(self):
        """测试默认时间戳"""
        result = HealthCheckResult(status=HealthStatus.HEALTHY, metrics={})
        assert result.timestamp.tzinfo is not None
        assert result.is_healthy is True

    def test_get_component(self):
        """测试按名称获取组件"""
        storage = ComponentProbeResult('storage', HealthStatus.HEALTHY, 1.0)
        result = HealthCheckResult(status=HealthStatus.HEALTHY, metrics={}, checked_components=[storage])

        assert result.get_component('storage') is storage
        assert result.get_component('cache') is None

    def test_to_dict_is_json_serializable(self):
        """测试字典可以序列化为JSON"""
        timestamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        result = HealthCheckResult(
            status=HealthStatus.UNHEALTHY,
            metrics={'storageLatency': UNAVAILABLE, 'activeUsers': 3},
            timestamp=timestamp,
            checked_components=[ComponentProbeResult('storage', HealthStatus.UNHEALTHY, 5.0, 'boom')]
        )

        data = json.loads(json.dumps(result.to_dict()))

        assert data['status'] == 'unhealthy'
        assert data['metrics'] == {'storageLatency': 'unavailable', 'activeUsers': 3}
        assert data['timestamp'] == '2024-01-01T00:00:00+00:00'
        assert data['checkedComponents'][0]['name'] == 'storage'
        assert 'error' not in data

    def test_to_dict_with_error(self):
        """测试聚合失败时包含error字段"""
        result = HealthCheckResult(status=HealthStatus.UNHEALTHY, metrics={}, error='boom')
        assert result.to_dict()['error'] == 'boom'


class TestAlert:
    """测试Alert"""

    def test_to_dict(self):
        """测试转换为字典"""
        alert = Alert(AlertSeverity.WARNING, 'errorRate', 3.5, 2, 'High error rate')

        assert alert.to_dict() == {
            'severity': 'warning',
            'metric': 'errorRate',
            'value': 3.5,
            'threshold': 2,
            'message': 'High error rate',
            'kind': 'threshold',
        }

    def test_unavailable_value_serialized(self):
        """测试不可用值的序列化"""
        alert = Alert(AlertSeverity.CRITICAL, 'storageLatency', UNAVAILABLE, None,
                      'Probe unavailable: storageLatency', AlertKind.PROBE_UNAVAILABLE)

        data = alert.to_dict()
        assert data['value'] == 'unavailable'
        assert data['kind'] == 'probe_unavailable'
