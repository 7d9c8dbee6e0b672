"""数据模型模块"""

from .health_check import (
    HealthStatus, AlertSeverity, AlertKind, UNAVAILABLE, HealthMetrics,
    ProbeReading, ProbeSuccess, ProbeFailure, ProbeOutcome,
    ComponentProbeResult, HealthCheckResult, Alert, is_unavailable
)

__all__ = ['HealthStatus', 'AlertSeverity', 'AlertKind', 'UNAVAILABLE', 'HealthMetrics',
           'ProbeReading', 'ProbeSuccess', 'ProbeFailure', 'ProbeOutcome',
           'ComponentProbeResult', 'HealthCheckResult', 'Alert', 'is_unavailable']
