"""监控服务

包装一个租户存储句柄，提供健康检查聚合和告警求值。每个请求构造一个新实例，
实例之间不共享可变状态。
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Optional, Sequence, List

from ..alerts.rules import AlertRule, DEFAULT_ALERT_RULES, evaluate_alerts
from ..models.health_check import (
    Alert, ComponentProbeResult, HealthCheckResult, HealthMetrics, HealthStatus,
    ProbeFailure, ProbeOutcome, ProbeSuccess
)
from ..probes import BaseProbe, build_probes
from ..services.tenant_client import BaseTenantStore
from ..utils.log_manager import get_logger


class MonitoringService:
    """租户健康监控服务"""

    def __init__(self, client: BaseTenantStore,
                 probes: Optional[Sequence[BaseProbe]] = None,
                 rules: Optional[Sequence[AlertRule]] = None):
        """
        初始化监控服务

        Args:
            client: 租户存储句柄
            probes: 探测器列表，按声明顺序执行和输出；None时使用内置探测器集合
            rules: 告警规则表；None时使用内置规则表
        """
        self.client = client
        self.probes: List[BaseProbe] = list(probes) if probes is not None else build_probes()
        self.rules: List[AlertRule] = list(rules) if rules is not None else list(DEFAULT_ALERT_RULES)
        self.logger = get_logger('monitoring_service')

    async def get_health_check(self) -> HealthCheckResult:
        """
        执行一次健康检查

        所有探测器并发执行，每个探测器单独超时。单个探测器失败只影响
        它自己的组件状态和指标；本方法永远不会抛出异常。

        Returns:
            HealthCheckResult: 聚合后的健康检查结果
        """
        timestamp = datetime.now(tz=timezone.utc)
        tenant_id = getattr(self.client, 'tenant_id', 'unknown')

        try:
            self.logger.debug(f"开始租户 {tenant_id} 的健康检查，共 {len(self.probes)} 个探测器")

            # gather 按传入顺序返回结果，与完成先后无关
            outcomes = await asyncio.gather(*[self._run_probe(probe) for probe in self.probes])

            components: List[ComponentProbeResult] = []
            metrics: HealthMetrics = {}
            for probe, outcome in zip(self.probes, outcomes):
                components.append(self._to_component(probe, outcome))
                metrics.update(self._collect_metrics(probe, outcome))

            status = HealthStatus.worst(component.status for component in components)

            self.logger.info(
                f"租户 {tenant_id} 健康检查完成: {status.value}, "
                f"组件: {', '.join(f'{c.name}={c.status.value}' for c in components)}"
            )

            return HealthCheckResult(
                status=status,
                metrics=metrics,
                timestamp=timestamp,
                checked_components=components
            )

        except Exception as e:
            self.logger.error(f"租户 {tenant_id} 健康检查聚合失败: {e}", exc_info=True)
            return HealthCheckResult(
                status=HealthStatus.UNHEALTHY,
                metrics=self._all_unavailable(),
                timestamp=timestamp,
                checked_components=[],
                error=str(e) or type(e).__name__
            )

    def check_alerts(self, metrics: HealthMetrics) -> List[Alert]:
        """
        按规则表对指标求值

        Args:
            metrics: 健康检查产出的指标

        Returns:
            List[Alert]: 告警列表，顺序与规则表一致
        """
        return evaluate_alerts(metrics, self.rules)

    async def _run_probe(self, probe: BaseProbe) -> ProbeOutcome:
        """执行单个探测器，把超时和异常转换为 ProbeFailure"""
        timeout = probe.get_timeout()
        start = time.perf_counter()

        try:
            reading = await asyncio.wait_for(probe.probe(self.client), timeout=timeout)
            return ProbeSuccess(reading=reading, latency_ms=self._elapsed_ms(start))
        except asyncio.TimeoutError:
            self.logger.warning(f"探测器 {probe.name} 超时 ({timeout}s)")
            return ProbeFailure(error=f"探测超时 ({timeout}s)",
                                latency_ms=self._elapsed_ms(start), timed_out=True)
        except Exception as e:
            self.logger.warning(f"探测器 {probe.name} 失败: {e}")
            return ProbeFailure(error=str(e) or type(e).__name__,
                                latency_ms=self._elapsed_ms(start))

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return (time.perf_counter() - start) * 1000

    @staticmethod
    def _to_component(probe: BaseProbe, outcome: ProbeOutcome) -> ComponentProbeResult:
        if isinstance(outcome, ProbeSuccess):
            return ComponentProbeResult(
                name=probe.name,
                status=outcome.reading.status,
                latency_ms=outcome.latency_ms,
                error=outcome.reading.message if outcome.reading.status != HealthStatus.HEALTHY else None
            )

        return ComponentProbeResult(
            name=probe.name,
            status=HealthStatus.UNHEALTHY,
            latency_ms=outcome.latency_ms,
            error=outcome.error
        )

    @staticmethod
    def _collect_metrics(probe: BaseProbe, outcome: ProbeOutcome) -> HealthMetrics:
        """声明的指标总会出现；失败或缺失的指标填充为 UNAVAILABLE"""
        metrics = probe.unavailable_metrics()
        if isinstance(outcome, ProbeSuccess):
            metrics.update(outcome.reading.metrics)
        return metrics

    def _all_unavailable(self) -> HealthMetrics:
        metrics: HealthMetrics = {}
        for probe in self.probes:
            metrics.update(probe.unavailable_metrics())
        return metrics
