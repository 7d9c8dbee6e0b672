"""告警规则

规则表按声明顺序求值，输出顺序与求值顺序一致。每条规则对应一个指标，
同一指标最多产生一条告警：超过严重阈值时只产生 critical，
否则超过警告阈值时产生 warning。
"""

import operator
from dataclasses import dataclass
from enum import Enum
from string import Template
from typing import Dict, Any, Optional, List, Sequence

from ..models.health_check import (
    Alert, AlertKind, AlertSeverity, HealthMetrics, UNAVAILABLE, is_unavailable
)
from ..utils.exceptions import AlertRuleError

PROBE_UNAVAILABLE_MESSAGE = 'Probe unavailable: $metric'


class Comparison(str, Enum):
    """阈值比较运算符"""
    GT = '>'
    GTE = '>='
    LT = '<'
    LTE = '<='

    def crosses(self, value: float, threshold: float) -> bool:
        """判断值是否越过阈值"""
        return _COMPARATORS[self](value, threshold)


_COMPARATORS = {
    Comparison.GT: operator.gt,
    Comparison.GTE: operator.ge,
    Comparison.LT: operator.lt,
    Comparison.LTE: operator.le,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class AlertRule:
    """单个指标的告警规则"""
    metric: str
    operator: Comparison
    warning: Optional[float]
    critical: Optional[float]
    message: str

    def render(self, severity: AlertSeverity, value: Any, threshold: Optional[float]) -> str:
        """
        渲染告警消息模板

        可用占位符: $metric, $value, $threshold, $severity, $operator
        """
        return Template(self.message).safe_substitute(
            metric=self.metric,
            value=value,
            threshold=threshold,
            severity=severity.value,
            operator=self.operator.value
        )

    def evaluate(self, value: Any) -> Optional[Alert]:
        """
        对单个指标值求值

        Args:
            value: 指标值

        Returns:
            Optional[Alert]: 告警，未越过阈值或值不是数字时返回None
        """
        if is_unavailable(value):
            return probe_unavailable_alert(self.metric)

        if not _is_number(value):
            return None

        for severity, threshold in ((AlertSeverity.CRITICAL, self.critical),
                                    (AlertSeverity.WARNING, self.warning)):
            if threshold is not None and self.operator.crosses(value, threshold):
                return Alert(
                    severity=severity,
                    metric=self.metric,
                    value=value,
                    threshold=threshold,
                    message=self.render(severity, value, threshold)
                )

        return None


def probe_unavailable_alert(metric: str) -> Alert:
    """探测失败导致指标不可用时的固定 critical 告警"""
    return Alert(
        severity=AlertSeverity.CRITICAL,
        metric=metric,
        value=UNAVAILABLE,
        threshold=None,
        message=Template(PROBE_UNAVAILABLE_MESSAGE).safe_substitute(metric=metric),
        kind=AlertKind.PROBE_UNAVAILABLE
    )


def _rule(metric, warning, critical, message, op=Comparison.GTE) -> AlertRule:
    return AlertRule(metric=metric, operator=op, warning=warning, critical=critical, message=message)


# 内置规则表（部署配置中的 alert_rules 可以整体替换）
DEFAULT_ALERT_RULES = (
    _rule('storageLatency', 200, 1000,
          'High storage latency: ${value}ms (threshold ${threshold}ms)'),
    _rule('cacheLatency', 100, 500,
          'High cache latency: ${value}ms (threshold ${threshold}ms)'),
    _rule('connectionUtilization', 0.75, 0.9,
          'High database connection utilization: ${value} (threshold ${threshold})'),
    _rule('errorRate', 2, 5,
          'High error rate: ${value}% (threshold ${threshold}%)'),
    _rule('responseTime', 1000, 2000,
          'High response time: ${value}ms (threshold ${threshold}ms)'),
    _rule('failedOTPs', 5, 10,
          'High failed OTP count: ${value} (threshold ${threshold})'),
    _rule('menuParseLatency', 15000, 30000,
          'High menu parse latency: ${value}ms (threshold ${threshold}ms)'),
    _rule('diskUtilization', 0.8, 0.95,
          'High disk utilization: ${value} (threshold ${threshold})'),
    _rule('memoryUtilization', 0.85, 0.95,
          'High memory utilization: ${value} (threshold ${threshold})'),
)


def load_alert_rules(rule_configs: Sequence[Dict[str, Any]]) -> List[AlertRule]:
    """
    从配置加载规则表

    Args:
        rule_configs: 规则配置列表

    Returns:
        List[AlertRule]: 规则列表，顺序与配置一致

    Raises:
        AlertRuleError: 规则配置无效
    """
    rules: List[AlertRule] = []
    seen = set()

    for rule_config in rule_configs:
        if not isinstance(rule_config, dict):
            raise AlertRuleError("告警规则必须是字典类型")

        metric = rule_config.get('metric')
        if not metric or not isinstance(metric, str):
            raise AlertRuleError("告警规则缺少 metric")
        if metric in seen:
            raise AlertRuleError(f"指标 '{metric}' 重复定义了告警规则", metric=metric)
        seen.add(metric)

        try:
            comparison = Comparison(rule_config.get('operator', '>='))
        except ValueError:
            raise AlertRuleError(
                f"不支持的比较运算符: {rule_config.get('operator')}", metric=metric)

        warning = rule_config.get('warning')
        critical = rule_config.get('critical')
        for name, value in (('warning', warning), ('critical', critical)):
            if value is not None and not _is_number(value):
                raise AlertRuleError(f"{name} 阈值必须是数字: {value}", metric=metric)

        if warning is None and critical is None:
            raise AlertRuleError("warning 和 critical 至少需要配置一个", metric=metric)

        # critical 必须比 warning 更严格
        if (warning is not None and critical is not None
                and warning != critical and comparison.crosses(warning, critical)):
            raise AlertRuleError(
                f"critical 阈值 ({critical}) 不能比 warning 阈值 ({warning}) 更宽松", metric=metric)

        message = rule_config.get('message', '$metric $operator $threshold: $value')
        rules.append(AlertRule(metric=metric, operator=comparison, warning=warning,
                               critical=critical, message=message))

    return rules


def evaluate_alerts(metrics: HealthMetrics, rules: Sequence[AlertRule]) -> List[Alert]:
    """
    按规则表对指标求值

    纯函数：不修改输入，不做I/O。未配置规则的数值指标不会产生告警；
    不可用的指标总会产生一条 probe_unavailable 告警，有规则的指标
    按规则位置输出，没有规则的按指标顺序追加在末尾。

    Args:
        metrics: 指标字典
        rules: 规则表

    Returns:
        List[Alert]: 告警列表，没有告警时为空列表
    """
    alerts: List[Alert] = []
    covered = set()

    for rule in rules:
        covered.add(rule.metric)
        if rule.metric not in metrics:
            continue
        alert = rule.evaluate(metrics[rule.metric])
        if alert is not None:
            alerts.append(alert)

    for metric, value in metrics.items():
        if metric not in covered and is_unavailable(value):
            alerts.append(probe_unavailable_alert(metric))

    return alerts
