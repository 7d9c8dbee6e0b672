"""告警规则模块"""

from .rules import (
    AlertRule, Comparison, DEFAULT_ALERT_RULES, load_alert_rules, evaluate_alerts,
    probe_unavailable_alert
)

__all__ = [
    'AlertRule',
    'Comparison',
    'DEFAULT_ALERT_RULES',
    'load_alert_rules',
    'evaluate_alerts',
    'probe_unavailable_alert'
]
