"""配置验证工具"""

from typing import Dict, Any, List

from .exceptions import ConfigError

SUPPORTED_PROBE_TYPES = ['storage', 'activity', 'connections', 'cache', 'http', 'requests', 'host']
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Args:
            global_config: 全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(global_config, dict):
            raise ConfigError("全局配置必须是字典类型")

        request_timeout = global_config.get('request_timeout')
        if request_timeout is not None and not _is_positive_number(request_timeout):
            raise ConfigError("request_timeout 必须是正数")

        log_level = global_config.get('log_level')
        if log_level is not None and log_level not in VALID_LOG_LEVELS:
            raise ConfigError(f"log_level 必须是以下值之一: {VALID_LOG_LEVELS}")

        log_format = global_config.get('log_format')
        if log_format is not None and log_format not in ('text', 'json'):
            raise ConfigError("log_format 必须是 text 或 json")

    @staticmethod
    def validate_server_config(server_config: Dict[str, Any]) -> None:
        """
        验证HTTP服务配置

        Args:
            server_config: 服务配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(server_config, dict):
            raise ConfigError("server配置必须是字典类型")

        port = server_config.get('port', 8080)
        if not isinstance(port, int) or port <= 0 or port > 65535:
            raise ConfigError(f"server.port 无效: {port}")

        path = server_config.get('path', '/api/health')
        if not isinstance(path, str) or not path.startswith('/'):
            raise ConfigError(f"server.path 必须以 / 开头: {path}")

    @staticmethod
    def validate_storage_config(name: str, storage_config: Dict[str, Any]) -> None:
        """
        验证存储配置

        Args:
            name: 配置所属（default 或租户ID）
            storage_config: 存储配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(storage_config, dict):
            raise ConfigError(f"'{name}' 的存储配置必须是字典类型")

        if 'host' not in storage_config:
            raise ConfigError(f"'{name}' 的存储配置缺少必需的配置项: host")

        port = storage_config.get('port', 3306)
        if not isinstance(port, int) or port <= 0 or port > 65535:
            raise ConfigError(f"'{name}' 的存储端口无效: {port}")

        pool_size = storage_config.get('pool_size', 5)
        if not isinstance(pool_size, int) or pool_size <= 0:
            raise ConfigError(f"'{name}' 的 pool_size 必须是正整数")

        timeout = storage_config.get('timeout')
        if timeout is not None and not _is_positive_number(timeout):
            raise ConfigError(f"'{name}' 的存储超时必须是正数")

        slow_query_ms = storage_config.get('slow_query_ms')
        if slow_query_ms is not None and not _is_positive_number(slow_query_ms):
            raise ConfigError(f"'{name}' 的 slow_query_ms 必须是正数")

        cache_config = storage_config.get('cache')
        if cache_config is not None:
            if not isinstance(cache_config, dict) or 'host' not in cache_config:
                raise ConfigError(f"'{name}' 的缓存配置缺少必需的配置项: host")

    @staticmethod
    def validate_tenants_config(tenants_config: Dict[str, Any]) -> None:
        """
        验证租户配置

        Args:
            tenants_config: 租户ID -> 租户配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(tenants_config, dict):
            raise ConfigError("tenants配置必须是字典类型")

        seen = set()
        for tenant_id, tenant_config in tenants_config.items():
            # 租户ID按字符串匹配，42 和 '42' 视为同一个租户
            if str(tenant_id) in seen:
                raise ConfigError(f"租户 '{tenant_id}' 重复配置")
            seen.add(str(tenant_id))

            if not isinstance(tenant_config, dict) or 'storage' not in tenant_config:
                raise ConfigError(f"租户 '{tenant_id}' 缺少 storage 配置")
            ConfigValidator.validate_storage_config(str(tenant_id), tenant_config['storage'])

    @staticmethod
    def validate_probe_config(probe_config: Dict[str, Any]) -> None:
        """
        验证探测器配置

        Args:
            probe_config: 探测器配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(probe_config, dict):
            raise ConfigError("探测器配置必须是字典类型")

        for field in ('name', 'type'):
            if field not in probe_config:
                raise ConfigError(f"探测器配置缺少必需的配置项: {field}")

        name = probe_config['name']
        probe_type = probe_config['type']
        if probe_type not in SUPPORTED_PROBE_TYPES:
            raise ConfigError(
                f"探测器 '{name}' 的类型 '{probe_type}' 不受支持。支持的类型: {SUPPORTED_PROBE_TYPES}")

        timeout = probe_config.get('timeout')
        if timeout is not None and not _is_positive_number(timeout):
            raise ConfigError(f"探测器 '{name}' 的 timeout 必须是正数")

    @staticmethod
    def validate_probes_config(probes_config: List[Dict[str, Any]]) -> None:
        """
        验证探测器列表

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(probes_config, list):
            raise ConfigError("probes配置必须是列表类型")

        names = set()
        for probe_config in probes_config:
            ConfigValidator.validate_probe_config(probe_config)
            if probe_config['name'] in names:
                raise ConfigError(f"探测器名称重复: {probe_config['name']}")
            names.add(probe_config['name'])

        if not any(probe_config['type'] == 'storage' for probe_config in probes_config):
            raise ConfigError("probes配置中至少需要一个 storage 类型的探测器")

    @staticmethod
    def validate_alert_rule_config(rule_config: Dict[str, Any]) -> None:
        """
        验证告警规则配置的结构，阈值语义由 load_alert_rules 检查

        Args:
            rule_config: 告警规则配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(rule_config, dict):
            raise ConfigError("告警规则配置必须是字典类型")

        if 'metric' not in rule_config:
            raise ConfigError("告警规则配置缺少必需的配置项: metric")

        if 'warning' not in rule_config and 'critical' not in rule_config:
            raise ConfigError(f"指标 '{rule_config['metric']}' 的告警规则缺少 warning/critical 阈值")
