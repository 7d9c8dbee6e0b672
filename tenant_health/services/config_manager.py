"""配置管理器"""

import os
from typing import Dict, Any, Optional, List

import yaml

from ..alerts.rules import AlertRule, DEFAULT_ALERT_RULES, load_alert_rules
from ..utils.config_validator import ConfigValidator
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger


class ConfigManager:
    """配置管理器，负责YAML配置文件的加载、解析和验证"""

    def __init__(self, config_path: str):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.alert_rules: List[AlertRule] = list(DEFAULT_ALERT_RULES)
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载YAML配置文件

        Returns:
            Dict[str, Any]: 配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        self.logger.info(f"开始加载配置文件: {self.config_path}")

        if not os.path.exists(self.config_path):
            self.logger.error(f"配置文件不存在: {self.config_path}")
            raise ConfigError(f"配置文件不存在: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=self.config_path)

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            self.logger.error(f"YAML格式错误: {e}")
            raise ConfigError(f"YAML格式错误: {e}", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=self.config_path, cause=e)
        except PermissionError as e:
            self.logger.error(f"没有权限读取配置文件: {self.config_path}")
            raise ConfigError(f"没有权限读取配置文件: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=self.config_path, cause=e)

        if config is None:
            self.logger.error("配置文件为空")
            raise ConfigError("配置文件为空", config_path=self.config_path)

        self.logger.debug("开始验证配置文件内容")
        self._validate_config(config)

        self.config = config
        self.alert_rules = self._load_rules(config)

        tenants_count = len(config.get('tenants') or {})
        probes_count = len(config['probes']) if 'probes' in config else 0
        self.logger.info(
            f"配置验证成功，包含 {tenants_count} 个独立租户、"
            f"{probes_count or '默认'} 个探测器和 {len(self.alert_rules)} 条告警规则")

        return self.config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        验证配置文件内容

        Args:
            config: 配置字典

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError("配置文件根节点必须是字典类型")

        if 'global' in config:
            ConfigValidator.validate_global_config(config['global'])

        if 'server' in config:
            ConfigValidator.validate_server_config(config['server'])

        if 'storage' in config:
            ConfigValidator.validate_storage_config('default', config['storage'])

        if 'tenants' in config:
            ConfigValidator.validate_tenants_config(config['tenants'])

        if 'storage' not in config and not config.get('tenants'):
            raise ConfigError("至少需要配置 storage 或 tenants 之一")

        if 'probes' in config:
            ConfigValidator.validate_probes_config(config['probes'])

        if 'alert_rules' in config:
            if not isinstance(config['alert_rules'], list):
                raise ConfigError("alert_rules配置必须是列表类型")
            for rule_config in config['alert_rules']:
                ConfigValidator.validate_alert_rule_config(rule_config)

    def _load_rules(self, config: Dict[str, Any]) -> List[AlertRule]:
        if 'alert_rules' not in config:
            return list(DEFAULT_ALERT_RULES)
        return load_alert_rules(config['alert_rules'])

    def get_global_config(self) -> Dict[str, Any]:
        """
        获取全局配置

        Returns:
            Dict[str, Any]: 全局配置字典
        """
        return self.config.get('global') or {}

    def get_server_config(self) -> Dict[str, Any]:
        """获取HTTP服务配置"""
        return self.config.get('server') or {}

    def get_storage_config(self) -> Optional[Dict[str, Any]]:
        """获取默认（共享）存储配置"""
        return self.config.get('storage')

    def get_tenants_config(self) -> Dict[str, Dict[str, Any]]:
        """获取独立部署存储的租户配置"""
        tenants = self.config.get('tenants') or {}
        return {str(tenant_id): tenant_config for tenant_id, tenant_config in tenants.items()}

    def get_probes_config(self) -> Optional[List[Dict[str, Any]]]:
        """
        获取探测器配置

        Returns:
            Optional[List[Dict[str, Any]]]: 探测器配置列表，未配置时返回None（使用内置集合）
        """
        return self.config.get('probes')

    def get_alert_rules(self) -> List[AlertRule]:
        """获取已加载的告警规则表"""
        return list(self.alert_rules)
