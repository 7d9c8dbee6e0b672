"""测试配置管理器"""

import os
import tempfile

import pytest

from tenant_health.alerts.rules import Comparison, DEFAULT_ALERT_RULES
from tenant_health.services.config_manager import ConfigManager
from tenant_health.utils.exceptions import AlertRuleError, ConfigError, ErrorCode


def write_config(content: str) -> str:
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False, encoding='utf-8') as f:
        f.write(content)
        return f.name


class TestConfigManager:
    """测试ConfigManager类"""

    def test_load_valid_config(self):
        """测试加载有效配置"""
        config_path = write_config("""
global:
  log_level: INFO
  environment: staging
  request_timeout: 10

server:
  port: 9090
  path: /health

storage:
  host: localhost
  port: 3306
  database: restaurant

tenants:
  r42:
    storage:
      host: db-42

probes:
  - name: storage
    type: storage
    timeout: 3
  - name: cache
    type: cache

alert_rules:
  - metric: storageLatency
    warning: 100
    critical: 500
  - metric: activeUsers
    operator: "<"
    warning: 1
""")

        try:
            manager = ConfigManager(config_path)
            config = manager.load_config()

            assert config['global']['environment'] == 'staging'
            assert manager.get_global_config()['request_timeout'] == 10
            assert manager.get_server_config() == {'port': 9090, 'path': '/health'}
            assert manager.get_storage_config()['host'] == 'localhost'
            assert manager.get_tenants_config()['r42']['storage']['host'] == 'db-42'
            assert [p['name'] for p in manager.get_probes_config()] == ['storage', 'cache']

            rules = manager.get_alert_rules()
            assert [rule.metric for rule in rules] == ['storageLatency', 'activeUsers']
            assert rules[1].operator == Comparison.LT
        finally:
            os.unlink(config_path)

    def test_defaults_when_sections_absent(self):
        """测试省略可选段时使用默认值"""
        config_path = write_config("""
storage:
  host: localhost
""")

        try:
            manager = ConfigManager(config_path)
            manager.load_config()

            assert manager.get_global_config() == {}
            assert manager.get_server_config() == {}
            assert manager.get_tenants_config() == {}
            assert manager.get_probes_config() is None
            assert manager.get_alert_rules() == list(DEFAULT_ALERT_RULES)
        finally:
            os.unlink(config_path)

    def test_tenants_only(self):
        """测试只配置独立租户"""
        config_path = write_config("""
tenants:
  r1:
    storage:
      host: db-1
""")

        try:
            manager = ConfigManager(config_path)
            manager.load_config()

            assert manager.get_storage_config() is None
        finally:
            os.unlink(config_path)

    def test_numeric_tenant_keys(self):
        """测试数字形式的租户键转换为字符串"""
        config_path = write_config("""
storage:
  host: shared-db
tenants:
  42:
    storage:
      host: tenant42-db
""")

        try:
            manager = ConfigManager(config_path)
            manager.load_config()

            assert manager.get_tenants_config() == {'42': {'storage': {'host': 'tenant42-db'}}}
        finally:
            os.unlink(config_path)

    def test_load_nonexistent_file(self):
        """测试加载不存在的配置文件"""
        manager = ConfigManager('/nonexistent/config.yaml')

        with pytest.raises(ConfigError, match="配置文件不存在") as exc_info:
            manager.load_config()

        assert exc_info.value.error_code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_load_invalid_yaml(self):
        """测试加载无效的YAML文件"""
        config_path = write_config("""
storage:
  host: localhost
    port: [3306
""")

        try:
            with pytest.raises(ConfigError, match="YAML格式错误") as exc_info:
                ConfigManager(config_path).load_config()

            assert exc_info.value.error_code == ErrorCode.CONFIG_PARSE_ERROR
        finally:
            os.unlink(config_path)

    def test_load_empty_file(self):
        """测试加载空文件"""
        config_path = write_config("")

        try:
            with pytest.raises(ConfigError, match="配置文件为空"):
                ConfigManager(config_path).load_config()
        finally:
            os.unlink(config_path)

    def test_root_must_be_mapping(self):
        """测试根节点必须是字典"""
        config_path = write_config("- a\n- b\n")

        try:
            with pytest.raises(ConfigError, match="根节点"):
                ConfigManager(config_path).load_config()
        finally:
            os.unlink(config_path)

    def test_storage_or_tenants_required(self):
        """测试必须配置存储"""
        config_path = write_config("""
global:
  log_level: INFO
""")

        try:
            with pytest.raises(ConfigError, match="storage 或 tenants"):
                ConfigManager(config_path).load_config()
        finally:
            os.unlink(config_path)

    def test_invalid_probe_section(self):
        """测试无效的探测器配置"""
        config_path = write_config("""
storage:
  host: localhost
probes:
  - name: cache
    type: cache
""")

        try:
            with pytest.raises(ConfigError, match="storage 类型"):
                ConfigManager(config_path).load_config()
        finally:
            os.unlink(config_path)

    def test_invalid_alert_rule(self):
        """测试无效的告警规则"""
        config_path = write_config("""
storage:
  host: localhost
alert_rules:
  - metric: errorRate
    warning: 10
    critical: 5
""")

        try:
            with pytest.raises(AlertRuleError, match="更宽松"):
                ConfigManager(config_path).load_config()
        finally:
            os.unlink(config_path)

    def test_alert_rules_must_be_list(self):
        """测试告警规则必须是列表"""
        config_path = write_config("""
storage:
  host: localhost
alert_rules:
  errorRate: 5
""")

        try:
            with pytest.raises(ConfigError, match="列表"):
                ConfigManager(config_path).load_config()
        finally:
            os.unlink(config_path)

    def test_example_config_is_valid(self):
        """测试仓库自带的示例配置有效"""
        example = os.path.join(os.path.dirname(__file__), '..', 'config', 'example.yaml')

        manager = ConfigManager(example)
        manager.load_config()

        assert len(manager.get_probes_config()) == 7
        assert manager.get_alert_rules()[0].metric == 'storageLatency'
