"""CLI接口功能测试"""

import json
import os
import tempfile
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from main import create_argument_parser, validate_config_file, check_once, main, __version__


@pytest.fixture
def config_file():
    """创建临时配置文件"""
    config_data = {
        'global': {'log_level': 'INFO', 'environment': 'test'},
        'storage': {'host': 'localhost', 'port': 3306, 'database': 'restaurant'},
        'tenants': {'r42': {'storage': {'host': 'db-42'}}},
        'probes': [
            {'name': 'storage', 'type': 'storage', 'timeout': 2},
            {'name': 'activity', 'type': 'activity'},
        ],
    }

    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        yaml.dump(config_data, f, default_flow_style=False)
        temp_file = f.name

    yield temp_file

    if os.path.exists(temp_file):
        os.unlink(temp_file)


class TestArgumentParser:
    """命令行参数解析器测试"""

    def test_create_argument_parser(self):
        """测试创建参数解析器"""
        parser = create_argument_parser()

        assert parser.prog == 'tenant-health'
        assert '健康监控' in parser.description

    def test_parse_basic_args(self):
        """测试解析基本参数"""
        args = create_argument_parser().parse_args(['config.yaml'])

        assert args.config_file == 'config.yaml'
        assert not args.validate
        assert not args.check_once
        assert args.tenant is None
        assert args.port is None

    def test_parse_check_once_with_tenant(self):
        """测试单次检查参数"""
        args = create_argument_parser().parse_args(['--check-once', '--tenant', 'r42', 'config.yaml'])

        assert args.check_once
        assert args.tenant == 'r42'

    def test_parse_server_overrides(self):
        """测试监听地址覆盖"""
        args = create_argument_parser().parse_args(
            ['--host', '127.0.0.1', '--port', '9000', '--log-level', 'DEBUG', 'config.yaml'])

        assert args.host == '127.0.0.1'
        assert args.port == 9000
        assert args.log_level == 'DEBUG'

    def test_invalid_log_level(self):
        """测试无效的日志级别"""
        with pytest.raises(SystemExit):
            create_argument_parser().parse_args(['--log-level', 'LOUD', 'config.yaml'])

    def test_version(self, capsys):
        """测试版本信息"""
        with pytest.raises(SystemExit) as exc_info:
            create_argument_parser().parse_args(['--version'])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestValidateConfigFile:
    """配置文件验证测试"""

    def test_valid_config(self, config_file, capsys):
        """测试验证有效配置"""
        assert validate_config_file(config_file) is True

        output = capsys.readouterr().out
        assert '配置文件验证成功' in output
        assert 'storage (storage)' in output
        assert '独立租户数量: 1' in output

    def test_missing_file(self, capsys):
        """测试配置文件不存在"""
        assert validate_config_file('/nonexistent/config.yaml') is False
        assert '配置文件验证失败' in capsys.readouterr().out

    def test_invalid_config(self, capsys):
        """测试无效配置"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("global:\n  log_level: INFO\n")
            config_path = f.name

        try:
            assert validate_config_file(config_path) is False
        finally:
            os.unlink(config_path)


def parse_payload(output: str):
    """从输出中取出健康检查JSON（之前可能有日志行）"""
    return json.loads(output[output.index('{\n  "status"'):])


class TestCheckOnce:
    """单次健康检查测试"""

    @pytest.mark.asyncio
    async def test_healthy(self, config_file, fake_endpoint, store, capsys):
        """测试健康时返回True并输出JSON"""
        with patch('main.build_endpoint', side_effect=fake_endpoint):
            assert await check_once(config_file, 'r42') is True

        body = parse_payload(capsys.readouterr().out)
        assert body['status'] == 'healthy'
        assert [c['name'] for c in body['checkedComponents']] == ['storage', 'activity']
        assert store.config == {'host': 'db-42'}

    @pytest.mark.asyncio
    async def test_unhealthy(self, config_file, fake_endpoint, store, capsys):
        """测试不健康时返回False"""
        store.errors['ping'] = ConnectionError('refused')

        with patch('main.build_endpoint', side_effect=fake_endpoint):
            assert await check_once(config_file) is False

        body = parse_payload(capsys.readouterr().out)
        assert body['status'] == 'unhealthy'
        assert body['alerts'][0]['kind'] == 'probe_unavailable'

    @pytest.mark.asyncio
    async def test_invalid_config(self, capsys):
        """测试配置无效时返回False"""
        assert await check_once('/nonexistent/config.yaml') is False
        assert '健康检查失败' in capsys.readouterr().out


class TestMain:
    """主函数测试"""

    @pytest.mark.asyncio
    async def test_no_config_file(self):
        """测试没有指定配置文件"""
        with patch('sys.argv', ['tenant-health']):
            with pytest.raises(SystemExit) as exc_info:
                await main()

        assert exc_info.value.code == 1

    @pytest.mark.asyncio
    async def test_validate_mode(self, config_file):
        """测试验证模式"""
        with patch('sys.argv', ['tenant-health', '--validate', config_file]):
            with pytest.raises(SystemExit) as exc_info:
                await main()

        assert exc_info.value.code == 0

    @pytest.mark.asyncio
    async def test_check_once_mode(self, config_file):
        """测试单次检查模式的退出码"""
        with patch('sys.argv', ['tenant-health', '--check-once', '--tenant', 'r42', config_file]), \
                patch('main.check_once', new=AsyncMock(return_value=False)) as mock_check:
            with pytest.raises(SystemExit) as exc_info:
                await main()

        assert exc_info.value.code == 1
        mock_check.assert_awaited_once_with(config_file, 'r42')

    @pytest.mark.asyncio
    async def test_config_error(self):
        """测试配置错误时退出"""
        with patch('sys.argv', ['tenant-health', '/nonexistent/config.yaml']), \
                patch('main.signal.signal'):
            with pytest.raises(SystemExit) as exc_info:
                await main()

        assert exc_info.value.code == 1
