#!/usr/bin/env python3
"""
多租户健康监控服务主程序入口

加载配置、启动健康检查HTTP端点，处理信号实现优雅关闭。
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Optional, Dict, Any

from aiohttp import web

from tenant_health import __version__
from tenant_health.api.health_handler import DEFAULT_HEALTH_PATH, build_endpoint, create_app
from tenant_health.services.config_manager import ConfigManager
from tenant_health.services.request_tracker import RequestTracker
from tenant_health.services.tenant_client import TenantContext
from tenant_health.utils.exceptions import TenantHealthError, ConfigError
from tenant_health.utils.log_manager import log_manager, get_logger

DEFAULT_HOST = '0.0.0.0'
DEFAULT_PORT = 8080


class TenantHealthApp:
    """健康监控服务应用程序类"""

    def __init__(self, config_path: str, overrides: Optional[Dict[str, Any]] = None):
        """初始化应用程序

        Args:
            config_path: 配置文件路径
            overrides: 命令行覆盖项（log_level、log_file、host、port）
        """
        self.config_path = config_path
        self.overrides = overrides or {}
        self.logger: Optional[logging.Logger] = None
        self.is_running = False
        self.shutdown_event = asyncio.Event()

        self.config_manager: Optional[ConfigManager] = None
        self.request_tracker = RequestTracker()
        self.web_app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.host = DEFAULT_HOST
        self.port = DEFAULT_PORT

    async def initialize(self):
        """初始化应用程序组件"""
        try:
            self.config_manager = ConfigManager(self.config_path)
            config = self.config_manager.load_config()

            self._configure_logging(config.get('global') or {})
            self.logger = get_logger('main')
            self.logger.info("开始初始化多租户健康监控服务")

            server_config = self.config_manager.get_server_config()
            self.host = self.overrides.get('host') or server_config.get('host', DEFAULT_HOST)
            self.port = self.overrides.get('port') or server_config.get('port', DEFAULT_PORT)

            endpoint = build_endpoint(self.config_manager, request_tracker=self.request_tracker)
            self.web_app = create_app(endpoint, request_tracker=self.request_tracker,
                                      path=server_config.get('path', DEFAULT_HEALTH_PATH))

            self.logger.info(
                f"应用程序组件初始化完成: {len(endpoint.probes)} 个探测器, "
                f"{len(endpoint.rules)} 条告警规则, 环境 {endpoint.environment}")

        except Exception as e:
            if self.logger:
                self.logger.error(f"应用程序初始化失败: {e}", exc_info=True)
            else:
                print(f"应用程序初始化失败: {e}", file=sys.stderr)
            raise

    def _configure_logging(self, global_config: Dict[str, Any]):
        """配置日志系统

        Args:
            global_config: 全局配置
        """
        log_file = self.overrides.get('log_file') or global_config.get('log_file')
        log_config = {
            'log_level': self.overrides.get('log_level') or global_config.get('log_level', 'INFO'),
            'log_format': global_config.get('log_format', 'text'),
            'enable_console': True,
            'enable_file': bool(log_file)
        }

        if log_file:
            log_config['log_file'] = log_file
            log_config['max_file_size'] = global_config.get('max_log_size', 10 * 1024 * 1024)
            log_config['backup_count'] = global_config.get('log_backup_count', 5)

        if global_config.get('error_log_file'):
            log_config['error_log_file'] = global_config['error_log_file']

        log_manager.configure(log_config)

    async def start(self):
        """启动HTTP服务并等待关闭信号"""
        if self.is_running:
            self.logger.warning("应用程序已经在运行")
            return

        try:
            self.is_running = True
            self.runner = web.AppRunner(self.web_app)
            await self.runner.setup()
            site = web.TCPSite(self.runner, self.host, self.port)
            await site.start()

            self.logger.info(f"健康检查端点已启动: http://{self.host}:{self.port}")

            await self.shutdown_event.wait()

        except Exception as e:
            self.logger.error(f"应用程序运行异常: {e}", exc_info=True)
            raise
        finally:
            await self.stop()

    async def stop(self):
        """停止应用程序"""
        if not self.is_running:
            return

        self.logger.info("正在停止健康监控服务...")
        self.is_running = False

        try:
            if self.runner:
                await self.runner.cleanup()
                self.runner = None

            self.logger.info("健康监控服务已停止")
            log_manager.cleanup()

        except Exception as e:
            self.logger.error(f"停止应用程序时发生异常: {e}", exc_info=True)

    def shutdown(self):
        """触发应用程序关闭"""
        if self.logger:
            self.logger.info("收到关闭信号")
        self.shutdown_event.set()

    def get_status(self) -> Dict[str, Any]:
        """获取应用程序状态"""
        return {
            'is_running': self.is_running,
            'config_path': self.config_path,
            'listen': f"{self.host}:{self.port}",
            'request_stats': self.request_tracker.get_stats(),
            'tracked_requests': len(self.request_tracker)
        }


# 全局应用程序实例
app: Optional[TenantHealthApp] = None


def signal_handler(signum, frame):
    """信号处理器"""
    signal_name = signal.Signals(signum).name
    print(f"\n收到信号 {signal_name} ({signum})")

    if app:
        app.shutdown()
    else:
        print("应用程序未初始化，直接退出")
        sys.exit(0)


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='tenant-health',
        description='多租户健康监控服务 - 探测租户存储和依赖服务并给出告警分级',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s config.yaml                          # 启动健康检查端点
  %(prog)s --validate config.yaml               # 验证配置文件格式
  %(prog)s --check-once config.yaml             # 为默认租户执行一次健康检查
  %(prog)s --check-once --tenant r1 config.yaml # 为指定租户执行一次健康检查
  %(prog)s --version                            # 显示版本信息

支持的探测器类型:
  storage, activity, connections, cache, http, requests, host

配置文件格式请参考 config/example.yaml
        """
    )

    parser.add_argument(
        'config_file',
        nargs='?',
        help='YAML配置文件路径'
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--validate',
        action='store_true',
        help='验证配置文件格式并退出'
    )

    parser.add_argument(
        '--check-once',
        action='store_true',
        help='执行一次健康检查，输出JSON后退出'
    )

    parser.add_argument(
        '--tenant',
        help='--check-once 使用的租户ID（默认使用共享存储的默认租户）'
    )

    parser.add_argument(
        '--host',
        help='监听地址（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--port',
        type=int,
        help='监听端口（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='设置日志级别（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--log-file',
        help='日志文件路径（覆盖配置文件设置）'
    )

    return parser


def validate_config_file(config_path: str) -> bool:
    """验证配置文件

    Args:
        config_path: 配置文件路径

    Returns:
        验证是否成功
    """
    try:
        print(f"正在验证配置文件: {config_path}")

        config_manager = ConfigManager(config_path)
        config = config_manager.load_config()

        tenants = config_manager.get_tenants_config()
        probes = config_manager.get_probes_config()
        rules = config_manager.get_alert_rules()

        print("✅ 配置文件验证成功!")
        print(f"   - 默认存储: {'已配置' if config.get('storage') else '未配置'}")
        print(f"   - 独立租户数量: {len(tenants)}")
        print(f"   - 告警规则数量: {len(rules)}")

        if probes is None:
            print("   - 探测器: 使用内置集合")
        else:
            print("   - 配置的探测器:")
            for probe_config in probes:
                print(f"     * {probe_config['name']} ({probe_config['type']})")

        return True

    except Exception as e:
        print(f"❌ 配置文件验证失败: {e}")
        return False


async def check_once(config_path: str, tenant_id: Optional[str] = None) -> bool:
    """执行一次健康检查并打印JSON结果

    Args:
        config_path: 配置文件路径
        tenant_id: 租户ID，None表示默认租户

    Returns:
        整体状态是否健康
    """
    try:
        config_manager = ConfigManager(config_path)
        config_manager.load_config()

        endpoint = build_endpoint(config_manager)
        response = await endpoint.run_check(TenantContext(restaurant_id=tenant_id))

        print(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))
        return response.http_status == 200

    except Exception as e:
        print(f"❌ 健康检查失败: {e}")
        return False


async def main():
    """主函数"""
    global app

    parser = create_argument_parser()
    args = parser.parse_args()

    if not args.config_file:
        parser.print_help()
        sys.exit(1)

    config_path = args.config_file

    if args.validate:
        success = validate_config_file(config_path)
        sys.exit(0 if success else 1)

    if args.check_once:
        success = await check_once(config_path, args.tenant)
        sys.exit(0 if success else 1)

    try:
        app = TenantHealthApp(config_path, overrides={
            'host': args.host,
            'port': args.port,
            'log_level': args.log_level,
            'log_file': args.log_file
        })

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        await app.initialize()

        print(f"多租户健康监控服务 v{__version__} 已启动")
        print(f"配置文件: {config_path}")
        print("按 Ctrl+C 停止程序")

        await app.start()

    except KeyboardInterrupt:
        print("\n用户中断程序")
    except ConfigError as e:
        print(f"配置错误: {e}", file=sys.stderr)
        sys.exit(1)
    except TenantHealthError as e:
        print(f"健康监控服务错误: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"未预期的错误: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)
    finally:
        if app:
            await app.stop()


def cli():
    """命令行入口"""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
