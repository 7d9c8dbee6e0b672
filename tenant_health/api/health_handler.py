"""健康检查HTTP端点

解析租户上下文，创建租户存储句柄和监控服务，依次执行健康检查和告警求值，
并把结果映射为HTTP状态码。端点总是返回结构化的JSON。
"""

import asyncio
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List, Sequence, Iterable

from aiohttp import web

from .. import __version__
from ..alerts.rules import AlertRule
from ..models.health_check import Alert, HealthCheckResult, HealthStatus
from ..probes import BaseProbe, build_probes
from ..services.config_manager import ConfigManager
from ..services.monitoring_service import MonitoringService
from ..services.request_tracker import RequestTracker
from ..services.tenant_client import TenantClientFactory, TenantContext, resolve_tenant_context
from ..utils.log_manager import get_logger

logger = get_logger('api.health')

RESPONSE_SCHEMA_VERSION = 1
DEFAULT_HEALTH_PATH = '/api/health'
DEFAULT_REQUEST_TIMEOUT = 15.0


def status_code_for(status: HealthStatus) -> int:
    """healthy 返回200，其余返回503"""
    return 200 if status == HealthStatus.HEALTHY else 503


def error_payload(error: str) -> Dict[str, Any]:
    """未捕获异常时返回的最小响应体"""
    return {
        'status': HealthStatus.UNHEALTHY.value,
        'error': error,
        'timestamp': datetime.now(tz=timezone.utc).isoformat()
    }


@dataclass
class HealthResponse:
    """健康检查响应结构，字段名是对外兼容契约"""
    result: HealthCheckResult
    alerts: List[Alert]
    version: str
    environment: str
    schema_version: int = field(default=RESPONSE_SCHEMA_VERSION)

    @classmethod
    def from_result(cls, result: HealthCheckResult, alerts: List[Alert],
                    version: str, environment: str) -> 'HealthResponse':
        return cls(result=result, alerts=list(alerts), version=version, environment=environment)

    @property
    def status(self) -> HealthStatus:
        return self.result.status

    @property
    def http_status(self) -> int:
        return status_code_for(self.status)

    def to_dict(self) -> Dict[str, Any]:
        data = self.result.to_dict()
        data.update({
            'alerts': [alert.to_dict() for alert in self.alerts],
            'version': self.version,
            'environment': self.environment,
            'schemaVersion': self.schema_version,
        })
        return data


class HealthEndpoint:
    """健康检查端点"""

    def __init__(self, client_factory: TenantClientFactory,
                 probes: Sequence[BaseProbe],
                 rules: Sequence[AlertRule],
                 version: str = __version__,
                 environment: str = 'development',
                 request_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        """
        初始化端点

        Args:
            client_factory: 租户客户端工厂
            probes: 探测器列表（无状态，可在请求之间共享）
            rules: 告警规则表
            version: 服务版本号
            environment: 运行环境
            request_timeout: 单次请求的总超时（秒）
        """
        self.client_factory = client_factory
        self.probes = list(probes)
        self.rules = list(rules)
        self.version = version
        self.environment = environment
        self.request_timeout = request_timeout

    async def run_check(self, context: TenantContext) -> HealthResponse:
        """
        为指定租户执行健康检查和告警求值

        Args:
            context: 租户上下文

        Returns:
            HealthResponse: 响应结构

        Raises:
            TenantResolutionError: 租户无法解析
        """
        client = self.client_factory.create_client(context)
        try:
            service = MonitoringService(client, self.probes, self.rules)
            result = await asyncio.wait_for(service.get_health_check(), timeout=self.request_timeout)
            alerts = service.check_alerts(result.metrics)
        finally:
            await client.close()

        if alerts:
            logger.warning(
                f"租户 {context.tenant_id} 产生 {len(alerts)} 条告警: "
                f"{', '.join(f'{a.metric}({a.severity.value})' for a in alerts)}")

        return HealthResponse.from_result(result, alerts, self.version, self.environment)

    async def handle(self, request: web.Request) -> web.Response:
        """处理 GET 健康检查请求"""
        try:
            context = resolve_tenant_context(request.headers)
            response = await self.run_check(context)
            return web.json_response(response.to_dict(), status=response.http_status)

        except asyncio.TimeoutError:
            logger.error(f"健康检查超过总超时 {self.request_timeout}s")
            return web.json_response(
                error_payload(f"Health check exceeded {self.request_timeout}s"), status=503)
        except Exception as e:
            logger.error(f"健康检查错误: {e}", exc_info=True)
            return web.json_response(error_payload(str(e) or type(e).__name__), status=503)


def request_tracking_middleware(tracker: RequestTracker, skip_paths: Iterable[str] = ()):
    """
    创建记录请求耗时的中间件

    只有 5xx 计为失败请求。健康检查路由的 503 表示检查结论，
    它所在的 skip_paths 不进入统计。

    Args:
        tracker: 请求跟踪器
        skip_paths: 不记录样本的路由

    Returns:
        aiohttp中间件
    """
    skipped = frozenset(skip_paths)

    @web.middleware
    async def track_request(request: web.Request, handler):
        if request.path in skipped:
            response = await handler(request)
            logger.debug(f"健康检查请求: {request.path} {response.status}")
            return response

        start = time.perf_counter()
        status_code = 500
        try:
            response = await handler(request)
            status_code = response.status
            return response
        except web.HTTPException as e:
            status_code = e.status
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            tracker.record(
                f"{request.method} {request.path}",
                duration_ms,
                status_code < 500,
                metadata={'status_code': status_code, 'user_agent': request.headers.get('User-Agent')}
            )
            logger.info(f"请求完成: {request.method} {request.path} {status_code} {duration_ms:.1f}ms")

    return track_request


def build_endpoint(config_manager: ConfigManager,
                   request_tracker: Optional[RequestTracker] = None,
                   client_factory: Optional[TenantClientFactory] = None) -> HealthEndpoint:
    """
    根据已加载的配置创建端点

    Args:
        config_manager: 已调用过 load_config 的配置管理器
        request_tracker: 请求跟踪器，租户存储的查询样本写入其中，requests 探测器从中读取统计
        client_factory: 租户客户端工厂，默认按配置创建

    Returns:
        HealthEndpoint: 端点实例
    """
    global_config = config_manager.get_global_config()
    if request_tracker is None:
        request_tracker = RequestTracker()

    if client_factory is None:
        client_factory = TenantClientFactory(
            default_storage=config_manager.get_storage_config(),
            tenants=config_manager.get_tenants_config(),
            request_tracker=request_tracker
        )

    probes = build_probes(config_manager.get_probes_config(), request_tracker=request_tracker)

    return HealthEndpoint(
        client_factory=client_factory,
        probes=probes,
        rules=config_manager.get_alert_rules(),
        version=str(global_config.get('version', __version__)),
        environment=global_config.get('environment') or os.environ.get('APP_ENV', 'development'),
        request_timeout=global_config.get('request_timeout', DEFAULT_REQUEST_TIMEOUT)
    )


def create_app(endpoint: HealthEndpoint,
               request_tracker: Optional[RequestTracker] = None,
               path: str = DEFAULT_HEALTH_PATH) -> web.Application:
    """
    创建aiohttp应用

    Args:
        endpoint: 健康检查端点
        request_tracker: 请求跟踪器，提供时安装请求跟踪中间件（不统计健康检查路由）
        path: 健康检查路由

    Returns:
        web.Application: 应用实例
    """
    middlewares = []
    if request_tracker is not None:
        middlewares.append(request_tracking_middleware(request_tracker, skip_paths=(path,)))

    app = web.Application(middlewares=middlewares)
    app.router.add_get(path, endpoint.handle)
    return app
