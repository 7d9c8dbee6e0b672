"""HTTP依赖服务探测器"""

import time
from typing import Dict, Any, List

import aiohttp

from .base import BaseProbe, latency_status
from .factory import register_probe
from ..models.health_check import ProbeReading, HealthStatus
from ..services.tenant_client import BaseTenantStore


@register_probe('http')
class HttpDependencyProbe(BaseProbe):
    """探测外部HTTP依赖（例如认证服务、对象存储）的可达性"""

    def __init__(self, name: str, config: Dict[str, Any], **dependencies):
        """
        初始化HTTP依赖探测器

        Args:
            name: 组件名称
            config: 配置，url必填；metric 默认为 "<name>Latency"
        """
        super().__init__(name, config, **dependencies)
        self.metric = config.get('metric', f'{name}Latency')
        self.metric_names = (self.metric,)

    def validate_config(self) -> bool:
        """
        验证HTTP探测器配置

        Returns:
            bool: 配置是否有效
        """
        url = self.config.get('url')
        if not url or not isinstance(url, str):
            self.logger.error("HTTP探测器缺少url配置")
            return False

        if not url.startswith(('http://', 'https://')):
            self.logger.error(f"URL格式无效，必须以http://或https://开头: {url}")
            return False

        method = self.config.get('method', 'GET').upper()
        if method not in ('GET', 'HEAD', 'POST'):
            self.logger.error(f"不支持的HTTP方法: {method}")
            return False

        expected_status = self.config.get('expected_status', [200])
        if isinstance(expected_status, int):
            expected_status = [expected_status]
        if not isinstance(expected_status, list) or not all(
                isinstance(code, int) and 100 <= code <= 599 for code in expected_status):
            self.logger.error(f"expected_status配置无效: {expected_status}")
            return False

        return True

    def _expected_status(self) -> List[int]:
        expected_status = self.config.get('expected_status', [200])
        if isinstance(expected_status, int):
            return [expected_status]
        return expected_status

    async def probe(self, client: BaseTenantStore) -> ProbeReading:
        url = self.config['url']
        method = self.config.get('method', 'GET').upper()
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())

        start = time.perf_counter()
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(method, url, headers=self.config.get('headers', {})) as response:
                status_code = response.status

        latency_ms = round((time.perf_counter() - start) * 1000, 2)

        if status_code not in self._expected_status():
            self.logger.warning(f"依赖 {self.name} 返回非预期状态码: {status_code}")
            return ProbeReading(
                status=HealthStatus.UNHEALTHY,
                metrics={self.metric: latency_ms},
                message=f"HTTP状态码不符合期望: {status_code}"
            )

        return ProbeReading(
            status=latency_status(latency_ms, self.config.get('degraded_latency_ms', 500)),
            metrics={self.metric: latency_ms}
        )
