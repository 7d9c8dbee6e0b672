"""测试公共夹具"""

import asyncio
from datetime import datetime
from typing import Dict, Any, Optional, Tuple

import pytest

from tenant_health.api.health_handler import HealthEndpoint
from tenant_health.probes import build_probes
from tenant_health.services.request_tracker import RequestTracker
from tenant_health.services.tenant_client import BaseTenantStore, TenantClientFactory


class FakeTenantStore(BaseTenantStore):
    """内存中的租户存储句柄，可以配置延迟和故障"""

    def __init__(self, tenant_id: str = 'default', config: Optional[Dict[str, Any]] = None,
                 restaurant_id: Optional[str] = None, request_tracker: Optional[RequestTracker] = None):
        super().__init__(tenant_id, config or {}, restaurant_id, request_tracker)
        self.ping_result = True
        self.ping_delay = 0.0
        self.orders = 12
        self.failed_otps = 0
        self.active_users = 30
        self.connections: Tuple[int, int] = (10, 100)
        self.cache_result = True
        self.errors: Dict[str, Exception] = {}
        self.closed = False
        self.calls = []

    def _maybe_fail(self, operation: str):
        """errors 模拟连接级故障，只有成功的调用才记录查询样本"""
        self.calls.append(operation)
        if operation in self.errors:
            raise self.errors[operation]
        if self.request_tracker is not None:
            self.request_tracker.record(f"query:{operation}", 1.0, True)

    async def ping(self) -> bool:
        self._maybe_fail('ping')
        if self.ping_delay:
            await asyncio.sleep(self.ping_delay)
        return self.ping_result

    async def count_recent_orders(self, since: datetime) -> int:
        self._maybe_fail('orders')
        return self.orders

    async def count_failed_otps(self, since: datetime) -> int:
        self._maybe_fail('failed_otps')
        return self.failed_otps

    async def count_active_users(self, since: datetime) -> int:
        self._maybe_fail('active_users')
        return self.active_users

    async def connection_stats(self) -> Tuple[int, int]:
        self._maybe_fail('connections')
        return self.connections

    async def ping_cache(self) -> bool:
        self._maybe_fail('cache')
        return self.cache_result

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def store():
    """默认租户的健康存储句柄"""
    return FakeTenantStore()


@pytest.fixture
def store_class(store):
    """总是返回同一个 store 的存储类，供 TenantClientFactory 使用"""
    def factory(tenant_id, config, restaurant_id=None, request_tracker=None):
        store.tenant_id = tenant_id
        store.config = config
        store.restaurant_id = restaurant_id
        store.request_tracker = request_tracker
        return store

    return factory


@pytest.fixture
def fake_endpoint(store_class):
    """替代 build_endpoint：按配置创建端点，但使用内存中的租户存储"""
    def endpoint_for(config_manager, request_tracker=None):
        if request_tracker is None:
            request_tracker = RequestTracker()
        factory = TenantClientFactory(default_storage=config_manager.get_storage_config(),
                                      tenants=config_manager.get_tenants_config(),
                                      store_class=store_class,
                                      request_tracker=request_tracker)
        return HealthEndpoint(factory,
                              build_probes(config_manager.get_probes_config(),
                                           request_tracker=request_tracker),
                              config_manager.get_alert_rules())

    return endpoint_for
