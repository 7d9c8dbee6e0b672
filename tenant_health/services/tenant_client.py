"""租户存储客户端

根据租户上下文解析出该租户的存储配置，并返回绑定到该存储的数据访问句柄。
句柄只暴露健康探测需要的原语，所有阻塞调用都可以被调用方超时放弃。
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional, List, Mapping, Tuple, Type

import aiomysql
import jwt
import redis.asyncio as redis

from ..services.request_tracker import RequestTracker
from ..utils.exceptions import ProbeError, TenantResolutionError, ErrorCode
from ..utils.log_manager import get_logger

logger = get_logger('tenant_client')

DEFAULT_TENANT_ID = 'default'
TENANT_HEADER = 'X-Tenant-ID'
SLOW_QUERY_MS = 1000


@dataclass
class TenantContext:
    """租户上下文，空上下文表示默认/共享租户"""
    user_id: Optional[str] = None
    restaurant_id: Optional[str] = None
    role: Optional[str] = None
    permissions: List[str] = field(default_factory=list)

    @property
    def tenant_id(self) -> str:
        return self.restaurant_id or DEFAULT_TENANT_ID

    @property
    def is_default(self) -> bool:
        return not self.restaurant_id


def extract_tenant_context(auth_token: Optional[str]) -> TenantContext:
    """
    从JWT令牌中提取租户上下文

    端点本身不做鉴权，这里只读取载荷，不校验签名。

    Args:
        auth_token: JWT令牌

    Returns:
        TenantContext: 租户上下文，令牌无效时返回空上下文
    """
    if not auth_token:
        return TenantContext()

    try:
        payload = jwt.decode(auth_token, options={'verify_signature': False})
    except jwt.InvalidTokenError as e:
        logger.warning(f"解析租户令牌失败: {e}")
        return TenantContext()

    permissions = payload.get('permissions') or []
    if isinstance(permissions, str):
        permissions = [permissions]
    restaurant_id = payload.get('restaurant_id')
    return TenantContext(
        user_id=payload.get('sub'),
        restaurant_id=str(restaurant_id) if restaurant_id is not None else None,
        role=payload.get('role'),
        permissions=list(permissions)
    )


def resolve_tenant_context(headers: Mapping[str, str]) -> TenantContext:
    """
    从请求头解析租户上下文

    优先使用 X-Tenant-ID 请求头，其次使用 Bearer 令牌。

    Args:
        headers: 请求头

    Returns:
        TenantContext: 租户上下文
    """
    tenant_id = (headers.get(TENANT_HEADER) or '').strip()
    if tenant_id:
        return TenantContext(restaurant_id=tenant_id)

    auth_header = headers.get('Authorization') or ''
    token = auth_header[len('Bearer '):].strip() if auth_header.startswith('Bearer ') else None
    return extract_tenant_context(token)


class BaseTenantStore(ABC):
    """租户存储句柄抽象基类"""

    def __init__(self, tenant_id: str, config: Dict[str, Any],
                 restaurant_id: Optional[str] = None,
                 request_tracker: Optional[RequestTracker] = None):
        """
        初始化租户存储句柄

        Args:
            tenant_id: 租户标识
            config: 存储配置
            restaurant_id: 用于过滤租户数据的餐厅ID，None表示不过滤
            request_tracker: 查询耗时样本的记录目标，None表示不记录
        """
        self.tenant_id = tenant_id
        self.config = config
        self.restaurant_id = restaurant_id
        self.request_tracker = request_tracker

    @abstractmethod
    async def ping(self) -> bool:
        """检查存储连通性"""

    @abstractmethod
    async def count_recent_orders(self, since: datetime) -> int:
        """统计指定时间之后创建的订单数"""

    @abstractmethod
    async def count_failed_otps(self, since: datetime) -> int:
        """统计指定时间之后失败的OTP登录次数"""

    @abstractmethod
    async def count_active_users(self, since: datetime) -> int:
        """统计指定时间之后登录过的用户数"""

    @abstractmethod
    async def connection_stats(self) -> Tuple[int, int]:
        """返回 (当前连接数, 最大连接数)"""

    @abstractmethod
    async def ping_cache(self) -> bool:
        """检查租户缓存连通性"""

    @abstractmethod
    async def close(self) -> None:
        """释放句柄持有的连接"""

    def get_timeout(self) -> float:
        """
        获取连接超时配置

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 5)


class MySQLTenantStore(BaseTenantStore):
    """基于MySQL（aiomysql）和Redis的租户存储句柄"""

    def __init__(self, tenant_id: str, config: Dict[str, Any],
                 restaurant_id: Optional[str] = None,
                 request_tracker: Optional[RequestTracker] = None):
        super().__init__(tenant_id, config, restaurant_id, request_tracker)
        self.slow_query_ms = config.get('slow_query_ms', SLOW_QUERY_MS)
        self._pool: Optional[aiomysql.Pool] = None
        self._pool_lock = asyncio.Lock()
        self._cache_client: Optional[redis.Redis] = None
        self.logger = get_logger(f'tenant_store.{tenant_id}')

    async def _get_pool(self) -> aiomysql.Pool:
        """
        获取连接池，首次调用时创建

        同一次健康检查中的多个探测器并发共享这个池。
        """
        async with self._pool_lock:
            if self._pool is None:
                host = self.config.get('host', 'localhost')
                port = self.config.get('port', 3306)
                database = self.config.get('database', '')
                self.logger.debug(f"创建MySQL连接池: {host}:{port}/{database}")
                self._pool = await aiomysql.create_pool(
                    host=host,
                    port=port,
                    user=self.config.get('username', 'root'),
                    password=self.config.get('password', ''),
                    db=database,
                    minsize=0,
                    maxsize=self.config.get('pool_size', 5),
                    connect_timeout=self.get_timeout(),
                    autocommit=True
                )
            return self._pool

    async def _fetch_row(self, operation: str, sql: str, params: Tuple = ()) -> Tuple:
        """
        执行查询并返回第一行

        查询耗时和成败记录到请求跟踪器，样本名为 "query:<operation>"。
        建立连接失败不算查询样本，由存储探测器反映。
        """
        pool = await self._get_pool()
        async with pool.acquire() as connection:
            async with connection.cursor() as cursor:
                start = time.perf_counter()
                try:
                    await cursor.execute(sql, params)
                    row = await cursor.fetchone()
                except Exception as e:
                    duration_ms = (time.perf_counter() - start) * 1000
                    self.logger.error(f"查询 {operation} 失败 ({duration_ms:.1f}ms): {e}")
                    self._record_query(operation, duration_ms, False, error=str(e))
                    raise
                duration_ms = (time.perf_counter() - start) * 1000

        if duration_ms >= self.slow_query_ms:
            self.logger.warning(f"慢查询 {operation}: {duration_ms:.1f}ms (阈值 {self.slow_query_ms}ms)")
        self._record_query(operation, duration_ms, True)

        if row is None:
            raise ProbeError(f"查询未返回结果: {sql}", ErrorCode.INVALID_RESPONSE)
        return row

    def _record_query(self, operation: str, duration_ms: float, success: bool, **metadata) -> None:
        if self.request_tracker is None:
            return
        metadata['tenant_id'] = self.tenant_id
        self.request_tracker.record(f"query:{operation}", duration_ms, success, metadata=metadata)

    def _tenant_filter(self) -> Tuple[str, Tuple]:
        if self.restaurant_id is None:
            return '', ()
        return ' AND restaurant_id = %s', (self.restaurant_id,)

    async def ping(self) -> bool:
        row = await self._fetch_row('ping', "SELECT 1")
        return row[0] == 1

    async def count_recent_orders(self, since: datetime) -> int:
        clause, params = self._tenant_filter()
        row = await self._fetch_row(
            'orders',
            "SELECT COUNT(*) FROM orders WHERE created_at >= %s" + clause,
            (since,) + params
        )
        return int(row[0])

    async def count_failed_otps(self, since: datetime) -> int:
        clause, params = self._tenant_filter()
        row = await self._fetch_row(
            'failed_otps',
            "SELECT COUNT(*) FROM audit_logs WHERE action = 'LOGIN' AND created_at >= %s"
            " AND JSON_UNQUOTE(JSON_EXTRACT(metadata, '$.event')) = 'otp_failed'" + clause,
            (since,) + params
        )
        return int(row[0])

    async def count_active_users(self, since: datetime) -> int:
        # users表不区分租户
        row = await self._fetch_row(
            'active_users',
            "SELECT COUNT(*) FROM users WHERE last_login >= %s",
            (since,)
        )
        return int(row[0])

    async def connection_stats(self) -> Tuple[int, int]:
        connected = await self._fetch_row('threads_connected', "SHOW GLOBAL STATUS LIKE 'Threads_connected'")
        maximum = await self._fetch_row('max_connections', "SHOW VARIABLES LIKE 'max_connections'")
        try:
            return int(connected[1]), int(maximum[1])
        except (IndexError, TypeError, ValueError) as e:
            raise ProbeError(f"连接数统计结果格式错误: {e}", ErrorCode.INVALID_RESPONSE, cause=e)

    def _get_cache_client(self) -> redis.Redis:
        cache_config = self.config.get('cache')
        if not cache_config:
            raise ProbeError(f"租户 {self.tenant_id} 未配置缓存",
                             ErrorCode.SERVICE_UNAVAILABLE, recoverable=False)

        if self._cache_client is None:
            self._cache_client = redis.Redis(
                host=cache_config.get('host', 'localhost'),
                port=cache_config.get('port', 6379),
                db=cache_config.get('database', 0),
                password=cache_config.get('password'),
                socket_timeout=self.get_timeout(),
                socket_connect_timeout=self.get_timeout(),
                decode_responses=True
            )
        return self._cache_client

    async def ping_cache(self) -> bool:
        client = self._get_cache_client()
        return bool(await client.ping())

    async def close(self) -> None:
        if self._pool is not None:
            try:
                self._pool.close()
                await self._pool.wait_closed()
                self.logger.debug(f"租户 {self.tenant_id} 的MySQL连接池已关闭")
            except Exception as e:
                self.logger.warning(f"关闭MySQL连接池时出错: {e}")
            self._pool = None

        if self._cache_client is not None:
            try:
                await self._cache_client.aclose()
            except Exception as e:
                self.logger.warning(f"关闭Redis客户端连接时出错: {e}")
            self._cache_client = None


class TenantClientFactory:
    """租户客户端工厂，每次调用返回一个新的租户存储句柄"""

    def __init__(self, default_storage: Optional[Dict[str, Any]] = None,
                 tenants: Optional[Dict[str, Dict[str, Any]]] = None,
                 store_class: Type[BaseTenantStore] = MySQLTenantStore,
                 request_tracker: Optional[RequestTracker] = None):
        """
        初始化工厂

        Args:
            default_storage: 默认（共享）存储配置
            tenants: 独立部署存储的租户配置，租户ID -> {'storage': {...}}
            store_class: 存储句柄实现类
            request_tracker: 传给存储句柄，记录查询耗时
        """
        self.default_storage = default_storage
        # YAML 中的数字键（如 42:）按字符串匹配请求中的租户ID
        self.tenants = {str(tenant_id): config for tenant_id, config in (tenants or {}).items()}
        self.store_class = store_class
        self.request_tracker = request_tracker

    def create_client(self, context: TenantContext) -> BaseTenantStore:
        """
        创建绑定到租户存储的句柄

        Args:
            context: 租户上下文

        Returns:
            BaseTenantStore: 租户存储句柄

        Raises:
            TenantResolutionError: 无法为该租户找到存储配置
        """
        tenant_id = context.tenant_id

        tenant_config = self.tenants.get(tenant_id) if not context.is_default else None
        if tenant_config is not None:
            logger.debug(f"租户 {tenant_id} 使用独立存储")
            return self.store_class(tenant_id, tenant_config['storage'],
                                    restaurant_id=context.restaurant_id,
                                    request_tracker=self.request_tracker)

        if self.default_storage is None:
            raise TenantResolutionError(f"租户 '{tenant_id}' 没有可用的存储配置",
                                        tenant_id=tenant_id)

        logger.debug(f"租户 {tenant_id} 使用共享存储")
        return self.store_class(tenant_id, self.default_storage,
                                restaurant_id=context.restaurant_id,
                                request_tracker=self.request_tracker)
