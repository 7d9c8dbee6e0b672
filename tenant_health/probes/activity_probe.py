"""租户业务活跃度探测器"""

from datetime import datetime, timedelta, timezone

from .base import BaseProbe
from .factory import register_probe
from ..models.health_check import ProbeReading, HealthStatus
from ..services.tenant_client import BaseTenantStore


@register_probe('activity')
class ActivityProbe(BaseProbe):
    """统计最近的订单数、OTP失败次数和活跃用户数"""

    metric_names = ('ordersPerMinute', 'failedOTPs', 'activeUsers')

    def validate_config(self) -> bool:
        """
        验证统计窗口配置

        Returns:
            bool: 配置是否有效
        """
        for key in ('orders_window_seconds', 'otp_window_seconds', 'active_users_window_seconds'):
            value = self.config.get(key)
            if value is not None and (not isinstance(value, int) or value <= 0):
                self.logger.error(f"活跃度探测器配置 {key} 必须是正整数: {value}")
                return False
        return True

    async def probe(self, client: BaseTenantStore) -> ProbeReading:
        now = datetime.now(tz=timezone.utc)
        orders_since = now - timedelta(seconds=self.config.get('orders_window_seconds', 60))
        otp_since = now - timedelta(seconds=self.config.get('otp_window_seconds', 3600))
        users_since = now - timedelta(seconds=self.config.get('active_users_window_seconds', 900))

        orders = await client.count_recent_orders(orders_since)
        failed_otps = await client.count_failed_otps(otp_since)
        active_users = await client.count_active_users(users_since)

        self.logger.debug(
            f"租户 {client.tenant_id} 活跃度: 订单={orders}, OTP失败={failed_otps}, 活跃用户={active_users}")

        return ProbeReading(
            status=HealthStatus.HEALTHY,
            metrics={
                'ordersPerMinute': orders,
                'failedOTPs': failed_otps,
                'activeUsers': active_users,
            }
        )
