"""请求耗时跟踪

在内存中保留最近的请求样本，供请求统计探测器计算错误率和平均响应时间。
样本只存在于进程内存中，不做持久化。
"""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List


@dataclass
class RequestSample:
    """单次请求/操作的耗时样本"""
    operation: str
    duration_ms: float
    success: bool
    recorded_at: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict)


class RequestTracker:
    """请求耗时跟踪器"""

    def __init__(self, history_size: int = 1000, window_seconds: float = 60.0):
        """
        初始化跟踪器

        Args:
            history_size: 保留的样本数量上限
            window_seconds: 统计窗口（秒）
        """
        self.history_size = history_size
        self.window_seconds = window_seconds
        self._samples: deque = deque(maxlen=history_size)

    def record(self, operation: str, duration_ms: float, success: bool,
               metadata: Optional[Dict[str, Any]] = None,
               recorded_at: Optional[float] = None) -> RequestSample:
        """
        记录一个样本

        Args:
            operation: 操作名称，例如 "GET /api/orders"
            duration_ms: 耗时（毫秒）
            success: 是否成功
            metadata: 附加信息
            recorded_at: 记录时间戳，默认当前时间

        Returns:
            RequestSample: 记录的样本
        """
        sample = RequestSample(
            operation=operation,
            duration_ms=duration_ms,
            success=success,
            recorded_at=recorded_at if recorded_at is not None else time.time(),
            metadata=metadata or {}
        )
        self._samples.append(sample)
        return sample

    def recent_samples(self, now: Optional[float] = None) -> List[RequestSample]:
        """返回统计窗口内的样本"""
        now = now if now is not None else time.time()
        cutoff = now - self.window_seconds
        return [sample for sample in self._samples if sample.recorded_at > cutoff]

    def get_stats(self, operation_filter: str = 'menu-parser',
                  now: Optional[float] = None) -> Dict[str, float]:
        """
        计算窗口内的统计值

        Args:
            operation_filter: 单独统计平均耗时的操作名子串
            now: 当前时间戳

        Returns:
            Dict[str, float]: error_rate（百分比）、avg_duration_ms、filtered_avg_duration_ms
        """
        samples = self.recent_samples(now)
        if not samples:
            return {'error_rate': 0.0, 'avg_duration_ms': 0.0, 'filtered_avg_duration_ms': 0.0}

        failed = sum(1 for sample in samples if not sample.success)
        filtered = [sample.duration_ms for sample in samples if operation_filter in sample.operation]

        return {
            'error_rate': round(failed / len(samples) * 100, 2),
            'avg_duration_ms': round(sum(sample.duration_ms for sample in samples) / len(samples)),
            'filtered_avg_duration_ms': round(sum(filtered) / len(filtered)) if filtered else 0.0,
        }

    def clear(self) -> None:
        """清空样本"""
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)
