"""自定义异常类和错误代码"""

import traceback
from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime


class ErrorCode(Enum):
    """错误代码枚举"""
    # 通用错误 (1000-1999)
    UNKNOWN_ERROR = 1000
    INITIALIZATION_ERROR = 1001
    VALIDATION_ERROR = 1002

    # 配置错误 (2000-2999)
    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002

    # 探测错误 (3000-3999)
    PROBE_INITIALIZATION_ERROR = 3000
    CONNECTION_ERROR = 3001
    TIMEOUT_ERROR = 3002
    INVALID_RESPONSE = 3003
    SERVICE_UNAVAILABLE = 3004

    # 租户错误 (4000-4999)
    TENANT_NOT_FOUND = 4000
    TENANT_CLIENT_ERROR = 4001

    # 告警规则错误 (5000-5999)
    ALERT_RULE_ERROR = 5000

    # 聚合错误 (6000-6999)
    AGGREGATION_ERROR = 6000


class TenantHealthError(Exception):
    """租户健康监控系统基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'traceback': traceback.format_exc() if self.cause else None
        }

    def format_error(self) -> str:
        """格式化错误信息"""
        error_msg = f"[{self.error_code.name}] {self.message}"
        if self.details:
            details_str = ", ".join([f"{k}={v}" for k, v in self.details.items()])
            error_msg += f" (详情: {details_str})"
        if self.cause:
            error_msg += f" (原因: {str(self.cause)})"
        return error_msg


class ConfigError(TenantHealthError):
    """配置相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_VALIDATION_ERROR,
        config_path: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if config_path:
            details['config_path'] = config_path
        kwargs.setdefault('recoverable', False)
        super().__init__(message, error_code, details, **kwargs)


class ProbeError(TenantHealthError):
    """探测器相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONNECTION_ERROR,
        probe_name: Optional[str] = None,
        probe_type: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if probe_name:
            details['probe_name'] = probe_name
        if probe_type:
            details['probe_type'] = probe_type
        super().__init__(message, error_code, details, **kwargs)


class TenantResolutionError(TenantHealthError):
    """租户解析异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.TENANT_NOT_FOUND,
        tenant_id: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if tenant_id:
            details['tenant_id'] = tenant_id
        super().__init__(message, error_code, details, **kwargs)


class AlertRuleError(ConfigError):
    """告警规则配置异常"""

    def __init__(self, message: str, metric: Optional[str] = None, **kwargs):
        details = kwargs.pop('details', {})
        if metric:
            details['metric'] = metric
        super().__init__(
            message,
            ErrorCode.ALERT_RULE_ERROR,
            details=details,
            **kwargs
        )
