"""工具模块"""

from .exceptions import (
    TenantHealthError, ErrorCode, ConfigError, ProbeError, TenantResolutionError, AlertRuleError
)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'TenantHealthError', 'ErrorCode', 'ConfigError', 'ProbeError', 'TenantResolutionError',
    'AlertRuleError', 'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
