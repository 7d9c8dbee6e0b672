"""
日志管理器模块

提供统一的日志记录功能，支持控制台输出、轮转日志文件、
独立的错误日志文件以及JSON格式的结构化日志。
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List
from enum import Enum


class LogLevel(Enum):
    """日志级别枚举"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


# LogRecord自带的属性，不作为extra字段输出
_RESERVED_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """JSON行格式化器，每条日志附带服务名"""

    def __init__(self, service: str, datefmt: Optional[str] = None):
        super().__init__(datefmt=datefmt)
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname.lower(),
            'logger': record.name,
            'service': self.service,
            'message': record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS and not key.startswith('_'):
                payload[key] = value

        if record.exc_info:
            payload['stack'] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class LogManager:
    """
    日志管理器类

    提供统一的日志记录功能，支持：
    - 控制台日志输出
    - 日志文件轮转
    - 错误级别日志单独落盘
    - 文本或JSON格式
    """

    _instance: Optional['LogManager'] = None
    _initialized: bool = False

    def __new__(cls) -> 'LogManager':
        """单例模式实现"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """初始化日志管理器"""
        if self._initialized:
            return

        self._loggers: Dict[str, logging.Logger] = {}
        self._default_format = (
            '%(asctime)s - %(name)s - %(levelname)s - '
            '[%(filename)s:%(lineno)d] - %(message)s'
        )
        self._console_format = (
            '%(asctime)s - %(levelname)s - %(message)s'
        )
        self._date_format = '%Y-%m-%d %H:%M:%S'

        # 默认配置
        self._log_level = LogLevel.INFO
        self._log_format = 'text'
        self._service_name = 'tenant-health'
        self._log_file: Optional[str] = None
        self._error_log_file: Optional[str] = None
        self._max_file_size = 10 * 1024 * 1024  # 10MB
        self._backup_count = 5
        self._enable_console = True
        self._enable_file = False

        self._initialized = True

    def configure(self, config: Dict[str, Any]) -> None:
        """
        配置日志管理器

        Args:
            config: 日志配置字典，包含以下可选键：
                - log_level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                - log_format: text 或 json
                - service_name: JSON日志中的服务名
                - log_file: 日志文件路径
                - error_log_file: 错误日志文件路径
                - max_file_size: 最大文件大小（字节）
                - backup_count: 备份文件数量
                - enable_console: 是否启用控制台输出
                - enable_file: 是否启用文件输出
        """
        if 'log_level' in config:
            level_str = str(config['log_level']).upper()
            if hasattr(LogLevel, level_str):
                self._log_level = LogLevel[level_str]
            else:
                raise ValueError(f"无效的日志级别: {level_str}")

        if 'log_format' in config:
            log_format = str(config['log_format']).lower()
            if log_format not in ('text', 'json'):
                raise ValueError(f"无效的日志格式: {log_format}")
            self._log_format = log_format

        if 'service_name' in config:
            self._service_name = config['service_name']

        if 'log_file' in config:
            self._log_file = config['log_file']
            self._enable_file = True

        if 'error_log_file' in config:
            self._error_log_file = config['error_log_file']

        if 'max_file_size' in config:
            self._max_file_size = config['max_file_size']

        if 'backup_count' in config:
            self._backup_count = config['backup_count']

        if 'enable_console' in config:
            self._enable_console = config['enable_console']

        if 'enable_file' in config:
            self._enable_file = config['enable_file']

        # 已创建的日志记录器按新配置重建处理器
        for logger in self._loggers.values():
            self._install_handlers(logger)

    def get_logger(self, name: str) -> logging.Logger:
        """
        获取指定名称的日志记录器

        Args:
            name: 日志记录器名称

        Returns:
            配置好的日志记录器实例
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(f'tenant_health.{name}')
        self._install_handlers(logger)

        # 防止日志向上传播
        logger.propagate = False

        self._loggers[name] = logger
        return logger

    def _install_handlers(self, logger: logging.Logger) -> None:
        """按当前配置为日志记录器安装处理器"""
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        logger.setLevel(self._log_level.value)
        for handler in self._build_handlers():
            logger.addHandler(handler)

    def _build_handlers(self) -> List[logging.Handler]:
        handlers: List[logging.Handler] = []

        if self._enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self._log_level.value)
            console_handler.setFormatter(self._make_formatter(self._console_format))
            handlers.append(console_handler)

        if self._enable_file and self._log_file:
            handlers.append(self._rotating_handler(self._log_file, self._log_level.value))

        if self._error_log_file:
            error_handler = self._rotating_handler(self._error_log_file, logging.ERROR)
            error_handler._error_only = True
            handlers.append(error_handler)

        return handlers

    def _rotating_handler(self, log_file: str, level: int) -> logging.Handler:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=self._max_file_size,
            backupCount=self._backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(self._make_formatter(self._default_format))
        return file_handler

    def _make_formatter(self, fmt: str) -> logging.Formatter:
        if self._log_format == 'json':
            return JsonFormatter(self._service_name, datefmt=self._date_format)
        return logging.Formatter(fmt, datefmt=self._date_format)

    def set_level(self, level: LogLevel) -> None:
        """
        设置全局日志级别

        Args:
            level: 新的日志级别
        """
        self._log_level = level

        for logger in self._loggers.values():
            logger.setLevel(level.value)
            for handler in logger.handlers:
                # 错误日志文件保持ERROR级别
                if getattr(handler, '_error_only', False):
                    continue
                handler.setLevel(level.value)

    def cleanup(self) -> None:
        """清理资源"""
        for logger in self._loggers.values():
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

        self._loggers.clear()


# 全局日志管理器实例
log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """
    获取日志记录器的便捷函数

    Args:
        name: 日志记录器名称

    Returns:
        配置好的日志记录器实例
    """
    return log_manager.get_logger(name)


def configure_logging(config: Dict[str, Any]) -> None:
    """
    配置日志系统的便捷函数

    Args:
        config: 日志配置字典
    """
    log_manager.configure(config)
