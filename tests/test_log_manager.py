"""测试日志管理器"""

import json
import logging
import logging.handlers
import os
import sys
import tempfile

import pytest

from tenant_health.utils.log_manager import (
    JsonFormatter, LogLevel, LogManager, configure_logging, get_logger, log_manager
)


@pytest.fixture
def reset_log_manager():
    """测试结束后恢复日志管理器的默认配置"""
    yield log_manager
    log_manager._log_file = None
    log_manager._error_log_file = None
    log_manager.configure({
        'log_level': 'INFO',
        'log_format': 'text',
        'service_name': 'tenant-health',
        'enable_console': True,
        'enable_file': False,
    })


class TestLogManager:
    """测试LogManager"""

    def test_singleton(self):
        """测试单例"""
        assert LogManager() is LogManager()
        assert LogManager() is log_manager

    def test_get_logger(self, reset_log_manager):
        """测试获取日志记录器"""
        logger = get_logger('unit')

        assert logger.name == 'tenant_health.unit'
        assert logger.propagate is False
        assert get_logger('unit') is logger
        assert any(isinstance(h, logging.StreamHandler) for h in logger.handlers)

    def test_invalid_level(self, reset_log_manager):
        """测试无效的日志级别"""
        with pytest.raises(ValueError, match="无效的日志级别"):
            configure_logging({'log_level': 'LOUD'})

    def test_invalid_format(self, reset_log_manager):
        """测试无效的日志格式"""
        with pytest.raises(ValueError, match="无效的日志格式"):
            configure_logging({'log_format': 'xml'})

    def test_file_logging(self, reset_log_manager):
        """测试写入日志文件"""
        with tempfile.TemporaryDirectory() as tmp_dir:
            log_file = os.path.join(tmp_dir, 'logs', 'app.log')
            configure_logging({'log_file': log_file, 'enable_console': False})

            logger = get_logger('file-test')
            logger.info("健康检查完成")
            for handler in logger.handlers:
                handler.flush()

            with open(log_file, encoding='utf-8') as f:
                assert "健康检查完成" in f.read()

    def test_error_log_file(self, reset_log_manager):
        """测试错误日志单独落盘"""
        with tempfile.TemporaryDirectory() as tmp_dir:
            error_file = os.path.join(tmp_dir, 'error.log')
            configure_logging({'error_log_file': error_file, 'enable_console': False})

            logger = get_logger('error-test')
            logger.info("普通信息")
            logger.error("探测失败")
            for handler in logger.handlers:
                handler.flush()

            with open(error_file, encoding='utf-8') as f:
                content = f.read()
            assert "探测失败" in content
            assert "普通信息" not in content

    def test_reconfigure_existing_loggers(self, reset_log_manager):
        """测试重新配置时更新已创建的日志记录器"""
        logger = get_logger('reconfigure')
        configure_logging({'log_level': 'DEBUG'})

        assert logger.level == logging.DEBUG

    def test_set_level_keeps_error_handler(self, reset_log_manager):
        """测试设置级别时错误日志处理器保持ERROR级别"""
        with tempfile.TemporaryDirectory() as tmp_dir:
            configure_logging({'error_log_file': os.path.join(tmp_dir, 'error.log')})
            logger = get_logger('levels')

            log_manager.set_level(LogLevel.DEBUG)

            levels = {type(h): h.level for h in logger.handlers}
            assert levels[logging.handlers.RotatingFileHandler] == logging.ERROR
            assert levels[logging.StreamHandler] == logging.DEBUG


class TestJsonFormatter:
    """测试JSON格式化器"""

    def test_format(self):
        """测试JSON行包含服务名和附加字段"""
        formatter = JsonFormatter('tenant-health')
        record = logging.makeLogRecord({
            'name': 'tenant_health.api', 'levelname': 'WARNING', 'msg': '租户 %s 告警',
            'args': ('r1',), 'tenant_id': 'r1'
        })

        payload = json.loads(formatter.format(record))

        assert payload['service'] == 'tenant-health'
        assert payload['level'] == 'warning'
        assert payload['logger'] == 'tenant_health.api'
        assert payload['message'] == '租户 r1 告警'
        assert payload['tenant_id'] == 'r1'

    def test_format_exception(self):
        """测试异常堆栈"""
        formatter = JsonFormatter('svc')
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.makeLogRecord({'msg': 'failed', 'exc_info': sys.exc_info()})

        payload = json.loads(formatter.format(record))

        assert 'RuntimeError: boom' in payload['stack']

    def test_json_mode(self, reset_log_manager):
        """测试JSON模式使用JsonFormatter"""
        configure_logging({'log_format': 'json', 'service_name': 'svc'})
        logger = get_logger('json-mode')

        assert all(isinstance(h.formatter, JsonFormatter) for h in logger.handlers)
