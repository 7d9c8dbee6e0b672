"""多租户健康监控"""

__version__ = "1.0.0"
