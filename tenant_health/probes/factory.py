"""探测器工厂"""

from typing import Dict, Type, Any, List

from .base import BaseProbe
from ..utils.exceptions import ProbeError, ErrorCode


class ProbeFactory:
    """探测器工厂类，负责注册探测器类型并按配置创建探测器"""

    def __init__(self):
        """初始化工厂"""
        self._probes: Dict[str, Type[BaseProbe]] = {}

    def register_probe(self, probe_type: str, probe_class: Type[BaseProbe]):
        """
        注册探测器类

        Args:
            probe_type: 探测器类型名称
            probe_class: 探测器类

        Raises:
            ProbeError: 注册失败
        """
        if not issubclass(probe_class, BaseProbe):
            raise ProbeError(f"探测器类 {probe_class.__name__} 必须继承自 BaseProbe",
                             ErrorCode.PROBE_INITIALIZATION_ERROR)

        if probe_type in self._probes:
            raise ProbeError(f"探测器类型 '{probe_type}' 已经注册",
                             ErrorCode.PROBE_INITIALIZATION_ERROR)

        self._probes[probe_type] = probe_class

    def unregister_probe(self, probe_type: str):
        """
        取消注册探测器类

        Args:
            probe_type: 探测器类型名称
        """
        self._probes.pop(probe_type, None)

    def create_probe(self, probe_config: Dict[str, Any], **dependencies) -> BaseProbe:
        """
        创建探测器实例

        Args:
            probe_config: 探测器配置，必须包含 name 和 type
            dependencies: 传给探测器构造函数的进程内依赖

        Returns:
            BaseProbe: 探测器实例

        Raises:
            ProbeError: 创建失败
        """
        name = probe_config.get('name')
        probe_type = probe_config.get('type')
        if not name:
            raise ProbeError("探测器配置缺少 'name'", ErrorCode.PROBE_INITIALIZATION_ERROR)
        if not probe_type:
            raise ProbeError(f"探测器 '{name}' 缺少 'type' 配置",
                             ErrorCode.PROBE_INITIALIZATION_ERROR, probe_name=name)

        if probe_type not in self._probes:
            raise ProbeError(f"不支持的探测器类型: '{probe_type}'",
                             ErrorCode.PROBE_INITIALIZATION_ERROR, probe_name=name)

        probe_class = self._probes[probe_type]

        try:
            probe = probe_class(name, probe_config, **dependencies)
        except Exception as e:
            raise ProbeError(f"创建探测器 '{name}' 失败: {e}",
                             ErrorCode.PROBE_INITIALIZATION_ERROR,
                             probe_name=name, probe_type=probe_type, cause=e)

        if not probe.validate_config():
            raise ProbeError(f"探测器 '{name}' 的配置验证失败",
                             ErrorCode.PROBE_INITIALIZATION_ERROR,
                             probe_name=name, probe_type=probe_type)

        return probe

    def create_probes(self, probe_configs: List[Dict[str, Any]], **dependencies) -> List[BaseProbe]:
        """
        按声明顺序创建一组探测器

        Args:
            probe_configs: 探测器配置列表
            dependencies: 传给每个探测器的进程内依赖

        Returns:
            List[BaseProbe]: 探测器列表，顺序与配置一致
        """
        return [self.create_probe(probe_config, **dependencies) for probe_config in probe_configs]

    def get_supported_types(self) -> list:
        """
        获取支持的探测器类型列表

        Returns:
            list: 支持的类型列表
        """
        return list(self._probes.keys())

    def is_type_supported(self, probe_type: str) -> bool:
        """
        检查是否支持指定的探测器类型

        Args:
            probe_type: 探测器类型

        Returns:
            bool: 是否支持
        """
        return probe_type in self._probes


# 全局工厂实例
probe_factory = ProbeFactory()


def register_probe(probe_type: str):
    """
    装饰器：注册探测器类

    Args:
        probe_type: 探测器类型名称

    Returns:
        装饰器函数
    """
    def decorator(probe_class: Type[BaseProbe]):
        probe_factory.register_probe(probe_type, probe_class)
        return probe_class

    return decorator
