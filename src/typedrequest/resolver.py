"""解析器基类

按注册顺序依次询问工厂，第一个声明支持的工厂胜出；解析结果按键缓存。
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

from typedrequest.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class BaseResolver(ABC):
    """
    有序工厂解析器基类

    子类需设置 factory_base_class 并实现 _not_found，用于生成无法解析时的配置异常

    参数:
        factories: 工厂类或实例的序列，按注册顺序尝试
        cache_enabled: 是否缓存解析结果（查找是纯函数，缓存不会改变可观察行为）
    """

    factory_base_class: type = object

    def __init__(self, factories=None, cache_enabled: bool = True):
        self._factories = tuple(self._resolve_factory(factory) for factory in (factories or ()))
        self.cache_enabled = cache_enabled
        self._cache: dict[Any, Any] = {}
        self._cache_lock = threading.RLock()

    @property
    def factories(self) -> tuple:
        return self._factories

    def _resolve_factory(self, factory):
        """
        将工厂类或实例统一转换为实例

        异常:
            ConfigurationError: 既不是 factory_base_class 的子类也不是其实例
        """
        if isinstance(factory, type) and issubclass(factory, self.factory_base_class):
            return factory()
        if isinstance(factory, self.factory_base_class):
            return factory
        raise ConfigurationError(
            f"{type(self).__name__} factories must be {self.factory_base_class.__name__} subclasses or instances, "
            f"got {factory!r}"
        )

    def get(self, key: Any) -> Any:
        """
        解析 key 对应的策略对象

        执行步骤:
            1. 命中缓存直接返回
            2. 按注册顺序询问工厂，第一个非 None 结果胜出
            3. 写入缓存（并发写入时保留先写入的结果）
            4. 没有工厂支持时抛出 _not_found 生成的异常
        """
        cacheable = self.cache_enabled and _is_hashable(key)
        if cacheable:
            with self._cache_lock:
                if key in self._cache:
                    return self._cache[key]

        for factory in self._factories:
            result = factory.get(key)
            if result is not None:
                logger.debug(f"{type(self).__name__}: {type(factory).__name__} claimed {key!r}")
                if cacheable:
                    with self._cache_lock:
                        result = self._cache.setdefault(key, result)
                return result

        raise self._not_found(key)

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    @abstractmethod
    def _not_found(self, key: Any) -> ConfigurationError:
        """生成无法解析 key 时的异常"""


def _is_hashable(key: Any) -> bool:
    try:
        hash(key)
    except TypeError:
        return False
    return True
