"""
调用适配器模块

将原始调用对象（Invocation）包装为调用方声明的返回形态:
    - CallAdapterFactory: 返回调用对象本身
    - SyncCallAdapterFactory: 同步执行并返回转换后的响应体
    - FutureCallAdapterFactory: 在线程池中执行，返回 concurrent.futures.Future
    - StreamCallAdapterFactory: 流式执行，逐项产出（按行转换或原始字节块）

ResponseAdapterResolver 按注册顺序选择第一个支持声明返回形态的工厂。
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, Iterator

from typedrequest.constants import DEFAULT_CHUNK_SIZE
from typedrequest.exceptions import ConfigurationError
from typedrequest.models import ReturnShape, ShapeKind
from typedrequest.resolver import BaseResolver

if TYPE_CHECKING:
    from typedrequest.call import Invocation

logger = logging.getLogger(__name__)


class BaseCallAdapter(ABC):
    """
    调用适配器基类

    参数:
        response_type: 适配器期望传输层交付的响应负载类型，决定需要解析的转换器
    """

    def __init__(self, response_type: Any):
        self._response_type = response_type

    @property
    def response_type(self) -> Any:
        return self._response_type

    @abstractmethod
    def adapt(self, call: Invocation) -> Any:
        """将调用对象包装为声明的返回值"""


class CallAdapter(BaseCallAdapter):
    """原样返回调用对象，由调用方决定 execute / enqueue / cancel"""

    def adapt(self, call: Invocation) -> Invocation:
        return call


class SyncCallAdapter(BaseCallAdapter):
    """同步执行调用并返回转换后的响应体"""

    def adapt(self, call: Invocation) -> Any:
        return call.execute().body


class FutureCallAdapter(BaseCallAdapter):
    """在客户端的线程池中执行调用，Future 的结果为转换后的响应体"""

    def adapt(self, call: Invocation) -> Future:
        return call.executor.submit(_execute_body, call)


class StreamCallAdapter(BaseCallAdapter):
    """
    流式适配器

    返回一个惰性迭代器，开始迭代时才派发请求:
        - 响应类型为原始字节时，按 chunk_size 产出字节块
        - 否则按行读取响应（如 NDJSON），每行交给转换器
    调用被取消后停止产出并关闭响应。
    """

    def __init__(self, response_type: Any, chunk_size: int = DEFAULT_CHUNK_SIZE):
        super().__init__(response_type)
        self.chunk_size = chunk_size

    def adapt(self, call: Invocation) -> Iterator[Any]:
        return _iter_stream(call, self.chunk_size)


def _execute_body(call: Invocation) -> Any:
    return call.execute().body


def _iter_stream(call: Invocation, chunk_size: int) -> Iterator[Any]:
    raw = call.open_stream()
    try:
        if call.converter is None:
            items = (chunk for chunk in raw.iter_content(chunk_size=chunk_size) if chunk)
        else:
            items = (call.convert(line) for line in raw.iter_lines() if line)
        for item in items:
            if call.is_cancelled():
                logger.info(f"[{call.request_id}] Stream cancelled, closing response")
                return
            yield item
    finally:
        raw.close()


class BaseCallAdapterFactory(ABC):
    """调用适配器工厂基类，get 返回 None 表示不支持该返回形态"""

    @abstractmethod
    def get(self, return_shape: ReturnShape) -> BaseCallAdapter | None:
        """返回支持 return_shape 的适配器，不支持时返回 None"""


class ShapeKindAdapterFactory(BaseCallAdapterFactory):
    """按返回形态匹配的适配器工厂，子类设置 kind 和 adapter_class"""

    kind: ShapeKind
    adapter_class: type[BaseCallAdapter]

    def get(self, return_shape: ReturnShape) -> BaseCallAdapter | None:
        if return_shape.kind is not self.kind:
            return None
        return self.adapter_class(return_shape.payload_type)


class CallAdapterFactory(ShapeKindAdapterFactory):
    kind = ShapeKind.CALL
    adapter_class = CallAdapter


class SyncCallAdapterFactory(ShapeKindAdapterFactory):
    kind = ShapeKind.SINGLE
    adapter_class = SyncCallAdapter


class FutureCallAdapterFactory(ShapeKindAdapterFactory):
    kind = ShapeKind.DEFERRED
    adapter_class = FutureCallAdapter


class StreamCallAdapterFactory(ShapeKindAdapterFactory):
    kind = ShapeKind.STREAM
    adapter_class = StreamCallAdapter

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size

    def get(self, return_shape: ReturnShape) -> BaseCallAdapter | None:
        if return_shape.kind is not self.kind:
            return None
        return StreamCallAdapter(return_shape.payload_type, chunk_size=self.chunk_size)


DEFAULT_CALL_ADAPTER_FACTORIES = (
    CallAdapterFactory,
    SyncCallAdapterFactory,
    FutureCallAdapterFactory,
    StreamCallAdapterFactory,
)


class ResponseAdapterResolver(BaseResolver):
    """
    调用适配器解析器

    按注册顺序询问适配器工厂，第一个返回适配器的工厂胜出；结果按返回形态缓存。
    "无返回值" 形态由调用方（DescriptorBuilder）在解析之前拒绝。
    """

    factory_base_class = BaseCallAdapterFactory

    def _not_found(self, key: Any) -> ConfigurationError:
        return ConfigurationError(f"no adapter for return type {key}")
