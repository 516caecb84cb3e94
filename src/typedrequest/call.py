"""调用模块

Invocation 表示一次可取消的执行尝试，绑定到一个共享的 EndpointDescriptor。

生命周期:
    PENDING --execute()/enqueue()/open_stream()--> DISPATCHED
    取消标志独立记录，最多从 False 变为 True 一次；派发前检查标志，已取消则不调用传输层。
    调用对象不可重复使用，重试请使用 clone()。
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from concurrent.futures import Future
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

import requests

from typedrequest.exceptions import CallStateError, CancelledError, ResponseConversionError
from typedrequest.models import HttpMethod, Response

if TYPE_CHECKING:
    from typedrequest.descriptor import EndpointDescriptor

logger = logging.getLogger(__name__)

# 无响应体的状态码
NO_CONTENT_STATUS_CODES = {204, 205}


def generate_request_id(suffix=None) -> str:
    """生成全局唯一的请求 ID"""
    timestamp = int(time.time() * 1000)  # 毫秒级时间戳
    short_uuid = uuid.uuid4().hex[:8]
    if suffix is None:
        return f"REQ-{timestamp}-{short_uuid}"
    return f"REQ-{timestamp}-{short_uuid}-{suffix}"


class CallState(str, Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"


class BaseCallback(ABC):
    """enqueue() 的回调接口，回调在线程池的工作线程中执行"""

    @abstractmethod
    def on_response(self, call: Invocation, response: Response) -> None:
        """请求成功并完成响应转换"""

    @abstractmethod
    def on_failure(self, call: Invocation, error: Exception) -> None:
        """请求组装、传输或转换失败，或调用在派发前被取消"""


class Invocation:
    """
    一次可取消的调用

    参数:
        descriptor: 共享的端点描述符（不归调用所有）
        args: 运行时参数
        request_id: 请求唯一标识，用于日志追踪，默认自动生成

    属性:
        request_id: 请求唯一标识
        args: 运行时参数副本
        state: 当前派发状态
    """

    def __init__(self, descriptor: EndpointDescriptor, args: dict[str, Any] | None = None, request_id: str = None):
        self.descriptor = descriptor
        self.args = dict(args or {})
        self.request_id = request_id or generate_request_id()
        # 跨线程读写的取消标志
        self._cancelled = threading.Event()
        self._state = CallState.PENDING
        self._state_lock = threading.Lock()

    @property
    def state(self) -> CallState:
        return self._state

    @property
    def converter(self):
        return self.descriptor.converter

    @property
    def transport(self):
        return self.descriptor.client.transport

    @property
    def executor(self):
        return self.descriptor.client.executor

    def cancel(self) -> None:
        """
        设置取消标志（幂等）

        只阻止尚未派发的执行，不会中断已在传输层进行中的请求。
        """
        if not self._cancelled.is_set():
            self._cancelled.set()
            logger.debug(f"[{self.request_id}] Call cancelled (state={self._state.value})")

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def clone(self) -> Invocation:
        """创建绑定到同一描述符和参数的新调用，用于重试"""
        return Invocation(self.descriptor, self.args)

    def request(self) -> requests.Request:
        """生成传输层请求但不派发"""
        return self.descriptor.request_factory.create(self.args)

    def execute(self) -> Response:
        """
        同步执行调用

        返回:
            Response 对象，body 为转换后的响应体

        异常:
            CancelledError: 派发前已被取消，传输层不会被调用
            CallStateError: 调用已执行过
            RequestAssemblyError: 请求组装失败
            ResponseConversionError: 响应体转换失败
            TransportError: 传输层错误（原样穿透）
        """
        self._mark_dispatched()
        return self._perform()

    def enqueue(self, callback: BaseCallback | None = None) -> Future:
        """
        在客户端线程池中异步执行调用

        参数:
            callback: 可选回调，成功时调用 on_response，失败时调用 on_failure

        返回:
            Future，结果为 Response；失败时异常同时写入 Future

        异常:
            CancelledError: 调用在 enqueue 前已被取消（同步抛出）
            CallStateError: 调用已执行过
        """
        self._mark_dispatched()
        logger.debug(f"[{self.request_id}] Enqueued {self.descriptor.method.value} {self.descriptor.path}")
        return self.executor.submit(self._perform_with_callback, callback)

    def open_stream(self) -> requests.Response:
        """
        以流式模式执行调用，返回未读取的原始响应，调用方负责关闭

        异常:
            与 execute() 相同（不进行响应转换）
        """
        self._mark_dispatched()
        return self._send(stream=True)

    def convert(self, content: bytes) -> Any:
        """
        用描述符的转换器转换响应内容，没有转换器时返回原始字节

        异常:
            ResponseConversionError: 转换器抛出的任何异常
        """
        converter = self.converter
        if converter is None:
            return content
        try:
            return converter.from_body(content)
        except ResponseConversionError:
            raise
        except Exception as e:
            logger.error(f"[{self.request_id}] Response conversion failed: {e}")
            raise ResponseConversionError(f"{type(converter).__name__} failed to convert response: {e}") from e

    def _mark_dispatched(self) -> None:
        with self._state_lock:
            self._raise_if_cancelled()
            if self._state is CallState.DISPATCHED:
                raise CallStateError(f"[{self.request_id}] Call already executed; use clone() to retry")
            self._state = CallState.DISPATCHED

    def _raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            logger.warning(f"[{self.request_id}] Call to {self.descriptor.path} cancelled before dispatch")
            raise CancelledError(f"Call to {self.descriptor.path} was cancelled before dispatch")

    def _perform(self) -> Response:
        raw = self._send(stream=False)
        if self.descriptor.method is HttpMethod.HEAD or raw.status_code in NO_CONTENT_STATUS_CODES:
            return Response(raw=raw, body=None)
        return Response(raw=raw, body=self.convert(raw.content))

    def _perform_with_callback(self, callback: BaseCallback | None) -> Response:
        try:
            response = self._perform()
        except Exception as error:
            if callback is not None:
                self._notify(callback.on_failure, error)
            raise
        if callback is not None:
            self._notify(callback.on_response, response)
        return response

    def _notify(self, hook: Callable[[Invocation, Any], None], value: Any) -> None:
        try:
            hook(self, value)
        except Exception:
            logger.exception(f"[{self.request_id}] Callback {getattr(hook, '__name__', hook)} failed")

    def _send(self, stream: bool) -> requests.Response:
        request = self.request()
        # 组装期间可能已被其它线程取消
        self._raise_if_cancelled()
        return self.transport.execute(request, stream=stream, request_id=self.request_id, tag=self.descriptor.tag)
