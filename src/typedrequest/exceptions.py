"""
异常模块

定义请求构建核心及传输层相关的异常类，提供统一的错误处理机制

异常分类:
    - ConfigurationError: 端点声明无效或不完整，只在 build() 时同步抛出
    - RequestAssemblyError: 由已封装的描述符和运行时参数生成请求失败
    - CancelledError: 调用在派发前已被取消
    - CallStateError: 同一个调用对象被重复执行
    - ResponseConversionError: 响应体无法转换为声明的类型
    - Transport*Error: 传输层错误，原样穿透核心
"""

from __future__ import annotations

import requests


class TypedRequestError(Exception):
    """
    异常基类

    所有自定义异常的基类，用于统一捕获和处理请求构建相关错误
    """


class ConfigurationError(TypedRequestError):
    """
    端点配置异常

    缺少必填字段、路径格式错误、请求体与方法不匹配、字段/分段集合为空、
    返回类型或转换器无法解析时抛出。调用方应修正声明，而不是重试。
    """


class RequestAssemblyError(TypedRequestError):
    """
    请求组装异常

    根据描述符和运行时参数生成请求失败时抛出（序列化失败、缺少参数、URL 非法等）
    """


class CancelledError(TypedRequestError):
    """调用在派发前已被取消"""


class CallStateError(TypedRequestError):
    """调用对象已经执行过，不可重复使用"""


class ResponseConversionError(TypedRequestError):
    """
    响应转换异常

    参数:
        message: 错误描述信息
        errors: 转换/验证失败的详细信息（可选）

    属性:
        errors: 验证失败的详细错误信息，格式为 {field_name: [error_messages]}
    """

    def __init__(self, message: str, errors: dict | list | None = None):
        super().__init__(message)
        self.errors = errors or {}


class TransportError(TypedRequestError):
    """传输层异常基类"""


class TransportHTTPError(TransportError):
    """
    HTTP 错误响应异常

    当服务器返回 4xx 或 5xx 状态码时抛出此异常

    参数:
        message: 错误描述信息
        response: 原始的 requests.Response 对象（可选）

    属性:
        response: 保存原始响应对象，便于获取详细错误信息
        status_code: HTTP 状态码
    """

    def __init__(self, message: str, response: requests.Response | None = None):
        super().__init__(message)
        self.response = response
        self.status_code = response.status_code if response is not None else None


class TransportNetworkError(TransportError):
    """
    网络连接异常

    当网络连接失败、DNS 解析失败等网络层面问题时抛出此异常
    """


class TransportTimeoutError(TransportError):
    """
    请求超时异常

    当请求执行时间超过设定的超时时间时抛出此异常
    """
