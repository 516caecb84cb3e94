"""
数据模型模块

定义端点声明使用的值对象:
    - HttpMethod / BodyEncoding: HTTP 方法和请求体编码枚举
    - ReturnShape / RAW_BYTES: 返回类型描述符，替代运行时类型反射
    - Query / Field / Part: 查询参数、表单字段、multipart 分段
    - Arg: 运行时参数占位符，调用时由 new_call(**args) 提供的值替换
    - Response: 执行结果，包含原始响应和转换后的响应体
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import requests

from typedrequest.constants import (
    BODY_METHODS,
    HTTP_METHOD_DELETE,
    HTTP_METHOD_GET,
    HTTP_METHOD_HEAD,
    HTTP_METHOD_OPTIONS,
    HTTP_METHOD_PATCH,
    HTTP_METHOD_POST,
    HTTP_METHOD_PUT,
    HTTP_METHOD_TRACE,
)


class HttpMethod(str, Enum):
    """HTTP 方法枚举"""

    GET = HTTP_METHOD_GET
    POST = HTTP_METHOD_POST
    PUT = HTTP_METHOD_PUT
    PATCH = HTTP_METHOD_PATCH
    DELETE = HTTP_METHOD_DELETE
    HEAD = HTTP_METHOD_HEAD
    OPTIONS = HTTP_METHOD_OPTIONS
    TRACE = HTTP_METHOD_TRACE

    @property
    def has_body(self) -> bool:
        """该方法在语义上是否携带请求体（PATCH/POST/PUT）"""
        return self.value in BODY_METHODS


class BodyEncoding(str, Enum):
    """请求体编码方式"""

    NONE = "none"
    MULTIPART = "multipart"
    FORM_URL_ENCODED = "form_url_encoded"


class _RawBytes:
    """原始响应字节的类型标记，解析到该类型时跳过转换器"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "RAW_BYTES"

    def __reduce__(self):
        return (_RawBytes, ())


RAW_BYTES = _RawBytes()


def is_raw_bytes(payload_type: Any) -> bool:
    """判断负载类型是否表示原始字节（RAW_BYTES 或内置 bytes）"""
    return payload_type is RAW_BYTES or payload_type is bytes


def describe_type(payload_type: Any) -> str:
    """返回负载类型的可读名称，用于错误信息和日志"""
    if isinstance(payload_type, str):
        return payload_type
    return getattr(payload_type, "__name__", repr(payload_type))


class ShapeKind(str, Enum):
    """返回形态"""

    CALL = "call"  # 返回调用对象本身，由调用方决定何时执行
    SINGLE = "single"  # 同步执行并直接返回响应体
    DEFERRED = "deferred"  # 返回 concurrent.futures.Future
    STREAM = "stream"  # 返回逐项产出的迭代器
    NO_VALUE = "no_value"  # 无返回值，端点声明不允许使用


@dataclass(frozen=True)
class ReturnShape:
    """
    声明的返回类型描述符

    由返回形态（kind）和响应负载类型（payload_type）组成，负载类型可以是任意
    可哈希的类型标记（类、字符串名称或 RAW_BYTES）。

    使用示例:
        >>> ReturnShape.single("User")
        >>> ReturnShape.stream(RAW_BYTES)
        >>> ReturnShape.deferred(dict)
    """

    kind: ShapeKind
    payload_type: Any = None

    @classmethod
    def call(cls, payload_type: Any) -> ReturnShape:
        return cls(ShapeKind.CALL, payload_type)

    @classmethod
    def single(cls, payload_type: Any) -> ReturnShape:
        return cls(ShapeKind.SINGLE, payload_type)

    @classmethod
    def deferred(cls, payload_type: Any) -> ReturnShape:
        return cls(ShapeKind.DEFERRED, payload_type)

    @classmethod
    def stream(cls, payload_type: Any) -> ReturnShape:
        return cls(ShapeKind.STREAM, payload_type)

    @property
    def is_no_value(self) -> bool:
        return self.kind is ShapeKind.NO_VALUE

    def __str__(self) -> str:
        if self.is_no_value:
            return "no_value"
        return f"{self.kind.value}[{describe_type(self.payload_type)}]"


NO_VALUE = ReturnShape(ShapeKind.NO_VALUE)


_MISSING = object()


@dataclass(frozen=True)
class Arg:
    """
    运行时参数占位符

    可以出现在查询参数、请求头、表单字段、multipart 分段或请求体的值位置，
    在调用时由 new_call(**args) 传入的同名参数替换。

    参数:
        name: 参数名
        default: 未传入时的默认值，未设置则缺少参数时报错
    """

    name: str
    default: Any = _MISSING

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING


@dataclass(frozen=True)
class Query:
    """查询参数，按声明顺序拼接到 URL 上。encoded 为 True 时值已是 URL 编码形式"""

    name: str
    value: Any
    encoded: bool = False


@dataclass(frozen=True)
class Field:
    """表单字段（application/x-www-form-urlencoded）"""

    name: str
    value: Any
    encoded: bool = False


@dataclass(frozen=True)
class Part:
    """
    multipart 分段

    参数:
        name: 分段名称
        value: 分段内容（bytes/str/文件对象，其它类型由转换器序列化）
        filename: 文件名（可选）
        content_type: 分段的内容类型（可选）
    """

    name: str
    value: Any
    filename: str | None = None
    content_type: str | None = None


@dataclass(frozen=True)
class Response:
    """
    调用执行结果

    属性:
        raw: 原始 requests.Response 对象
        body: 转换后的响应体；未配置转换器时为原始字节
    """

    raw: requests.Response
    body: Any = None

    @property
    def status_code(self) -> int:
        return self.raw.status_code

    @property
    def headers(self):
        return self.raw.headers

    @property
    def url(self) -> str:
        return self.raw.url

    @property
    def is_successful(self) -> bool:
        return 200 <= self.raw.status_code < 300
