"""端点描述符模块

提供:
    - 请求体变体 NoBody / RawBody / FormBody / MultipartBody（以 encoding 为判别字段）
    - EndpointDescriptor: 不可变、已验证的端点描述，可被任意多个调用共享
    - DescriptorBuilder: 链式配置，build() 时一次性验证并解析适配器和转换器

使用示例:
    >>> descriptor = (
    ...     DescriptorBuilder(client)
    ...     .path("/users/{user_id}")
    ...     .method(HttpMethod.GET)
    ...     .declared_return_shape(ReturnShape.single("User"))
    ...     .build()
    ... )
    >>> user = descriptor.new_call(user_id=1)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Union

from typedrequest.adapter import BaseCallAdapter
from typedrequest.call import Invocation
from typedrequest.converter import BaseConverter
from typedrequest.exceptions import ConfigurationError
from typedrequest.models import (
    BodyEncoding,
    Field,
    HttpMethod,
    Part,
    Query,
    ReturnShape,
    is_raw_bytes,
)
from typedrequest.request_factory import RawRequestFactory

if TYPE_CHECKING:
    from typedrequest.client import ServiceClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoBody:
    """不携带请求体"""

    encoding: ClassVar[BodyEncoding] = BodyEncoding.NONE


@dataclass(frozen=True)
class RawBody:
    """单个请求体对象，由转换器序列化"""

    encoding: ClassVar[BodyEncoding] = BodyEncoding.NONE
    value: Any


@dataclass(frozen=True)
class FormBody:
    """application/x-www-form-urlencoded 表单"""

    encoding: ClassVar[BodyEncoding] = BodyEncoding.FORM_URL_ENCODED
    fields: tuple[Field, ...]


@dataclass(frozen=True)
class MultipartBody:
    """multipart/form-data 分段"""

    encoding: ClassVar[BodyEncoding] = BodyEncoding.MULTIPART
    parts: tuple[Part, ...]


Payload = Union[NoBody, RawBody, FormBody, MultipartBody]


@dataclass(frozen=True, eq=False)
class EndpointDescriptor:
    """
    端点描述符

    由 DescriptorBuilder.build() 生成，创建后不可变，可在线程间共享并重复使用。
    每次 new_call() 都会创建新的 Invocation，描述符本身不持有调用状态。

    属性:
        path: 以 "/" 开头的路径，可包含 {name} 占位符
        method: HTTP 方法
        payload: 请求体变体
        tag: 调用方提供的关联对象，核心不解释其含义
        query_params: 有序查询参数
        headers: 只读请求头映射（键按原样保存）
        return_shape: 声明的返回类型
        call_adapter: 已解析的调用适配器
        converter: 已解析的转换器，响应类型为原始字节时为 None
        client: 所属的 ServiceClient
    """

    path: str
    method: HttpMethod
    payload: Payload
    tag: Any
    query_params: tuple[Query, ...]
    headers: Mapping[str, Any]
    return_shape: ReturnShape
    call_adapter: BaseCallAdapter
    converter: BaseConverter | None
    client: ServiceClient = field(repr=False)
    request_factory: RawRequestFactory = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "request_factory", RawRequestFactory(self.client.base_url, self))

    @property
    def body_encoding(self) -> BodyEncoding:
        return self.payload.encoding

    @property
    def body(self) -> Any:
        return self.payload.value if isinstance(self.payload, RawBody) else None

    @property
    def fields(self) -> tuple[Field, ...]:
        return self.payload.fields if isinstance(self.payload, FormBody) else ()

    @property
    def parts(self) -> tuple[Part, ...]:
        return self.payload.parts if isinstance(self.payload, MultipartBody) else ()

    def new_call(self, /, **args) -> Any:
        """
        创建一次调用并交给适配器

        参数:
            **args: 运行时参数（路径占位符、Arg 占位符的值）

        返回:
            适配器产出的值: Invocation、响应体、Future 或迭代器
        """
        return self.call_adapter.adapt(Invocation(self, args))


class DescriptorBuilder:
    """
    端点描述符构建器

    通过链式 setter 累积配置，build() 时按固定顺序验证，遇到第一个错误立即抛出。
    构建器不是线程安全的，应由单一所有者配置并封装后再共享描述符。

    参数:
        client: 提供基础 URL、适配器解析器、转换器解析器和传输层的 ServiceClient
    """

    def __init__(self, client: ServiceClient):
        self.client = client
        self._path: str | None = None
        self._method: HttpMethod | None = None
        self._body: Any = None
        self._tag: Any = None
        self._query: list[Query] = []
        self._headers: dict[str, Any] = {}
        self._parts: list[Part] = []
        self._fields: list[Field] = []
        self._body_encoding = BodyEncoding.NONE
        self._return_shape: ReturnShape | None = None

    def path(self, path: str) -> DescriptorBuilder:
        self._path = path
        return self

    def method(self, method: HttpMethod | str) -> DescriptorBuilder:
        if method is None:
            raise ConfigurationError("method must not be None")
        if not isinstance(method, HttpMethod):
            try:
                method = HttpMethod(str(method).upper())
            except ValueError:
                raise ConfigurationError(f"Unsupported HTTP method: {method!r}") from None
        self._method = method
        return self

    def tag(self, tag: Any) -> DescriptorBuilder:
        self._tag = _require_not_none(tag, "tag")
        return self

    def body(self, body: Any) -> DescriptorBuilder:
        self._body = _require_not_none(body, "body")
        return self

    def query_params(self, query) -> DescriptorBuilder:
        """查询参数序列，元素为 Query 或 (name, value) 元组"""
        self._query = [_coerce(item, Query) for item in _require_not_none(query, "query_params")]
        return self

    def headers(self, headers: Mapping[str, Any]) -> DescriptorBuilder:
        if not isinstance(_require_not_none(headers, "headers"), Mapping):
            raise ConfigurationError(f"headers must be a mapping, got {type(headers).__name__}")
        self._headers = dict(headers)
        return self

    def parts(self, parts) -> DescriptorBuilder:
        """multipart 分段序列，同时把请求体编码设为 MULTIPART"""
        self._parts = [_coerce(item, Part) for item in _require_not_none(parts, "parts")]
        self._body_encoding = BodyEncoding.MULTIPART
        return self

    def fields(self, fields) -> DescriptorBuilder:
        """表单字段序列，同时把请求体编码设为 FORM_URL_ENCODED"""
        self._fields = [_coerce(item, Field) for item in _require_not_none(fields, "fields")]
        self._body_encoding = BodyEncoding.FORM_URL_ENCODED
        return self

    def declared_return_shape(self, return_shape: ReturnShape) -> DescriptorBuilder:
        if return_shape is not None and not isinstance(return_shape, ReturnShape):
            raise ConfigurationError(f"declared_return_shape must be a ReturnShape, got {return_shape!r}")
        self._return_shape = return_shape
        return self

    @property
    def body_encoding(self) -> BodyEncoding:
        return self._body_encoding

    def build(self) -> EndpointDescriptor:
        """
        验证配置并生成不可变的 EndpointDescriptor

        执行步骤:
            1. path、method、declared_return_shape 必须已设置
            2. path 非空且以 "/" 开头
            3. 计算方法是否携带请求体（PATCH/POST/PUT）
            4. 无编码、非请求体方法却设置了请求体时报错
            5. 表单编码至少需要一个字段
            6. multipart 编码至少需要一个分段；表单/multipart 不能再设置单独的请求体
            7. 拒绝 "无返回值"，然后解析调用适配器
            8. 响应类型不是原始字节时解析转换器
            9. 生成描述符

        结构性检查先于适配器/转换器解析，配置错误不会触发解析器。

        异常:
            ConfigurationError: 任一检查或解析失败
        """
        # 步骤1: 必填字段
        for name, value in (
            ("path", self._path),
            ("method", self._method),
            ("declared_return_shape", self._return_shape),
        ):
            if value is None:
                raise ConfigurationError(f"{name} must be set")

        # 步骤2: 路径格式
        if not isinstance(self._path, str) or not self._path.startswith("/"):
            raise ConfigurationError(f'URL path "{self._path}" must start with "/"')

        # 步骤3-6: 请求体与方法、编码的一致性
        request_has_body = self._method.has_body
        got_body = self._body is not None

        if self._body_encoding is BodyEncoding.NONE and not request_has_body and got_body:
            raise ConfigurationError("non-body method cannot carry a body")
        if self._body_encoding is BodyEncoding.FORM_URL_ENCODED and not self._fields:
            raise ConfigurationError("form-encoded method requires at least one field")
        if self._body_encoding is BodyEncoding.MULTIPART and not self._parts:
            raise ConfigurationError("multipart method requires at least one part")
        if self._body_encoding is not BodyEncoding.NONE and got_body:
            raise ConfigurationError(f"body cannot be combined with {self._body_encoding.value} encoding")

        # 步骤7: 调用适配器
        if self._return_shape.is_no_value:
            raise ConfigurationError("endpoint must declare a return value, no_value is not allowed")
        call_adapter = self.client.adapter_resolver.get(self._return_shape)

        # 步骤8: 转换器
        response_type = call_adapter.response_type
        converter = None if is_raw_bytes(response_type) else self.client.converter_resolver.get(response_type)

        # 步骤9: 封装
        descriptor = EndpointDescriptor(
            path=self._path,
            method=self._method,
            payload=self._build_payload(),
            tag=self._tag,
            query_params=tuple(self._query),
            headers=MappingProxyType(dict(self._headers)),
            return_shape=self._return_shape,
            call_adapter=call_adapter,
            converter=converter,
            client=self.client,
        )
        logger.debug(
            f"Built endpoint {descriptor.method.value} {descriptor.path} "
            f"({descriptor.body_encoding.value}) -> {descriptor.return_shape}"
        )
        return descriptor

    def _build_payload(self) -> Payload:
        if self._body_encoding is BodyEncoding.FORM_URL_ENCODED:
            return FormBody(tuple(self._fields))
        if self._body_encoding is BodyEncoding.MULTIPART:
            return MultipartBody(tuple(self._parts))
        if self._body is not None:
            return RawBody(self._body)
        return NoBody()


def _require_not_none(value: Any, name: str) -> Any:
    if value is None:
        raise ConfigurationError(f"{name} must not be None")
    return value


def _coerce(item: Any, model: type) -> Any:
    """把 (name, value, ...) 元组转换为 Query/Field/Part"""
    if isinstance(item, model):
        return item
    if isinstance(item, tuple):
        try:
            return model(*item)
        except TypeError:
            pass
    raise ConfigurationError(f"Expected {model.__name__} or tuple, got {item!r}")
