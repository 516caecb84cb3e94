"""请求工厂模块

在调用时把已封装的 EndpointDescriptor 和运行时参数转换为 requests.Request。
请求不会在 build() 阶段生成，因为参数值只有在调用时才可用。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import quote_plus, urlparse

import requests

from typedrequest.exceptions import RequestAssemblyError
from typedrequest.models import Arg, BodyEncoding
from typedrequest.utils import render_path

if TYPE_CHECKING:
    from typedrequest.client import BaseUrl
    from typedrequest.descriptor import EndpointDescriptor

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
ALLOWED_URL_SCHEMES = ("http", "https")


class RawRequestFactory:
    """
    原始请求工厂

    参数:
        base_url: 基础 URL 提供者
        descriptor: 已封装的端点描述符

    使用示例:
        >>> factory = RawRequestFactory(StaticBaseUrl("https://api.example.com"), descriptor)
        >>> request = factory.create({"user_id": 1})
        >>> request.url
        "https://api.example.com/users/1"
    """

    def __init__(self, base_url: BaseUrl, descriptor: EndpointDescriptor):
        self.base_url = base_url
        self.descriptor = descriptor

    def create(self, args: Mapping[str, Any] | None = None) -> requests.Request:
        """
        生成传输层请求

        参数:
            args: 运行时参数，用于渲染路径占位符和替换 Arg 占位符

        返回:
            未预处理的 requests.Request 对象（由传输层完成 prepare）

        执行步骤:
            1. 渲染路径并按声明顺序拼接查询参数，校验最终 URL
            2. 原样复制请求头（Arg 占位符替换为参数值）
            3. 按请求体编码方式序列化表单字段、multipart 分段或请求体

        异常:
            RequestAssemblyError: 缺少参数、序列化失败或 URL 非法
        """
        args = dict(args or {})
        descriptor = self.descriptor

        url = self._build_url(args)
        headers = self._build_headers(args)
        request = requests.Request(method=descriptor.method.value, url=url, headers=headers)

        encoding = descriptor.body_encoding
        if encoding is BodyEncoding.FORM_URL_ENCODED:
            request.data = self._encode_fields(args)
            self._set_default_content_type(headers, FORM_CONTENT_TYPE)
        elif encoding is BodyEncoding.MULTIPART:
            request.files = self._encode_parts(args)
        elif descriptor.body is not None:
            content, media_type = self._serialize_body(self._resolve(descriptor.body, args))
            request.data = content
            if media_type:
                self._set_default_content_type(headers, media_type)

        return request

    def _build_url(self, args: dict[str, Any]) -> str:
        base = self.base_url.resolve()
        if not base:
            raise RequestAssemblyError("Base URL resolved to an empty value")

        url = f"{base.rstrip('/')}{render_path(self.descriptor.path, args)}"
        query = self._encode_pairs(self.descriptor.query_params, args)
        if query:
            url = f"{url}{'&' if '?' in url else '?'}{query}"

        parsed = urlparse(url)
        if parsed.scheme not in ALLOWED_URL_SCHEMES or not parsed.netloc:
            raise RequestAssemblyError(f"Malformed request URL: {url}")
        return url

    def _build_headers(self, args: dict[str, Any]) -> dict[str, str]:
        headers = {}
        for name, value in self.descriptor.headers.items():
            value = self._resolve(value, args)
            if value is not None:
                headers[name] = self._to_string(value)
        return headers

    def _encode_fields(self, args: dict[str, Any]) -> str:
        return self._encode_pairs(self.descriptor.fields, args)

    def _encode_pairs(self, pairs, args: dict[str, Any]) -> str:
        """按声明顺序编码 Query/Field 序列，None 值跳过，列表值展开为重复参数"""
        encoded = []
        for pair in pairs:
            value = self._resolve(pair.value, args)
            if value is None:
                continue
            values = value if isinstance(value, (list, tuple)) else [value]
            for item in values:
                if item is None:
                    continue
                text = self._to_string(item)
                if pair.encoded:
                    encoded.append(f"{pair.name}={text}")
                else:
                    encoded.append(f"{quote_plus(pair.name)}={quote_plus(text)}")
        return "&".join(encoded)

    def _encode_parts(self, args: dict[str, Any]) -> list[tuple[str, tuple]]:
        files = []
        for part in self.descriptor.parts:
            value = self._resolve(part.value, args)
            if value is None:
                continue
            if isinstance(value, (bytes, str)) or hasattr(value, "read"):
                content, media_type = value, None
            else:
                content, media_type = self._serialize_body(value)
            files.append((part.name, (part.filename, content, part.content_type or media_type)))
        if not files:
            raise RequestAssemblyError(f"Multipart request to {self.descriptor.path} has no non-empty parts")
        return files

    def _serialize_body(self, value: Any) -> tuple[Any, str | None]:
        """
        序列化请求体

        返回:
            (序列化后的内容, 内容类型)；没有转换器时 bytes/str 原样透传
        """
        converter = self.descriptor.converter
        if converter is None:
            if isinstance(value, (bytes, str)):
                return value, None
            raise RequestAssemblyError(
                f"Cannot serialize body of type {type(value).__name__} for {self.descriptor.path} "
                f"without a converter"
            )
        try:
            return converter.to_body(value), converter.media_type
        except Exception as e:
            logger.error(f"{type(converter).__name__} failed to serialize body for {self.descriptor.path}: {e}")
            raise RequestAssemblyError(f"Body serialization failed: {e}") from e

    def _to_string(self, value: Any) -> str:
        converter = self.descriptor.converter
        return converter.to_string(value) if converter is not None else str(value)

    @staticmethod
    def _resolve(value: Any, args: dict[str, Any]) -> Any:
        if isinstance(value, Arg):
            if value.name in args:
                return args[value.name]
            if value.has_default:
                return value.default
            raise RequestAssemblyError(f"Missing value for argument '{value.name}'")
        return value

    @staticmethod
    def _set_default_content_type(headers: dict[str, str], media_type: str) -> None:
        if not any(name.lower() == "content-type" for name in headers):
            headers["Content-Type"] = media_type
