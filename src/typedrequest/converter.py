"""
转换器模块

提供请求体序列化和响应体反序列化的策略对象，以及按负载类型选择转换器的解析器。

主要组件:
    - BaseConverter / BaseConverterFactory: 转换器和转换器工厂接口
    - JSONConverter: 标准 JSON 编解码
    - StringConverter: UTF-8 文本
    - DRFSerializerConverter: 基于 DRF Serializer 渲染请求体、验证响应体
    - BodyConverterResolver: 有序工厂解析器，RAW_BYTES 跳过转换

使用示例:
    >>> resolver = BodyConverterResolver([JSONConverterFactory(types={"User"})])
    >>> converter = resolver.get("User")
    >>> converter.from_body(b'{"id": 1}')
    {'id': 1}
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from rest_framework import serializers
from rest_framework.utils.encoders import JSONEncoder as DRFJSONEncoder

from typedrequest.constants import CONTENT_TYPE_JSON, CONTENT_TYPE_OCTET_STREAM, CONTENT_TYPE_TEXT
from typedrequest.exceptions import ConfigurationError, ResponseConversionError
from typedrequest.models import describe_type, is_raw_bytes
from typedrequest.resolver import BaseResolver

logger = logging.getLogger(__name__)


class BaseConverter(ABC):
    """转换器基类，定义请求体序列化和响应体反序列化的接口。"""

    # 序列化请求体时使用的 Content-Type
    media_type: str = CONTENT_TYPE_OCTET_STREAM

    @abstractmethod
    def to_body(self, value: Any) -> bytes:
        """将请求体对象序列化为字节"""

    @abstractmethod
    def from_body(self, content: bytes) -> Any:
        """将响应字节反序列化为声明的负载类型"""

    def to_string(self, value: Any) -> str:
        """将查询参数、表单字段的值转换为字符串"""
        return str(value)


class BaseConverterFactory(ABC):
    """转换器工厂基类，get 返回 None 表示不支持该负载类型"""

    @abstractmethod
    def get(self, payload_type: Any) -> BaseConverter | None:
        """返回支持 payload_type 的转换器，不支持时返回 None"""


class JSONConverter(BaseConverter):
    """使用标准库 json 编解码"""

    media_type: str = CONTENT_TYPE_JSON

    def __init__(self, encoder_class: type[json.JSONEncoder] | None = None, ensure_ascii: bool = False):
        self.encoder_class = encoder_class
        self.ensure_ascii = ensure_ascii

    def to_body(self, value: Any) -> bytes:
        return json.dumps(value, cls=self.encoder_class, ensure_ascii=self.ensure_ascii).encode("utf-8")

    def from_body(self, content: bytes) -> Any:
        if not content:
            return None
        logger.debug("Parsing response as JSON")
        return json.loads(content)


class JSONConverterFactory(BaseConverterFactory):
    """
    JSON 转换器工厂

    参数:
        types: 支持的负载类型集合，None 表示支持所有类型
        converter: 使用的转换器实例（可选）
    """

    def __init__(self, types=None, converter: JSONConverter | None = None):
        self.types = frozenset(types) if types is not None else None
        self.converter = converter or JSONConverter()

    def get(self, payload_type: Any) -> BaseConverter | None:
        if self.types is None:
            return self.converter
        try:
            return self.converter if payload_type in self.types else None
        except TypeError:
            return None


class StringConverter(BaseConverter):
    """UTF-8 文本转换器"""

    media_type: str = CONTENT_TYPE_TEXT

    def to_body(self, value: Any) -> bytes:
        return str(value).encode("utf-8")

    def from_body(self, content: bytes) -> str:
        return content.decode("utf-8") if content else ""


class StringConverterFactory(BaseConverterFactory):
    """只支持 str 负载类型"""

    def __init__(self):
        self.converter = StringConverter()

    def get(self, payload_type: Any) -> BaseConverter | None:
        return self.converter if payload_type is str else None


class DRFSerializerConverter(BaseConverter):
    """
    DRF Serializer 转换器

    请求体: 字典（或字典列表）先经 Serializer 验证，再用 DRF 的 JSONEncoder 编码；其它对象按实例序列化。
    响应体: JSON 解析后交给 Serializer 验证，返回 validated_data。

    参数:
        serializer_class: DRF Serializer 类
        many: 是否按列表处理；响应体为 JSON 数组时自动启用

    异常:
        serializers.ValidationError: 请求体验证失败（由请求工厂转换为 RequestAssemblyError）
        ResponseConversionError: 响应体验证失败
    """

    media_type: str = CONTENT_TYPE_JSON

    def __init__(self, serializer_class: type[serializers.BaseSerializer], many: bool = False):
        self.serializer_class = serializer_class
        self.many = many

    def to_body(self, value: Any) -> bytes:
        if isinstance(value, Mapping) or (isinstance(value, list) and all(isinstance(v, Mapping) for v in value)):
            serializer = self.serializer_class(data=value, many=self.many or isinstance(value, list))
            serializer.is_valid(raise_exception=True)
        else:
            serializer = self.serializer_class(instance=value, many=self.many)
        return json.dumps(serializer.data, cls=DRFJSONEncoder, ensure_ascii=False).encode("utf-8")

    def from_body(self, content: bytes) -> Any:
        if not content:
            return None
        data = json.loads(content)
        serializer = self.serializer_class(data=data, many=self.many or isinstance(data, list))
        if not serializer.is_valid():
            logger.error(f"{self.serializer_class.__name__} rejected response body: {serializer.errors}")
            raise ResponseConversionError(
                f"Response body failed {self.serializer_class.__name__} validation", errors=serializer.errors
            )
        return serializer.validated_data


class DRFConverterFactory(BaseConverterFactory):
    """
    DRF 转换器工厂

    负载类型命中 serializers 映射，或负载类型本身就是 Serializer 子类时返回转换器。

    使用示例:
        >>> class UserSerializer(serializers.Serializer):
        ...     id = serializers.IntegerField()
        >>> factory = DRFConverterFactory({"User": UserSerializer})
    """

    def __init__(self, serializers_map: Mapping[Any, type[serializers.BaseSerializer]] | None = None):
        self.serializers_map = dict(serializers_map or {})

    def get(self, payload_type: Any) -> BaseConverter | None:
        try:
            serializer_class = self.serializers_map.get(payload_type)
        except TypeError:
            serializer_class = None
        if serializer_class is None and isinstance(payload_type, type):
            if issubclass(payload_type, serializers.BaseSerializer):
                serializer_class = payload_type
        if serializer_class is None:
            return None
        return DRFSerializerConverter(serializer_class)


class BodyConverterResolver(BaseResolver):
    """
    转换器解析器

    按注册顺序询问转换器工厂，第一个返回转换器的工厂胜出。
    负载类型为原始字节时跳过转换，返回 None。
    """

    factory_base_class = BaseConverterFactory

    def get(self, payload_type: Any) -> BaseConverter | None:
        if is_raw_bytes(payload_type):
            return None
        return super().get(payload_type)

    def _not_found(self, key: Any) -> ConfigurationError:
        return ConfigurationError(
            f"no converter for response type {describe_type(key)}; register one or use raw bytes"
        )
