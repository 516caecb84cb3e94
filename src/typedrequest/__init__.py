"""
typedrequest 请求构建模块

把一个端点的声明（路径、方法、参数、请求体形态）构建为已验证的不可变描述符，
在构建时解析调用适配器和转换器，并生成可取消的调用对象

主要组件:
    - ServiceClient: 基础 URL、解析器、传输层和线程池的配置来源
    - DescriptorBuilder / EndpointDescriptor: 端点描述符构建器和描述符
    - Invocation: 可取消的单次调用
    - 适配器: CallAdapterFactory, SyncCallAdapterFactory, FutureCallAdapterFactory, StreamCallAdapterFactory
    - 转换器: JSONConverterFactory, StringConverterFactory, DRFConverterFactory
    - 传输层: RequestsTransport
    - 异常类: TypedRequestError 及其子类

使用示例:
    >>> from typedrequest import JSONConverterFactory, ReturnShape, ServiceClient
    >>>
    >>> class UserService(ServiceClient):
    ...     base_url = "https://api.example.com"
    ...     converter_factories = (JSONConverterFactory(),)
    >>>
    >>> client = UserService()
    >>> list_users = client.endpoint("/users", "GET").declared_return_shape(ReturnShape.single("User")).build()
    >>> users = list_users.new_call()
"""

# 客户端与描述符
from typedrequest.client import BaseUrl, ServiceClient, StaticBaseUrl
from typedrequest.descriptor import (
    DescriptorBuilder,
    EndpointDescriptor,
    FormBody,
    MultipartBody,
    NoBody,
    RawBody,
)
from typedrequest.call import BaseCallback, CallState, Invocation
from typedrequest.request_factory import RawRequestFactory

# 数据模型
from typedrequest.models import (
    NO_VALUE,
    RAW_BYTES,
    Arg,
    BodyEncoding,
    Field,
    HttpMethod,
    Part,
    Query,
    Response,
    ReturnShape,
    ShapeKind,
)

# 调用适配器
from typedrequest.adapter import (
    BaseCallAdapter,
    BaseCallAdapterFactory,
    CallAdapterFactory,
    FutureCallAdapterFactory,
    ResponseAdapterResolver,
    StreamCallAdapterFactory,
    SyncCallAdapterFactory,
)

# 转换器
from typedrequest.converter import (
    BaseConverter,
    BaseConverterFactory,
    BodyConverterResolver,
    DRFConverterFactory,
    DRFSerializerConverter,
    JSONConverter,
    JSONConverterFactory,
    StringConverter,
    StringConverterFactory,
)

# 传输层
from typedrequest.transport import BaseTransport, RequestsTransport

# 异常类
from typedrequest.exceptions import (
    CallStateError,
    CancelledError,
    ConfigurationError,
    RequestAssemblyError,
    ResponseConversionError,
    TransportError,
    TransportHTTPError,
    TransportNetworkError,
    TransportTimeoutError,
    TypedRequestError,
)

__all__ = [
    # 客户端与描述符
    "ServiceClient",
    "BaseUrl",
    "StaticBaseUrl",
    "DescriptorBuilder",
    "EndpointDescriptor",
    "NoBody",
    "RawBody",
    "FormBody",
    "MultipartBody",
    "Invocation",
    "CallState",
    "BaseCallback",
    "RawRequestFactory",
    # 数据模型
    "HttpMethod",
    "BodyEncoding",
    "ReturnShape",
    "ShapeKind",
    "RAW_BYTES",
    "NO_VALUE",
    "Arg",
    "Query",
    "Field",
    "Part",
    "Response",
    # 适配器
    "BaseCallAdapter",
    "BaseCallAdapterFactory",
    "CallAdapterFactory",
    "SyncCallAdapterFactory",
    "FutureCallAdapterFactory",
    "StreamCallAdapterFactory",
    "ResponseAdapterResolver",
    # 转换器
    "BaseConverter",
    "BaseConverterFactory",
    "JSONConverter",
    "JSONConverterFactory",
    "StringConverter",
    "StringConverterFactory",
    "DRFSerializerConverter",
    "DRFConverterFactory",
    "BodyConverterResolver",
    # 传输层
    "BaseTransport",
    "RequestsTransport",
    # 异常
    "TypedRequestError",
    "ConfigurationError",
    "RequestAssemblyError",
    "CancelledError",
    "CallStateError",
    "ResponseConversionError",
    "TransportError",
    "TransportHTTPError",
    "TransportNetworkError",
    "TransportTimeoutError",
]

__version__ = "0.1.0"
__author__ = "HACK-WU"
