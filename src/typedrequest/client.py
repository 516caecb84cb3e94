"""服务客户端模块

ServiceClient 是端点描述符的配置来源:
- 基础 URL 提供者
- 调用适配器工厂和转换器工厂（显式传入，不存在进程级全局注册表）
- 传输层（默认基于 requests.Session）
- enqueue / Future 适配使用的线程池
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from requests.auth import AuthBase

from typedrequest.adapter import DEFAULT_CALL_ADAPTER_FACTORIES, ResponseAdapterResolver
from typedrequest.constants import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_POOL_CONFIG,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_CONFIG,
    DEFAULT_TIMEOUT,
)
from typedrequest.converter import BodyConverterResolver
from typedrequest.descriptor import DescriptorBuilder
from typedrequest.exceptions import ConfigurationError
from typedrequest.models import HttpMethod
from typedrequest.transport import BaseTransport, RequestsTransport
from typedrequest.utils import DEFAULT_SENSITIVE_HEADERS, DEFAULT_SENSITIVE_PARAMS

logger = logging.getLogger(__name__)


class BaseUrl(ABC):
    """基础 URL 提供者，提供路径解析时使用的 scheme + host + 前缀"""

    @abstractmethod
    def resolve(self) -> str:
        """返回当前的基础 URL"""


class StaticBaseUrl(BaseUrl):
    """固定的基础 URL"""

    def __init__(self, url: str):
        self.url = url.rstrip("/")

    def resolve(self) -> str:
        return self.url

    def __repr__(self) -> str:
        return f"StaticBaseUrl({self.url!r})"


class ServiceClient:
    """
    服务客户端

    所有配置均可通过类属性设置默认值，并在实例化时覆盖。

    类属性:
        base_url: 基础 URL 字符串或 BaseUrl 实例（必须设置）
        default_timeout: 默认超时时间（秒）
        verify: SSL 证书验证开关
        enable_retry: 是否启用重试机制（默认 False）
        max_retries: 最大重试次数
        retry_config: 重试策略配置字典
        pool_config: 连接池配置字典
        default_headers: 会话级请求头
        max_workers: enqueue / Future 适配的最大工作线程数
        enable_sanitization: 日志中是否脱敏
        authentication_class: 认证类或实例
        transport_class: 传输层类或实例
        call_adapter_factories: 调用适配器工厂序列，按顺序尝试
        converter_factories: 转换器工厂序列，按顺序尝试；为空时只能声明原始字节响应

    使用示例:
        >>> class UserService(ServiceClient):
        ...     base_url = "https://api.example.com"
        ...     converter_factories = (JSONConverterFactory(),)
        >>>
        >>> with UserService() as client:
        ...     get_user = client.endpoint("/users/{user_id}", "GET").declared_return_shape(
        ...         ReturnShape.single("User")
        ...     ).build()
        ...     user = get_user.new_call(user_id=1)
    """

    # ========== 基础配置 ==========
    base_url: str | BaseUrl = ""
    verify: bool = True

    # ========== 安全性配置 ==========
    enable_sanitization: bool = True
    sensitive_headers: set[str] = DEFAULT_SENSITIVE_HEADERS
    sensitive_params: set[str] = DEFAULT_SENSITIVE_PARAMS

    # ========== 超时和重试配置 ==========
    default_timeout: int = DEFAULT_TIMEOUT
    enable_retry: bool = False
    max_retries: int = DEFAULT_RETRIES
    retry_config: dict[str, Any] = DEFAULT_RETRY_CONFIG
    pool_config: dict[str, Any] = DEFAULT_POOL_CONFIG

    # ========== 请求头和并发配置 ==========
    default_headers: dict[str, str] = {}
    max_workers: int = DEFAULT_MAX_WORKERS

    # ========== 可插拔组件配置 ==========
    authentication_class: type[AuthBase] | AuthBase | None = None
    transport_class: type[BaseTransport] | BaseTransport = RequestsTransport
    call_adapter_factories: tuple = DEFAULT_CALL_ADAPTER_FACTORIES
    converter_factories: tuple = ()

    def __init__(
        self,
        base_url: str | BaseUrl | None = None,
        headers: dict[str, str] | None = None,
        timeout: int | None = None,
        verify: bool | None = None,
        enable_retry: bool | None = None,
        max_retries: int | None = None,
        max_workers: int | None = None,
        retry_config: dict[str, Any] | None = None,
        pool_config: dict[str, Any] | None = None,
        enable_sanitization: bool | None = None,
        sensitive_headers: set[str] | None = None,
        sensitive_params: set[str] | None = None,
        authentication: AuthBase | type[AuthBase] | None = None,
        transport: BaseTransport | type[BaseTransport] | None = None,
        call_adapter_factories=None,
        converter_factories=None,
        **kwargs,
    ):
        """
        初始化服务客户端

        参数:
            timeout: 请求超时时间（秒），覆盖 default_timeout
            headers: 会话级请求头，与 default_headers 合并
            enable_sanitization, sensitive_headers, sensitive_params: 覆盖同名类属性
            **kwargs: 传给 Session.send 的额外参数（如 proxies、cert、allow_redirects）

        执行步骤:
            1. 解析基础 URL
            2. 合并实例级配置（未传入时使用类属性）
            3. 创建适配器解析器和转换器解析器
            4. 解析认证组件和传输层

        异常:
            ConfigurationError: 未设置基础 URL 或组件配置无效
        """
        # ========== 步骤1: 基础 URL ==========
        self.base_url = self._resolve_base_url(base_url if base_url is not None else self.base_url)

        # ========== 步骤2: 实例级配置 ==========
        self.timeout = timeout if timeout is not None else self.default_timeout
        self.verify = verify if verify is not None else self.verify
        self.enable_retry = enable_retry if enable_retry is not None else self.enable_retry
        self.max_retries = max_retries if max_retries is not None else self.max_retries
        self.max_workers = max_workers if max_workers is not None else self.max_workers
        self.retry_config = {**self.retry_config, **(retry_config or {})}
        self.pool_config = {**self.pool_config, **(pool_config or {})}
        self.enable_sanitization = (
            enable_sanitization if enable_sanitization is not None else self.enable_sanitization
        )
        self.sensitive_headers = sensitive_headers if sensitive_headers is not None else self.sensitive_headers
        self.sensitive_params = sensitive_params if sensitive_params is not None else self.sensitive_params
        self.session_headers = {**self.default_headers, **(headers or {})}
        self.default_request_kwargs = kwargs

        # ========== 步骤3: 解析器 ==========
        self.adapter_resolver = ResponseAdapterResolver(
            call_adapter_factories if call_adapter_factories is not None else self.call_adapter_factories
        )
        self.converter_resolver = BodyConverterResolver(
            converter_factories if converter_factories is not None else self.converter_factories
        )

        # ========== 步骤4: 认证与传输层 ==========
        self.auth_instance = self._resolve_component(authentication, "authentication_class", AuthBase)
        self.transport = self._resolve_transport(transport)

        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    @staticmethod
    def _resolve_base_url(base_url: str | BaseUrl) -> BaseUrl:
        if isinstance(base_url, BaseUrl):
            return base_url
        if not base_url:
            raise ConfigurationError("base_url must be provided as a class attribute or argument.")
        return StaticBaseUrl(base_url)

    def _resolve_component(self, component, class_attr_name: str, base_class: type, **init_kwargs):
        """
        统一的组件解析方法

        参数:
            component: 传入的组件配置（类或实例）
            class_attr_name: 类属性名称
            base_class: 基类类型
            **init_kwargs: 实例化时的额外参数

        返回:
            组件实例，未配置时返回 None
        """
        # 优先使用传入配置，否则使用类级别配置
        source = component if component is not None else getattr(self, class_attr_name, None)

        if source is None:
            return None

        if isinstance(source, type) and issubclass(source, base_class):
            try:
                return source(**init_kwargs)
            except Exception as e:
                logger.error(f"Failed to instantiate {source.__name__}: {e}")
                raise ConfigurationError(f"{class_attr_name} instantiation failed: {e}") from e

        if isinstance(source, base_class):
            return source

        raise ConfigurationError(f"{class_attr_name} must be a {base_class.__name__} subclass or instance")

    def _resolve_transport(self, transport) -> BaseTransport:
        source = transport if transport is not None else self.transport_class
        if isinstance(source, type) and issubclass(source, RequestsTransport):
            return self._resolve_component(
                source,
                "transport_class",
                BaseTransport,
                timeout=self.timeout,
                verify=self.verify,
                enable_retry=self.enable_retry,
                max_retries=self.max_retries,
                retry_config=self.retry_config,
                pool_config=self.pool_config,
                headers=self.session_headers,
                auth=self.auth_instance,
                enable_sanitization=self.enable_sanitization,
                sensitive_headers=self.sensitive_headers,
                sensitive_params=self.sensitive_params,
                **self.default_request_kwargs,
            )
        return self._resolve_component(source, "transport_class", BaseTransport)

    @property
    def executor(self) -> ThreadPoolExecutor:
        """enqueue / Future 适配使用的线程池，首次使用时创建"""
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="typedrequest")
            return self._executor

    def endpoint(self, path: str | None = None, method: HttpMethod | str | None = None) -> DescriptorBuilder:
        """
        创建绑定到当前客户端的描述符构建器

        参数:
            path: 路径（可选，也可稍后调用 builder.path()）
            method: HTTP 方法（可选）
        """
        builder = DescriptorBuilder(self)
        if path is not None:
            builder.path(path)
        if method is not None:
            builder.method(method)
        return builder

    def close(self):
        """
        释放资源

        执行步骤:
            1. 关闭传输层会话
            2. 等待并关闭线程池（如已创建）
        """
        self.transport.close()
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
                logger.info("Executor shut down")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
