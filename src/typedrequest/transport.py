"""传输层模块

传输层接收完整的 requests.Request 并执行，返回原始 requests.Response 或抛出传输层异常。
核心本身不做网络 I/O，也不做重试；重试和连接池由 RequestsTransport 通过 urllib3 配置。
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from requests.auth import AuthBase
from urllib3.util.retry import Retry

from typedrequest.constants import DEFAULT_POOL_CONFIG, DEFAULT_RETRIES, DEFAULT_RETRY_CONFIG, DEFAULT_TIMEOUT
from typedrequest.exceptions import ConfigurationError, TransportHTTPError, TransportNetworkError, TransportTimeoutError
from typedrequest.utils import sanitize_headers, sanitize_url

logger = logging.getLogger(__name__)

# 可以通过 request_kwargs 传给 Session.send 的参数
SEND_KWARGS = {"proxies", "cert", "allow_redirects"}


class BaseTransport(ABC):
    """传输层基类"""

    @abstractmethod
    def execute(
        self,
        request: requests.Request,
        *,
        stream: bool = False,
        request_id: str | None = None,
        tag: Any = None,
    ) -> requests.Response:
        """
        执行请求

        参数:
            request: 由 RawRequestFactory 生成的请求
            stream: 是否以流式方式读取响应
            request_id: 请求唯一标识，用于日志追踪
            tag: 调用方的关联对象，传输层只用于日志

        异常:
            TransportError: 网络、超时或 HTTP 错误响应
        """

    def close(self) -> None:
        """释放传输层资源"""


class RequestsTransport(BaseTransport):
    """
    基于 requests.Session 的传输层

    参数:
        timeout: 请求超时时间（秒）
        verify: SSL 证书验证开关
        enable_retry: 是否启用 urllib3 重试
        max_retries: 最大重试次数（覆盖 retry_config["total"]）
        retry_config: 重试策略配置字典
        pool_config: 连接池配置字典
        headers: 会话级请求头（描述符中的同名请求头优先）
        auth: requests 认证对象
        enable_sanitization: 日志中是否脱敏 URL 和请求头
        sensitive_headers: 敏感请求头名称集合
        sensitive_params: 敏感 URL 参数名称集合
        **request_kwargs: 传递给 Session.send 的参数，只接受 proxies、cert、allow_redirects

    异常:
        ConfigurationError: request_kwargs 中包含不支持的参数
    """

    def __init__(
        self,
        timeout: int | float = DEFAULT_TIMEOUT,
        verify: bool = True,
        enable_retry: bool = False,
        max_retries: int = DEFAULT_RETRIES,
        retry_config: dict[str, Any] | None = None,
        pool_config: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        auth: AuthBase | None = None,
        enable_sanitization: bool = True,
        sensitive_headers: set[str] | None = None,
        sensitive_params: set[str] | None = None,
        **request_kwargs,
    ):
        self.timeout = timeout
        self.verify = verify
        self.enable_retry = enable_retry
        self.max_retries = max_retries
        self.retry_config = {**DEFAULT_RETRY_CONFIG, **(retry_config or {}), "total": max_retries}
        self.pool_config = {**DEFAULT_POOL_CONFIG, **(pool_config or {})}
        self.headers = dict(headers or {})
        self.auth = auth
        self.enable_sanitization = enable_sanitization
        self.sensitive_headers = sensitive_headers
        self.sensitive_params = sensitive_params
        unknown = sorted(set(request_kwargs) - SEND_KWARGS)
        if unknown:
            raise ConfigurationError(f"Unsupported request options: {', '.join(unknown)}")
        self.request_kwargs = request_kwargs
        self.session = self._create_session()
        self._session_lock = threading.RLock()

    def _create_session(self) -> requests.Session:
        """
        创建并配置 requests.Session 对象

        执行步骤:
            1. 创建新的 Session 对象
            2. 设置会话级请求头和认证信息
            3. 启用重试时为 HTTP 和 HTTPS 挂载带重试策略和连接池配置的适配器
        """
        session = requests.Session()
        session.headers.update(self.headers)
        if self.auth:
            session.auth = self.auth

        if self.enable_retry and self.max_retries > 0:
            retry_strategy = Retry(**self.retry_config)
            adapter = HTTPAdapter(max_retries=retry_strategy, **self.pool_config)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        return session

    def execute(
        self,
        request: requests.Request,
        *,
        stream: bool = False,
        request_id: str | None = None,
        tag: Any = None,
    ) -> requests.Response:
        """
        执行请求并检查状态码

        执行步骤:
            1. 合并会话配置（请求头、认证、cookies）生成 PreparedRequest
            2. 记录请求日志（按配置脱敏）
            3. 发送请求，4xx/5xx 转换为 TransportHTTPError
            4. 将 requests 异常转换为传输层异常

        异常:
            TransportTimeoutError: 请求超时
            TransportHTTPError: HTTP 错误响应（4xx, 5xx）
            TransportNetworkError: 网络连接错误
        """
        url = request.url
        try:
            with self._session_lock:
                prepared = self.session.prepare_request(request)

            logger.info(f"[{request_id}] Starting {prepared.method} request to {self._safe_url(prepared.url)}")
            if logger.isEnabledFor(logging.DEBUG):
                headers = dict(prepared.headers)
                if self.enable_sanitization:
                    headers = sanitize_headers(headers, self.sensitive_headers)
                logger.debug(f"[{request_id}] Request headers: {headers}, stream: {stream}, tag: {tag!r}")

            settings = self.session.merge_environment_settings(
                prepared.url,
                self.request_kwargs.get("proxies", {}),
                stream,
                self.verify,
                self.request_kwargs.get("cert"),
            )
            response = self.session.send(
                prepared,
                timeout=self.timeout,
                allow_redirects=self.request_kwargs.get("allow_redirects", True),
                **settings,
            )

            logger.info(f"[{request_id}] Received {response.status_code} response")
            logger.debug(f"[{request_id}] Response headers: {response.headers}")
            response.raise_for_status()
            return response

        except requests.exceptions.Timeout:
            error = TransportTimeoutError(f"Request to {self._safe_url(url)} timed out after {self.timeout}s")
            logger.error(f"[{request_id}] Request failed: {error}")
            raise error from None
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else 0
            reason = e.response.reason if e.response is not None else "No response"
            error = TransportHTTPError(f"HTTP {status_code}: {reason}", response=e.response)
            # 流式响应未被读取，连接需要手动归还连接池
            if stream and e.response is not None:
                e.response.close()
            logger.error(f"[{request_id}] Request failed: {error}")
            raise error from e
        except requests.exceptions.RequestException as e:
            error = TransportNetworkError(f"Request to {self._safe_url(url)} failed: {e}")
            logger.error(f"[{request_id}] Request failed: {error}")
            raise error from e

    def _safe_url(self, url: str) -> str:
        return sanitize_url(url, self.sensitive_params) if self.enable_sanitization else url

    def close(self) -> None:
        """关闭 Session 会话，释放连接池资源"""
        if self.session:
            self.session.close()
            logger.info("Session closed")
