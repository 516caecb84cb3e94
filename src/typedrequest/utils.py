"""工具函数模块

提供路径占位符渲染、日志脱敏等实用功能
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, quote, urlencode, urlparse, urlunparse

from typedrequest.exceptions import RequestAssemblyError


# 默认敏感请求头名称集合
DEFAULT_SENSITIVE_HEADERS = {
    "Authorization",
    "Cookie",
    "X-API-Key",
    "X-Auth-Token",
    "X-Access-Token",
    "API-Key",
    "Auth-Token",
    "Session-ID",
}

# 默认敏感URL参数名称集合
DEFAULT_SENSITIVE_PARAMS = {
    "token",
    "password",
    "secret",
    "key",
    "api_key",
    "apikey",
    "access_token",
    "auth_token",
    "session",
    "pwd",
}

# 匹配 {variable_name} 格式的路径占位符
PATH_PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")


def render_path(path: str, args: dict[str, Any]) -> str:
    """
    渲染路径中的变量占位符

    参数:
        path: 包含变量占位符的路径，如 "/users/{user_id}/posts/{post_id}"
        args: 调用时传入的参数字典

    返回:
        渲染后的路径，占位符的值会按路径段进行 URL 编码

    异常:
        RequestAssemblyError: 占位符在 args 中没有对应的值

    示例:
        >>> render_path("/users/{user_id}", {"user_id": 123})
        "/users/123"
    """

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in args:
            raise RequestAssemblyError(f"Missing value for path placeholder '{{{name}}}' in {path}")
        return quote(str(args[name]), safe="")

    return PATH_PLACEHOLDER_PATTERN.sub(replace, path)


def sanitize_headers(
    headers: Mapping[str, Any],
    sensitive_keys: set[str] | None = None,
    mask: str = "***",
) -> dict[str, Any]:
    """
    生成用于日志输出的请求头副本，敏感请求头的值替换为 mask

    参数:
        headers: 请求头映射（dict 或 requests 的 CaseInsensitiveDict）
        sensitive_keys: 需要隐藏的请求头名称，比较时忽略大小写；默认 DEFAULT_SENSITIVE_HEADERS
        mask: 替换值

    示例:
        >>> sanitize_headers({"X-API-Key": "k-123", "Accept": "*/*"})
        {"X-API-Key": "***", "Accept": "*/*"}
    """
    hidden = _lowered(DEFAULT_SENSITIVE_HEADERS if sensitive_keys is None else sensitive_keys)
    sanitized = {}
    for name, value in headers.items():
        sanitized[name] = mask if name.lower() in hidden else value
    return sanitized


def _lowered(names) -> frozenset[str]:
    return frozenset(name.lower() for name in names)


def sanitize_url(
    url: str,
    sensitive_params: set[str] | None = None,
    mask: str = "***",
) -> str:
    """
    脱敏 URL 中的敏感参数，保留查询参数原有顺序

    参数:
        url: 原始 URL
        sensitive_params: 敏感参数名集合，不区分大小写。None 时使用默认集合
        mask: 脱敏后的替换字符串

    返回:
        脱敏后的 URL

    示例:
        >>> sanitize_url("https://api.example.com/user?token=abc123&page=1")
        "https://api.example.com/user?token=***&page=1"
    """
    parsed = urlparse(url)
    if not parsed.query:
        return url

    hidden = _lowered(DEFAULT_SENSITIVE_PARAMS if sensitive_params is None else sensitive_params)
    pairs = parse_qsl(parsed.query, keep_blank_values=True)
    sanitized_pairs = [(key, mask if key.lower() in hidden else value) for key, value in pairs]

    # mask 本身不做编码，便于在日志中识别
    sanitized_query = urlencode(sanitized_pairs, safe="*")
    return urlunparse(parsed._replace(query=sanitized_query))
