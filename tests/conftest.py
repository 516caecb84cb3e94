"""
通用测试 Fixture 定义

提供测试所需的客户端、Mock 传输层和构建器
"""

import pytest
import django
from django.conf import settings
from unittest.mock import MagicMock, Mock

# DRF Serializer 需要 Django 设置
if not settings.configured:
    settings.configure(
        DEBUG=True,
        SECRET_KEY="test-secret-key",
        USE_I18N=True,
        USE_TZ=True,
    )
    django.setup()

from typedrequest.client import ServiceClient
from typedrequest.converter import JSONConverterFactory
from typedrequest.transport import BaseTransport


BASE_URL = "https://api.example.com"


class JSONServiceClient(ServiceClient):
    """测试用的客户端，JSON 转换器只支持 User 和 dict"""

    base_url = BASE_URL
    converter_factories = (JSONConverterFactory(types={"User", dict}),)


@pytest.fixture
def client():
    """基础配置的 ServiceClient 实例，使用真实的 RequestsTransport"""
    with JSONServiceClient() as instance:
        yield instance


@pytest.fixture
def mock_response():
    """标准 Mock Response 对象"""
    response = Mock()
    response.status_code = 200
    response.headers = {"Content-Type": "application/json"}
    response.content = b'{"id": 1, "name": "john"}'
    response.url = f"{BASE_URL}/users"
    return response


@pytest.fixture
def mock_transport(mock_response):
    """Mock 传输层，execute 返回 mock_response"""
    transport = MagicMock(spec=BaseTransport)
    transport.execute.return_value = mock_response
    return transport


@pytest.fixture
def mock_client(mock_transport):
    """使用 Mock 传输层的客户端"""
    with JSONServiceClient(transport=mock_transport) as instance:
        yield instance
