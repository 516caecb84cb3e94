"""
测试 typedrequest.constants 模块

测试常量定义和配置
"""

import pytest

from typedrequest import constants


class TestBodyMethodsSet:
    """测试携带请求体的方法集合"""

    @pytest.mark.unit
    def test_body_methods_set(self):
        """UT-CONST-001: 只有 PATCH/POST/PUT 携带请求体"""
        assert constants.BODY_METHODS == {
            constants.HTTP_METHOD_PATCH,
            constants.HTTP_METHOD_POST,
            constants.HTTP_METHOD_PUT,
        }


class TestDefaultConfigurations:
    """测试默认配置值"""

    @pytest.mark.unit
    def test_defaults(self):
        """UT-CONST-002: 默认超时、重试和线程数"""
        assert constants.DEFAULT_TIMEOUT == 30
        assert constants.DEFAULT_RETRIES == 3
        assert constants.DEFAULT_MAX_WORKERS == 10

    @pytest.mark.unit
    def test_retry_config(self):
        """UT-CONST-003: 重试配置不包含非幂等的 POST/PATCH"""
        allowed = constants.DEFAULT_RETRY_CONFIG["allowed_methods"]

        assert constants.HTTP_METHOD_POST not in allowed
        assert constants.HTTP_METHOD_PATCH not in allowed
        assert constants.DEFAULT_RETRY_CONFIG["total"] == constants.DEFAULT_RETRIES
