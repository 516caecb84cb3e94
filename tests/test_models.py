"""
models 模块测试

测试端点声明使用的值对象
"""

import copy
import pickle
from unittest.mock import Mock

import pytest

from typedrequest.models import (
    NO_VALUE,
    RAW_BYTES,
    Arg,
    HttpMethod,
    Part,
    Query,
    Response,
    ReturnShape,
    ShapeKind,
    describe_type,
    is_raw_bytes,
)


class TestHttpMethod:
    """测试 HTTP 方法枚举"""

    @pytest.mark.unit
    @pytest.mark.parametrize("method", [HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH])
    def test_body_methods(self, method):
        """UT-MOD-001: PATCH/POST/PUT 携带请求体"""
        assert method.has_body is True

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "method", [HttpMethod.GET, HttpMethod.DELETE, HttpMethod.HEAD, HttpMethod.OPTIONS, HttpMethod.TRACE]
    )
    def test_non_body_methods(self, method):
        assert method.has_body is False

    @pytest.mark.unit
    def test_string_value(self):
        """枚举值与方法名字符串相等"""
        assert HttpMethod("GET") is HttpMethod.GET
        assert HttpMethod.POST == "POST"


class TestRawBytes:
    """测试原始字节标记"""

    @pytest.mark.unit
    def test_singleton(self):
        """UT-MOD-002: 复制和序列化后仍是同一个标记"""
        assert copy.deepcopy(RAW_BYTES) is RAW_BYTES
        assert pickle.loads(pickle.dumps(RAW_BYTES)) is RAW_BYTES
        assert repr(RAW_BYTES) == "RAW_BYTES"

    @pytest.mark.unit
    def test_is_raw_bytes(self):
        assert is_raw_bytes(RAW_BYTES) is True
        assert is_raw_bytes(bytes) is True
        assert is_raw_bytes(str) is False
        assert is_raw_bytes("bytes") is False


class TestReturnShape:
    """测试返回类型描述符"""

    @pytest.mark.unit
    def test_constructors(self):
        """UT-MOD-003: 工厂方法设置返回形态"""
        assert ReturnShape.call("User").kind is ShapeKind.CALL
        assert ReturnShape.single("User").kind is ShapeKind.SINGLE
        assert ReturnShape.deferred("User").kind is ShapeKind.DEFERRED
        assert ReturnShape.stream("User").kind is ShapeKind.STREAM

    @pytest.mark.unit
    def test_value_semantics(self):
        """相同形态和负载类型的描述符相等且哈希相同"""
        assert ReturnShape.single("User") == ReturnShape.single("User")
        assert hash(ReturnShape.single(dict)) == hash(ReturnShape.single(dict))
        assert ReturnShape.single("User") != ReturnShape.deferred("User")

    @pytest.mark.unit
    def test_str(self):
        assert str(ReturnShape.single("User")) == "single[User]"
        assert str(ReturnShape.stream(RAW_BYTES)) == "stream[RAW_BYTES]"
        assert str(ReturnShape.deferred(dict)) == "deferred[dict]"
        assert str(NO_VALUE) == "no_value"

    @pytest.mark.unit
    def test_no_value(self):
        assert NO_VALUE.is_no_value is True
        assert ReturnShape.single(None).is_no_value is False

    @pytest.mark.unit
    def test_describe_type(self):
        assert describe_type("Order") == "Order"
        assert describe_type(int) == "int"
        assert describe_type(RAW_BYTES) == "RAW_BYTES"


class TestParameters:
    """测试参数值对象"""

    @pytest.mark.unit
    def test_arg_default(self):
        """UT-MOD-004: None 也可以作为默认值"""
        assert Arg("page").has_default is False
        assert Arg("page", default=None).has_default is True
        assert Arg("page", default=1).default == 1

    @pytest.mark.unit
    def test_query_defaults(self):
        assert Query("page", 1).encoded is False

    @pytest.mark.unit
    def test_part_defaults(self):
        part = Part("file", b"data")

        assert part.filename is None
        assert part.content_type is None


class TestResponse:
    """测试执行结果"""

    @pytest.mark.unit
    def test_properties(self):
        """UT-MOD-005: 属性代理到原始响应"""
        raw = Mock(status_code=201, headers={"Location": "/users/1"}, url="https://api.example.com/users")

        response = Response(raw=raw, body={"id": 1})

        assert response.status_code == 201
        assert response.headers == {"Location": "/users/1"}
        assert response.url == "https://api.example.com/users"
        assert response.is_successful is True
        assert response.body == {"id": 1}

    @pytest.mark.unit
    def test_not_successful(self):
        assert Response(raw=Mock(status_code=302)).is_successful is False
