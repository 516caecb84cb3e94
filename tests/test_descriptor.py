"""
descriptor 模块测试

测试 DescriptorBuilder 的验证顺序、请求体编码规则和 EndpointDescriptor 的不可变性:
- 必填字段与路径格式
- 请求体与 HTTP 方法的一致性
- 表单/multipart 编码（后设置者生效）
- 适配器与转换器解析
"""

import dataclasses
import pytest
from unittest.mock import patch

from typedrequest.descriptor import (
    DescriptorBuilder,
    EndpointDescriptor,
    FormBody,
    MultipartBody,
    NoBody,
    RawBody,
)
from typedrequest.exceptions import ConfigurationError
from typedrequest.models import (
    NO_VALUE,
    RAW_BYTES,
    BodyEncoding,
    Field,
    HttpMethod,
    Part,
    Query,
    ReturnShape,
)


@pytest.fixture
def builder(client):
    """带有合法默认配置的构建器"""
    return client.endpoint("/users", HttpMethod.GET).declared_return_shape(ReturnShape.single("User"))


class TestRequiredFields:
    """测试必填字段"""

    @pytest.mark.unit
    @pytest.mark.parametrize("missing", ["path", "method", "declared_return_shape"])
    def test_missing_required_field(self, client, missing):
        """UT-DESC-001: 缺少必填字段时抛出 '<field> must be set'"""
        builder = DescriptorBuilder(client)
        if missing != "path":
            builder.path("/users")
        if missing != "method":
            builder.method(HttpMethod.GET)
        if missing != "declared_return_shape":
            builder.declared_return_shape(ReturnShape.single("User"))

        with pytest.raises(ConfigurationError, match=f"{missing} must be set"):
            builder.build()

    @pytest.mark.unit
    def test_method_none_rejected_by_setter(self, client):
        """method(None) 立即抛出"""
        with pytest.raises(ConfigurationError):
            DescriptorBuilder(client).method(None)

    @pytest.mark.unit
    def test_method_accepts_case_insensitive_string(self, builder):
        """字符串方法名转换为 HttpMethod"""
        descriptor = builder.method("post").build()

        assert descriptor.method is HttpMethod.POST

    @pytest.mark.unit
    def test_unknown_method_string(self, client):
        """未知方法名抛出 ConfigurationError"""
        with pytest.raises(ConfigurationError, match="Unsupported HTTP method"):
            DescriptorBuilder(client).method("FETCH")

    @pytest.mark.unit
    @pytest.mark.parametrize("setter", ["query_params", "headers", "tag", "body", "parts", "fields"])
    def test_none_input_rejected(self, builder, setter):
        """容器和值参数不接受 None，调用方应传入空容器"""
        with pytest.raises(ConfigurationError, match="must not be None"):
            getattr(builder, setter)(None)

    @pytest.mark.unit
    def test_return_shape_must_be_descriptor(self, builder):
        """声明的返回类型必须是 ReturnShape"""
        with pytest.raises(ConfigurationError, match="must be a ReturnShape"):
            builder.declared_return_shape("User")


class TestPathValidation:
    """测试路径格式"""

    @pytest.mark.unit
    @pytest.mark.parametrize("path", ["login", "", "users/1", "https://api.example.com/users", " /users"])
    def test_path_without_leading_slash(self, builder, path):
        """UT-DESC-002: 不以 '/' 开头的路径被拒绝"""
        with pytest.raises(ConfigurationError, match="must start with"):
            builder.path(path).build()

    @pytest.mark.unit
    @pytest.mark.parametrize("path", ["/", "/users", "/users/{user_id}", "/a/b/c?x=1"])
    def test_path_with_leading_slash(self, builder, path):
        """以 '/' 开头的路径通过格式检查"""
        descriptor = builder.path(path).build()

        assert descriptor.path == path


class TestBodyMethodCompatibility:
    """测试请求体与方法的一致性"""

    @pytest.mark.unit
    @pytest.mark.parametrize("method", [HttpMethod.GET, HttpMethod.DELETE, HttpMethod.HEAD])
    def test_non_body_method_with_body(self, builder, method):
        """UT-DESC-003: 非请求体方法携带请求体时失败"""
        with pytest.raises(ConfigurationError, match="non-body method cannot carry a body"):
            builder.method(method).body("x").build()

    @pytest.mark.unit
    @pytest.mark.parametrize("method", [HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH])
    def test_body_method_with_body(self, builder, method):
        """请求体方法携带请求体时成功"""
        descriptor = builder.method(method).body({"name": "john"}).build()

        assert descriptor.body_encoding is BodyEncoding.NONE
        assert descriptor.body == {"name": "john"}
        assert isinstance(descriptor.payload, RawBody)

    @pytest.mark.unit
    def test_no_body_endpoint(self, builder):
        """UT-DESC-004: GET /users 声明 User 返回类型"""
        descriptor = builder.build()

        assert isinstance(descriptor, EndpointDescriptor)
        assert descriptor.body_encoding is BodyEncoding.NONE
        assert descriptor.body is None
        assert isinstance(descriptor.payload, NoBody)
        assert descriptor.converter is not None


class TestBodyEncoding:
    """测试表单与 multipart 编码"""

    @pytest.mark.unit
    def test_form_requires_fields(self, builder):
        """表单编码没有字段时失败"""
        with pytest.raises(ConfigurationError, match="form-encoded method requires at least one field"):
            builder.method(HttpMethod.POST).fields([]).build()

    @pytest.mark.unit
    def test_form_with_fields(self, builder):
        """表单编码有字段时成功，元组自动转换为 Field"""
        descriptor = builder.method(HttpMethod.POST).fields([("username", "john"), Field("age", 3)]).build()

        assert descriptor.body_encoding is BodyEncoding.FORM_URL_ENCODED
        assert isinstance(descriptor.payload, FormBody)
        assert descriptor.fields == (Field("username", "john"), Field("age", 3))
        assert descriptor.parts == ()

    @pytest.mark.unit
    def test_multipart_requires_parts(self, client):
        """UT-DESC-005: POST /upload 且 parts 为空"""
        builder = (
            client.endpoint("/upload", HttpMethod.POST).parts([]).declared_return_shape(ReturnShape.single("User"))
        )

        with pytest.raises(ConfigurationError, match="multipart method requires at least one part"):
            builder.build()

    @pytest.mark.unit
    def test_multipart_with_parts(self, builder):
        """multipart 编码有分段时成功"""
        descriptor = builder.method(HttpMethod.POST).parts([Part("file", b"data", filename="a.txt")]).build()

        assert descriptor.body_encoding is BodyEncoding.MULTIPART
        assert isinstance(descriptor.payload, MultipartBody)
        assert descriptor.parts[0].filename == "a.txt"
        assert descriptor.fields == ()

    @pytest.mark.unit
    def test_parts_after_fields_wins(self, builder):
        """后设置 parts 时编码为 MULTIPART"""
        builder.method(HttpMethod.POST).fields([("a", 1)]).parts([("file", b"x")])

        assert builder.body_encoding is BodyEncoding.MULTIPART
        assert builder.build().body_encoding is BodyEncoding.MULTIPART

    @pytest.mark.unit
    def test_fields_after_parts_wins(self, builder):
        """后设置 fields 时编码为 FORM_URL_ENCODED"""
        builder.method(HttpMethod.POST).parts([("file", b"x")]).fields([("a", 1)])

        assert builder.body_encoding is BodyEncoding.FORM_URL_ENCODED
        assert builder.build().body_encoding is BodyEncoding.FORM_URL_ENCODED

    @pytest.mark.unit
    def test_empty_parts_after_fields_still_fails(self, builder):
        """后设置的空 parts 仍决定编码，并因为没有分段而失败"""
        builder.method(HttpMethod.POST).fields([("a", 1)]).parts([])

        with pytest.raises(ConfigurationError, match="multipart"):
            builder.build()

    @pytest.mark.unit
    def test_body_with_form_encoding_rejected(self, builder):
        """表单编码不能再设置单独的请求体"""
        with pytest.raises(ConfigurationError, match="body cannot be combined"):
            builder.method(HttpMethod.POST).fields([("a", 1)]).body({"x": 1}).build()

    @pytest.mark.unit
    def test_invalid_field_item(self, builder):
        """字段元素既不是 Field 也不是元组时报错"""
        with pytest.raises(ConfigurationError, match="Expected Field"):
            builder.fields(["username"])


class TestResolution:
    """测试适配器与转换器解析"""

    @pytest.mark.unit
    def test_no_value_return_shape(self, builder):
        """无返回值的端点被拒绝，且不询问适配器解析器"""
        with patch.object(builder.client.adapter_resolver, "get") as adapter_get:
            with pytest.raises(ConfigurationError, match="return value"):
                builder.declared_return_shape(NO_VALUE).build()

        adapter_get.assert_not_called()

    @pytest.mark.unit
    def test_unresolvable_adapter_skips_converter(self, client):
        """UT-DESC-006: 没有适配器时失败，且不尝试解析转换器"""
        client.adapter_resolver = type(client.adapter_resolver)([])
        builder = client.endpoint("/users", "GET").declared_return_shape(ReturnShape.single("User"))

        with patch.object(client.converter_resolver, "get") as converter_get:
            with pytest.raises(ConfigurationError, match="no adapter for return type single\\[User\\]"):
                builder.build()

        converter_get.assert_not_called()

    @pytest.mark.unit
    def test_unresolvable_converter(self, builder):
        """没有转换器支持响应类型时失败"""
        with pytest.raises(ConfigurationError, match="no converter for response type Order; register one"):
            builder.declared_return_shape(ReturnShape.single("Order")).build()

    @pytest.mark.unit
    def test_raw_bytes_needs_no_converter(self, builder):
        """响应类型为原始字节时不需要转换器"""
        with patch.object(builder.client.converter_resolver, "get") as converter_get:
            descriptor = builder.declared_return_shape(ReturnShape.single(RAW_BYTES)).build()

        assert descriptor.converter is None
        converter_get.assert_not_called()

    @pytest.mark.unit
    def test_structural_errors_before_resolution(self, builder):
        """结构性错误先于解析器被发现"""
        with patch.object(builder.client.adapter_resolver, "get") as adapter_get:
            with pytest.raises(ConfigurationError):
                builder.path("users").build()

        adapter_get.assert_not_called()


class TestEndpointDescriptor:
    """测试封装后的描述符"""

    @pytest.mark.unit
    def test_accessors(self, builder):
        """访问器返回构建时的配置"""
        tag = object()
        descriptor = (
            builder.tag(tag)
            .query_params([("page", 1), Query("size", 10)])
            .headers({"X-Trace": "abc"})
            .build()
        )

        assert descriptor.tag is tag
        assert descriptor.query_params == (Query("page", 1), Query("size", 10))
        assert dict(descriptor.headers) == {"X-Trace": "abc"}
        assert descriptor.return_shape == ReturnShape.single("User")
        assert descriptor.call_adapter.response_type == "User"

    @pytest.mark.unit
    def test_descriptor_is_immutable(self, builder):
        """描述符的属性不可修改"""
        descriptor = builder.build()

        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.path = "/other"
        with pytest.raises(TypeError):
            descriptor.headers["X-New"] = "1"

    @pytest.mark.unit
    def test_builder_changes_do_not_leak(self, builder):
        """构建后继续修改构建器不影响已封装的描述符"""
        headers = {"X-A": "1"}
        descriptor = builder.headers(headers).query_params([("a", 1)]).build()

        headers["X-B"] = "2"
        builder.query_params([("b", 2)])

        assert dict(descriptor.headers) == {"X-A": "1"}
        assert descriptor.query_params == (Query("a", 1),)

    @pytest.mark.unit
    def test_builder_reusable(self, builder):
        """同一构建器可以多次 build，得到独立的描述符"""
        first = builder.build()
        second = builder.path("/orders").build()

        assert first.path == "/users"
        assert second.path == "/orders"
        assert first is not second
