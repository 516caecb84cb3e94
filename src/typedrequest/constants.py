"""
常量配置模块

定义请求构建核心使用的常量、默认配置等
"""

# HTTP 方法常量
HTTP_METHOD_GET = "GET"
HTTP_METHOD_POST = "POST"
HTTP_METHOD_PUT = "PUT"
HTTP_METHOD_DELETE = "DELETE"
HTTP_METHOD_PATCH = "PATCH"
HTTP_METHOD_HEAD = "HEAD"
HTTP_METHOD_OPTIONS = "OPTIONS"
HTTP_METHOD_TRACE = "TRACE"

# 语义上携带请求体的 HTTP 方法集合
BODY_METHODS = {HTTP_METHOD_PATCH, HTTP_METHOD_POST, HTTP_METHOD_PUT}

# 默认配置
DEFAULT_TIMEOUT = 30  # 默认超时时间（秒）
DEFAULT_RETRIES = 3  # 默认重试次数
DEFAULT_MAX_WORKERS = 10  # enqueue / Future 适配使用的最大工作线程数
DEFAULT_CHUNK_SIZE = 8192  # 流式读取原始字节时的分块大小（字节）

# 重试策略配置
RETRY_STATUS_FORCELIST = [429, 500, 502, 503, 504]  # 需要重试的 HTTP 状态码
RETRY_BACKOFF_FACTOR = 0.5  # 重试退避因子
RETRY_ALLOWED_METHODS = [
    HTTP_METHOD_HEAD,
    HTTP_METHOD_GET,
    HTTP_METHOD_PUT,
    HTTP_METHOD_DELETE,
    HTTP_METHOD_OPTIONS,
    HTTP_METHOD_TRACE,
]

# 连接池配置
POOL_CONNECTIONS = 100  # 连接池大小
POOL_MAXSIZE = 100  # 连接池最大连接数

DEFAULT_RETRY_CONFIG = {
    "total": DEFAULT_RETRIES,  # 重试总次数
    "backoff_factor": RETRY_BACKOFF_FACTOR,  # 重试退避因子
    "status_forcelist": RETRY_STATUS_FORCELIST,  # 需要重试的状态码列表
    "allowed_methods": RETRY_ALLOWED_METHODS,  # 允许重试的HTTP方法
    "raise_on_status": False,  # 不在重试时抛出状态异常
}

DEFAULT_POOL_CONFIG = {
    "pool_connections": POOL_CONNECTIONS,  # 连接池大小
    "pool_maxsize": POOL_MAXSIZE,  # 连接池最大连接数
}

# 内容类型
CONTENT_TYPE_JSON = "application/json; charset=utf-8"
CONTENT_TYPE_TEXT = "text/plain; charset=utf-8"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"
