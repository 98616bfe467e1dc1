"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError。
Provider 适配层负责把 SDK / httpx 的异常翻译成这里的类型，
只有 AssistantClient 的边界会把它们转换为面向用户的字符串。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_READ_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider、attempts 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigurationError(BusinessError):
    """凭证或配置缺失，在任何网络请求之前抛出，不重试。"""


class RateLimitError(BusinessError):
    """Provider 限流或暂时不可用（429 / quota / 503），由上层负责重试/退避。"""


class ServiceError(BusinessError):
    """其他 Provider 侧错误，不重试，消息中保留底层细节。"""


class ApiError(ServiceError):
    """第三方 API 返回非 2xx 且不属于限流时抛出。"""


class NetworkError(ServiceError):
    """网络层错误，例如连接失败、超时等。"""


class SessionNotFoundError(BusinessError):
    """会话不存在。"""


class SnippetNotFoundError(BusinessError):
    """代码片段不存在。"""
