"""Provider 抽象接口。

上层 AssistantClient 不直接依赖具体厂商的 SDK 或 HTTP 细节，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 GeminiClient、OpenRouterClient）。
- 负责：将 ChatRequest 转成具体 API 请求，并把响应解析为 ChatResult，
  同时把厂商异常翻译为 domain.exceptions 中的业务异常。
"""

from typing import Protocol

from codebuddy_core.domain.models import ChatRequest, ChatResult


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/统计。
    - model: 本 Provider 实际使用的模型 ID。
    - retry_on_rate_limit: 限流时是否由上层做退避重试。
    - chat(req): 执行一次对话调用，返回统一的 ChatResult。
    """

    name: str
    model: str
    retry_on_rate_limit: bool

    def chat(self, req: ChatRequest) -> ChatResult:
        ...
