"""CodeBuddy 助手请求客户端。

把一轮用户提问和代码上下文组装成 ChatRequest，交给本次选中的 Provider，
在主 Provider 上对限流做指数退避重试，最后把结果统一成一段可展示的文本。

ask() 对配置缺失、限流、服务端错误都不会抛出异常，而是返回对应的提示文本；
未知的 mode 或历史中的非法角色属于调用方的编程错误，照常抛出 ValueError。
"""

import logging
import time
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union
from uuid import uuid4

from codebuddy_core.config.settings import settings
from codebuddy_core.domain.exceptions import BusinessError, RateLimitError
from codebuddy_core.domain.models import ChatRequest, ChatResult, Mode, Turn
from codebuddy_core.infrastructure.logging.logger import logger
from codebuddy_core.prompts import build_prompt, build_system_instruction
from codebuddy_core.providers import create_provider
from codebuddy_core.providers.base import ProviderClient
from codebuddy_core.providers.retry import RetryPolicy, call_with_backoff


EMPTY_RESPONSE_TEXT = "I couldn't generate a response."
BUSY_TEXT = (
    "CodeBuddy is experiencing high traffic right now (speed limit reached). "
    "Please wait a few seconds and try again."
)


def error_text(detail: str) -> str:
    return f"Error communicating with CodeBuddy: {detail}. Please check your API key or try again."


HistoryItem = Union[Turn, Mapping[str, Any]]


def normalize_history(history: Optional[Iterable[HistoryItem]]) -> List[Turn]:
    """接受 Turn 或 {"role", "content"} 字典，保持原有顺序。"""

    turns: List[Turn] = []
    for item in history or []:
        if isinstance(item, Turn):
            turns.append(item)
        elif isinstance(item, Mapping):
            turns.append(Turn.from_dict(item))
        else:
            turns.append(Turn.from_dict({"role": getattr(item, "role", None), "content": getattr(item, "content", "")}))
    return turns


class AssistantClient:
    """助手请求客户端，调用之间不保留任何状态。

    Args:
        cfg: 配置对象，默认使用模块级 settings。
        provider_factory: 根据配置选出本次调用的 Provider，默认 create_provider。
        sleep: 退避等待函数，测试中可替换为假时钟。
    """

    def __init__(
        self,
        cfg=None,
        provider_factory: Callable[[Any], ProviderClient] = create_provider,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._settings = cfg or settings
        self._provider_factory = provider_factory
        self._sleep = sleep
        self._policy = RetryPolicy.from_settings(self._settings)

    def build_request(
        self,
        model: str,
        message: str,
        code: str,
        language: str,
        mode: Union[Mode, str],
        history: Optional[Iterable[HistoryItem]] = None,
    ) -> ChatRequest:
        return ChatRequest(
            model=model,
            system_instruction=build_system_instruction(mode),
            prompt=build_prompt(message, code, language),
            history=normalize_history(history),
            temperature=getattr(self._settings, "temperature", 0.2),
        )

    def ask(
        self,
        message: str,
        code: str,
        language: str,
        mode: Union[Mode, str],
        history: Optional[Iterable[HistoryItem]] = None,
    ) -> str:
        mode = Mode(mode)
        turns = normalize_history(history)
        log_ctx = {"trace_id": f"tr-{uuid4().hex}", "mode": mode.value, "language": language}

        try:
            provider = self._provider_factory(self._settings)
            log_ctx["provider"] = provider.name
            req = self.build_request(provider.model, message, code, language, mode, turns)
            self._log(logging.INFO, "assistant.request", log_ctx, history=len(turns), model=req.model)
            result = self._dispatch(provider, req)
        except RateLimitError as e:
            self._log(logging.WARNING, "assistant.busy", log_ctx, attempts=e.extra.get("attempts"), error=e.message)
            return BUSY_TEXT
        except BusinessError as e:
            self._log(logging.ERROR, "assistant.failed", log_ctx, code=e.code, error=e.message)
            return error_text(e.message)

        if not result.text.strip():
            self._log(logging.WARNING, "assistant.empty_response", log_ctx)
            return EMPTY_RESPONSE_TEXT
        self._log(logging.INFO, "assistant.response", log_ctx, chars=len(result.text))
        return result.text

    def _dispatch(self, provider: ProviderClient, req: ChatRequest) -> ChatResult:
        if getattr(provider, "retry_on_rate_limit", False):
            return call_with_backoff(f"{provider.name}.chat", lambda: provider.chat(req), self._policy, sleep=self._sleep)
        return provider.chat(req)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Mapping[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
