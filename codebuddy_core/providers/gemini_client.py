"""Gemini Provider 适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 用 google-genai SDK 建立一个带历史的多轮 chat，再发送本轮提示词。
3. 把 SDK / 网络异常翻译为业务异常：429、quota、503 归为 RateLimitError，
   其余归为 ApiError / NetworkError。
4. 返回统一的 ChatResult。

角色映射：内部的 assistant 对应 Gemini 的 model，user 保持不变。
"""

from typing import Any, Callable, List, Optional

import httpx
from google import genai
from google.genai import errors, types

from codebuddy_core.config.settings import settings
from codebuddy_core.domain.exceptions import ApiError, ConfigurationError, NetworkError, RateLimitError
from codebuddy_core.domain.models import ChatRequest, ChatResult, Role, Turn
from codebuddy_core.providers.registry import GEMINI_CONFIG


_TO_GEMINI_ROLE = {"user": "user", "assistant": "model"}
_FROM_GEMINI_ROLE = {v: k for k, v in _TO_GEMINI_ROLE.items()}

_RATE_LIMIT_STATUS = {429, 503}
_RATE_LIMIT_MARKERS = ("quota", "resource_exhausted", "resource exhausted", "rate limit")


def to_gemini_role(role: Role) -> str:
    return _TO_GEMINI_ROLE[role]


def from_gemini_role(role: str) -> Role:
    return _FROM_GEMINI_ROLE[role]  # type: ignore[return-value]


def to_gemini_history(history: List[Turn]) -> List[types.Content]:
    return [
        types.Content(role=to_gemini_role(turn.role), parts=[types.Part(text=turn.content)])
        for turn in history
    ]


def is_rate_limited(code: Optional[int], message: str) -> bool:
    if code in _RATE_LIMIT_STATUS:
        return True
    text = (message or "").lower()
    return any(marker in text for marker in _RATE_LIMIT_MARKERS)


class GeminiClient:
    """Gemini 提供方客户端实现。

    client_factory 默认是 genai.Client，测试中可替换为假工厂。
    每次 chat 调用都会新建 SDK 客户端与 chat 句柄，调用之间不共享状态。
    """

    name = "gemini"
    retry_on_rate_limit = True

    def __init__(self, cfg=settings, client_factory: Optional[Callable[..., Any]] = None):
        self._settings = cfg
        self._client_factory = client_factory or genai.Client
        self.model = getattr(cfg, "gemini_model", None) or GEMINI_CONFIG.default_model

    def chat(self, req: ChatRequest) -> ChatResult:
        client = self._connect()
        try:
            session = client.chats.create(
                model=req.model,
                config=types.GenerateContentConfig(
                    system_instruction=req.system_instruction,
                    temperature=req.temperature,
                ),
                history=to_gemini_history(req.history),
            )
            resp = session.send_message(req.prompt)
        except errors.APIError as e:
            raise self._translate_api_error(e)
        except errors.UnknownApiResponseError as e:
            raise ApiError(code="API_ERROR", message=f"Malformed response: {e}", http_status=500, provider=self.name)
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        return ChatResult(provider=self.name, model=req.model, text=getattr(resp, "text", None) or "")

    def ping(self, model: str, prompt: str = "Hello") -> ChatResult:
        """对单个模型发一次最简单的 generate_content，用于诊断。"""

        client = self._connect()
        try:
            resp = client.models.generate_content(model=model, contents=prompt)
        except errors.APIError as e:
            raise self._translate_api_error(e)
        except errors.UnknownApiResponseError as e:
            raise ApiError(code="API_ERROR", message=f"Malformed response: {e}", http_status=500, provider=self.name)
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        return ChatResult(provider=self.name, model=model, text=getattr(resp, "text", None) or "")

    def _connect(self):
        api_key = getattr(self._settings, "gemini_api_key", None)
        if not api_key:
            raise ConfigurationError(code="MISSING_API_KEY", message="GEMINI_API_KEY not set")
        return self._client_factory(api_key=api_key)

    @staticmethod
    def _translate_api_error(e: errors.APIError):
        code = getattr(e, "code", None)
        detail = getattr(e, "message", None) or str(e)
        status = getattr(e, "status", None) or ""
        if is_rate_limited(code, f"{status} {detail}"):
            return RateLimitError(code="RATE_LIMIT", message=detail, http_status=code or 429, provider="gemini")
        return ApiError(code="API_ERROR", message=detail, http_status=code or 500, provider="gemini")
