"""OpenRouter 风格的备用 Provider 适配器。

接口与 OpenAI 的 chat/completions 一致：
- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>
- 额外请求头: HTTP-Referer / X-Title，用于在对方控制台标识应用

请求体只使用 model/messages/temperature。system 指令、历史、本轮提示词
按顺序拼进 messages。该 Provider 不做限流重试，任何非 2xx（包括未跟随的 3xx）
以及无法解析的响应体都抛出 ApiError。
"""

from typing import Any, Dict, List

import httpx

from codebuddy_core.config.settings import settings
from codebuddy_core.domain.exceptions import ApiError, ConfigurationError, NetworkError
from codebuddy_core.domain.models import ChatRequest, ChatResult
from codebuddy_core.providers.registry import OPENROUTER_CONFIG


class OpenRouterClient:
    """备用 chat/completions 客户端实现。"""

    name = "openrouter"
    retry_on_rate_limit = False

    def __init__(self, cfg=settings):
        self._settings = cfg
        self.model = getattr(cfg, "openrouter_model", None) or OPENROUTER_CONFIG.default_model

    def chat(self, req: ChatRequest) -> ChatResult:
        api_key = getattr(self._settings, "openrouter_api_key", None)
        if not api_key:
            raise ConfigurationError(code="MISSING_API_KEY", message="OPENROUTER_API_KEY not set")
        payload = self._build_payload(req)
        base = getattr(self._settings, "openrouter_base_url", None) or OPENROUTER_CONFIG.base_url
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(
                    f"{base}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                        "HTTP-Referer": getattr(self._settings, "app_url", ""),
                        "X-Title": getattr(self._settings, "app_title", "CodeBuddy"),
                    },
                )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        if not 200 <= resp.status_code < 300:
            raise ApiError(
                code="API_ERROR",
                message=self._error_message(resp),
                http_status=resp.status_code,
                provider=self.name,
            )
        try:
            data = resp.json()
            text = self._extract_text(data)
        except (ValueError, AttributeError, TypeError, IndexError) as e:
            raise ApiError(
                code="API_ERROR",
                message=f"Malformed response: {e}",
                http_status=resp.status_code,
                provider=self.name,
            )
        return ChatResult(provider=self.name, model=req.model, text=text, raw=data)

    @staticmethod
    def _build_payload(req: ChatRequest) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = [{"role": "system", "content": req.system_instruction}]
        messages.extend({"role": turn.role, "content": turn.content} for turn in req.history)
        messages.append({"role": "user", "content": req.prompt})
        return {
            "model": req.model,
            "messages": messages,
            "temperature": req.temperature,
        }

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        choices = data.get("choices") or []
        if not choices:
            return ""
        msg = choices[0].get("message") or {}
        content = msg.get("content") or ""
        if not isinstance(content, str):
            raise TypeError(f"unexpected content type {type(content).__name__}")
        return content

    @staticmethod
    def _error_message(resp) -> str:
        """优先取错误体里的 error.message，否则退回到 HTTP 状态行。"""

        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            err = data.get("error")
            if isinstance(err, dict) and err.get("message"):
                return str(err["message"])
        reason = getattr(resp, "reason_phrase", "") or ""
        return f"{resp.status_code} {reason}".strip()
