"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 默认端点与模型 (registry)。
- 限流退避重试 (retry)。
- 提供各厂商的具体实现 (gemini_client、openrouter_client)。
"""

from codebuddy_core.config.settings import settings
from codebuddy_core.providers.base import ProviderClient
from codebuddy_core.providers.gemini_client import GeminiClient
from codebuddy_core.providers.openrouter_client import OpenRouterClient


def create_provider(cfg=None) -> ProviderClient:
    """按配置选择本次调用使用的 Provider。

    配置了备用 Provider 的密钥时，整次请求只走备用 Provider，
    Gemini 客户端不会被构造；否则使用 Gemini。
    """

    cfg = cfg or settings
    if getattr(cfg, "openrouter_api_key", None):
        return OpenRouterClient(cfg)
    return GeminiClient(cfg)
