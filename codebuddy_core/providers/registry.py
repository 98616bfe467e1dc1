"""Provider 配置。

集中维护各 Provider 的默认端点与模型，Settings 中的同名字段可以覆盖这里的默认值。
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class ProviderConfig:
    """某个 Provider 的默认配置。"""

    name: str
    default_model: str
    base_url: Optional[str] = None  # SDK 自带端点的 Provider 不需要


# Gemini（主 Provider，经 google-genai SDK 调用）
GEMINI_CONFIG = ProviderConfig(name="gemini", default_model="gemini-2.5-flash")

# OpenRouter 风格的 chat/completions 端点（备用 Provider）
OPENROUTER_CONFIG = ProviderConfig(
    name="openrouter",
    default_model="google/gemini-2.0-flash-exp:free",
    base_url="https://openrouter.ai/api/v1",
)

# check_models 默认探测的模型列表
GEMINI_CANDIDATE_MODELS: Tuple[str, ...] = (
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-2.0-flash-exp",
    "gemini-1.5-flash",
    "gemini-1.5-pro",
)
