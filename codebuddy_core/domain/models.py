"""统一的对话与结果数据模型。

本模块定义了各 Provider 之间共享的标准数据结构：

- Turn: 一条历史消息（user/assistant）。
- Mode: 辅助模式的封闭枚举。
- PromptContext: 单次请求的代码上下文，渲染为发给模型的提示词。
- ChatRequest: 发给底层 LLM Provider 的完整请求。
- ChatResult: 从 Provider 解析后的统一响应结果。

所有 Provider 适配器（如 GeminiClient）都只依赖这些模型，
并负责在各自的 API 结构和这些模型之间做转换。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional


# 对话角色，只有两种；Gemini 侧会把 assistant 映射为 model
Role = Literal["user", "assistant"]


class Mode(str, Enum):
    """用户选择的辅助模式，每次请求恰好一个。"""

    EXPLAIN = "explain"
    DEBUG = "debug"
    OPTIMIZE = "optimize"
    DOCUMENT = "document"


# 语言标签 -> 展示名。标签只用作格式化标记，不做校验。
LANGUAGES: Mapping[str, str] = {
    "python": "Python",
    "javascript": "JavaScript",
    "typescript": "TypeScript",
    "cpp": "C++",
    "java": "Java",
    "html": "HTML/CSS",
    "sql": "SQL",
}


@dataclass
class Turn:
    """一条历史消息。顺序即时间顺序，回放给 Provider 时保持不变。"""

    role: Role
    content: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Turn":
        role = data.get("role")
        if role not in ("user", "assistant"):
            raise ValueError(f"Unsupported turn role: {role!r}")
        return cls(role=role, content=data.get("content") or "")


@dataclass
class PromptContext:
    """单次请求的代码上下文，不做持久化。"""

    language: str
    code: str
    message: str

    def render(self) -> str:
        return (
            f"LANGUAGE: {self.language}\n"
            "\n"
            "CODE CONTEXT:\n"
            f"```{self.language}\n"
            f"{self.code}\n"
            "```\n"
            "\n"
            "USER QUESTION:\n"
            f"{self.message}"
        )


@dataclass
class ChatRequest:
    """一次完整的聊天请求。

    history 不包含本轮提示词；prompt 是渲染后的 PromptContext。
    Provider 适配层负责把本结构转换成各家 API 的请求体。
    """

    model: str
    system_instruction: str
    prompt: str
    history: List[Turn] = field(default_factory=list)
    temperature: float = 0.2


@dataclass
class ChatResult:
    """一次对话调用的最终结果。

    - provider: Provider 名（如 "gemini"）。
    - model: 实际使用的模型 ID。
    - text: 模型回复文本，可能为空字符串。
    - raw: 原始响应，用于调试或日志记录。
    """

    provider: str
    model: str
    text: str
    raw: Optional[Dict[str, Any]] = None
