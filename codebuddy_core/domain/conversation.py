"""会话、消息与代码片段的存储模型及 SessionStore 抽象。"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .models import Mode, Role


@dataclass
class Message:
    id: str
    role: Role
    content: str
    timestamp: int  # epoch 毫秒


@dataclass
class ChatSession:
    id: str
    title: str
    code_context: str
    language: str
    mode: Mode
    created_at: int
    messages: List[Message] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatSession":
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            code_context=data.get("code_context") or "",
            language=data.get("language") or "python",
            mode=Mode(data.get("mode") or Mode.EXPLAIN.value),
            created_at=int(data.get("created_at") or 0),
            messages=[Message(**m) for m in data.get("messages") or []],
        )


@dataclass
class Snippet:
    id: str
    title: str
    language: str
    code: str
    created_at: int
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snippet":
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            language=data.get("language") or "python",
            code=data.get("code") or "",
            created_at=int(data.get("created_at") or 0),
            notes=data.get("notes"),
        )


class SessionStore(Protocol):
    def load_sessions(self) -> List[ChatSession]:
        ...

    def save_sessions(self, sessions: List[ChatSession]) -> None:
        ...

    def load_snippets(self) -> List[Snippet]:
        ...

    def save_snippets(self, snippets: List[Snippet]) -> None:
        ...
