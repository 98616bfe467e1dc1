import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, TypeVar
from uuid import uuid4

from codebuddy_core.config.settings import settings
from codebuddy_core.domain.conversation import ChatSession, SessionStore, Snippet
from codebuddy_core.domain.exceptions import BusinessError


T = TypeVar("T")


class JsonSessionStore(SessionStore):
    """按用户保存会话与代码片段。

    布局：<root>/users/<user_id>/chats.json 与 snippets.json，
    每个文件是一个 JSON 数组，列表顺序即界面上的显示顺序（最新在前）。
    """

    def __init__(self, user_id: str, root: str | Path | None = None):
        if not user_id:
            raise BusinessError(code="INVALID_USER", message="user_id is required")
        if "/" in user_id or "\\" in user_id or ".." in user_id or user_id.startswith("."):
            raise BusinessError(code="INVALID_USER", message=f"Invalid user_id: {user_id!r}")
        self._root = Path(root or settings.storage_root).resolve()
        self._user_dir = self._root / "users" / user_id
        self._user_dir.mkdir(parents=True, exist_ok=True)

    def load_sessions(self) -> List[ChatSession]:
        return self._read_list("chats.json", ChatSession.from_dict)

    def save_sessions(self, sessions: List[ChatSession]) -> None:
        self._write_list("chats.json", [s.to_dict() for s in sessions])

    def load_snippets(self) -> List[Snippet]:
        return self._read_list("snippets.json", Snippet.from_dict)

    def save_snippets(self, snippets: List[Snippet]) -> None:
        self._write_list("snippets.json", [s.to_dict() for s in snippets])

    def _read_list(self, name: str, parse: Callable[[Dict[str, Any]], T]) -> List[T]:
        path = self._user_dir / name
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, list):
                raise ValueError(f"{name} is not a JSON array")
            return [parse(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise BusinessError(code="STORE_READ_ERROR", message=str(e))

    def _write_list(self, name: str, items: List[Dict[str, Any]]) -> None:
        path = self._user_dir / name
        tmp_path = self._user_dir / f"{name}.{uuid4().hex}.tmp"
        try:
            tmp_path.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))
