"""会话控制器。

负责某个用户的聊天会话与代码片段：乐观地追加用户消息、调用 AssistantClient、
追加助手回复，每次变更后同步写回 SessionStore。
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Union
from uuid import uuid4

from codebuddy_core.domain.conversation import ChatSession, Message, SessionStore, Snippet
from codebuddy_core.domain.exceptions import SessionNotFoundError, SnippetNotFoundError
from codebuddy_core.domain.models import Mode, Turn
from codebuddy_core.infrastructure.logging.logger import logger


NEW_SESSION_TITLE = "New Session"
TITLE_PREVIEW_CHARS = 30


class Assistant(Protocol):
    def ask(self, message: str, code: str, language: str, mode: Union[Mode, str], history: List[Turn]) -> str:
        ...


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionController:
    def __init__(self, store: SessionStore, assistant: Assistant):
        self._store = store
        self._assistant = assistant

    # ---- 会话 ----

    def list_sessions(self) -> List[ChatSession]:
        return self._store.load_sessions()

    def get_session(self, session_id: str) -> ChatSession:
        return self._find(self._store.load_sessions(), session_id)

    def start_session(self, code: str, language: str, mode: Union[Mode, str]) -> ChatSession:
        """新建会话并放在列表最前。"""

        session = ChatSession(
            id=f"s-{uuid4().hex}",
            title=NEW_SESSION_TITLE,
            code_context=code,
            language=language,
            mode=Mode(mode),
            created_at=_now_ms(),
        )
        sessions = self._store.load_sessions()
        sessions.insert(0, session)
        self._store.save_sessions(sessions)
        self._log(logging.INFO, "Created new session", session_id=session.id, mode=session.mode.value)
        return session

    def delete_session(self, session_id: str) -> None:
        sessions = self._store.load_sessions()
        remaining = [s for s in sessions if s.id != session_id]
        if len(remaining) == len(sessions):
            raise SessionNotFoundError(code="SESSION_NOT_FOUND", message=f"Session {session_id} not found", http_status=404)
        self._store.save_sessions(remaining)

    def send_message(
        self,
        session_id: str,
        text: str,
        code: str,
        language: str,
        mode: Union[Mode, str],
    ) -> Message:
        """发送一条用户消息并返回助手回复。

        步骤：
        1. 追加用户消息并立即保存（首条消息时用其前 30 个字符作为标题）。
        2. 以本条之前的消息作为历史调用助手。
        3. 追加助手回复并保存。
        """

        mode = Mode(mode)
        sessions = self._store.load_sessions()
        session = self._find(sessions, session_id)
        history = [Turn(role=m.role, content=m.content) for m in session.messages]

        user_msg = Message(id=f"m-{uuid4().hex}", role="user", content=text, timestamp=_now_ms())
        if not session.messages:
            session.title = text[:TITLE_PREVIEW_CHARS] + "..."
        session.messages.append(user_msg)
        session.code_context = code
        session.language = language
        session.mode = mode
        self._store.save_sessions(sessions)

        reply = self._assistant.ask(text, code, language, mode, history)

        # 助手调用期间其他操作可能已改写存储，这里重新读取再追加
        sessions = self._store.load_sessions()
        session = self._find(sessions, session_id)
        assistant_msg = Message(id=f"m-{uuid4().hex}", role="assistant", content=reply, timestamp=_now_ms())
        session.messages.append(assistant_msg)
        self._store.save_sessions(sessions)
        self._log(
            logging.INFO,
            "Stored assistant message",
            session_id=session_id,
            message_id=assistant_msg.id,
            messages=len(session.messages),
        )
        return assistant_msg

    # ---- 代码片段 ----

    def list_snippets(self) -> List[Snippet]:
        return self._store.load_snippets()

    def save_snippet(
        self,
        content: str,
        language: str,
        title: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Snippet:
        snippet = Snippet(
            id=f"sn-{uuid4().hex}",
            title=title or f"Snippet from {datetime.now().strftime('%H:%M:%S')}",
            language=language,
            code=content,
            created_at=_now_ms(),
            notes=notes,
        )
        snippets = self._store.load_snippets()
        snippets.insert(0, snippet)
        self._store.save_snippets(snippets)
        return snippet

    def delete_snippet(self, snippet_id: str) -> None:
        snippets = self._store.load_snippets()
        remaining = [s for s in snippets if s.id != snippet_id]
        if len(remaining) == len(snippets):
            raise SnippetNotFoundError(code="SNIPPET_NOT_FOUND", message=f"Snippet {snippet_id} not found", http_status=404)
        self._store.save_snippets(remaining)

    # ---- 辅助方法 ----

    @staticmethod
    def _find(sessions: List[ChatSession], session_id: str) -> ChatSession:
        for session in sessions:
            if session.id == session_id:
                return session
        raise SessionNotFoundError(code="SESSION_NOT_FOUND", message=f"Session {session_id} not found", http_status=404)

    @staticmethod
    def _log(level: int, message: str, **fields: Any) -> None:
        payload: Dict[str, Any] = dict(fields)
        logger.log(level, message, extra={"extra": payload})
