"""对外 API 服务模块。

提供简化的函数接口供上层应用（界面层）调用。
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from codebuddy_core.agents.assistant import AssistantClient
from codebuddy_core.agents.session_controller import SessionController
from codebuddy_core.config.settings import settings
from codebuddy_core.domain.models import Mode, Turn
from codebuddy_core.infrastructure.logging.logger import logger
from codebuddy_core.infrastructure.storage.json_store import JsonSessionStore


_assistant: Optional[AssistantClient] = None
_controllers: Dict[str, SessionController] = {}


def get_default_assistant() -> AssistantClient:
    """获取默认的 AssistantClient 实例（单例）。"""
    global _assistant
    if _assistant is None:
        _assistant = AssistantClient(settings)
    return _assistant


def get_controller(user_id: str) -> SessionController:
    """获取某个用户的 SessionController，按 user_id 缓存。"""
    if user_id not in _controllers:
        store = JsonSessionStore(user_id=user_id, root=settings.storage_root)
        _controllers[user_id] = SessionController(store=store, assistant=get_default_assistant())
    return _controllers[user_id]


def ask_codebuddy(
    message: str,
    code: str,
    language: str,
    mode: Union[Mode, str],
    history: Optional[Iterable[Union[Turn, Mapping[str, Any]]]] = None,
) -> str:
    """无会话的单次提问，始终返回可展示的文本。

    Args:
        message: 用户本轮问题
        code: 当前代码缓冲区，可为空
        language: 语言标签，如 python
        mode: explain / debug / optimize / document
        history: 之前的对话，按时间顺序
    """
    return get_default_assistant().ask(message, code, language, mode, history)


def send_chat_message(
    user_id: str,
    session_id: Optional[str],
    text: str,
    code: str,
    language: str,
    mode: Union[Mode, str],
) -> Dict[str, Any]:
    """在会话中发送消息，session_id 为空时新建会话。

    Returns:
        包含会话ID、会话标题与助手消息的字典

    Raises:
        SessionNotFoundError 等 domain.exceptions 中定义的异常
    """
    try:
        controller = get_controller(user_id)
        if not session_id:
            session_id = controller.start_session(code, language, mode).id
        reply = controller.send_message(session_id, text, code, language, mode)
        session = controller.get_session(session_id)
        return {
            "session_id": session.id,
            "title": session.title,
            "assistant_message": {
                "id": reply.id,
                "content": reply.content,
                "timestamp": reply.timestamp,
            },
        }
    except Exception as e:
        logger.error(f"Chat failed: {e}", extra={"extra": {
            "user_id": user_id,
            "session_id": session_id,
            "error": str(e),
        }})
        raise


def list_sessions(user_id: str) -> List[Dict[str, Any]]:
    """列出用户的所有会话（最新在前），不含消息正文。"""
    return [
        {
            "id": s.id,
            "title": s.title,
            "language": s.language,
            "mode": s.mode.value,
            "created_at": s.created_at,
            "messages": len(s.messages),
        }
        for s in get_controller(user_id).list_sessions()
    ]


def get_session_messages(user_id: str, session_id: str) -> List[Dict[str, Any]]:
    session = get_controller(user_id).get_session(session_id)
    return [
        {"id": m.id, "role": m.role, "content": m.content, "timestamp": m.timestamp}
        for m in session.messages
    ]
