"""CodeBuddy Core 顶层包。

该包提供 CodeBuddy 编程助手的非界面部分：
配置加载、领域模型、Provider 适配（Gemini 与备用 chat/completions 端点）、
限流退避、会话控制与本地 JSON 持久化。
"""

from codebuddy_core.agents.assistant import AssistantClient
from codebuddy_core.api.service import ask_codebuddy

__all__ = ["AssistantClient", "ask_codebuddy"]
