"""领域层模型与协议。

包含：
- models: Turn / Mode / PromptContext / ChatRequest / ChatResult 模型。
- conversation: 会话、消息、代码片段的存储模型及 SessionStore 抽象。
- exceptions: 业务异常类型定义。
"""
