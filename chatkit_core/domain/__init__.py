"""领域层模型与协议。

包含：
- models: Message / DecodeResult / WorkflowConfig 以及解码器内部事件。
- conversation: ConversationState 及 ConversationStore 抽象。
- exceptions: 业务异常类型定义。
"""
