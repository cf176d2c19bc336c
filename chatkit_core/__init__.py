"""ChatKit Core 顶层包。

该包实现 ChatKit 聊天后端的响应摄取核心：把 SSE 事件流或一次性
JSON 响应解码为 (thread_id, text)，并维护内存中的有序消息日志与
活跃线程。

顶层只导出不依赖配置与网络的部分；传输实现与会话封装分别位于
chatkit_core.providers 与 chatkit_core.api，导入时才会加载 settings 与日志文件。
"""

from chatkit_core.protocol.decoder import decode
from chatkit_core.domain.models import DecodeResult, Message, WorkflowConfig
from chatkit_core.infrastructure.storage.memory_store import InMemoryConversationStore

__all__ = [
    "decode",
    "DecodeResult",
    "Message",
    "WorkflowConfig",
    "InMemoryConversationStore",
]
