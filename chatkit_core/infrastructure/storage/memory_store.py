import logging
import random
import string
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from chatkit_core.domain.conversation import ConversationState, ConversationStore
from chatkit_core.domain.models import DecodeResult, Message, Role, WorkflowConfig
from chatkit_core.protocol.payloads import build_chatkit_payload

logger = logging.getLogger("chatkit_core")


_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_message_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"msg_{int(time.time() * 1000)}_{suffix}"


class InMemoryConversationStore(ConversationStore):
    """单个会话的内存消息日志 + 活跃线程 ID。

    不做持久化；每个实例互相独立。内部锁只保证 reset 等复合修改
    对读者是原子的，不负责串行化交换（那是 ChatSession 的职责）。
    """

    def __init__(self) -> None:
        self._state = ConversationState()
        self._ids: set[str] = set()
        self._lock = threading.RLock()

    # ---- 读取 ----

    @property
    def messages(self) -> List[Message]:
        with self._lock:
            return [replace(m) for m in self._state.messages]

    @property
    def active_thread_id(self) -> Optional[str]:
        with self._lock:
            return self._state.active_thread_id

    def last_message(self) -> Optional[Message]:
        with self._lock:
            if not self._state.messages:
                return None
            return replace(self._state.messages[-1])

    def snapshot(self) -> ConversationState:
        with self._lock:
            return ConversationState(
                messages=[replace(m) for m in self._state.messages],
                active_thread_id=self._state.active_thread_id,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._state.messages)

    # ---- 修改 ----

    def append(self, role: Role, content: str) -> Message:
        with self._lock:
            msg_id = generate_message_id()
            while msg_id in self._ids:
                msg_id = generate_message_id()
            now = datetime.now(timezone.utc)
            if self._state.messages and now < self._state.messages[-1].created_at:
                now = self._state.messages[-1].created_at
            message = Message(id=msg_id, role=role, content=content, created_at=now)
            self._state.messages.append(message)
            self._ids.add(msg_id)
            return replace(message)

    def update_trailing_assistant_message(self, content: str) -> Optional[Message]:
        """改写末尾 assistant 消息的内容；末尾不是 assistant 时什么都不做。"""
        with self._lock:
            if not self._state.messages:
                return None
            last = self._state.messages[-1]
            if last.role != "assistant":
                return None
            last.content = content
            return replace(last)

    def set_active_thread(self, thread_id: str) -> None:
        with self._lock:
            if thread_id != self._state.active_thread_id:
                logger.info("Active thread changed", extra={"extra": {"thread_id": thread_id}})
            self._state.active_thread_id = thread_id

    def reset(self) -> None:
        with self._lock:
            self._state = ConversationState()
            self._ids = set()

    def apply_decode_result(self, result: DecodeResult) -> Optional[Message]:
        """把解码结果应用到存储：先更新线程，再更新末尾 assistant 消息。"""
        with self._lock:
            if result.thread_id:
                self.set_active_thread(result.thread_id)
            if result.text:
                return self.update_trailing_assistant_message(result.text)
            return None

    def build_outgoing_request(self, user_text: str, workflow: WorkflowConfig) -> Dict[str, Any]:
        return build_chatkit_payload(user_text, self.active_thread_id, workflow)
