from dataclasses import dataclass, field
from typing import Optional, List, Protocol, Dict, Any

from .models import Message, Role, DecodeResult, WorkflowConfig


@dataclass
class ConversationState:
    messages: List[Message] = field(default_factory=list)
    active_thread_id: Optional[str] = None


class ConversationStore(Protocol):
    def append(self, role: Role, content: str) -> Message:
        ...

    def update_trailing_assistant_message(self, content: str) -> Optional[Message]:
        ...

    def set_active_thread(self, thread_id: str) -> None:
        ...

    def reset(self) -> None:
        ...

    def build_outgoing_request(self, user_text: str, workflow: WorkflowConfig) -> Dict[str, Any]:
        ...

    def apply_decode_result(self, result: DecodeResult) -> Optional[Message]:
        ...

    def snapshot(self) -> ConversationState:
        ...

    def last_message(self) -> Optional[Message]:
        ...
