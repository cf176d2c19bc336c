"""对话会话：把传输、解码器与消息存储串起来。

一次「交换」的流程与聊天页面一致：

1. begin_exchange: 追加用户消息，标记忙碌，按当前线程状态构造请求体，
   再追加一条空的 assistant 占位消息。
2. 请求完成后恰好调用一次 complete_exchange 或 fail_exchange，
   用结果改写占位消息并释放忙碌状态。

同一个会话同时最多只有一次交换在进行中；忙碌时的发送请求会被忽略。
"""

import time
from typing import Any, Dict, Optional
from uuid import uuid4

from chatkit_core.domain.conversation import ConversationStore
from chatkit_core.domain.exceptions import NetworkError, ValidationError
from chatkit_core.domain.models import Message, WorkflowConfig
from chatkit_core.infrastructure.logging.logger import logger
from chatkit_core.infrastructure.storage.memory_store import InMemoryConversationStore
from chatkit_core.protocol.decoder import decode, extract_error_message
from chatkit_core.protocol.sse import SSEAccumulator
from chatkit_core.providers.base import Transport, is_event_stream


TRANSPORT_FAILURE_MESSAGE = "Sorry, I encountered an error. Please try again."
GENERIC_ERROR_MESSAGE = "Sorry, something went wrong. Please try again."
NO_RESPONSE_MESSAGE = "I received your message but couldn't generate a response."


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def has_body(body: Any) -> bool:
    # 空对象 {} 仍算有响应体，交给解码器得到空结果
    if body is None:
        return False
    if isinstance(body, (str, bytes, bytearray)):
        return bool(body)
    return True


class ChatSession:
    """单个会话的调用方包装。

    Args:
        workflow: 请求针对的 workflow 配置
        store: 消息存储（可选，默认新建内存存储）
        transport: 传输实现（可选；只使用 begin/complete 时可以不提供）
    """

    def __init__(
        self,
        workflow: WorkflowConfig,
        store: Optional[ConversationStore] = None,
        transport: Optional[Transport] = None,
    ):
        self._workflow = workflow
        self._store = store if store is not None else InMemoryConversationStore()
        self._transport = transport
        self._busy = False
        self._exchange_id: Optional[str] = None
        self._started_at = 0.0

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def busy(self) -> bool:
        return self._busy

    # ---- 交换生命周期 ----

    def begin_exchange(self, user_text: str) -> Optional[Dict[str, Any]]:
        """开始一次交换，返回要发送的请求体；空输入或忙碌时返回 None。"""

        content = (user_text or "").strip()
        if not content:
            return None
        if self._busy:
            logger.info("Exchange rejected while busy", extra={"extra": {"exchange_id": self._exchange_id}})
            return None

        payload = self._store.build_outgoing_request(content, self._workflow)
        self._store.append("user", content)
        self._store.append("assistant", "")
        self._busy = True
        self._exchange_id = f"ex-{uuid4().hex}"
        self._started_at = time.time()
        logger.info(
            "Exchange started",
            extra={"extra": {"exchange_id": self._exchange_id, "request_type": payload["type"]}},
        )
        logger.debug("Outgoing payload", extra={"extra": {"payload": payload}})
        return payload

    def complete_exchange(self, status_code: int, body: Any) -> str:
        """用 HTTP 响应结束交换，返回最终展示给用户的文本。"""

        self._ensure_in_flight()
        if not is_success(status_code) or not has_body(body):
            text = extract_error_message(body) or GENERIC_ERROR_MESSAGE
            logger.warning(
                "ChatKit request failed",
                extra={"extra": {"exchange_id": self._exchange_id, "status_code": status_code}},
            )
            self._store.update_trailing_assistant_message(text)
            self._finish("error")
            return text

        result = decode(body)
        self._store.apply_decode_result(result)
        if not result.text:
            self._store.update_trailing_assistant_message(NO_RESPONSE_MESSAGE)
        self._finish("ok" if result.text else "empty")
        return result.text or NO_RESPONSE_MESSAGE

    def fail_exchange(self, error: Optional[BaseException] = None) -> str:
        """传输失败时结束交换；线程状态保持不变。"""

        self._ensure_in_flight()
        logger.error(
            "ChatKit transport failed",
            extra={"extra": {"exchange_id": self._exchange_id, "error": str(error) if error else None}},
        )
        self._store.update_trailing_assistant_message(TRANSPORT_FAILURE_MESSAGE)
        self._finish("transport_error")
        return TRANSPORT_FAILURE_MESSAGE

    # ---- 便捷入口 ----

    def send(self, user_text: str) -> Optional[Message]:
        """完整执行一次非流式交换，返回末尾的 assistant 消息；被忽略时返回 None。"""

        transport = self._require_transport()
        payload = self.begin_exchange(user_text)
        if payload is None:
            return None
        try:
            resp = transport.post(payload)
        except NetworkError as e:
            self.fail_exchange(e)
        except Exception as e:
            self.fail_exchange(e)
            raise
        else:
            self.complete_exchange(resp.status_code, resp.body)
        return self._store.last_message()

    def send_streaming(self, user_text: str) -> Optional[Message]:
        """流式执行一次交换，每收到一段文本就改写占位消息。

        只有 2xx 的 text/event-stream 响应按 SSE 逐行读取；
        其他响应（错误状态、JSON、空响应）读取完整响应体后走 complete_exchange。
        """

        transport = self._require_transport()
        payload = self.begin_exchange(user_text)
        if payload is None:
            return None
        try:
            with transport.stream(payload) as resp:
                if is_success(resp.status_code) and is_event_stream(resp.content_type):
                    self._consume_stream(resp.status_code, resp.iter_lines())
                else:
                    self.complete_exchange(resp.status_code, resp.read_body())
        except NetworkError as e:
            if self._busy:
                self.fail_exchange(e)
        except Exception as e:
            if self._busy:
                self.fail_exchange(e)
            raise
        return self._store.last_message()

    def _consume_stream(self, status_code: int, lines) -> None:
        accumulator = SSEAccumulator()
        shown = ""
        received = False
        for line in lines:
            if line:
                received = True
            if accumulator.feed_line(line) is None:
                continue
            if accumulator.text != shown:
                shown = accumulator.text
                self._store.update_trailing_assistant_message(shown)
        if not received:
            # 空的事件流等同于没有响应体
            self.complete_exchange(status_code, None)
            return
        # 线程只在整个流读取成功后才切换，读到一半失败时保持原状态
        result = accumulator.result()
        if result.thread_id:
            self._store.set_active_thread(result.thread_id)
        text = result.text or NO_RESPONSE_MESSAGE
        self._store.update_trailing_assistant_message(text)
        self._finish("ok" if result.text else "empty")

    def clear(self) -> None:
        """清空对话并回到新会话模式（下一次发送会重新创建线程）。"""

        if self._busy:
            raise ValidationError(code="SESSION_BUSY", message="cannot clear while a request is in flight")
        self._store.reset()
        logger.info("Conversation cleared")

    # ---- 辅助方法 ----

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise ValidationError(code="MISSING_TRANSPORT", message="ChatSession has no transport")
        return self._transport

    def _ensure_in_flight(self) -> None:
        if not self._busy:
            raise ValidationError(code="NO_EXCHANGE_IN_FLIGHT", message="no exchange in flight")

    def _finish(self, outcome: str) -> None:
        elapsed = time.time() - self._started_at
        logger.info(
            "Exchange finished",
            extra={"extra": {
                "exchange_id": self._exchange_id,
                "outcome": outcome,
                "elapsed_seconds": round(elapsed, 2),
            }},
        )
        self._busy = False
        self._exchange_id = None
