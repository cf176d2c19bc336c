"""ChatKit SSE 事件流的增量解析。

ChatKit 以 Server-Sent Events 返回结果：事件之间用换行分隔，
只有以 "data: " 开头的行携带 JSON 负载。本模块负责：

1. 逐行识别 data 行并解析 JSON（解析失败的行直接跳过，不影响后续行）。
2. 把 JSON 事件归类为 ThreadCreated / ItemDone / ItemUpdated / Unrecognized。
3. 用 SSEAccumulator 把事件按到达顺序归并成 DecodeResult。

文本永远只做追加：thread.item.done 与 thread.item.updated 的片段
按出现顺序拼接，不做覆盖或去重。
"""

import json
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from chatkit_core.domain.models import (
    DecodeResult,
    DecodedEvent,
    ItemDone,
    ItemUpdated,
    ThreadCreated,
    Unrecognized,
)

logger = logging.getLogger("chatkit_core")


DATA_PREFIX = "data: "

THREAD_CREATED = "thread.created"
ITEM_DONE = "thread.item.done"
ITEM_UPDATED = "thread.item.updated"

ASSISTANT_ITEM = "assistant_message"
OUTPUT_TEXT = "output_text"
CONTENT_PART_ADDED = "content_part_added"


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def output_text_fragments(blocks: Any) -> Iterator[str]:
    """按顺序产出内容块列表中所有 output_text 块的文本。"""

    if not isinstance(blocks, list):
        return
    for block in blocks:
        if not isinstance(block, dict):
            continue
        text = block.get("text")
        if block.get("type") == OUTPUT_TEXT and _non_empty_str(text):
            yield text


def parse_data_line(line: str) -> Optional[Dict[str, Any]]:
    """解析单行 SSE。

    非 data 行、JSON 解析失败或负载不是对象时返回 None。
    """

    if not line.startswith(DATA_PREFIX):
        return None
    raw = line[len(DATA_PREFIX):]
    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError):
        logger.debug("Skipping malformed SSE line", extra={"extra": {"line": line[:200]}})
        return None
    if not isinstance(payload, dict):
        logger.debug("Skipping non-object SSE payload", extra={"extra": {"line": line[:200]}})
        return None
    return payload


def classify_event(payload: Dict[str, Any]) -> DecodedEvent:
    """把一条 JSON 事件归类为内部事件变体。"""

    event_type = payload.get("type")

    if event_type == THREAD_CREATED:
        thread = payload.get("thread")
        thread_id = thread.get("id") if isinstance(thread, dict) else None
        if _non_empty_str(thread_id):
            return ThreadCreated(thread_id=thread_id)

    elif event_type == ITEM_DONE:
        item = payload.get("item")
        if isinstance(item, dict):
            return ItemDone(
                role=str(item.get("type") or ""),
                text_fragments=tuple(output_text_fragments(item.get("content"))),
            )

    elif event_type == ITEM_UPDATED:
        update = payload.get("update")
        if isinstance(update, dict) and update.get("type") == CONTENT_PART_ADDED:
            part = update.get("part")
            text = part.get("text") if isinstance(part, dict) else None
            if _non_empty_str(text):
                return ItemUpdated(text_fragment=text)

    return Unrecognized(type=event_type if isinstance(event_type, str) else None)


class SSEAccumulator:
    """把 SSE 行增量归并为 DecodeResult。

    既可以一次性喂入整段文本（feed + close），也可以在流式读取时
    逐行喂入（feed_line），两种方式对同样的输入得到同样的结果。
    """

    def __init__(self) -> None:
        self._thread_id: Optional[str] = None
        self._parts: List[str] = []
        self._pending = ""

    def feed_line(self, line: str) -> Optional[DecodedEvent]:
        """处理一整行（不含换行符），返回识别出的事件；非 data 行或坏行返回 None。"""

        payload = parse_data_line(line)
        if payload is None:
            return None
        event = classify_event(payload)
        self.apply(event)
        return event

    def feed(self, chunk: str) -> List[DecodedEvent]:
        """喂入任意切分的文本块，未以换行结尾的部分留待下次拼接。"""

        events: List[DecodedEvent] = []
        lines = (self._pending + chunk).split("\n")
        self._pending = lines.pop()
        for line in lines:
            event = self.feed_line(line)
            if event is not None:
                events.append(event)
        return events

    def feed_lines(self, lines: Iterable[str]) -> List[DecodedEvent]:
        events: List[DecodedEvent] = []
        for line in lines:
            event = self.feed_line(line)
            if event is not None:
                events.append(event)
        return events

    def close(self) -> Optional[DecodedEvent]:
        """处理缓冲区中最后一行（文本末尾没有换行时）。"""

        line, self._pending = self._pending, ""
        if not line:
            return None
        return self.feed_line(line)

    def apply(self, event: DecodedEvent) -> bool:
        """应用一个事件，返回文本是否发生变化。"""

        if isinstance(event, ThreadCreated):
            self._thread_id = event.thread_id
            return False
        if isinstance(event, ItemDone):
            if event.role != ASSISTANT_ITEM or not event.text_fragments:
                return False
            self._parts.extend(event.text_fragments)
            return True
        if isinstance(event, ItemUpdated):
            self._parts.append(event.text_fragment)
            return True
        return False

    @property
    def thread_id(self) -> Optional[str]:
        return self._thread_id

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def result(self) -> DecodeResult:
        return DecodeResult(thread_id=self._thread_id, text=self.text)
