"""ChatKit 响应解码器。

入口 decode(body) 接收后端返回的原始响应体，输出统一的 DecodeResult：

- 文本（str / bytes）按 SSE 事件流处理，见 protocol.sse；
- 字典按一次性的 JSON 响应处理，文本字段按固定顺序回退查找；
- 其他任何输入都得到空结果。

decode 永远不抛异常，所有异常形态都降级为尽力而为的结果。
"""

import logging
from typing import Any, Callable, List, Mapping, NamedTuple, Optional

from chatkit_core.domain.models import DecodeResult
from chatkit_core.protocol.sse import SSEAccumulator, output_text_fragments

logger = logging.getLogger("chatkit_core")


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


class TextRule(NamedTuple):
    """回退链中的一环：matches 命中后用 extract 取出文本。"""

    name: str
    matches: Callable[[Mapping[str, Any]], bool]
    extract: Callable[[Mapping[str, Any]], str]


def _field_rule(key: str) -> TextRule:
    return TextRule(
        name=key,
        matches=lambda data: _non_empty_str(data.get(key)),
        extract=lambda data: data[key],
    )


def _item_text(data: Mapping[str, Any]) -> str:
    item = data.get("item")
    if not isinstance(item, Mapping):
        return ""
    return "".join(output_text_fragments(item.get("content")))


def _first_choice_content(data: Mapping[str, Any]) -> Optional[str]:
    # OpenAI 风格的 choices 结构，兼容非 ChatKit 后端
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    message = first.get("message") if isinstance(first, Mapping) else None
    content = message.get("content") if isinstance(message, Mapping) else None
    return content if _non_empty_str(content) else None


TEXT_RULES: List[TextRule] = [
    _field_rule("output"),
    _field_rule("response"),
    _field_rule("message"),
    _field_rule("content"),
    _field_rule("text"),
    TextRule(
        name="item.content",
        matches=lambda data: bool(_item_text(data)),
        extract=_item_text,
    ),
    TextRule(
        name="choices",
        matches=lambda data: _first_choice_content(data) is not None,
        extract=lambda data: _first_choice_content(data) or "",
    ),
]


def extract_text(data: Mapping[str, Any]) -> str:
    """按 TEXT_RULES 顺序查找文本，首个命中者胜出，全部未命中返回空串。"""

    for rule in TEXT_RULES:
        if rule.matches(data):
            return rule.extract(data)
    return ""


def extract_thread_id(data: Mapping[str, Any]) -> Optional[str]:
    """先取顶层 thread_id，再取嵌套 thread.id（后者存在时覆盖前者）。"""

    thread_id: Optional[str] = None
    if _non_empty_str(data.get("thread_id")):
        thread_id = data["thread_id"]
    thread = data.get("thread")
    if isinstance(thread, Mapping) and _non_empty_str(thread.get("id")):
        thread_id = thread["id"]
    return thread_id


def decode_sse(text: str) -> DecodeResult:
    accumulator = SSEAccumulator()
    accumulator.feed(text)
    accumulator.close()
    return accumulator.result()


def decode_object(data: Mapping[str, Any]) -> DecodeResult:
    return DecodeResult(thread_id=extract_thread_id(data), text=extract_text(data))


def decode(body: Any) -> DecodeResult:
    """把原始响应体解码为 DecodeResult。

    Args:
        body: SSE 文本（str/bytes）或已解析的 JSON 对象

    Returns:
        DecodeResult；无法解析时为 DecodeResult(None, "")
    """
    if isinstance(body, (bytes, bytearray)):
        body = bytes(body).decode("utf-8", errors="replace")
    if isinstance(body, str):
        return decode_sse(body)
    if isinstance(body, Mapping):
        return decode_object(body)
    logger.debug(
        "Unsupported response body shape",
        extra={"extra": {"body_type": type(body).__name__}},
    )
    return DecodeResult()


def extract_error_message(body: Any) -> Optional[str]:
    """从错误响应中取出 detail.message，没有时返回 None。"""

    if not isinstance(body, Mapping):
        return None
    detail = body.get("detail")
    if not isinstance(detail, Mapping):
        return None
    message = detail.get("message")
    return message if _non_empty_str(message) else None
