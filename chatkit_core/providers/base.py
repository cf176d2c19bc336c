"""传输层抽象接口。

会话层（ChatSession）不直接依赖 httpx，而是依赖此协议：

- post(payload): 一次性发送请求并读取完整响应体。
- stream(payload): 以上下文管理器形式打开流式响应，逐行读取 SSE。

这样测试中可以用假的 Transport 替换真实网络请求，
也可以在不改会话代码的前提下换用其他 HTTP 实现。
"""

from dataclasses import dataclass
from typing import Any, ContextManager, Dict, Iterator, Protocol


@dataclass
class TransportResponse:
    """一次完整的 HTTP 响应。

    - status_code: HTTP 状态码。
    - body: SSE 时为文本；JSON 时为解析后的对象；空响应为 None。
    """

    status_code: int
    body: Any = None


def is_event_stream(content_type: str) -> bool:
    return "text/event-stream" in (content_type or "").lower()


class StreamingResponse(Protocol):
    """流式响应。

    - content_type: 响应的 Content-Type（小写），只有 text/event-stream 才按 SSE 逐行读取。
    """

    status_code: int
    content_type: str

    def iter_lines(self) -> Iterator[str]:
        ...

    def read_body(self) -> Any:
        """读取剩余的完整响应体（非 2xx 或非 SSE 响应时使用）。"""

        ...


class Transport(Protocol):
    """ChatKit 传输协议。"""

    name: str

    def post(self, payload: Dict[str, Any]) -> TransportResponse:
        ...

    def stream(self, payload: Dict[str, Any]) -> ContextManager[StreamingResponse]:
        ...
