"""ChatKit 协议层。

该包下的模块负责：
- 构造发往 ChatKit 的请求体 (payloads)。
- 解析 SSE 事件流 (sse)。
- 把任意形态的响应体解码为 DecodeResult (decoder)。
"""

from chatkit_core.protocol.decoder import decode, extract_error_message
from chatkit_core.protocol.payloads import build_chatkit_payload
from chatkit_core.protocol.sse import SSEAccumulator

__all__ = ["decode", "extract_error_message", "build_chatkit_payload", "SSEAccumulator"]
