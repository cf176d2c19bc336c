"""ChatKit HTTP 传输实现。

本模块负责：

1. 把 ChatKit 请求体 POST 到 {base_url}{path}，带上 X-Domain-Key。
2. 按 Content-Type 读取响应体：SSE 返回文本，JSON 返回解析后的对象。
3. 把 httpx 的网络异常统一包装为 NetworkError。

注意这里不判断 HTTP 状态码是否成功，也不解析 SSE 事件，
状态码与响应体原样交给会话层和解码器处理。
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import httpx

from chatkit_core.domain.exceptions import NetworkError
from chatkit_core.infrastructure.logging.logger import logger
from chatkit_core.providers.base import TransportResponse
from chatkit_core.providers.registry import ChatKitConfig, chatkit_config_from_settings


def _read_body(resp: Any) -> Any:
    """按 Content-Type 读取响应体。"""

    text = resp.text
    if not text:
        return None
    content_type = (resp.headers.get("content-type") or "").lower()
    if "json" in content_type:
        try:
            return resp.json()
        except ValueError:
            # 声称是 JSON 但无法解析，保留原文交给解码器按 SSE 文本处理
            return text
    return text


class _HttpxStreamingResponse:
    def __init__(self, resp: Any):
        self._resp = resp
        self.status_code = resp.status_code
        self.content_type = (resp.headers.get("content-type") or "").lower()

    def iter_lines(self) -> Iterator[str]:
        return self._resp.iter_lines()

    def read_body(self) -> Any:
        self._resp.read()
        return _read_body(self._resp)


class ChatKitClient:
    """ChatKit 传输客户端。

    - name: 传输名称（供日志使用）。
    - post: 一次性请求，返回 TransportResponse。
    - stream: 流式请求，逐行读取 SSE。
    """

    name = "chatkit"

    def __init__(self, settings, config: Optional[ChatKitConfig] = None):
        # Settings 里包含超时等配置；ChatKitConfig 缺省时从 Settings 构造
        self._settings = settings
        self._config = config or chatkit_config_from_settings(settings)

    @property
    def config(self) -> ChatKitConfig:
        return self._config

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.domain_key:
            headers["X-Domain-Key"] = self._config.domain_key
        return headers

    def post(self, payload: Dict[str, Any]) -> TransportResponse:
        """发送一次请求并读取完整响应。"""

        url = self._config.url
        logger.debug("Sending ChatKit payload", extra={"extra": {"url": url, "payload": payload}})
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(url, json=payload, headers=self._headers())
                body = _read_body(resp)
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e), url=url)
        logger.debug(
            "ChatKit response received",
            extra={"extra": {"status_code": resp.status_code, "body_type": type(body).__name__}},
        )
        return TransportResponse(status_code=resp.status_code, body=body)

    @contextmanager
    def stream(self, payload: Dict[str, Any]) -> Iterator[_HttpxStreamingResponse]:
        """打开流式响应，调用方在 with 块内逐行读取。"""

        url = self._config.url
        logger.debug("Streaming ChatKit payload", extra={"extra": {"url": url, "payload": payload}})
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                with client.stream("POST", url, json=payload, headers=self._headers()) as resp:
                    yield _HttpxStreamingResponse(resp)
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e), url=url)
