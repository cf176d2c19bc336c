"""统一的消息与解码结果数据模型。

本模块定义了核心层内部共享的标准数据结构：

- Message: 对话日志中的一条消息（user/assistant）。
- DecodeResult: 响应解码器的唯一输出，跨越 解码器 → 存储 的边界。
- DecodedEvent: 解码器内部使用的事件变体（ThreadCreated/ItemDone/
  ItemUpdated/Unrecognized），只在一次解码调用内产生并消费，从不存储。

传输层（providers）与会话层（api.session）都只依赖这些模型，
不直接操作后端返回的原始 JSON。
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional, Tuple, Union


# 对话日志中的消息角色（ChatKit 页面只区分这两种）
Role = Literal["user", "assistant"]


@dataclass
class Message:
    """一条对话消息。

    - id: 在同一个存储实例内唯一。
    - role: 消息角色。
    - content: 展示文本；只有日志末尾的 assistant 消息允许被原地改写。
    - created_at: 追加时的 UTC 时间，同一存储内单调不减。
    """

    id: str
    role: Role
    content: str
    created_at: datetime


@dataclass(frozen=True)
class WorkflowConfig:
    """请求所针对的后端 workflow。

    由调用方注入到请求构造步骤中，核心层不读取全局配置。
    """

    workflow_id: str
    workflow_name: str


@dataclass(frozen=True)
class DecodeResult:
    """一次解码的归一化结果。

    - thread_id: 响应中携带的会话线程 ID，没有则为 None。
    - text: 所有被识别的文本片段按到达顺序拼接后的结果。
    """

    thread_id: Optional[str] = None
    text: str = ""


# ---- 解码器内部事件 ----


@dataclass(frozen=True)
class ThreadCreated:
    thread_id: str


@dataclass(frozen=True)
class ItemDone:
    role: str
    text_fragments: Tuple[str, ...]


@dataclass(frozen=True)
class ItemUpdated:
    text_fragment: str


@dataclass(frozen=True)
class Unrecognized:
    """无法识别或不携带有效数据的事件（向前兼容，不报错）。"""

    type: Optional[str] = None


DecodedEvent = Union[ThreadCreated, ItemDone, ItemUpdated, Unrecognized]
