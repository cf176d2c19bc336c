"""ChatKit 传输层。

该包下的模块负责：
- 定义传输抽象接口 (base)。
- 维护后端与 workflow 配置 (registry)。
- 提供基于 httpx 的具体实现 (chatkit_client)。
"""

from typing import Optional

from chatkit_core.config.settings import settings
from chatkit_core.providers.chatkit_client import ChatKitClient
from chatkit_core.providers.registry import ChatKitConfig


def create_transport(config: Optional[ChatKitConfig] = None) -> ChatKitClient:
    """根据配置创建传输实例，默认取模块级 settings。"""

    return ChatKitClient(settings, config=config)
