"""对外会话接口。

ChatSession 扮演聊天页面的角色：负责忙碌状态、交换生命周期
以及把失败转换为用户可见的提示文本。
"""

from chatkit_core.api.session import ChatSession

__all__ = ["ChatSession"]
