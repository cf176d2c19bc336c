"""ChatKit 请求体构造。

会话线程的生命周期规则：
- 还没有 thread_id 时，发送 "threads.create"，由后端创建新线程；
- 拿到 thread_id 之后，每一轮都发送 "threads.add_user_message" 并引用该线程。

本模块只负责生成 JSON 结构，URL、请求头、认证等由传输层处理。
"""

from typing import Any, Dict, Optional

from chatkit_core.domain.exceptions import ValidationError
from chatkit_core.domain.models import WorkflowConfig


CREATE_THREAD = "threads.create"
ADD_USER_MESSAGE = "threads.add_user_message"


def build_user_input(user_text: str) -> Dict[str, Any]:
    """把用户文本包装成 ChatKit 的 input 结构。"""

    return {
        "content": [
            {
                "type": "input_text",
                "text": user_text,
            }
        ],
        "attachments": [],
        "quoted_text": None,
        "inference_options": {},
    }


def build_chatkit_payload(
    user_text: str,
    thread_id: Optional[str],
    workflow: WorkflowConfig,
) -> Dict[str, Any]:
    """根据当前线程状态构造请求体。

    Args:
        user_text: 用户输入文本（原样放入 input_text）
        thread_id: 当前活跃线程 ID，为空表示新会话
        workflow: 目标 workflow 配置

    Returns:
        可直接 JSON 序列化的请求字典
    """
    if not workflow.workflow_id:
        raise ValidationError(code="MISSING_WORKFLOW_ID", message="workflow_id not set")

    params: Dict[str, Any] = {}
    if thread_id:
        request_type = ADD_USER_MESSAGE
        params["thread_id"] = thread_id
    else:
        request_type = CREATE_THREAD
    params["input"] = build_user_input(user_text)

    return {
        "type": request_type,
        "params": params,
        "metadata": {
            "workflow_id": workflow.workflow_id,
            "workflow_name": workflow.workflow_name,
        },
        "workflow_id": workflow.workflow_id,
    }
