"""ChatKit 后端配置。

把进程级的配置（Settings）收敛成不可变的 ChatKitConfig，再注入到
传输层和请求构造步骤中，核心层不直接读取全局 settings。"""

from dataclasses import dataclass
from typing import Optional

from chatkit_core.domain.exceptions import ValidationError
from chatkit_core.domain.models import WorkflowConfig


@dataclass(frozen=True)
class ChatKitConfig:
    """一个 ChatKit 后端的整体配置。"""

    base_url: str
    path: str
    workflow: WorkflowConfig
    domain_key: Optional[str] = None

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.path.lstrip('/')}"


# Orcheo 默认配置
ORCHEO_CONFIG = ChatKitConfig(
    base_url="https://orcheo.ai-colleagues.com",
    path="/api/chatkit",
    workflow=WorkflowConfig(
        workflow_id="5a573dd0-69dc-4cc9-94eb-78a1166dd4cc",
        workflow_name="Orcheo Bot",
    ),
)


def chatkit_config_from_settings(cfg) -> ChatKitConfig:
    """根据 Settings 构造 ChatKitConfig，缺省字段回退到 ORCHEO_CONFIG。"""

    workflow_id = getattr(cfg, "workflow_id", None)
    if workflow_id is None:
        workflow_id = ORCHEO_CONFIG.workflow.workflow_id
    if not str(workflow_id).strip():
        raise ValidationError(code="MISSING_WORKFLOW_ID", message="WORKFLOW_ID not set")
    return ChatKitConfig(
        base_url=getattr(cfg, "chatkit_base_url", None) or ORCHEO_CONFIG.base_url,
        path=getattr(cfg, "chatkit_path", None) or ORCHEO_CONFIG.path,
        workflow=WorkflowConfig(
            workflow_id=str(workflow_id).strip(),
            workflow_name=getattr(cfg, "workflow_name", None) or ORCHEO_CONFIG.workflow.workflow_name,
        ),
        domain_key=getattr(cfg, "domain_key", None),
    )
