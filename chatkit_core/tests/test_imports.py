import os
import subprocess
import sys
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[2]

SCRIPT = """
import sys
import chatkit_core
from chatkit_core.protocol.decoder import decode
from chatkit_core.infrastructure.storage.memory_store import InMemoryConversationStore

assert decode('data: {"type":"thread.created","thread":{"id":"t1"}}').thread_id == "t1"
InMemoryConversationStore().append("user", "hi")
for name in ("chatkit_core.config.settings", "chatkit_core.infrastructure.logging.logger", "httpx"):
    assert name not in sys.modules, name
"""


def test_core_import_does_not_load_settings_or_log_file(tmp_path):
    # 无效的 LOG_LEVEL 只会让 settings 加载失败；解码与存储不应受影响
    env = dict(os.environ, LOG_LEVEL="chatty", PYTHONPATH=str(REPO_ROOT))
    env.pop("CHATKIT_CONFIG_FILE", None)
    proc = subprocess.run(
        [sys.executable, "-c", SCRIPT],
        cwd=tmp_path,
        env=env,
        capture_output=True,
        text=True,
    )
    assert proc.returncode == 0, proc.stderr
    assert not (tmp_path / "logs").exists()
