"""Minimal console chat against a ChatKit backend.

Commands: /clear starts a new thread, /quit exits.
"""

from chatkit_core.api.session import ChatSession
from chatkit_core.providers import create_transport

if __name__ == "__main__":
    transport = create_transport()
    session = ChatSession(workflow=transport.config.workflow, transport=transport)
    while True:
        try:
            text = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            break
        if text == "/quit":
            break
        if text == "/clear":
            session.clear()
            print("[新会话]")
            continue
        reply = session.send_streaming(text)
        if reply is not None:
            print("Bot:", reply.content)
