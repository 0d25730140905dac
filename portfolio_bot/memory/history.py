# portfolio_bot/memory/history.py

import logging
import threading
from typing import Dict, List, Optional

from portfolio_bot.config import DEFAULT_SESSION_ID, MAX_HISTORY_MESSAGES

logger = logging.getLogger(__name__)


class ChatHistoryStore:
    """
    In-memory chat history, one bounded message list per session.

    Messages are ``{"role": "user" | "assistant", "content": str}``.
    Each session keeps only its most recent ``max_messages`` entries.
    Nothing is persisted; history lives as long as the process.
    """

    def __init__(self, max_messages: int = MAX_HISTORY_MESSAGES):

        if max_messages <= 0:
            raise ValueError(f"max_messages must be positive, got {max_messages}")

        self.max_messages = max_messages
        self._sessions: Dict[str, List[Dict[str, str]]] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str = DEFAULT_SESSION_ID) -> List[Dict[str, str]]:
        """Return a copy of the session's messages, oldest first."""

        with self._lock:
            return [dict(message) for message in self._sessions.get(session_id, [])]

    def append_exchange(self, session_id: str, question: str, answer: str):
        """Record one user/assistant turn and trim the session."""

        with self._lock:

            messages = self._sessions.setdefault(session_id, [])

            messages.append({"role": "user", "content": question})
            messages.append({"role": "assistant", "content": answer})

            overflow = len(messages) - self.max_messages

            if overflow > 0:
                del messages[:overflow]

            size = len(messages)

        logger.debug(
            "Chat history updated",
            extra={"session_id": session_id, "messages": size},
        )

    def clear(self, session_id: Optional[str] = None):

        with self._lock:

            if session_id is None:
                self._sessions.clear()
            else:
                self._sessions.pop(session_id, None)

    def sessions(self) -> List[str]:

        with self._lock:
            return list(self._sessions)
