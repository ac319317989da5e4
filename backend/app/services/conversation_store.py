"""In-memory store for conversation sessions.

Each session owns an independent ConversationManager (and so an independent
QuestionEngine). Sessions expire after an idle timeout; every successful
lookup pushes the expiry forward. When the store is full, the least recently
used session is evicted to make room.

Not safe for multi-threaded access; callers stay on the event loop thread.
Single-instance deployments only; a multi-instance host would persist
ConversationSnapshot documents instead.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog

from app.chatbot.conversation import ConversationManager
from app.core.config import settings

logger = structlog.get_logger()


@dataclass
class ConversationSession:
    """A stored conversation.

    Attributes:
        session_id: Opaque identifier handed to the client.
        manager: Conversation state for this session.
        created_at: When the session was started.
        expires_at: When the session expires unless touched again.
    """

    session_id: str
    manager: ConversationManager
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ConversationStore:
    """In-memory registry of conversation sessions."""

    def __init__(
        self,
        timeout_minutes: int = settings.session_timeout_minutes,
        max_sessions: int = settings.max_active_sessions,
        assistant_name: str = settings.chatbot_name,
    ) -> None:
        """Initialize the session store.

        Args:
            timeout_minutes: Idle time after which a session expires.
            max_sessions: Maximum number of live sessions.
            assistant_name: Name the chatbot introduces itself with.
        """
        self._sessions: dict[str, ConversationSession] = {}
        self._timeout = timedelta(minutes=timeout_minutes)
        self._max_sessions = max_sessions
        self._assistant_name = assistant_name

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> ConversationSession:
        """Start a new session with a fresh conversation.

        Returns:
            The new session.
        """
        self.cleanup_expired()
        if len(self._sessions) >= self._max_sessions:
            self._evict_least_recent()

        now = datetime.now(UTC)
        session = ConversationSession(
            session_id=str(uuid.uuid4()),
            manager=ConversationManager(assistant_name=self._assistant_name),
            created_at=now,
            expires_at=now + self._timeout,
        )
        self._sessions[session.session_id] = session
        logger.info("Conversation session created", active_sessions=len(self._sessions))
        return session

    def get(self, session_id: str) -> ConversationSession | None:
        """Get a live session and extend its expiry.

        Args:
            session_id: The session identifier.

        Returns:
            The session, or None if unknown or expired.
        """
        session = self._sessions.get(session_id)
        if session is None:
            return None

        now = datetime.now(UTC)
        if now > session.expires_at:
            del self._sessions[session_id]
            logger.info("Conversation session expired")
            return None

        session.expires_at = now + self._timeout
        return session

    def delete(self, session_id: str) -> bool:
        """Remove a session.

        Returns:
            True if a session was removed.
        """
        return self._sessions.pop(session_id, None) is not None

    def cleanup_expired(self) -> int:
        """Remove all expired sessions.

        Returns:
            Number of sessions removed.
        """
        now = datetime.now(UTC)
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now > session.expires_at
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Expired conversation sessions removed", count=len(expired))
        return len(expired)

    def clear(self) -> None:
        """Clear all sessions (for testing)."""
        self._sessions.clear()

    def _evict_least_recent(self) -> None:
        oldest = min(self._sessions.values(), key=lambda s: s.expires_at)
        del self._sessions[oldest.session_id]
        logger.warning("Conversation session evicted", max_sessions=self._max_sessions)


# Singleton instance for the application
_conversation_store: ConversationStore | None = None


def get_conversation_store() -> ConversationStore:
    """Get the singleton conversation store instance.

    Returns:
        The ConversationStore singleton.
    """
    global _conversation_store
    if _conversation_store is None:
        _conversation_store = ConversationStore()
    return _conversation_store


def reset_conversation_store() -> None:
    """Reset the conversation store singleton (for testing)."""
    global _conversation_store
    if _conversation_store is not None:
        _conversation_store.clear()
    _conversation_store = None
