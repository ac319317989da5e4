"""Shared dependencies for API endpoints.

Conversation endpoints resolve their session through CurrentSession, so an
unknown or expired session id becomes a 404 before any handler runs.
Dependencies touching the store are async so they run on the event loop
thread alongside the handlers.
"""

from typing import Annotated

from fastapi import Depends

from app.core.errors import NotFoundError
from app.services.conversation_store import (
    ConversationSession,
    ConversationStore,
    get_conversation_store,
)


async def get_store() -> ConversationStore:
    """Conversation store dependency (overridable in tests)."""
    return get_conversation_store()


async def get_conversation_session(
    session_id: str,
    store: Annotated[ConversationStore, Depends(get_store)],
) -> ConversationSession:
    """Look up a live conversation session.

    Args:
        session_id: Path parameter from the request URL.
        store: Session store (injected).

    Returns:
        The session, with its expiry extended.

    Raises:
        NotFoundError: If the session is unknown or has expired.
    """
    session = store.get(session_id)
    if session is None:
        raise NotFoundError("Conversation", session_id)
    return session


ConversationStoreDep = Annotated[ConversationStore, Depends(get_store)]
CurrentSession = Annotated[ConversationSession, Depends(get_conversation_session)]
