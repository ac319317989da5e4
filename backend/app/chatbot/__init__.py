"""Adaptive résumé-building conversation.

The chatbot asks a fixed graph of questions, skips the ones that do not
apply to the user's background and experience, validates each answer and
writes it into a structured résumé record.

Modules:
    models: Résumé record, user profile and section enum
    graph: Question definitions and construction-time graph validation
    errors: Conversation error taxonomy
    engine: Question engine state machine
    conversation: Chat-facing manager with transcript and message copy
    progress: Progress checklist, time estimates and completion grade
    snapshot: Engine state serialization
"""

from app.chatbot.conversation import (
    ConversationFlow,
    ConversationManager,
    ConversationResponse,
    ConversationStatistics,
    SectionInfo,
    TranscriptEntry,
)
from app.chatbot.engine import EngineProgress, EngineResult, QuestionEngine
from app.chatbot.errors import (
    AnswerValidationError,
    CannotSkipRequiredError,
    ConversationError,
    GraphDefinitionError,
    NavigationBoundaryError,
    NoActiveQuestionError,
)
from app.chatbot.graph import QUESTION_GRAPH, QuestionDefinition, validate_graph
from app.chatbot.models import ResumeRecord, ResumeSection, UserProfile
from app.chatbot.snapshot import ConversationSnapshot, restore_engine, take_snapshot

__all__ = [
    # Engine
    "EngineProgress",
    "EngineResult",
    "QuestionEngine",
    # Conversation
    "ConversationFlow",
    "ConversationManager",
    "ConversationResponse",
    "ConversationStatistics",
    "SectionInfo",
    "TranscriptEntry",
    # Errors
    "AnswerValidationError",
    "CannotSkipRequiredError",
    "ConversationError",
    "GraphDefinitionError",
    "NavigationBoundaryError",
    "NoActiveQuestionError",
    # Graph and models
    "QUESTION_GRAPH",
    "QuestionDefinition",
    "ResumeRecord",
    "ResumeSection",
    "UserProfile",
    "validate_graph",
    # Persistence
    "ConversationSnapshot",
    "restore_engine",
    "take_snapshot",
]
