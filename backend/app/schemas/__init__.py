"""Pydantic request/response schemas for API endpoints."""

from app.schemas.conversation import (
    AnswerRequest,
    ConversationResponseView,
    ConversationStateView,
    FlowView,
    QuestionView,
    ResumeView,
    SectionInfoView,
    StartConversationView,
    StatisticsView,
)

__all__ = [
    # Requests
    "AnswerRequest",
    # Responses
    "ConversationResponseView",
    "ConversationStateView",
    "FlowView",
    "QuestionView",
    "ResumeView",
    "SectionInfoView",
    "StartConversationView",
    "StatisticsView",
]
