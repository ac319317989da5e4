"""Conversation API request/response schemas.

Views over the chatbot's dataclasses. Question definitions carry compiled
patterns and skip logic that clients never need, so only the fields a chat
UI renders are exposed.
"""

from pydantic import BaseModel, Field, field_validator

from app.chatbot.conversation import (
    ConversationFlow,
    ConversationResponse,
    ConversationStatistics,
    SectionInfo,
)
from app.chatbot.graph import QuestionDefinition
from app.chatbot.models import ResumeRecord, ResumeSection, UserProfile
from app.core.config import settings

# =============================================================================
# Request Schemas
# =============================================================================


class AnswerRequest(BaseModel):
    """Request body for POST /conversations/{session_id}/answers.

    Attributes:
        input: The user's answer as typed. May be empty for optional questions.
    """

    input: str = Field(..., description="User answer text")

    @field_validator("input")
    @classmethod
    def input_within_limit(cls, v: str) -> str:
        """Reject answers longer than the configured maximum."""
        if len(v) > settings.max_input_length:
            msg = f"Input must be at most {settings.max_input_length} characters"
            raise ValueError(msg)
        return v


# =============================================================================
# Response Schemas
# =============================================================================


class QuestionView(BaseModel):
    id: str
    text: str
    section: ResumeSection
    input_kind: str
    required: bool
    options: list[str]
    placeholder: str | None = None
    help_text: str | None = None

    @classmethod
    def from_definition(cls, question: QuestionDefinition) -> "QuestionView":
        return cls(
            id=question.id,
            text=question.text,
            section=question.section,
            input_kind=question.input_kind.value,
            required=question.required,
            options=list(question.options),
            placeholder=question.placeholder,
            help_text=question.help_text,
        )


class FlowView(BaseModel):
    current_step: int
    total_steps: int
    current_section: ResumeSection
    available_sections: list[ResumeSection]
    can_go_back: bool
    can_skip: bool

    @classmethod
    def from_flow(cls, flow: ConversationFlow) -> "FlowView":
        return cls(
            current_step=flow.current_step,
            total_steps=flow.total_steps,
            current_section=flow.current_section,
            available_sections=list(flow.available_sections),
            can_go_back=flow.can_go_back,
            can_skip=flow.can_skip,
        )


class ConversationResponseView(BaseModel):
    """Result of a conversation action.

    Failures of the action itself (invalid answer, skipping a required
    question) are reported here with success=False, not as HTTP errors.
    """

    success: bool
    message: str | None = None
    next_question: QuestionView | None = None
    flow: FlowView | None = None
    error: str | None = None
    error_code: str | None = None
    suggestions: list[str] = Field(default_factory=list)

    @classmethod
    def from_response(cls, response: ConversationResponse) -> "ConversationResponseView":
        return cls(
            success=response.success,
            message=response.message,
            next_question=(
                QuestionView.from_definition(response.next_question)
                if response.next_question
                else None
            ),
            flow=FlowView.from_flow(response.flow) if response.flow else None,
            error=response.error,
            error_code=response.error_code,
            suggestions=list(response.suggestions),
        )


class StartConversationView(BaseModel):
    session_id: str
    response: ConversationResponseView


class SectionInfoView(BaseModel):
    section: ResumeSection
    name: str
    description: str

    @classmethod
    def from_info(cls, info: SectionInfo) -> "SectionInfoView":
        return cls(section=info.section, name=info.name, description=info.description)


class StatisticsView(BaseModel):
    questions_answered: int
    questions_skipped: int
    sections_completed: list[ResumeSection]
    time_spent_seconds: int

    @classmethod
    def from_statistics(cls, stats: ConversationStatistics) -> "StatisticsView":
        return cls(
            questions_answered=stats.questions_answered,
            questions_skipped=stats.questions_skipped,
            sections_completed=list(stats.sections_completed),
            time_spent_seconds=stats.time_spent_seconds,
        )


class ConversationStateView(BaseModel):
    """Everything a client needs to render a resumed chat."""

    session_id: str
    is_complete: bool
    current_question: QuestionView | None
    flow: FlowView
    progress_percentage: int
    section: SectionInfoView
    help_text: str
    examples: list[str]
    statistics: StatisticsView


class ResumeView(BaseModel):
    """Profile and record, serialized with camelCase keys."""

    profile: UserProfile
    resume: ResumeRecord
