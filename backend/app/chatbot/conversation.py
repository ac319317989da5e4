"""Conversation Manager: chat-facing wrapper around a QuestionEngine.

Turns engine results into user-facing responses (transition copy, validation
suggestions, completion message) and keeps a linear transcript of the chat.
The transcript is the source of the conversation statistics.

Message copy:
    - Section change: "Great! Now let's move on to <Section>. <Description>"
    - Same section: fixed continuation lines, rotated by step number
    - Completion: profile-aware summary
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

import structlog

from app.chatbot.engine import QuestionEngine
from app.chatbot.errors import (
    AnswerValidationError,
    ConversationError,
    NavigationBoundaryError,
    NoActiveQuestionError,
)
from app.chatbot.graph import InputKind, QuestionDefinition
from app.chatbot.models import ResumeRecord, ResumeSection, UserProfile

logger = structlog.get_logger()

# =============================================================================
# Constants
# =============================================================================

DEFAULT_ASSISTANT_NAME = "Resume Assistant"

SKIP_COMMAND = "skip"

WELCOME_MESSAGE = (
    "Welcome! I'm {name}, here to help you create an ATS-friendly resume "
    "through a simple conversation. Let's get started!"
)

COMPLETION_MESSAGE = (
    "Excellent! Your {background} resume is now complete. I've gathered all "
    "the information needed to create an ATS-optimized resume that will help "
    "you stand out to employers."
)

SKIPPED_MESSAGE = "Question skipped. Let's continue..."
BACK_MESSAGE = "Let's go back to the previous question."
START_FAILED_MESSAGE = "Failed to initialize conversation"

CONTINUATION_MESSAGES = (
    "Perfect! Let's continue...",
    "Great answer! Next question...",
    "Excellent! Moving on...",
    "Thanks! Let's keep going...",
)


@dataclass(frozen=True)
class SectionInfo:
    section: ResumeSection
    name: str
    description: str


SECTION_INFO: dict[ResumeSection, SectionInfo] = {
    info.section: info
    for info in (
        SectionInfo(
            ResumeSection.CLASSIFICATION,
            "Getting Started",
            "Let's understand your background to customize your resume",
        ),
        SectionInfo(
            ResumeSection.BASIC_INFO,
            "Basic Information",
            "Your contact details and professional headline",
        ),
        SectionInfo(
            ResumeSection.EDUCATION,
            "Education",
            "Your academic background and qualifications",
        ),
        SectionInfo(
            ResumeSection.EXPERIENCE,
            "Work Experience",
            "Your professional work history and achievements",
        ),
        SectionInfo(
            ResumeSection.PROJECTS,
            "Projects",
            "Your significant projects and contributions",
        ),
        SectionInfo(
            ResumeSection.SKILLS,
            "Skills",
            "Your technical and professional skills",
        ),
        SectionInfo(
            ResumeSection.ACHIEVEMENTS,
            "Achievements",
            "Your certifications, awards, and accomplishments",
        ),
        SectionInfo(
            ResumeSection.SOCIAL_LINKS,
            "Professional Links",
            "Your LinkedIn, GitHub, and portfolio links",
        ),
        SectionInfo(
            ResumeSection.AI_UPSELL,
            "AI Enhancement",
            "Optional AI-powered resume improvement",
        ),
        SectionInfo(
            ResumeSection.COMPLETE,
            "Complete",
            "Your resume is ready!",
        ),
    )
}

# Keyed by the last segment of the question's field path.
EXAMPLE_RESPONSES: dict[str, list[str]] = {
    "full_name": ["John Smith", "Sarah Johnson", "Michael Chen"],
    "email": ["john.smith@email.com", "sarah.j@company.com"],
    "phone": ["+1234567890", "+15551234567"],
    "degree": [
        "Bachelor of Science in Computer Science",
        "Master of Business Administration",
        "Associate Degree in Engineering",
    ],
    "company_name": ["Google", "Microsoft", "Startup Inc", "Local Business"],
    "role": ["Software Engineer", "Marketing Manager", "Data Analyst", "Project Manager"],
    "primary": [
        "JavaScript, Python, React",
        "Project Management, Leadership",
        "Data Analysis, Excel, SQL",
    ],
}

# =============================================================================
# Response Types
# =============================================================================


@dataclass(frozen=True)
class ConversationFlow:
    current_step: int
    total_steps: int
    current_section: ResumeSection
    available_sections: list[ResumeSection]
    can_go_back: bool
    can_skip: bool


@dataclass(frozen=True)
class ConversationResponse:
    """What a host renders after each user action.

    Attributes:
        success: Whether the action was applied.
        message: Bot copy to show (welcome, transition, completion).
        next_question: Question to ask next; None on failure or completion.
        flow: Position snapshot after the action.
        error: User-facing error message when success is False.
        error_code: Machine-readable code from the conversation error.
        suggestions: Input hints shown alongside a validation error.
    """

    success: bool
    message: str | None = None
    next_question: QuestionDefinition | None = None
    flow: ConversationFlow | None = None
    error: str | None = None
    error_code: str | None = None
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConversationStatistics:
    questions_answered: int
    questions_skipped: int
    sections_completed: list[ResumeSection]
    time_spent_seconds: int


class TranscriptEvent(str, Enum):
    QUESTION = "question"
    ANSWER = "answer"
    REJECTED = "rejected"
    SKIP = "skip"
    BACK = "back"
    MESSAGE = "message"


@dataclass(frozen=True)
class TranscriptEntry:
    """One chat message.

    Attributes:
        role: "bot" or "user".
        content: Message text as shown or typed.
        event: What the message represents in the conversation.
        timestamp: When the message was recorded.
        question_id: Question the message belongs to, if any.
        section: Section of that question, if any.
    """

    role: str
    content: str
    event: TranscriptEvent
    timestamp: datetime
    question_id: str | None = None
    section: ResumeSection | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Conversation Manager
# =============================================================================


class ConversationManager:
    """Drives one chat conversation over a QuestionEngine.

    Args:
        engine: Engine to wrap. A fresh engine over the default graph is
            created when omitted.
        assistant_name: Name used in the welcome message.
        clock: Timestamp source for transcript entries.
    """

    def __init__(
        self,
        engine: QuestionEngine | None = None,
        *,
        assistant_name: str = DEFAULT_ASSISTANT_NAME,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._engine = engine if engine is not None else QuestionEngine()
        self._assistant_name = assistant_name
        self._clock = clock
        self._transcript: list[TranscriptEntry] = []

    @property
    def engine(self) -> QuestionEngine:
        return self._engine

    # -------------------------------------------------------------------------
    # Flow management
    # -------------------------------------------------------------------------

    def start_conversation(self) -> ConversationResponse:
        """Greet the user and present the current question."""
        question = self._engine.get_current_question()
        if question is None:
            return ConversationResponse(success=False, error=START_FAILED_MESSAGE)

        message = WELCOME_MESSAGE.format(name=self._assistant_name)
        self._record("bot", message, TranscriptEvent.MESSAGE)
        self._record_question(question)
        return ConversationResponse(
            success=True,
            message=message,
            next_question=question,
            flow=self.get_current_flow(),
        )

    def process_user_input(self, text: str) -> ConversationResponse:
        """Apply the user's answer to the current question.

        Typing "skip" on an optional question skips it.

        Args:
            text: Raw user input.

        Returns:
            Response with transition copy and the next question, or the
            validation error with input suggestions.
        """
        question = self._engine.get_current_question()
        if question is None:
            return self._failure(NoActiveQuestionError())

        if not question.required and text.strip().lower() == SKIP_COMMAND:
            return self.skip_current_question()

        result = self._engine.process_answer(text)
        if not result.success:
            self._record("user", text, TranscriptEvent.REJECTED, question)
            return self._failure(result.error, suggestions=self._suggestions(question))

        # Empty answers on optional questions store nothing.
        event = TranscriptEvent.ANSWER if text.strip() else TranscriptEvent.SKIP
        self._record("user", text, event, question)
        if result.next_question is None:
            return self._completion()

        flow = self.get_current_flow()
        message = self._transition_message(question, result.next_question, flow)
        self._record("bot", message, TranscriptEvent.MESSAGE)
        self._record_question(result.next_question)
        return ConversationResponse(
            success=True,
            message=message,
            next_question=result.next_question,
            flow=flow,
        )

    def skip_current_question(self) -> ConversationResponse:
        question = self._engine.get_current_question()
        result = self._engine.skip_question()
        if not result.success:
            return self._failure(result.error)

        self._record("user", SKIP_COMMAND, TranscriptEvent.SKIP, question)
        if result.next_question is None:
            return self._completion()

        self._record("bot", SKIPPED_MESSAGE, TranscriptEvent.MESSAGE)
        self._record_question(result.next_question)
        return ConversationResponse(
            success=True,
            message=SKIPPED_MESSAGE,
            next_question=result.next_question,
            flow=self.get_current_flow(),
        )

    def go_to_previous_question(self) -> ConversationResponse:
        question = self._engine.go_back()
        if question is None:
            return self._failure(NavigationBoundaryError())

        self._record("bot", BACK_MESSAGE, TranscriptEvent.BACK, question)
        self._record_question(question)
        return ConversationResponse(
            success=True,
            message=BACK_MESSAGE,
            next_question=question,
            flow=self.get_current_flow(),
        )

    def reset_conversation(self) -> ConversationResponse:
        """Discard answers and transcript, then greet again."""
        self._engine.reset()
        self._transcript = []
        return self.start_conversation()

    # -------------------------------------------------------------------------
    # Flow information
    # -------------------------------------------------------------------------

    def get_current_flow(self) -> ConversationFlow:
        progress = self._engine.get_progress()
        question = self._engine.get_current_question()
        return ConversationFlow(
            current_step=progress.current,
            total_steps=progress.total,
            current_section=progress.section,
            available_sections=self._engine.get_available_sections(),
            can_go_back=self._engine.can_go_back,
            can_skip=question is not None and not question.required,
        )

    def get_progress_percentage(self) -> int:
        return self._engine.get_progress().percentage

    def get_current_section_info(self) -> SectionInfo:
        return self.get_section_info(self._engine.get_current_section())

    def get_section_info(self, section: ResumeSection | str) -> SectionInfo:
        """Display name and description for a section; unknown names map to Complete."""
        return SECTION_INFO[ResumeSection.parse(section)]

    # -------------------------------------------------------------------------
    # Read-through helpers
    # -------------------------------------------------------------------------

    def get_current_question(self) -> QuestionDefinition | None:
        return self._engine.get_current_question()

    def get_user_profile(self) -> UserProfile:
        return self._engine.get_user_profile()

    def get_resume_data(self) -> ResumeRecord:
        return self._engine.get_resume_data()

    def is_complete(self) -> bool:
        return self._engine.is_complete()

    def get_transcript(self) -> list[TranscriptEntry]:
        return list(self._transcript)

    def get_statistics(self) -> ConversationStatistics:
        """Summarize the conversation from its transcript.

        A question counts as answered or skipped according to the last action
        taken on it, so re-answering after going back is not double counted.
        """
        outcomes: dict[str, TranscriptEvent] = {}
        for entry in self._transcript:
            if entry.question_id and entry.event in (
                TranscriptEvent.ANSWER,
                TranscriptEvent.SKIP,
            ):
                outcomes[entry.question_id] = entry.event

        outcome_list = list(outcomes.values())
        if self._transcript:
            elapsed = self._transcript[-1].timestamp - self._transcript[0].timestamp
            seconds = max(int(elapsed.total_seconds()), 0)
        else:
            seconds = 0

        return ConversationStatistics(
            questions_answered=outcome_list.count(TranscriptEvent.ANSWER),
            questions_skipped=outcome_list.count(TranscriptEvent.SKIP),
            sections_completed=list(
                self._engine.get_resume_data().metadata.completed_sections
            ),
            time_spent_seconds=seconds,
        )

    def validate_input(
        self, text: str, question: QuestionDefinition | None = None
    ) -> AnswerValidationError | None:
        """Check input against a question (default: current) without storing it."""
        target = question or self._engine.get_current_question()
        if target is None:
            return None
        return self._engine.validate_answer(target, text)

    def get_help_text(self) -> str:
        question = self._engine.get_current_question()
        if question is None:
            return ""
        if question.help_text:
            return question.help_text

        if question.input_kind is InputKind.EMAIL:
            return "Enter a valid email address (e.g., john@example.com)"
        if question.input_kind is InputKind.TEXTAREA:
            return "You can write multiple lines. Press Enter for new lines."
        if question.input_kind is InputKind.SELECT:
            return f"Choose one of the available options: {', '.join(question.options)}"
        return question.placeholder or "Enter your response"

    def get_example_responses(self) -> list[str]:
        question = self._engine.get_current_question()
        if question is None:
            return []
        return list(EXAMPLE_RESPONSES.get(question.attribute, []))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _record(
        self,
        role: str,
        content: str,
        event: TranscriptEvent,
        question: QuestionDefinition | None = None,
    ) -> None:
        self._transcript.append(
            TranscriptEntry(
                role=role,
                content=content,
                event=event,
                timestamp=self._clock(),
                question_id=question.id if question else None,
                section=question.section if question else None,
            )
        )

    def _record_question(self, question: QuestionDefinition) -> None:
        self._record("bot", question.text, TranscriptEvent.QUESTION, question)

    def _failure(
        self, error: ConversationError | None, suggestions: list[str] | None = None
    ) -> ConversationResponse:
        return ConversationResponse(
            success=False,
            error=error.message if error else None,
            error_code=error.code if error else None,
            flow=self.get_current_flow(),
            suggestions=tuple(suggestions or ()),
        )

    def _completion(self) -> ConversationResponse:
        profile = self._engine.get_user_profile()
        message = COMPLETION_MESSAGE.format(background=profile.background)
        self._record("bot", message, TranscriptEvent.MESSAGE)
        logger.info(
            "Conversation finished",
            background=profile.background,
            experience=profile.experience,
        )
        return ConversationResponse(
            success=True, message=message, flow=self.get_current_flow()
        )

    def _transition_message(
        self,
        answered: QuestionDefinition,
        upcoming: QuestionDefinition,
        flow: ConversationFlow,
    ) -> str:
        if answered.section is not upcoming.section:
            info = self.get_section_info(upcoming.section)
            return f"Great! Now let's move on to {info.name}. {info.description}"
        return CONTINUATION_MESSAGES[flow.current_step % len(CONTINUATION_MESSAGES)]

    @staticmethod
    def _suggestions(question: QuestionDefinition) -> list[str]:
        suggestions: list[str] = []
        if question.input_kind is InputKind.EMAIL:
            suggestions.append(
                "Make sure to include @ and a domain (e.g., john@example.com)"
            )
        elif question.input_kind is InputKind.SELECT:
            suggestions.append(f"Please choose one of: {', '.join(question.options)}")
        elif question.input_kind is InputKind.TEXTAREA:
            suggestions.append("You can write multiple lines or bullet points")
            suggestions.append("Press Enter to create new lines")
        elif question.attribute == "phone":
            suggestions.append(
                "Include country code if international (e.g., +1234567890)"
            )
            suggestions.append("Remove any spaces or special characters except +")

        if question.required:
            suggestions.append("This field is required and cannot be left empty")
        else:
            suggestions.append('You can type "skip" to skip this optional question')
        return suggestions
