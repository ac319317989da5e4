"""Question engine: the conversation state machine.

Holds the position in the question graph, the user profile and the résumé
record for one conversation. Every public method runs to completion
synchronously and reports failures through its return value; nothing here
raises except graph validation at construction.

Position model:
    The cursor indexes the full graph and always rests on the first question
    at or after it that is not skipped. The user-facing step number is the
    count of active questions before the cursor. A LIFO history of answered
    or skipped graph indices drives go_back(), so re-answering after any
    number of back steps lands on the question after the re-answered one.

Going back does not clear the stored value; the previous answer stays in the
record until the question is answered again.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

import structlog

from app.chatbot.errors import (
    AnswerValidationError,
    CannotSkipRequiredError,
    ConversationError,
    NoActiveQuestionError,
)
from app.chatbot.graph import (
    EMAIL_PATTERN,
    QUESTION_GRAPH,
    FieldShape,
    InputKind,
    QuestionDefinition,
    RuleKind,
    SkipCondition,
    SkipOperator,
    ValidationRule,
    validate_graph,
)
from app.chatbot.models import (
    COLLECTION_ENTRY_TYPES,
    PROFILE_KEYS,
    SECTION_ORDER,
    ResumeRecord,
    ResumeSection,
    UserProfile,
)

logger = structlog.get_logger()

# =============================================================================
# State and Result Types
# =============================================================================


@dataclass
class ConversationPosition:
    """Where the conversation is and how it got there.

    Attributes:
        cursor: Index into the full question graph.
        history: Graph indices answered or skipped, oldest first.
        entry_slots: Collection entry index created by each object_append
            question, so re-answering overwrites instead of appending.
    """

    cursor: int = 0
    history: list[int] = field(default_factory=list)
    entry_slots: dict[str, int] = field(default_factory=dict)


@dataclass
class EngineState:
    """The three structures an engine owns."""

    position: ConversationPosition = field(default_factory=ConversationPosition)
    profile: UserProfile = field(default_factory=UserProfile)
    record: ResumeRecord = field(default_factory=ResumeRecord)

    def copy(self) -> "EngineState":
        return EngineState(
            position=ConversationPosition(
                cursor=self.position.cursor,
                history=list(self.position.history),
                entry_slots=dict(self.position.entry_slots),
            ),
            profile=self.profile.model_copy(deep=True),
            record=self.record.model_copy(deep=True),
        )


@dataclass(frozen=True)
class EngineResult:
    """Outcome of an answer or skip.

    Attributes:
        success: Whether the call advanced the conversation.
        next_question: New current question; None on failure or completion.
        error: Failure reason when success is False.
    """

    success: bool
    next_question: QuestionDefinition | None = None
    error: ConversationError | None = None


@dataclass(frozen=True)
class EngineProgress:
    current: int
    total: int
    section: ResumeSection
    percentage: int


# =============================================================================
# Rule Evaluation
# =============================================================================

_SELECT_ERROR = "Please choose one of: {options}"
_EMAIL_ERROR = "Please enter a valid email address"
_NUMBER_ERROR = "Please enter a whole number"
_DATE_ERROR = "Please enter a date as YYYY-MM-DD"


def _rule_passes(rule: ValidationRule, value: str) -> bool:
    if rule.kind is RuleKind.REQUIRED:
        return bool(value)
    if rule.kind is RuleKind.EMAIL:
        return EMAIL_PATTERN.match(value) is not None
    if rule.kind is RuleKind.MIN_LENGTH:
        return len(value) >= rule.value
    if rule.kind is RuleKind.MAX_LENGTH:
        return len(value) <= rule.value
    if rule.kind is RuleKind.PATTERN:
        return rule.value.search(value) is not None
    return True


def _match_option(question: QuestionDefinition, value: str) -> str | None:
    """Return the declared option matching value, case-insensitively."""
    lowered = value.lower()
    for option in question.options:
        if option.lower() == lowered:
            return option
    return None


def _check_input_kind(question: QuestionDefinition, value: str) -> str | None:
    """Return an error message if value does not fit the input kind."""
    kind = question.input_kind
    if kind is InputKind.SELECT:
        if _match_option(question, value) is None:
            return _SELECT_ERROR.format(options=", ".join(question.options))
    elif kind is InputKind.EMAIL:
        if EMAIL_PATTERN.match(value) is None:
            return _EMAIL_ERROR
    elif kind is InputKind.NUMBER:
        try:
            int(value)
        except ValueError:
            return _NUMBER_ERROR
    elif kind is InputKind.DATE:
        try:
            date.fromisoformat(value)
        except ValueError:
            return _DATE_ERROR
    return None


def _convert(question: QuestionDefinition, value: str) -> Any:
    """Turn a validated, trimmed answer into its storage shape."""
    if question.input_kind is InputKind.SELECT:
        return _match_option(question, value)
    if question.shape is FieldShape.STRING_LIST:
        parts = (part.strip() for part in value.split(question.separator))
        return [part for part in parts if part]
    if question.input_kind is InputKind.NUMBER:
        return int(value)
    if question.input_kind is InputKind.DATE:
        return date.fromisoformat(value)
    return value


# =============================================================================
# Engine
# =============================================================================


class QuestionEngine:
    """State machine over a static question graph for one conversation.

    Not thread-safe. Hosts serving many users keep one engine per session.

    Args:
        questions: Question graph in conversation order. Validated on
            construction.

    Raises:
        GraphDefinitionError: If the graph is inconsistent.
    """

    def __init__(
        self, questions: tuple[QuestionDefinition, ...] = QUESTION_GRAPH
    ) -> None:
        validate_graph(questions)
        self._questions = tuple(questions)
        self._state = EngineState()
        self._state.position.cursor = self._next_active(0)

    @classmethod
    def from_state(
        cls,
        state: EngineState,
        questions: tuple[QuestionDefinition, ...] = QUESTION_GRAPH,
    ) -> "QuestionEngine":
        """Rebuild an engine around previously exported state.

        Args:
            state: State from a prior engine's `state` property.
            questions: The graph the state was produced with.

        Returns:
            Engine positioned exactly where the exported one was.

        Raises:
            ValueError: If the position does not fit the graph.
        """
        engine = cls(questions)
        size = len(engine._questions)
        position = state.position
        if not 0 <= position.cursor <= size or any(
            not 0 <= index < size for index in position.history
        ):
            raise ValueError("Conversation position does not fit the question graph")
        engine._state = state.copy()
        return engine

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    @property
    def questions(self) -> tuple[QuestionDefinition, ...]:
        return self._questions

    @property
    def state(self) -> EngineState:
        """Deep copy of the owned position, profile and record."""
        return self._state.copy()

    @property
    def can_go_back(self) -> bool:
        return bool(self._state.position.history) and not self.is_complete()

    def get_current_question(self) -> QuestionDefinition | None:
        """Return the active question, or None once the conversation is done."""
        index = self._current_index()
        return self._questions[index] if index is not None else None

    def get_available_questions(self) -> list[QuestionDefinition]:
        """Return the skip-filtered question sequence for the current answers."""
        return [q for q in self._questions if not self._is_skipped(q)]

    def get_available_sections(self) -> list[ResumeSection]:
        """Return sections with at least one active question, in order."""
        active = {q.section for q in self.get_available_questions()}
        return [section for section in SECTION_ORDER if section in active]

    def get_current_section(self) -> ResumeSection:
        question = self.get_current_question()
        return question.section if question else ResumeSection.COMPLETE

    def get_progress(self) -> EngineProgress:
        """Return step counts over the skip-filtered sequence.

        `total` is only final once the classification answers are in, since
        they decide which questions stay active.
        """
        total = len(self.get_available_questions())
        index = self._current_index()
        end = len(self._questions) if index is None else index
        current = min(
            sum(1 for q in self._questions[:end] if not self._is_skipped(q)), total
        )
        percentage = round(current / total * 100) if total > 0 else 0
        return EngineProgress(
            current=current,
            total=total,
            section=self.get_current_section(),
            percentage=percentage,
        )

    def is_complete(self) -> bool:
        return self._current_index() is None

    def get_user_profile(self) -> UserProfile:
        return self._state.profile.model_copy(deep=True)

    def get_resume_data(self) -> ResumeRecord:
        return self._state.record.model_copy(deep=True)

    def validate_answer(
        self, question: QuestionDefinition, raw_input: str
    ) -> AnswerValidationError | None:
        """Check an answer against a question without storing it.

        Empty input passes on optional questions. Otherwise declared rules run
        in order, then the input-kind check; the first failure is returned.

        Args:
            question: Question being answered.
            raw_input: Text as typed by the user.

        Returns:
            The first failing check as an error, or None if the answer is valid.
        """
        value = (raw_input or "").strip()

        if not value:
            if not question.required:
                return None
            declared = next(
                (r for r in question.validation_rules if r.kind is RuleKind.REQUIRED),
                None,
            )
            message = declared.message if declared else f"{question.label} is required"
            return AnswerValidationError(
                message, question_id=question.id, rule=RuleKind.REQUIRED.value
            )

        for rule in question.validation_rules:
            if not _rule_passes(rule, value):
                return AnswerValidationError(
                    rule.message, question_id=question.id, rule=rule.kind.value
                )

        kind_error = _check_input_kind(question, value)
        if kind_error:
            return AnswerValidationError(
                kind_error, question_id=question.id, rule=question.input_kind.value
            )
        return None

    # -------------------------------------------------------------------------
    # Mutating operations
    # -------------------------------------------------------------------------

    def process_answer(self, raw_input: str) -> EngineResult:
        """Validate, store and advance past the current question.

        Args:
            raw_input: Text as typed by the user.

        Returns:
            EngineResult with the next question (None on completion), or the
            failure. Failed calls leave all state untouched.
        """
        index = self._current_index()
        if index is None:
            logger.warning("Answer received with no active question")
            return EngineResult(success=False, error=NoActiveQuestionError())

        question = self._questions[index]
        error = self.validate_answer(question, raw_input)
        if error is not None:
            logger.info(
                "Answer rejected",
                question_id=question.id,
                rule=error.rule,
            )
            return EngineResult(success=False, error=error)

        self._store_answer(question, (raw_input or "").strip())
        logger.info(
            "Answer accepted",
            question_id=question.id,
            section=question.section.value,
        )
        return EngineResult(success=True, next_question=self._advance(index))

    def skip_question(self) -> EngineResult:
        """Advance past the current question without storing anything.

        Returns:
            EngineResult with the next question, or CannotSkipRequiredError /
            NoActiveQuestionError.
        """
        index = self._current_index()
        if index is None:
            return EngineResult(success=False, error=NoActiveQuestionError())

        question = self._questions[index]
        if question.required:
            return EngineResult(
                success=False, error=CannotSkipRequiredError(question.id)
            )

        logger.info("Question skipped", question_id=question.id)
        return EngineResult(success=True, next_question=self._advance(index))

    def go_back(self) -> QuestionDefinition | None:
        """Return to the most recently answered or skipped question.

        The stored value for that question is left in place. A completed
        conversation is terminal until reset().

        Returns:
            The question now current, or None if already at the first question
            or the conversation is complete.
        """
        position = self._state.position
        if not position.history or self.is_complete():
            return None
        position.cursor = position.history.pop()
        question = self._questions[position.cursor]
        logger.info("Navigated back", question_id=question.id)
        return question

    def reset(self) -> None:
        """Discard all answers and return to the first question."""
        self._state = EngineState()
        self._state.position.cursor = self._next_active(0)
        logger.info("Conversation reset")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _field_value(self, path: str) -> Any:
        """Read a profile key or dotted record path; None if unset."""
        if path in PROFILE_KEYS:
            return getattr(self._state.profile, path)

        node: Any = self._state.record
        for segment in path.split("."):
            if node is None:
                return None
            node = getattr(node, segment)
            if segment in COLLECTION_ENTRY_TYPES and isinstance(node, list):
                node = node[-1] if node else None
        return node

    def _condition_holds(self, condition: SkipCondition) -> bool:
        value = self._field_value(condition.field)
        if condition.operator is SkipOperator.EQUALS:
            return value == condition.value
        if condition.operator is SkipOperator.NOT_EQUALS:
            return value != condition.value
        if condition.operator is SkipOperator.CONTAINS:
            if value is None:
                return False
            if isinstance(value, list):
                return condition.value in value
            return str(condition.value) in str(value)
        return False

    def _is_skipped(self, question: QuestionDefinition) -> bool:
        conditions = question.skip_conditions
        return bool(conditions) and all(self._condition_holds(c) for c in conditions)

    def _next_active(self, start: int) -> int:
        """First graph index at or after start that is not skipped."""
        for index in range(start, len(self._questions)):
            if not self._is_skipped(self._questions[index]):
                return index
        return len(self._questions)

    def _current_index(self) -> int | None:
        index = self._next_active(self._state.position.cursor)
        return index if index < len(self._questions) else None

    def _advance(self, index: int) -> QuestionDefinition | None:
        """Record index in history and move to the next active question."""
        position = self._state.position
        left_section = self._questions[index].section

        position.history.append(index)
        position.cursor = self._next_active(index + 1)

        next_question = self.get_current_question()
        next_section = next_question.section if next_question else ResumeSection.COMPLETE
        if next_section is not left_section:
            completed = self._state.record.metadata.completed_sections
            if left_section not in completed:
                completed.append(left_section)
            logger.info("Section completed", section=left_section.value)
        if next_question is None:
            logger.info("Conversation complete", answered=len(position.history))
        return next_question

    def _store_answer(self, question: QuestionDefinition, value: str) -> None:
        if not value:
            return

        converted = _convert(question, value)
        record = self._state.record

        if question.profile_key in PROFILE_KEYS:
            normalized = converted.lower()
            setattr(self._state.profile, question.profile_key, normalized)
            setattr(record.metadata, question.profile_key, normalized)
        else:
            target, attribute = self._resolve_target(question)
            setattr(target, attribute, converted)

        record.metadata.updated_at = datetime.now(UTC)

    def _resolve_target(self, question: QuestionDefinition) -> tuple[Any, str]:
        """Walk to the object owning the question's field.

        Collections resolve to their last entry, created on demand. An
        object_append question starts its own entry the first time it is
        answered and reuses that entry when answered again.
        """
        *parents, attribute = question.field.split(".")
        node: Any = self._state.record
        for segment in parents:
            child = getattr(node, segment)
            entry_type = COLLECTION_ENTRY_TYPES.get(segment)
            if entry_type is not None and isinstance(child, list):
                node = self._collection_entry(question, child, entry_type)
            else:
                node = child
        return node, attribute

    def _collection_entry(
        self, question: QuestionDefinition, entries: list, entry_type: type
    ) -> Any:
        slots = self._state.position.entry_slots
        if question.shape is FieldShape.OBJECT_APPEND:
            slot = slots.get(question.id)
            if slot is not None and slot < len(entries):
                return entries[slot]
            entries.append(entry_type())
            slots[question.id] = len(entries) - 1
            return entries[-1]
        if not entries:
            entries.append(entry_type())
        return entries[-1]
