"""Engine state persistence boundary.

Converts a QuestionEngine's position, profile and record into a flat,
JSON-compatible document and back. The engine itself never serializes;
hosts that persist conversations go through this module.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.chatbot.engine import ConversationPosition, EngineState, QuestionEngine
from app.chatbot.graph import QUESTION_GRAPH, QuestionDefinition
from app.chatbot.models import ResumeRecord, UserProfile

SNAPSHOT_VERSION = 1


class ConversationSnapshot(BaseModel):
    """Serializable copy of one engine's state.

    Attributes:
        version: Document format version.
        cursor: Graph index of the current position.
        history: Answered or skipped graph indices, oldest first.
        entry_slots: Collection entry index owned by each object_append question.
        profile: Classification profile.
        record: Résumé record built so far.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: int = SNAPSHOT_VERSION
    cursor: int = Field(ge=0)
    history: list[int] = Field(default_factory=list)
    entry_slots: dict[str, int] = Field(default_factory=dict)
    profile: UserProfile
    record: ResumeRecord

    def to_dict(self) -> dict[str, Any]:
        """Dump to camelCase JSON-compatible primitives."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationSnapshot":
        return cls.model_validate(data)


def take_snapshot(engine: QuestionEngine) -> ConversationSnapshot:
    state = engine.state
    return ConversationSnapshot(
        cursor=state.position.cursor,
        history=state.position.history,
        entry_slots=state.position.entry_slots,
        profile=state.profile,
        record=state.record,
    )


def restore_engine(
    snapshot: ConversationSnapshot,
    questions: tuple[QuestionDefinition, ...] = QUESTION_GRAPH,
) -> QuestionEngine:
    """Build an engine positioned where the snapshot was taken.

    Args:
        snapshot: Previously taken snapshot.
        questions: Graph the snapshot was taken against.

    Returns:
        A new, independent engine.

    Raises:
        ValueError: If the snapshot version is unknown or its position does
            not fit the graph.
    """
    if snapshot.version != SNAPSHOT_VERSION:
        msg = f"Unsupported snapshot version: {snapshot.version}"
        raise ValueError(msg)

    state = EngineState(
        position=ConversationPosition(
            cursor=snapshot.cursor,
            history=list(snapshot.history),
            entry_slots=dict(snapshot.entry_slots),
        ),
        profile=snapshot.profile,
        record=snapshot.record,
    )
    return QuestionEngine.from_state(state, questions)
