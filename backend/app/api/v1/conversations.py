"""Conversations API router.

Hosts résumé-building chat sessions over HTTP. Each session wraps one
ConversationManager held in the in-memory conversation store.

This module provides:
- POST /: Start a session
- GET /{session_id}: Current question, flow and statistics
- POST /{session_id}/answers: Answer the current question
- POST /{session_id}/skip: Skip the current optional question
- POST /{session_id}/back: Return to the previous question
- POST /{session_id}/reset: Discard answers and start over
- GET /{session_id}/resume: Profile and résumé record (camelCase)
- GET /{session_id}/progress: Progress checklist and time estimate
- GET /{session_id}/snapshot: Serializable engine state

Answer/skip/back failures come back as success=false in a 200 response so
the client can re-prompt; only session lookup failures are HTTP errors.
"""

import structlog
from fastapi import APIRouter, Request, status

from app.api.deps import ConversationStoreDep, CurrentSession
from app.chatbot.progress import ProgressInfo, calculate_progress
from app.chatbot.snapshot import ConversationSnapshot, take_snapshot
from app.core.config import settings
from app.core.rate_limiting import limiter
from app.core.responses import DataResponse
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

router = APIRouter()

logger = structlog.get_logger()


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_conversation)
async def start_conversation(
    request: Request,  # noqa: ARG001
    store: ConversationStoreDep,
) -> DataResponse[StartConversationView]:
    """Start a new conversation session.

    Returns:
        DataResponse with the session id and the welcome response.
    """
    session = store.create()
    response = session.manager.start_conversation()
    return DataResponse(
        data=StartConversationView(
            session_id=session.session_id,
            response=ConversationResponseView.from_response(response),
        )
    )


@router.get("/{session_id}")
async def get_conversation(
    session: CurrentSession,
) -> DataResponse[ConversationStateView]:
    """Get the current state of a conversation.

    Returns:
        DataResponse with current question, flow, section info, help text,
        examples and statistics.
    """
    manager = session.manager
    question = manager.get_current_question()
    return DataResponse(
        data=ConversationStateView(
            session_id=session.session_id,
            is_complete=manager.is_complete(),
            current_question=QuestionView.from_definition(question) if question else None,
            flow=FlowView.from_flow(manager.get_current_flow()),
            progress_percentage=manager.get_progress_percentage(),
            section=SectionInfoView.from_info(manager.get_current_section_info()),
            help_text=manager.get_help_text(),
            examples=manager.get_example_responses(),
            statistics=StatisticsView.from_statistics(manager.get_statistics()),
        )
    )


@router.post("/{session_id}/answers")
@limiter.limit(settings.rate_limit_conversation)
async def submit_answer(
    request: Request,  # noqa: ARG001
    body: AnswerRequest,
    session: CurrentSession,
) -> DataResponse[ConversationResponseView]:
    """Answer the current question.

    Typing "skip" on an optional question skips it.

    Returns:
        DataResponse with the conversation response. Invalid answers return
        success=false with an error message and suggestions.
    """
    response = session.manager.process_user_input(body.input)
    return DataResponse(data=ConversationResponseView.from_response(response))


@router.post("/{session_id}/skip")
@limiter.limit(settings.rate_limit_conversation)
async def skip_question(
    request: Request,  # noqa: ARG001
    session: CurrentSession,
) -> DataResponse[ConversationResponseView]:
    """Skip the current question if it is optional."""
    response = session.manager.skip_current_question()
    return DataResponse(data=ConversationResponseView.from_response(response))


@router.post("/{session_id}/back")
@limiter.limit(settings.rate_limit_conversation)
async def go_back(
    request: Request,  # noqa: ARG001
    session: CurrentSession,
) -> DataResponse[ConversationResponseView]:
    """Return to the most recently answered or skipped question."""
    response = session.manager.go_to_previous_question()
    return DataResponse(data=ConversationResponseView.from_response(response))


@router.post("/{session_id}/reset")
@limiter.limit(settings.rate_limit_conversation)
async def reset_conversation(
    request: Request,  # noqa: ARG001
    session: CurrentSession,
) -> DataResponse[ConversationResponseView]:
    """Discard all answers and restart the conversation."""
    response = session.manager.reset_conversation()
    logger.info("Conversation session reset")
    return DataResponse(data=ConversationResponseView.from_response(response))


@router.get("/{session_id}/resume")
async def get_resume(session: CurrentSession) -> DataResponse[ResumeView]:
    """Get the profile and résumé record built so far.

    Returns:
        DataResponse with camelCase profile and resume documents.
    """
    manager = session.manager
    return DataResponse(
        data=ResumeView(
            profile=manager.get_user_profile(),
            resume=manager.get_resume_data(),
        )
    )


@router.get("/{session_id}/progress")
async def get_progress(session: CurrentSession) -> DataResponse[ProgressInfo]:
    """Get the section checklist, step counts and time estimate."""
    manager = session.manager
    flow = manager.get_current_flow()
    return DataResponse(
        data=calculate_progress(
            current_section=flow.current_section,
            current_step=flow.current_step,
            total_steps=flow.total_steps,
            available_sections=flow.available_sections,
            profile=manager.get_user_profile(),
        )
    )


@router.get("/{session_id}/snapshot")
async def get_snapshot(session: CurrentSession) -> DataResponse[ConversationSnapshot]:
    """Get the engine state as a serializable document."""
    return DataResponse(data=take_snapshot(session.manager.engine))
