"""Progress tracking for the résumé conversation.

Pure functions over the engine's progress numbers and section list: a
per-section checklist, time estimates, milestone and celebration copy, and
a completion grade. Nothing here reads or writes engine state.

Time estimates use a fixed per-section cost in minutes. Experience counts
half for freshers and projects count half for non-tech users.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.chatbot.models import ResumeSection, UserProfile

# =============================================================================
# Section Table
# =============================================================================


@dataclass(frozen=True)
class _SectionMeta:
    name: str
    description: str
    estimated_minutes: int


_SECTION_META: dict[ResumeSection, _SectionMeta] = {
    ResumeSection.CLASSIFICATION: _SectionMeta(
        "Getting Started", "Understanding your background", 1
    ),
    ResumeSection.BASIC_INFO: _SectionMeta(
        "Basic Information", "Contact details and headline", 2
    ),
    ResumeSection.EDUCATION: _SectionMeta("Education", "Academic background", 2),
    ResumeSection.EXPERIENCE: _SectionMeta(
        "Work Experience", "Professional history", 4
    ),
    ResumeSection.PROJECTS: _SectionMeta("Projects", "Significant projects", 3),
    ResumeSection.SKILLS: _SectionMeta("Skills", "Technical and soft skills", 2),
    ResumeSection.ACHIEVEMENTS: _SectionMeta(
        "Achievements", "Certifications and awards", 2
    ),
    ResumeSection.SOCIAL_LINKS: _SectionMeta(
        "Professional Links", "LinkedIn and portfolio", 1
    ),
    ResumeSection.AI_UPSELL: _SectionMeta("AI Enhancement", "Optional upgrade offer", 1),
    ResumeSection.COMPLETE: _SectionMeta("Complete", "Resume ready!", 0),
}

_REDUCED_TIME_MULTIPLIER = 0.5

MILESTONE_MESSAGES: dict[int, str] = {
    25: "Great start! You're 25% done with your resume.",
    50: "Halfway there! Your resume is taking shape.",
    75: "Almost finished! Just a few more questions.",
    90: "You're almost done! Just the final touches.",
    100: "Congratulations! Your resume is complete!",
}

SECTION_COMPLETION_MESSAGES: dict[ResumeSection, str] = {
    ResumeSection.CLASSIFICATION: "Perfect! I now understand your background.",
    ResumeSection.BASIC_INFO: "Great! Your contact information is all set.",
    ResumeSection.EDUCATION: "Excellent! Your education section looks good.",
    ResumeSection.EXPERIENCE: "Fantastic! Your work experience is well documented.",
    ResumeSection.PROJECTS: "Amazing! Your projects showcase your skills nicely.",
    ResumeSection.SKILLS: "Perfect! Your skills section is comprehensive.",
    ResumeSection.ACHIEVEMENTS: "Great! Your achievements add great value.",
    ResumeSection.SOCIAL_LINKS: "Excellent! Your professional links are ready.",
    ResumeSection.AI_UPSELL: "Thank you for your feedback!",
    ResumeSection.COMPLETE: "Congratulations! Your resume is complete!",
}

DEFAULT_SECTION_COMPLETION_MESSAGE = "Great job completing this section!"

Grade = Literal["A+", "A", "B+", "B", "C+", "C", "D"]

# (minimum score, grade, message), highest first.
_GRADE_BANDS: tuple[tuple[int, Grade, str], ...] = (
    (95, "A+", "Outstanding! Your resume is comprehensive and complete."),
    (90, "A", "Excellent! Your resume covers all important areas."),
    (85, "B+", "Very good! Your resume is well-rounded."),
    (80, "B", "Good! Your resume covers the essentials."),
    (70, "C+", "Fair! Consider adding more optional sections."),
    (60, "C", "Basic! Your resume needs more information."),
    (0, "D", "Incomplete! Please complete the required sections."),
)

# =============================================================================
# Result Models
# =============================================================================


class _ProgressModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SectionSummary(_ProgressModel):
    section: ResumeSection
    name: str
    description: str


class ProgressStep(_ProgressModel):
    """One row of the section checklist."""

    section: ResumeSection
    name: str
    description: str
    is_completed: bool
    is_current: bool
    is_available: bool
    order: int


class ProgressInfo(_ProgressModel):
    """Checklist plus step counts for the whole conversation.

    Attributes:
        steps: One entry per available section, in conversation order.
        current_step: Answered/skipped active questions so far.
        total_steps: Active questions for the current classification.
        completed_steps: Checklist rows marked completed.
        percentage: Rounded current_step / total_steps, 0 if no steps.
        current_section: Section of the current question.
        estimated_time_remaining: Minutes left for incomplete sections.
    """

    steps: list[ProgressStep]
    current_step: int
    total_steps: int
    completed_steps: int
    percentage: int
    current_section: ResumeSection
    estimated_time_remaining: int


class SectionProgress(_ProgressModel):
    section: ResumeSection
    name: str
    progress: int
    questions_total: int
    questions_answered: int
    is_complete: bool


class CompletionScore(_ProgressModel):
    score: int
    grade: Grade
    message: str


# =============================================================================
# Progress Calculation
# =============================================================================


def _meta(section: ResumeSection | str) -> _SectionMeta:
    return _SECTION_META[ResumeSection.parse(section)]


def _build_steps(
    available_sections: Sequence[ResumeSection], current_section: ResumeSection
) -> list[ProgressStep]:
    """Checklist rows; a section missing from the list marks every row done."""
    if current_section in available_sections:
        current_index = list(available_sections).index(current_section)
    else:
        current_index = len(available_sections)

    steps = []
    for index, section in enumerate(available_sections):
        meta = _meta(section)
        steps.append(
            ProgressStep(
                section=section,
                name=meta.name,
                description=meta.description,
                is_completed=index < current_index,
                is_current=index == current_index,
                is_available=index <= current_index + 1,
                order=index + 1,
            )
        )
    return steps


def _estimate_minutes(
    steps: Sequence[ProgressStep], profile: UserProfile | None
) -> int:
    total = 0.0
    for step in steps:
        if step.is_completed:
            continue
        multiplier = 1.0
        if profile is not None:
            if (
                step.section is ResumeSection.EXPERIENCE
                and profile.experience == "fresher"
            ):
                multiplier = _REDUCED_TIME_MULTIPLIER
            if (
                step.section is ResumeSection.PROJECTS
                and profile.background == "non-tech"
            ):
                multiplier = _REDUCED_TIME_MULTIPLIER
        total += _meta(step.section).estimated_minutes * multiplier
    return math.ceil(total)


def calculate_progress(
    current_section: ResumeSection | str,
    current_step: int,
    total_steps: int,
    available_sections: Sequence[ResumeSection],
    profile: UserProfile | None = None,
) -> ProgressInfo:
    """Build the progress checklist and summary numbers.

    Args:
        current_section: Section of the current question. Unknown names and
            COMPLETE are treated as terminal.
        current_step: Answered/skipped active questions so far.
        total_steps: Active questions in the conversation.
        available_sections: Sections with active questions, in order.
        profile: Classification used to scale time estimates.

    Returns:
        ProgressInfo for rendering a progress sidebar.
    """
    section = ResumeSection.parse(current_section)
    steps = _build_steps(available_sections, section)
    percentage = round(current_step / total_steps * 100) if total_steps > 0 else 0
    return ProgressInfo(
        steps=steps,
        current_step=current_step,
        total_steps=total_steps,
        completed_steps=sum(1 for step in steps if step.is_completed),
        percentage=percentage,
        current_section=section,
        estimated_time_remaining=_estimate_minutes(steps, profile),
    )


def get_section_progress(
    section: ResumeSection | str, questions_in_section: int, answered_in_section: int
) -> SectionProgress:
    progress = (
        answered_in_section / questions_in_section * 100
        if questions_in_section > 0
        else 0
    )
    parsed = ResumeSection.parse(section)
    return SectionProgress(
        section=parsed,
        name=_meta(parsed).name,
        progress=round(progress),
        questions_total=questions_in_section,
        questions_answered=answered_in_section,
        is_complete=answered_in_section >= questions_in_section,
    )


def _neighbour(
    available_sections: Sequence[ResumeSection],
    current_section: ResumeSection | str,
    offset: int,
) -> SectionSummary | None:
    section = ResumeSection.parse(current_section)
    if section not in available_sections:
        return None
    index = list(available_sections).index(section) + offset
    if not 0 <= index < len(available_sections):
        return None
    target = available_sections[index]
    meta = _meta(target)
    return SectionSummary(section=target, name=meta.name, description=meta.description)


def get_next_section(
    available_sections: Sequence[ResumeSection], current_section: ResumeSection | str
) -> SectionSummary | None:
    return _neighbour(available_sections, current_section, 1)


def get_previous_section(
    available_sections: Sequence[ResumeSection], current_section: ResumeSection | str
) -> SectionSummary | None:
    return _neighbour(available_sections, current_section, -1)


# =============================================================================
# Copy
# =============================================================================


def format_time_remaining(minutes: int) -> str:
    """Human-readable time remaining (e.g., "1 hour 5 minutes remaining")."""
    if minutes <= 0:
        return "Almost done!"
    if minutes == 1:
        return "1 minute remaining"
    if minutes < 60:
        return f"{minutes} minutes remaining"

    hours, remainder = divmod(minutes, 60)
    hour_text = "1 hour" if hours == 1 else f"{hours} hours"
    if remainder == 0:
        return f"{hour_text} remaining"
    return f"{hour_text} {remainder} minutes remaining"


def get_milestone_message(percentage: int) -> str | None:
    """Message for the highest milestone reached, or None below 25%."""
    for milestone in sorted(MILESTONE_MESSAGES, reverse=True):
        if percentage >= milestone:
            return MILESTONE_MESSAGES[milestone]
    return None


def get_section_completion_message(section: ResumeSection | str) -> str:
    try:
        parsed = ResumeSection(section)
    except ValueError:
        return DEFAULT_SECTION_COMPLETION_MESSAGE
    return SECTION_COMPLETION_MESSAGES.get(parsed, DEFAULT_SECTION_COMPLETION_MESSAGE)


def calculate_completion_score(
    required_sections_completed: int,
    total_required_sections: int,
    optional_sections_completed: int,
    total_optional_sections: int,
) -> CompletionScore:
    """Grade how complete a résumé is.

    Required sections weigh 80 points and optional sections 20. With no
    sections of a kind, that kind earns its full weight.

    Returns:
        Score (0-100), letter grade and a short verdict.
    """
    required = (
        required_sections_completed / total_required_sections * 80
        if total_required_sections > 0
        else 80
    )
    optional = (
        optional_sections_completed / total_optional_sections * 20
        if total_optional_sections > 0
        else 20
    )
    score = round(required + optional)
    for minimum, grade, message in _GRADE_BANDS:
        if score >= minimum:
            return CompletionScore(score=score, grade=grade, message=message)
    _, grade, message = _GRADE_BANDS[-1]
    return CompletionScore(score=score, grade=grade, message=message)
