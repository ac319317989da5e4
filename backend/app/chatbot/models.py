"""Résumé record and user profile models.

The engine owns one UserProfile and one ResumeRecord per conversation and
mutates them answer by answer. Collaborators (ATS scorer, PDF renderer, tips)
only ever receive deep copies.

Attribute names are snake_case; serialized documents use the camelCase
aliases (basicInfo, techStack, completedSections, ...) so exported records
keep the shape downstream renderers expect.
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# =============================================================================
# Sections
# =============================================================================


class ResumeSection(str, Enum):
    """Named phases of the conversation, in conversation order.

    The set is closed and stable. Collaborators keying off a section name
    must go through parse() so unknown values degrade to COMPLETE.
    """

    CLASSIFICATION = "classification"
    BASIC_INFO = "basic_info"
    EDUCATION = "education"
    EXPERIENCE = "experience"
    PROJECTS = "projects"
    SKILLS = "skills"
    ACHIEVEMENTS = "achievements"
    SOCIAL_LINKS = "social_links"
    AI_UPSELL = "ai_upsell"
    COMPLETE = "complete"

    @classmethod
    def parse(cls, value: "str | ResumeSection | None") -> "ResumeSection":
        """Resolve a section name, treating unknown values as terminal.

        Args:
            value: Section name or member.

        Returns:
            Matching section, or COMPLETE for anything unrecognized.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.COMPLETE


SECTION_ORDER: tuple[ResumeSection, ...] = tuple(ResumeSection)


# =============================================================================
# Base Model
# =============================================================================


class _RecordModel(BaseModel):
    """Shared config: camelCase aliases, assignment validation."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


# =============================================================================
# User Profile
# =============================================================================

Background = Literal["tech", "non-tech"]
ExperienceLevel = Literal["fresher", "experienced"]


class Preferences(_RecordModel):
    skip_optional: bool = False
    fast_mode: bool = False


class UserProfile(_RecordModel):
    """Classification subset that drives branching.

    Seeded with defaults before the first question; narrowed only by
    classification answers.
    """

    background: Background = "tech"
    experience: ExperienceLevel = "fresher"
    preferences: Preferences = Field(default_factory=Preferences)


PROFILE_KEYS: frozenset[str] = frozenset({"background", "experience"})
"""Profile attributes that skip conditions may reference by bare name."""


# =============================================================================
# Résumé Record
# =============================================================================


class BasicInfo(_RecordModel):
    full_name: str = ""
    email: str = ""
    phone: str = ""
    location: str | None = None
    headline: str | None = None
    summary: str | None = None


class EducationEntry(_RecordModel):
    degree: str = ""
    institution: str = ""
    start_year: int | None = None
    end_year: int | None = None
    marks: str | None = None
    specialization: str | None = None


class ExperienceEntry(_RecordModel):
    company_name: str = ""
    role: str = ""
    start_date: str | date | None = None
    end_date: str | date | None = None
    achievements: list[str] = Field(default_factory=list)
    tools_used: list[str] = Field(default_factory=list)


class ProjectEntry(_RecordModel):
    title: str = ""
    description: str | None = None
    tech_stack: list[str] = Field(default_factory=list)
    link: str | None = None
    role: str | None = None


class Skills(_RecordModel):
    primary: list[str] = Field(default_factory=list)
    secondary: list[str] = Field(default_factory=list)
    tech_stack: list[str] = Field(default_factory=list)
    business_tools: list[str] = Field(default_factory=list)


class Achievements(_RecordModel):
    certifications: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    extracurricular: list[str] = Field(default_factory=list)


class SocialLinks(_RecordModel):
    linkedin: str | None = None
    github: str | None = None
    website: str | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ResumeMetadata(_RecordModel):
    """Bookkeeping about how the record was built.

    Attributes:
        background: Mirror of the profile's background classification.
        experience: Mirror of the profile's experience classification.
        ai_interest: Answer to the AI upsell question, if given.
        completed_sections: Sections the conversation has moved past, in order.
        created_at: When the record was created.
        updated_at: When an answer was last written.
    """

    background: Background = "tech"
    experience: ExperienceLevel = "fresher"
    ai_interest: str | None = None
    completed_sections: list[ResumeSection] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ResumeRecord(_RecordModel):
    """The structured résumé document built by the conversation."""

    basic_info: BasicInfo = Field(default_factory=BasicInfo)
    education: list[EducationEntry] = Field(default_factory=list)
    experience: list[ExperienceEntry] = Field(default_factory=list)
    projects: list[ProjectEntry] = Field(default_factory=list)
    skills: Skills = Field(default_factory=Skills)
    achievements: Achievements = Field(default_factory=Achievements)
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    metadata: ResumeMetadata = Field(default_factory=ResumeMetadata)


# Entry model for each list-of-objects attribute of ResumeRecord. Field paths
# that pass through one of these collections address its last entry.
COLLECTION_ENTRY_TYPES: dict[str, type[_RecordModel]] = {
    "education": EducationEntry,
    "experience": ExperienceEntry,
    "projects": ProjectEntry,
}
