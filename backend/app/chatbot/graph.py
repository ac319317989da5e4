"""Static question graph for the résumé conversation.

The graph is a total order of QuestionDefinition records. At runtime the
engine filters it with each question's skip conditions; the graph itself is
never mutated.

Branching rules encoded here:
    - Freshers never see work-experience questions.
    - Project questions are skipped only for non-tech experienced users.
    - Non-tech users skip tech-stack and GitHub questions; tech users skip
      the business-tools question.

validate_graph() checks the structural invariants the engine relies on and
raises GraphDefinitionError on the first violation, so a broken graph fails
at engine construction instead of mid-conversation.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from app.chatbot.errors import GraphDefinitionError
from app.chatbot.models import (
    COLLECTION_ENTRY_TYPES,
    PROFILE_KEYS,
    ResumeRecord,
    ResumeSection,
)

# =============================================================================
# Enums
# =============================================================================


class InputKind(str, Enum):
    """How the UI should collect an answer."""

    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    DATE = "date"
    TEXTAREA = "textarea"
    SELECT = "select"


class FieldShape(str, Enum):
    """How a validated answer is materialized into the record.

    SCALAR: Assign the converted value to the field.
    STRING_LIST: Split on the question's separator, trim, drop empties.
    OBJECT_APPEND: Start a new entry in a collection and set the field on it.
    """

    SCALAR = "scalar"
    STRING_LIST = "string_list"
    OBJECT_APPEND = "object_append"


class SkipOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"


class RuleKind(str, Enum):
    REQUIRED = "required"
    EMAIL = "email"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    PATTERN = "pattern"


# =============================================================================
# Definitions
# =============================================================================


@dataclass(frozen=True)
class SkipCondition:
    """Predicate over already-collected answers.

    Attributes:
        field: Profile key ("background", "experience") or dotted record path.
        operator: Comparison to apply.
        value: Value compared against the field's current value.
    """

    field: str
    operator: SkipOperator
    value: Any


@dataclass(frozen=True)
class ValidationRule:
    """One validation check, reported with its own message when it fails.

    Attributes:
        kind: Rule type.
        message: User-facing message on failure.
        value: Rule parameter (length bound or compiled pattern).
    """

    kind: RuleKind
    message: str
    value: Any = None


@dataclass(frozen=True)
class QuestionDefinition:
    """A single immutable question in the graph.

    Attributes:
        id: Unique identifier.
        text: Prompt shown to the user.
        section: Conversation phase this question belongs to.
        field: Dotted path of the record field the answer populates.
        input_kind: How the answer is collected and parsed.
        required: Whether the question may be skipped.
        shape: How the answer is written into the record.
        separator: List separator for STRING_LIST answers.
        options: Allowed answers for SELECT questions.
        skip_conditions: All must hold for the question to be skipped.
        validation_rules: Checked in declared order.
        placeholder: Example input for the UI.
        help_text: Longer guidance for the UI.
    """

    id: str
    text: str
    section: ResumeSection
    field: str
    input_kind: InputKind = InputKind.TEXT
    required: bool = False
    shape: FieldShape = FieldShape.SCALAR
    separator: str = ","
    options: tuple[str, ...] = ()
    skip_conditions: tuple[SkipCondition, ...] = ()
    validation_rules: tuple[ValidationRule, ...] = ()
    placeholder: str | None = None
    help_text: str | None = None

    @property
    def attribute(self) -> str:
        """Last segment of the field path."""
        return self.field.rsplit(".", 1)[-1]

    @property
    def profile_key(self) -> str | None:
        """Profile attribute updated by this question, if any.

        Only classification questions write to the profile.
        """
        if self.section is ResumeSection.CLASSIFICATION:
            return self.attribute
        return None

    @property
    def label(self) -> str:
        """Human-readable field name (e.g., "Full name")."""
        return self.attribute.replace("_", " ").capitalize()


# =============================================================================
# Shared Validation Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\+]?[1-9][\d]{0,15}$")
LINKEDIN_PATTERN = re.compile(r"linkedin\.com", re.IGNORECASE)

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50
MAX_SUMMARY_LENGTH = 500

_MULTILINE = "\n"

_FRESHER_ONLY = (SkipCondition("experience", SkipOperator.EQUALS, "fresher"),)
_NON_TECH_EXPERIENCED = (
    SkipCondition("background", SkipOperator.EQUALS, "non-tech"),
    SkipCondition("experience", SkipOperator.EQUALS, "experienced"),
)
_NON_TECH = (SkipCondition("background", SkipOperator.EQUALS, "non-tech"),)
_TECH = (SkipCondition("background", SkipOperator.EQUALS, "tech"),)


def _required(message: str) -> ValidationRule:
    return ValidationRule(RuleKind.REQUIRED, message)


# =============================================================================
# Question Graph
# =============================================================================

QUESTION_GRAPH: tuple[QuestionDefinition, ...] = (
    # Classification
    QuestionDefinition(
        id="background",
        text=(
            "Hi! I'm here to help you build an ATS-friendly resume. First, are "
            "you from a Tech background or Non-Tech background?"
        ),
        section=ResumeSection.CLASSIFICATION,
        field="metadata.background",
        input_kind=InputKind.SELECT,
        required=True,
        options=("Tech", "Non-Tech"),
        help_text="This helps me customize the questions for your field",
    ),
    QuestionDefinition(
        id="experience_level",
        text="Great! Are you a Fresher or do you have work Experience?",
        section=ResumeSection.CLASSIFICATION,
        field="metadata.experience",
        input_kind=InputKind.SELECT,
        required=True,
        options=("Fresher", "Experienced"),
        help_text="This determines which sections we'll focus on",
    ),
    # Basic information
    QuestionDefinition(
        id="full_name",
        text="Perfect! Let's start building your resume. What's your full name?",
        section=ResumeSection.BASIC_INFO,
        field="basic_info.full_name",
        required=True,
        validation_rules=(
            _required("Full name is required"),
            ValidationRule(
                RuleKind.MIN_LENGTH,
                f"Name must be at least {MIN_NAME_LENGTH} characters",
                MIN_NAME_LENGTH,
            ),
            ValidationRule(
                RuleKind.MAX_LENGTH,
                f"Name must be at most {MAX_NAME_LENGTH} characters",
                MAX_NAME_LENGTH,
            ),
        ),
        placeholder="e.g., John Smith",
    ),
    QuestionDefinition(
        id="email",
        text="What's your email address?",
        section=ResumeSection.BASIC_INFO,
        field="basic_info.email",
        input_kind=InputKind.EMAIL,
        required=True,
        validation_rules=(
            _required("Email is required"),
            ValidationRule(RuleKind.EMAIL, "Please enter a valid email address"),
        ),
        placeholder="e.g., john.smith@email.com",
    ),
    QuestionDefinition(
        id="phone",
        text="What's your phone number?",
        section=ResumeSection.BASIC_INFO,
        field="basic_info.phone",
        required=True,
        validation_rules=(
            _required("Phone number is required"),
            ValidationRule(
                RuleKind.PATTERN, "Please enter a valid phone number", PHONE_PATTERN
            ),
        ),
        placeholder="e.g., +1234567890",
    ),
    QuestionDefinition(
        id="location",
        text="What's your location? (Optional - you can skip this)",
        section=ResumeSection.BASIC_INFO,
        field="basic_info.location",
        placeholder="e.g., New York, NY",
    ),
    QuestionDefinition(
        id="headline",
        text="Do you have a professional headline or title? (Optional)",
        section=ResumeSection.BASIC_INFO,
        field="basic_info.headline",
        placeholder="e.g., Software Engineer | Full Stack Developer",
    ),
    QuestionDefinition(
        id="summary",
        text="Would you like to add a professional summary? (Optional)",
        section=ResumeSection.BASIC_INFO,
        field="basic_info.summary",
        input_kind=InputKind.TEXTAREA,
        validation_rules=(
            ValidationRule(
                RuleKind.MAX_LENGTH,
                f"Summary must be at most {MAX_SUMMARY_LENGTH} characters",
                MAX_SUMMARY_LENGTH,
            ),
        ),
        placeholder="Brief summary of your professional background and goals...",
        help_text=(
            "A professional summary is 2-3 sentences highlighting your key "
            "skills, experience, and career goals. It should grab the "
            "recruiter's attention and make them want to read more."
        ),
    ),
    # Education
    QuestionDefinition(
        id="education_degree",
        text=(
            "Let's add your education. What's your highest degree or current degree?"
        ),
        section=ResumeSection.EDUCATION,
        field="education.degree",
        required=True,
        shape=FieldShape.OBJECT_APPEND,
        validation_rules=(_required("Degree is required"),),
        placeholder="e.g., Bachelor of Science in Computer Science",
    ),
    QuestionDefinition(
        id="education_institution",
        text="Which institution did you attend?",
        section=ResumeSection.EDUCATION,
        field="education.institution",
        required=True,
        validation_rules=(_required("Institution is required"),),
        placeholder="e.g., University of California, Berkeley",
    ),
    QuestionDefinition(
        id="education_start_year",
        text="What year did you start? (Optional)",
        section=ResumeSection.EDUCATION,
        field="education.start_year",
        input_kind=InputKind.NUMBER,
        placeholder="e.g., 2020",
    ),
    QuestionDefinition(
        id="education_end_year",
        text="What year did you graduate or expect to graduate?",
        section=ResumeSection.EDUCATION,
        field="education.end_year",
        input_kind=InputKind.NUMBER,
        required=True,
        validation_rules=(_required("Graduation year is required"),),
        placeholder="e.g., 2024",
    ),
    QuestionDefinition(
        id="education_marks",
        text="What's your GPA or percentage? (Optional)",
        section=ResumeSection.EDUCATION,
        field="education.marks",
        placeholder="e.g., 3.8 GPA or 85%",
    ),
    QuestionDefinition(
        id="education_specialization",
        text="Any specialization or major? (Optional)",
        section=ResumeSection.EDUCATION,
        field="education.specialization",
        placeholder="e.g., Machine Learning, Finance",
    ),
    # Experience (experienced users only)
    QuestionDefinition(
        id="experience_company",
        text=(
            "Let's add your work experience. What's your current or most "
            "recent company?"
        ),
        section=ResumeSection.EXPERIENCE,
        field="experience.company_name",
        required=True,
        shape=FieldShape.OBJECT_APPEND,
        skip_conditions=_FRESHER_ONLY,
        validation_rules=(_required("Company name is required"),),
        placeholder="e.g., Google, Microsoft, Acme Corp",
    ),
    QuestionDefinition(
        id="experience_role",
        text="What's your job title or role?",
        section=ResumeSection.EXPERIENCE,
        field="experience.role",
        required=True,
        skip_conditions=_FRESHER_ONLY,
        validation_rules=(_required("Role is required"),),
        placeholder="e.g., Software Engineer, Marketing Manager",
    ),
    QuestionDefinition(
        id="experience_start_date",
        text="When did you start this role? (Optional)",
        section=ResumeSection.EXPERIENCE,
        field="experience.start_date",
        skip_conditions=_FRESHER_ONLY,
        placeholder="e.g., January 2023",
    ),
    QuestionDefinition(
        id="experience_end_date",
        text="When did you end this role? (Leave blank if current)",
        section=ResumeSection.EXPERIENCE,
        field="experience.end_date",
        skip_conditions=_FRESHER_ONLY,
        placeholder="e.g., Present or December 2023",
    ),
    QuestionDefinition(
        id="experience_achievements",
        text=(
            "Can you describe your key achievements or responsibilities? "
            "(One per line)"
        ),
        section=ResumeSection.EXPERIENCE,
        field="experience.achievements",
        input_kind=InputKind.TEXTAREA,
        shape=FieldShape.STRING_LIST,
        separator=_MULTILINE,
        skip_conditions=_FRESHER_ONLY,
        placeholder=(
            "e.g., Increased sales by 25%\nLed a team of 5 developers\n"
            "Implemented new features"
        ),
        help_text=(
            "Focus on achievements rather than responsibilities. Use action "
            "verbs and quantify your impact with numbers, percentages, or "
            "metrics whenever possible."
        ),
    ),
    QuestionDefinition(
        id="experience_tools",
        text="What tools or technologies did you use? (Optional)",
        section=ResumeSection.EXPERIENCE,
        field="experience.tools_used",
        shape=FieldShape.STRING_LIST,
        skip_conditions=_FRESHER_ONLY,
        placeholder="e.g., React, Python, Salesforce, Excel",
    ),
    # Projects (skipped for non-tech experienced users)
    QuestionDefinition(
        id="project_title",
        text="Let's add your projects. What's your most significant project?",
        section=ResumeSection.PROJECTS,
        field="projects.title",
        required=True,
        shape=FieldShape.OBJECT_APPEND,
        skip_conditions=_NON_TECH_EXPERIENCED,
        validation_rules=(_required("Project title is required"),),
        placeholder="e.g., E-commerce Website, Mobile App",
    ),
    QuestionDefinition(
        id="project_description",
        text="Can you describe what this project does? (Optional)",
        section=ResumeSection.PROJECTS,
        field="projects.description",
        input_kind=InputKind.TEXTAREA,
        skip_conditions=_NON_TECH_EXPERIENCED,
        placeholder="Brief description of the project and its purpose...",
        help_text=(
            "Describe what problem your project solved, its key features, and "
            "any measurable impact. Focus on the value it provides to users or "
            "the business."
        ),
    ),
    QuestionDefinition(
        id="project_tech_stack",
        text="What technologies did you use? (Optional)",
        section=ResumeSection.PROJECTS,
        field="projects.tech_stack",
        shape=FieldShape.STRING_LIST,
        skip_conditions=_NON_TECH_EXPERIENCED,
        placeholder="e.g., React, Node.js, MongoDB, Python",
    ),
    QuestionDefinition(
        id="project_link",
        text="Do you have a link to the project? (GitHub, live demo, etc.) (Optional)",
        section=ResumeSection.PROJECTS,
        field="projects.link",
        skip_conditions=_NON_TECH_EXPERIENCED,
        placeholder="e.g., https://github.com/username/project",
    ),
    QuestionDefinition(
        id="project_role",
        text="What was your role in this project? (Optional)",
        section=ResumeSection.PROJECTS,
        field="projects.role",
        skip_conditions=_NON_TECH_EXPERIENCED,
        placeholder="e.g., Full Stack Developer, Team Lead",
    ),
    # Skills
    QuestionDefinition(
        id="skills_primary",
        text="What are your primary skills? (Comma separated)",
        section=ResumeSection.SKILLS,
        field="skills.primary",
        required=True,
        shape=FieldShape.STRING_LIST,
        validation_rules=(_required("Primary skills are required"),),
        placeholder="e.g., JavaScript, Python, Project Management",
    ),
    QuestionDefinition(
        id="skills_secondary",
        text="Any secondary or additional skills? (Optional)",
        section=ResumeSection.SKILLS,
        field="skills.secondary",
        shape=FieldShape.STRING_LIST,
        placeholder="e.g., Communication, Leadership, Problem Solving",
    ),
    QuestionDefinition(
        id="skills_tech_stack",
        text="What's your tech stack or programming languages? (Optional)",
        section=ResumeSection.SKILLS,
        field="skills.tech_stack",
        shape=FieldShape.STRING_LIST,
        skip_conditions=_NON_TECH,
        placeholder="e.g., React, Node.js, Python, AWS, Docker",
    ),
    QuestionDefinition(
        id="skills_business_tools",
        text="What business tools or software do you use? (Optional)",
        section=ResumeSection.SKILLS,
        field="skills.business_tools",
        shape=FieldShape.STRING_LIST,
        skip_conditions=_TECH,
        placeholder="e.g., Excel, Salesforce, PowerBI, SAP",
    ),
    # Achievements
    QuestionDefinition(
        id="achievements_certifications",
        text="Do you have any certifications? (Optional)",
        section=ResumeSection.ACHIEVEMENTS,
        field="achievements.certifications",
        input_kind=InputKind.TEXTAREA,
        shape=FieldShape.STRING_LIST,
        separator=_MULTILINE,
        placeholder="e.g., AWS Certified Developer\nGoogle Analytics Certified",
    ),
    QuestionDefinition(
        id="achievements_achievements",
        text="Any notable achievements or awards? (Optional)",
        section=ResumeSection.ACHIEVEMENTS,
        field="achievements.achievements",
        input_kind=InputKind.TEXTAREA,
        shape=FieldShape.STRING_LIST,
        separator=_MULTILINE,
        placeholder="e.g., Employee of the Month\nHackathon Winner",
    ),
    QuestionDefinition(
        id="achievements_extracurricular",
        text="Any extracurricular activities or volunteer work? (Optional)",
        section=ResumeSection.ACHIEVEMENTS,
        field="achievements.extracurricular",
        input_kind=InputKind.TEXTAREA,
        shape=FieldShape.STRING_LIST,
        separator=_MULTILINE,
        placeholder="e.g., Volunteer at local shelter\nCaptain of debate team",
    ),
    # Social links
    QuestionDefinition(
        id="social_linkedin",
        text="What's your LinkedIn profile URL?",
        section=ResumeSection.SOCIAL_LINKS,
        field="social_links.linkedin",
        required=True,
        validation_rules=(
            _required("LinkedIn profile is required"),
            ValidationRule(
                RuleKind.PATTERN, "Please enter a valid LinkedIn URL", LINKEDIN_PATTERN
            ),
        ),
        placeholder="e.g., https://linkedin.com/in/yourname",
    ),
    QuestionDefinition(
        id="social_github",
        text="What's your GitHub profile URL? (Optional for tech users)",
        section=ResumeSection.SOCIAL_LINKS,
        field="social_links.github",
        skip_conditions=_NON_TECH,
        placeholder="e.g., https://github.com/yourusername",
    ),
    QuestionDefinition(
        id="social_website",
        text="Do you have a personal website or portfolio? (Optional)",
        section=ResumeSection.SOCIAL_LINKS,
        field="social_links.website",
        placeholder="e.g., https://yourname.com",
    ),
    # AI upsell
    QuestionDefinition(
        id="ai_interest",
        text=(
            "Great job! Your resume is ready. We're working on an AI resume "
            "service that will make your resume 10x better. Would you be "
            "interested in this?"
        ),
        section=ResumeSection.AI_UPSELL,
        field="metadata.ai_interest",
        input_kind=InputKind.SELECT,
        required=True,
        options=("Yes, I'm interested", "No, thanks"),
        help_text="This is completely optional and won't affect your current resume",
    ),
)


# =============================================================================
# Graph Validation
# =============================================================================


def _field_resolves(path: str) -> bool:
    """Check that a dotted path names an attribute of ResumeRecord.

    Paths that pass through a collection address the collection's entry model.
    """
    node: Any = ResumeRecord()
    for segment in path.split("."):
        if segment not in type(node).model_fields:
            return False
        entry_type = COLLECTION_ENTRY_TYPES.get(segment)
        if entry_type is not None and isinstance(getattr(node, segment), list):
            node = entry_type()
        else:
            node = getattr(node, segment)
    return True


def _validate_rules(question: QuestionDefinition) -> None:
    for rule in question.validation_rules:
        if rule.kind in (RuleKind.MIN_LENGTH, RuleKind.MAX_LENGTH) and (
            type(rule.value) is not int or rule.value < 0
        ):
            raise GraphDefinitionError(
                f"{rule.kind.value} rule needs a non-negative integer bound",
                question_id=question.id,
            )
        if rule.kind is RuleKind.PATTERN and not isinstance(rule.value, re.Pattern):
            raise GraphDefinitionError(
                "pattern rule needs a compiled regular expression",
                question_id=question.id,
            )


def _validate_shape(question: QuestionDefinition) -> None:
    if question.input_kind is InputKind.SELECT and not question.options:
        raise GraphDefinitionError(
            "select question declares no options", question_id=question.id
        )
    if question.input_kind is not InputKind.SELECT and question.options:
        raise GraphDefinitionError(
            "only select questions may declare options", question_id=question.id
        )
    if question.shape is FieldShape.OBJECT_APPEND:
        collection = question.field.split(".", 1)[0]
        if collection not in COLLECTION_ENTRY_TYPES or "." not in question.field:
            raise GraphDefinitionError(
                f"object_append target '{question.field}' is not a collection entry field",
                question_id=question.id,
            )
    if question.shape is FieldShape.STRING_LIST and not question.separator:
        raise GraphDefinitionError(
            "string_list question needs a separator", question_id=question.id
        )


def validate_graph(questions: Sequence[QuestionDefinition]) -> None:
    """Check the structural invariants of a question graph.

    Args:
        questions: Graph in conversation order.

    Raises:
        GraphDefinitionError: On duplicate ids, unresolvable field paths,
            malformed options/shapes/rules, or a skip condition that references
            a field no earlier question writes.
    """
    seen_ids: set[str] = set()
    written: set[str] = set()

    for question in questions:
        if question.id in seen_ids:
            raise GraphDefinitionError("duplicate question id", question_id=question.id)
        seen_ids.add(question.id)

        if not _field_resolves(question.field):
            raise GraphDefinitionError(
                f"field '{question.field}' is not part of the resume record",
                question_id=question.id,
            )

        _validate_shape(question)
        _validate_rules(question)

        for condition in question.skip_conditions:
            if condition.field not in written:
                raise GraphDefinitionError(
                    f"skip condition references '{condition.field}', which no "
                    "earlier question answers",
                    question_id=question.id,
                )

        written.add(question.field)
        if question.profile_key in PROFILE_KEYS:
            written.add(question.profile_key)


def questions_in_section(
    questions: Sequence[QuestionDefinition], section: ResumeSection
) -> list[QuestionDefinition]:
    """Filter a graph down to one section, preserving order."""
    return [q for q in questions if q.section is section]
