"""Tests for the question engine state machine.

Covers:
- Classification routing (tech/non-tech x fresher/experienced)
- Validation: required, rules in order, input kinds, purity on failure
- Field conversion by shape (scalar, string list, object append)
- Skip, go_back and re-answering
- Progress counts and completion terminality
- Exported state and from_state
"""

from datetime import date

import pytest

from app.chatbot.engine import QuestionEngine
from app.chatbot.graph import (
    FieldShape,
    InputKind,
    QuestionDefinition,
    SkipCondition,
    SkipOperator,
)
from app.chatbot.models import ResumeSection

# =============================================================================
# Helpers
# =============================================================================

_TECH_FRESHER_ANSWERS = [
    "Tech",
    "Fresher",
    "John Smith",
    "john@example.com",
    "+1234567890",
    "",
    "",
    "",
    "BSc Computer Science",
    "MIT",
    "2020",
    "2024",
    "",
    "",
    "Resume Builder",
    "",
    "React, Python",
    "",
    "",
    "JavaScript, Python, React",
    "",
    "",
    "",
    "",
    "",
    "https://linkedin.com/in/john",
    "",
    "",
    "No, thanks",
]


def _answer(engine: QuestionEngine, *answers: str) -> None:
    """Answer questions in order, failing the test on any rejection."""
    for answer in answers:
        result = engine.process_answer(answer)
        assert result.success, (answer, result.error and result.error.message)


def _current_id(engine: QuestionEngine) -> str | None:
    question = engine.get_current_question()
    return question.id if question else None


def _to_education(engine: QuestionEngine) -> None:
    _answer(engine, "Tech", "Fresher", "John Smith", "john@example.com", "+1234567890")
    _answer(engine, "", "", "")


# =============================================================================
# Tests: Classification routing
# =============================================================================


class TestClassificationRouting:
    """Tests for skip conditions driven by the classification answers."""

    def test_first_question_is_background(self, engine):
        """A new engine starts at the background question."""
        assert _current_id(engine) == "background"
        assert engine.get_current_section() is ResumeSection.CLASSIFICATION

    def test_tech_fresher_goes_to_basic_info(self, engine):
        """Tech + Fresher moves straight into basic info."""
        _answer(engine, "Tech", "Fresher")
        assert _current_id(engine) == "full_name"
        assert engine.get_current_section() is ResumeSection.BASIC_INFO

    def test_tech_fresher_never_reaches_experience(self, engine):
        """Walking the whole tech fresher path never visits an experience question."""
        visited_sections = set()
        for answer in _TECH_FRESHER_ANSWERS:
            visited_sections.add(engine.get_current_section())
            _answer(engine, answer)

        assert ResumeSection.EXPERIENCE not in visited_sections
        assert engine.is_complete()

    def test_tech_fresher_total_steps(self, engine):
        """Tech freshers skip experience and business tools."""
        _answer(engine, "Tech", "Fresher")
        assert engine.get_progress().total == 29

    def test_experienced_unlocks_experience_section(self, engine):
        """Experienced users see the experience section after education."""
        _answer(engine, "Tech", "Experienced")
        sections = engine.get_available_sections()
        assert ResumeSection.EXPERIENCE in sections
        assert engine.get_progress().total == 35

    def test_non_tech_experienced_skips_projects(self, engine):
        """Non-tech experienced users have no project questions."""
        _answer(engine, "Non-Tech", "Experienced")
        ids = {q.id for q in engine.get_available_questions()}
        assert "project_title" not in ids
        assert ResumeSection.PROJECTS not in engine.get_available_sections()
        assert engine.get_progress().total == 29

    def test_non_tech_fresher_keeps_projects(self, engine):
        """Projects stay for non-tech freshers."""
        _answer(engine, "Non-Tech", "Fresher")
        assert ResumeSection.PROJECTS in engine.get_available_sections()

    def test_tech_gets_tech_stack_not_business_tools(self, engine):
        """Tech users are asked for a tech stack, not business tools."""
        _answer(engine, "Tech", "Fresher")
        ids = {q.id for q in engine.get_available_questions()}
        assert "skills_tech_stack" in ids
        assert "skills_business_tools" not in ids
        assert "social_github" in ids

    def test_non_tech_gets_business_tools_not_tech_stack(self, engine):
        """Non-tech users are asked for business tools, not a tech stack or GitHub."""
        _answer(engine, "Non-Tech", "Fresher")
        ids = {q.id for q in engine.get_available_questions()}
        assert "skills_business_tools" in ids
        assert "skills_tech_stack" not in ids
        assert "social_github" not in ids
        assert engine.get_progress().total == 28

    def test_classification_updates_profile_and_metadata(self, engine):
        """Classification answers land in both the profile and record metadata."""
        _answer(engine, "non-tech", "EXPERIENCED")

        profile = engine.get_user_profile()
        metadata = engine.get_resume_data().metadata
        assert profile.background == "non-tech"
        assert profile.experience == "experienced"
        assert metadata.background == "non-tech"
        assert metadata.experience == "experienced"

    def test_complete_section_never_listed(self, engine):
        """COMPLETE is not an available section."""
        assert ResumeSection.COMPLETE not in engine.get_available_sections()


# =============================================================================
# Tests: Validation
# =============================================================================


class TestValidation:
    """Tests for answer validation."""

    def test_empty_required_answer_fails_with_required_message(self, engine):
        """Empty input on a required question is rejected without advancing."""
        _answer(engine, "Tech", "Fresher")
        before = engine.get_progress()

        result = engine.process_answer("   ")

        assert result.success is False
        assert "required" in result.error.message
        assert result.error.code == "VALIDATION_ERROR"
        assert _current_id(engine) == "full_name"
        assert engine.get_progress() == before

    def test_invalid_email_rejected_valid_email_advances_one_step(self, engine):
        """A bad email is rejected; a good one advances exactly one step."""
        _answer(engine, "Tech", "Fresher", "John Smith")
        step = engine.get_progress().current

        bad = engine.process_answer("not-an-email")
        assert bad.success is False
        assert bad.error.message == "Please enter a valid email address"
        assert engine.get_progress().current == step

        good = engine.process_answer("john@example.com")
        assert good.success is True
        assert good.next_question.id == "phone"
        assert engine.get_progress().current == step + 1
        assert engine.get_resume_data().basic_info.email == "john@example.com"

    def test_rules_checked_in_declared_order(self, engine):
        """The first failing rule decides the message."""
        _answer(engine, "Tech", "Fresher")
        result = engine.process_answer("J")
        assert result.error.message == "Name must be at least 2 characters"
        assert result.error.rule == "min_length"

    def test_max_length_rule(self, engine):
        """Names longer than the limit are rejected."""
        _answer(engine, "Tech", "Fresher")
        result = engine.process_answer("x" * 51)
        assert result.error.message == "Name must be at most 50 characters"

    def test_phone_pattern(self, engine):
        """Phone numbers must match the phone pattern."""
        _answer(engine, "Tech", "Fresher", "John Smith", "john@example.com")
        assert engine.process_answer("555-123-4567").success is False
        assert engine.process_answer("+15551234567").success is True

    def test_select_is_case_insensitive_and_lists_options(self, engine):
        """Select answers match options case-insensitively."""
        bad = engine.process_answer("Developer")
        assert bad.error.message == "Please choose one of: Tech, Non-Tech"

        good = engine.process_answer("tECH")
        assert good.success is True
        assert engine.get_user_profile().background == "tech"

    def test_number_kind_requires_integer(self, engine):
        """Number questions reject non-integers."""
        _to_education(engine)
        _answer(engine, "BSc", "MIT")
        result = engine.process_answer("twenty twenty")
        assert result.error.message == "Please enter a whole number"
        assert engine.process_answer("2020").success is True
        assert engine.get_resume_data().education[0].start_year == 2020

    def test_optional_empty_answer_is_valid_and_writes_nothing(self, engine):
        """An empty optional answer advances without writing."""
        _answer(engine, "Tech", "Fresher", "John Smith", "john@example.com", "+1234567890")
        result = engine.process_answer("")
        assert result.success is True
        assert result.next_question.id == "headline"
        assert engine.get_resume_data().basic_info.location is None

    def test_validate_answer_does_not_mutate(self, engine):
        """validate_answer never stores the value."""
        question = engine.get_current_question()
        assert engine.validate_answer(question, "Tech") is None
        assert engine.get_progress().current == 0
        assert _current_id(engine) == "background"

    def test_failed_answer_leaves_record_untouched(self, engine):
        """Validation failures do not mutate the record."""
        _answer(engine, "Tech", "Fresher")
        before = engine.get_resume_data()
        engine.process_answer("")
        assert engine.get_resume_data() == before


# =============================================================================
# Tests: Field conversion
# =============================================================================


class TestFieldConversion:
    """Tests for writing answers into the résumé record."""

    def test_comma_list_is_split_and_trimmed(self, engine):
        """Comma separated skills become a trimmed list."""
        for answer in _TECH_FRESHER_ANSWERS[:19]:
            _answer(engine, answer)
        assert _current_id(engine) == "skills_primary"

        _answer(engine, "JavaScript, Python, React")
        assert engine.get_resume_data().skills.primary == [
            "JavaScript",
            "Python",
            "React",
        ]

    def test_list_drops_empty_parts(self, engine):
        """Blank items between separators are dropped."""
        for answer in _TECH_FRESHER_ANSWERS[:19]:
            _answer(engine, answer)
        _answer(engine, " Go ,, Rust , ")
        assert engine.get_resume_data().skills.primary == ["Go", "Rust"]

    def test_multiline_list(self, engine):
        """Textarea list answers split on new lines."""
        for answer in _TECH_FRESHER_ANSWERS[:22]:
            _answer(engine, answer)
        assert _current_id(engine) == "achievements_certifications"

        _answer(engine, "AWS Certified\n\nCKA\n")
        assert engine.get_resume_data().achievements.certifications == [
            "AWS Certified",
            "CKA",
        ]

    def test_object_append_creates_entry_and_followups_fill_it(self, engine):
        """The degree starts an education entry; later answers fill the same entry."""
        _to_education(engine)
        _answer(engine, "BSc Computer Science", "MIT", "2020", "2024", "3.8 GPA", "AI")

        education = engine.get_resume_data().education
        assert len(education) == 1
        entry = education[0]
        assert entry.degree == "BSc Computer Science"
        assert entry.institution == "MIT"
        assert entry.start_year == 2020
        assert entry.end_year == 2024
        assert entry.marks == "3.8 GPA"
        assert entry.specialization == "AI"

    def test_experience_entry(self, engine):
        """Experienced users build an experience entry with list fields."""
        _answer(engine, "Tech", "Experienced", "John Smith", "john@example.com")
        _answer(engine, "+1234567890", "", "", "")
        _answer(engine, "BSc", "MIT", "", "2018", "", "")
        assert _current_id(engine) == "experience_company"

        _answer(
            engine,
            "Acme",
            "Engineer",
            "January 2020",
            "",
            "Shipped v2\nCut costs 20%",
            "Python, AWS",
        )
        entry = engine.get_resume_data().experience[0]
        assert entry.company_name == "Acme"
        assert entry.role == "Engineer"
        assert entry.start_date == "January 2020"
        assert entry.end_date is None
        assert entry.achievements == ["Shipped v2", "Cut costs 20%"]
        assert entry.tools_used == ["Python", "AWS"]

    def test_ai_interest_stored_in_metadata(self, engine):
        """The upsell answer is stored in metadata with its canonical spelling."""
        for answer in _TECH_FRESHER_ANSWERS[:-1]:
            _answer(engine, answer)
        _answer(engine, "yes, i'm interested")
        assert engine.get_resume_data().metadata.ai_interest == "Yes, I'm interested"

    def test_updated_at_refreshed_on_write(self, engine):
        """Writing an answer moves updated_at forward."""
        created = engine.get_resume_data().metadata.updated_at
        _answer(engine, "Tech")
        assert engine.get_resume_data().metadata.updated_at >= created

    def test_date_kind_converts_to_date(self):
        """Date questions store a date value."""
        questions = (
            QuestionDefinition(
                id="start",
                text="Start date?",
                section=ResumeSection.EXPERIENCE,
                field="experience.start_date",
                input_kind=InputKind.DATE,
                shape=FieldShape.SCALAR,
            ),
        )
        engine = QuestionEngine(questions)

        assert engine.process_answer("March 2020").error.message == (
            "Please enter a date as YYYY-MM-DD"
        )
        _answer(engine, "2020-03-01")
        assert engine.get_resume_data().experience[0].start_date == date(2020, 3, 1)


# =============================================================================
# Tests: Skip
# =============================================================================


class TestSkip:
    """Tests for skipping questions."""

    def test_skip_optional_question(self, engine):
        """Optional questions can be skipped without writing."""
        _answer(engine, "Tech", "Fresher", "John Smith", "john@example.com", "+1234567890")
        result = engine.skip_question()
        assert result.success is True
        assert result.next_question.id == "headline"
        assert engine.get_resume_data().basic_info.location is None

    def test_cannot_skip_required(self, engine):
        """Required questions cannot be skipped."""
        result = engine.skip_question()
        assert result.success is False
        assert result.error.code == "CANNOT_SKIP_REQUIRED"
        assert _current_id(engine) == "background"


# =============================================================================
# Tests: Navigation
# =============================================================================


class TestGoBack:
    """Tests for back-navigation."""

    def test_go_back_at_start_returns_none(self, engine):
        """Going back from the first question is a no-op."""
        assert engine.go_back() is None
        assert _current_id(engine) == "background"

    def test_back_then_forward_is_inverse(self, engine):
        """Answering, going back, then re-answering restores the same position."""
        _answer(engine, "Tech", "Fresher", "John Smith")
        before = engine.get_progress()
        question = engine.get_current_question()

        _answer(engine, "john@example.com")
        back_to = engine.go_back()

        assert back_to == question
        assert engine.get_progress() == before

        _answer(engine, "john@example.com")
        assert _current_id(engine) == "phone"
        assert engine.get_progress().current == before.current + 1

    def test_go_back_keeps_stored_value(self, engine):
        """The previous answer stays in the record after going back."""
        _answer(engine, "Tech", "Fresher", "John Smith", "john@example.com")
        engine.go_back()

        assert _current_id(engine) == "email"
        assert engine.get_resume_data().basic_info.email == "john@example.com"

        _answer(engine, "jane@example.com")
        assert engine.get_resume_data().basic_info.email == "jane@example.com"
        assert _current_id(engine) == "phone"

    def test_go_back_over_skipped_question(self, engine):
        """Skipped questions are part of the back history."""
        _answer(engine, "Tech", "Fresher", "John Smith", "john@example.com", "+1234567890")
        engine.skip_question()
        assert engine.go_back().id == "location"

    def test_reanswering_object_append_overwrites_entry(self, engine):
        """Re-answering the degree after going back does not add a second entry."""
        _to_education(engine)
        _answer(engine, "BSc")
        engine.go_back()
        _answer(engine, "MSc")

        education = engine.get_resume_data().education
        assert len(education) == 1
        assert education[0].degree == "MSc"

    def test_changing_classification_reroutes(self, engine):
        """Changing experience after going back changes the active questions."""
        _answer(engine, "Tech", "Fresher")
        assert engine.get_progress().total == 29

        engine.go_back()
        _answer(engine, "Experienced")

        assert _current_id(engine) == "full_name"
        assert engine.get_progress().total == 35

    def test_multiple_back_steps(self, engine):
        """Several back steps walk the history in reverse."""
        _answer(engine, "Tech", "Fresher", "John Smith")
        assert engine.go_back().id == "full_name"
        assert engine.go_back().id == "experience_level"
        assert engine.go_back().id == "background"
        assert engine.go_back() is None


# =============================================================================
# Tests: Progress and completion
# =============================================================================


class TestProgressAndCompletion:
    """Tests for progress counts and terminal behavior."""

    def test_initial_progress(self, engine):
        """A fresh engine is at step zero."""
        progress = engine.get_progress()
        assert progress.current == 0
        assert progress.percentage == 0
        assert progress.section is ResumeSection.CLASSIFICATION

    def test_progress_current_is_monotonic(self, engine):
        """Each successful answer increases the step by one."""
        previous = engine.get_progress().current
        for answer in _TECH_FRESHER_ANSWERS:
            _answer(engine, answer)
            current = engine.get_progress().current
            assert current == previous + 1
            previous = current

    def test_complete_conversation(self, engine):
        """After the last answer the engine is complete at 100%."""
        for answer in _TECH_FRESHER_ANSWERS:
            _answer(engine, answer)

        progress = engine.get_progress()
        assert engine.is_complete()
        assert engine.get_current_question() is None
        assert progress.current == progress.total == 29
        assert progress.percentage == 100
        assert progress.section is ResumeSection.COMPLETE

    def test_complete_is_terminal(self, engine):
        """Answers, skips and back steps after completion change nothing."""
        for answer in _TECH_FRESHER_ANSWERS:
            _answer(engine, answer)
        record = engine.get_resume_data()

        back = engine.go_back()
        answer = engine.process_answer("Yes, I'm interested")
        skip = engine.skip_question()

        assert back is None
        assert engine.can_go_back is False
        assert engine.get_current_question() is None
        assert answer.error.code == "NO_ACTIVE_QUESTION"
        assert skip.error.code == "NO_ACTIVE_QUESTION"
        assert engine.is_complete()
        assert engine.get_resume_data() == record

    def test_last_answer_has_no_next_question(self, engine):
        """The final successful answer returns next_question None."""
        for answer in _TECH_FRESHER_ANSWERS[:-1]:
            _answer(engine, answer)
        result = engine.process_answer("No, thanks")
        assert result.success is True
        assert result.next_question is None

    def test_completed_sections_recorded_in_order(self, engine):
        """Crossing a section boundary records the section once."""
        for answer in _TECH_FRESHER_ANSWERS:
            _answer(engine, answer)

        assert engine.get_resume_data().metadata.completed_sections == [
            ResumeSection.CLASSIFICATION,
            ResumeSection.BASIC_INFO,
            ResumeSection.EDUCATION,
            ResumeSection.PROJECTS,
            ResumeSection.SKILLS,
            ResumeSection.ACHIEVEMENTS,
            ResumeSection.SOCIAL_LINKS,
            ResumeSection.AI_UPSELL,
        ]

    def test_reset_returns_to_start(self, engine):
        """reset() discards answers and position."""
        _answer(engine, "Tech", "Fresher", "John Smith")
        engine.reset()

        assert _current_id(engine) == "background"
        assert engine.get_progress().current == 0
        assert engine.get_resume_data().basic_info.full_name == ""
        assert engine.can_go_back is False


# =============================================================================
# Tests: Isolation and state
# =============================================================================


class TestStateIsolation:
    """Tests for copies and exported state."""

    def test_returned_record_is_a_copy(self, engine):
        """Mutating a returned record does not affect the engine."""
        _answer(engine, "Tech", "Fresher", "John Smith")
        record = engine.get_resume_data()
        record.basic_info.full_name = "Someone Else"
        assert engine.get_resume_data().basic_info.full_name == "John Smith"

    def test_engines_are_independent(self):
        """Two engines never share state."""
        first = QuestionEngine()
        second = QuestionEngine()
        _answer(first, "Non-Tech")
        assert second.get_user_profile().background == "tech"
        assert _current_id(second) == "background"

    def test_from_state_resumes_position(self, engine):
        """An engine rebuilt from state continues where the original was."""
        _to_education(engine)
        _answer(engine, "BSc")

        restored = QuestionEngine.from_state(engine.state)

        assert _current_id(restored) == "education_institution"
        assert restored.get_progress() == engine.get_progress()
        _answer(restored, "MIT")
        assert restored.get_resume_data().education[0].institution == "MIT"
        assert engine.get_resume_data().education[0].institution == ""

    def test_from_state_rejects_out_of_range_position(self, engine):
        """A position that does not fit the graph is rejected."""
        state = engine.state
        state.position.history.append(999)
        with pytest.raises(ValueError, match="does not fit"):
            QuestionEngine.from_state(state)


# =============================================================================
# Tests: Custom graphs
# =============================================================================


class TestCustomGraph:
    """Tests using small hand-built graphs."""

    def test_contains_operator(self):
        """A contains condition skips when the list holds the value."""
        questions = (
            QuestionDefinition(
                id="primary",
                text="Skills?",
                section=ResumeSection.SKILLS,
                field="skills.primary",
                required=True,
                shape=FieldShape.STRING_LIST,
            ),
            QuestionDefinition(
                id="tech_stack",
                text="Stack?",
                section=ResumeSection.SKILLS,
                field="skills.tech_stack",
                shape=FieldShape.STRING_LIST,
                skip_conditions=(
                    SkipCondition("skills.primary", SkipOperator.CONTAINS, "Excel"),
                ),
            ),
        )
        engine = QuestionEngine(questions)
        _answer(engine, "Excel, Word")
        assert engine.is_complete()

    def test_not_equals_operator(self):
        """A not_equals condition skips when the value differs."""
        questions = (
            QuestionDefinition(
                id="name",
                text="Name?",
                section=ResumeSection.BASIC_INFO,
                field="basic_info.full_name",
                required=True,
            ),
            QuestionDefinition(
                id="headline",
                text="Headline?",
                section=ResumeSection.BASIC_INFO,
                field="basic_info.headline",
                skip_conditions=(
                    SkipCondition(
                        "basic_info.full_name", SkipOperator.NOT_EQUALS, "Ada"
                    ),
                ),
            ),
        )
        engine = QuestionEngine(questions)
        _answer(engine, "Ada")
        assert _current_id(engine) == "headline"

        other = QuestionEngine(questions)
        _answer(other, "Grace")
        assert other.is_complete()

    def test_empty_graph_is_complete(self):
        """An engine with no questions is complete at 0%."""
        engine = QuestionEngine(())
        progress = engine.get_progress()
        assert engine.is_complete()
        assert progress.total == 0
        assert progress.percentage == 0
