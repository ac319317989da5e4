import ast
import inspect
import textwrap
from collections.abc import AsyncGenerator, Iterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.chatbot.conversation import ConversationManager
from app.chatbot.engine import QuestionEngine

# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def engine() -> QuestionEngine:
    """Fresh question engine over the default graph."""
    return QuestionEngine()


@pytest.fixture
def manager(engine: QuestionEngine) -> ConversationManager:
    """Conversation manager wrapping the engine fixture."""
    return ConversationManager(engine)


# =============================================================================
# HTTP Client
# =============================================================================


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a fresh application instance.

    Yields:
        AsyncClient using the ASGI transport (no network).
    """
    from app.main import create_app

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_conversation_store() -> Iterator[None]:
    """Reset the conversation session store before and after each test.

    Yields:
        None (autouse fixture).
    """
    from app.services.conversation_store import reset_conversation_store

    reset_conversation_store()
    yield
    reset_conversation_store()


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Rate limiting is tested separately; disable for other tests to avoid
    flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from app.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled


# =============================================================================
# Test Antipattern Detection (warning-only)
# =============================================================================

_BANNED_FUNCTIONS = frozenset({"isinstance", "issubclass", "hasattr"})


def _find_antipatterns_in_source(source: str) -> list[str]:
    """Scan test function source for structural assertion patterns."""
    try:
        tree = ast.parse(textwrap.dedent(source))
    except SyntaxError:
        return []

    findings: list[str] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue
        if isinstance(node.func, ast.Name) and node.func.id in _BANNED_FUNCTIONS:
            findings.append(node.func.id)
        if (
            isinstance(node.func, ast.Attribute)
            and node.func.attr == "fields"
            and isinstance(node.func.value, ast.Name)
            and node.func.value.id == "dataclasses"
        ):
            findings.append("dataclasses.fields")
    return findings


_antipattern_warnings: list[str] = []


def pytest_runtest_teardown(item: pytest.Item) -> None:
    """Check each test for antipattern usage after it runs."""
    if not hasattr(item, "obj") or not callable(item.obj):
        return
    try:
        source = inspect.getsource(item.obj)
    except (OSError, TypeError):
        return

    patterns = _find_antipatterns_in_source(source)
    if patterns:
        _antipattern_warnings.append(f"  {item.nodeid}: {', '.join(patterns)}")


def pytest_terminal_summary(
    terminalreporter: pytest.TerminalReporter,
) -> None:
    """Report test antipatterns at the end of the test session (warning only)."""
    if _antipattern_warnings:
        terminalreporter.section("test antipattern warnings")
        terminalreporter.line(
            "The following tests assert on structure instead of behavior."
        )
        terminalreporter.line("Prefer asserting on returned values and state.")
        terminalreporter.line("")
        for w in _antipattern_warnings:
            terminalreporter.line(w)
        _antipattern_warnings.clear()
