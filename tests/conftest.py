"""Test configuration and fixtures for HelpdeskBot tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Repository fixtures (static, SQLite, HTTP with a mock transport)
- Conversation, auth and admin factories
"""

import json
from unittest.mock import create_autospec

import httpx
import pytest

from helpdesk import (
    AuthService,
    ConversationManager,
    InMemorySessionStore,
    KnowledgeBaseAdmin,
    KnowledgeRepository,
    Question,
    RepositoryUnavailableError,
    Solution,
    User,
    UserRole,
)
from helpdesk.passwords import hash_password
from helpdesk.repository import (
    HTTPKnowledgeRepository,
    SQLiteKnowledgeRepository,
    StaticKnowledgeRepository,
)


class TestConstants:
    """Centralized test constants to avoid repetition across test files.

    All test constants are defined here to maintain consistency across
    the test suite and make it easy to update values globally.
    """

    # Default dataset
    BOOT_TITLE = "Computer won't boot"
    NETWORK_TITLE = "No internet connection"
    BOOT_STEP_1 = "Check if the power cable is properly connected"
    BOOT_STEP_2 = "Try a different power outlet"
    BOOT_STEP_COUNT = 3
    DEFAULT_QUESTION_COUNT = 4

    # Accounts
    ADMIN_EMAIL = "admin@example.com"
    ADMIN_PASSWORD = "s3cret-admin"  # noqa: S105
    MEMBER_EMAIL = "member@example.com"
    MEMBER_PASSWORD = "s3cret-member"  # noqa: S105
    FAST_HASH_ITERATIONS = 1_000

    # HTTP backend
    API_BASE_URL = "http://kb.test"


@pytest.fixture
def offline_repository():
    """Repository mock whose reads, user lookups and saves all fail."""
    repository = create_autospec(KnowledgeRepository, instance=True)
    repository.backend = "mock"
    error = RepositoryUnavailableError("Knowledge base offline")
    for name in (
        "list_categories",
        "list_questions",
        "get_question",
        "get_question_by_position",
        "list_solutions",
        "get_solution_step",
        "find_user_by_email",
        "save_conversation",
    ):
        getattr(repository, name).side_effect = error
    return repository


@pytest.fixture
def users():
    """Admin and member accounts hashed with a cheap iteration count."""
    return [
        User(
            id=1,
            email=TestConstants.ADMIN_EMAIL,
            password_hash=hash_password(
                TestConstants.ADMIN_PASSWORD,
                iterations=TestConstants.FAST_HASH_ITERATIONS,
            ),
            name="Admin",
            role=UserRole.ADMIN,
        ),
        User(
            id=2,
            email=TestConstants.MEMBER_EMAIL,
            password_hash=hash_password(
                TestConstants.MEMBER_PASSWORD,
                iterations=TestConstants.FAST_HASH_ITERATIONS,
            ),
            name="Member",
            role=UserRole.MEMBER,
        ),
    ]


@pytest.fixture
def static_repository(users):
    """In-memory repository holding the default dataset and test accounts."""
    return StaticKnowledgeRepository(users=users)


@pytest.fixture
def sqlite_repository(tmp_path):
    """Empty SQLite repository in a temporary directory."""
    return SQLiteKnowledgeRepository(db_path=tmp_path / "kb" / "helpdesk.db")


@pytest.fixture
def seeded_sqlite_repository(sqlite_repository):
    """SQLite repository seeded with the default dataset."""
    sqlite_repository.seed_defaults()
    return sqlite_repository


@pytest.fixture
def sample_questions():
    """Questions whose ids do not follow their list positions."""
    return [
        Question(
            id=42,
            category_id=1,
            title="Printer is offline",
            description="Documents stay in the print queue.",
            keywords=["printer", "print queue"],
        ),
        Question(
            id=7,
            category_id=2,
            title="Email will not sync",
            description="New messages do not arrive in the mail app.",
            keywords=["email", "mail", "sync"],
        ),
        Question(
            id=19,
            category_id=1,
            title="Keyboard keys not responding",
            description="Some keys do nothing when pressed.",
            keywords=["keyboard", "keys", "typing"],
        ),
    ]


@pytest.fixture
def sample_solutions():
    """Two steps for the printer question and none for the others."""
    return [
        Solution(id=1, question_id=42, step=2, text="Restart the print spooler."),
        Solution(id=2, question_id=42, step=1, text="Turn the printer off and on."),
    ]


@pytest.fixture
def manager_factory(static_repository):
    """Factory for creating ConversationManager instances."""

    def _create_manager(repository=None, matcher=None) -> ConversationManager:
        return ConversationManager(repository or static_repository, matcher)

    return _create_manager


@pytest.fixture
def manager(manager_factory):
    """Conversation manager over the default dataset."""
    return manager_factory()


@pytest.fixture
def auth_service(static_repository):
    """Auth service with an in-memory session."""
    return AuthService(static_repository, InMemorySessionStore())


@pytest.fixture
def admin_service(static_repository, auth_service):
    """Admin service logged in as the administrator."""
    auth_service.login(TestConstants.ADMIN_EMAIL, TestConstants.ADMIN_PASSWORD)
    return KnowledgeBaseAdmin(static_repository, auth_service)


class FakeJsonServer:
    """Minimal json-server stand-in served through ``httpx.MockTransport``.

    Supports list with field filters, get, create, patch and delete on
    in-memory collections, and records every request it receives.
    """

    def __init__(self, collections: dict[str, list[dict]] | None = None) -> None:
        self.collections = {
            name: [dict(record) for record in records]
            for name, records in (collections or {}).items()
        }
        self.requests: list[httpx.Request] = []

    def _find(self, name: str, record_id: str) -> dict | None:
        for record in self.collections.get(name, []):
            if str(record["id"]) == record_id:
                return record
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:  # noqa: PLR0911
        self.requests.append(request)
        parts = [part for part in request.url.path.split("/") if part]
        name = parts[0]
        records = self.collections.setdefault(name, [])

        if len(parts) == 1 and request.method == "GET":
            filters = dict(request.url.params)
            matches = [
                record
                for record in records
                if all(str(record.get(key)) == value for key, value in filters.items())
            ]
            return httpx.Response(200, json=matches)

        if len(parts) == 1 and request.method == "POST":
            record = json.loads(request.content)
            record["id"] = max((int(r["id"]) for r in records), default=0) + 1
            records.append(record)
            return httpx.Response(201, json=record)

        record = self._find(name, parts[1])
        if record is None:
            return httpx.Response(404, json={})
        if request.method == "GET":
            return httpx.Response(200, json=record)
        if request.method == "PATCH":
            record.update(json.loads(request.content))
            return httpx.Response(200, json=record)
        if request.method == "DELETE":
            records.remove(record)
            return httpx.Response(200, json={})
        return httpx.Response(405)


@pytest.fixture
def json_server():
    """Fake REST backend preloaded with camelCase records."""
    return FakeJsonServer({
        "categories": [{"id": 1, "name": "Hardware", "description": "Devices"}],
        "questions": [
            {
                "id": 1,
                "categoryId": 1,
                "keywords": ["boot", "power"],
                "title": "Computer won't boot",
                "description": "Nothing happens on power on.",
            },
            {
                "id": 5,
                "categoryId": 1,
                "keywords": ["printer"],
                "title": "Printer is offline",
                "description": "",
            },
        ],
        "solutions": [
            {
                "id": 2,
                "questionId": 1,
                "step": 2,
                "text": "Try another outlet.",
                "type": "text",
                "helpfulLinks": [],
            },
            {
                "id": 1,
                "questionId": 1,
                "step": 1,
                "text": "Check the power cable.",
                "type": "link",
                "helpfulLinks": ["https://example.com/power"],
            },
        ],
        "users": [
            {
                "id": 1,
                "email": "admin@example.com",
                "password": "admin123",
                "name": "Admin",
            }
        ],
        "conversations": [],
    })


@pytest.fixture
def http_repository_factory():
    """Factory for HTTP repositories wired to a mock transport handler."""

    def _create_repository(handler) -> HTTPKnowledgeRepository:
        client = httpx.Client(
            base_url=TestConstants.API_BASE_URL,
            transport=httpx.MockTransport(handler),
        )
        return HTTPKnowledgeRepository(TestConstants.API_BASE_URL, client=client)

    return _create_repository


@pytest.fixture
def http_repository(http_repository_factory, json_server):
    """HTTP repository backed by the fake json-server."""
    repository = http_repository_factory(json_server.handler)
    yield repository
    repository.close()
