"""Tests for the SQLite knowledge base repository."""

import sqlite3
from unittest.mock import patch

import pytest

from helpdesk.models import UserRole
from helpdesk.repository import RepositoryUnavailableError, SQLiteKnowledgeRepository


def test_creates_schema_and_parent_directory(sqlite_repository):
    assert sqlite_repository.db_path.exists()

    with sqlite3.connect(sqlite_repository.db_path) as conn:
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
    assert {"categories", "questions", "solutions", "users", "conversations"} <= tables


def test_new_database_is_empty(sqlite_repository):
    assert sqlite_repository.is_empty()
    assert sqlite_repository.list_questions() == []


def test_seed_defaults_loads_dataset(seeded_sqlite_repository):
    questions = seeded_sqlite_repository.list_questions()

    assert [question.title for question in questions] == [
        "Computer won't boot",
        "Computer is running slow",
        "No internet connection",
        "Screen is black or blank",
    ]
    assert len(seeded_sqlite_repository.list_categories()) == 4
    assert len(seeded_sqlite_repository.list_solutions()) == 12
    admin = seeded_sqlite_repository.find_user_by_email("admin@example.com")
    assert admin is not None
    assert admin.role == UserRole.ADMIN


def test_seed_defaults_only_once(seeded_sqlite_repository):
    assert seeded_sqlite_repository.seed_defaults() is False
    assert len(seeded_sqlite_repository.list_questions()) == 4


def test_data_persists_across_instances(seeded_sqlite_repository):
    reopened = SQLiteKnowledgeRepository(db_path=seeded_sqlite_repository.db_path)

    assert len(reopened.list_questions()) == 4


def test_get_question_by_position_and_id(seeded_sqlite_repository):
    assert seeded_sqlite_repository.get_question_by_position(3).title == (
        "No internet connection"
    )
    assert seeded_sqlite_repository.get_question(4).title == "Screen is black or blank"
    assert seeded_sqlite_repository.get_question_by_position(0) is None
    assert seeded_sqlite_repository.get_question_by_position(5) is None
    assert seeded_sqlite_repository.get_question(99) is None


def test_question_keywords_round_trip(sqlite_repository):
    question = sqlite_repository.create_question(
        2, "Printer offline", "Queue stuck", [" printer ", "queue", "printer", ""]
    )

    stored = sqlite_repository.get_question(question.id)

    assert stored.keywords == ["printer", "queue"]
    assert stored.category_id == 2


def test_update_question_changes_only_given_fields(sqlite_repository):
    question = sqlite_repository.create_question(1, "Old title", "Desc", ["a"])

    updated = sqlite_repository.update_question(question.id, title="New title")

    assert updated.title == "New title"
    assert updated.description == "Desc"
    assert updated.keywords == ["a"]


def test_update_missing_records_return_none(sqlite_repository):
    assert sqlite_repository.update_question(99, title="x") is None
    assert sqlite_repository.update_category(99, name="x") is None
    assert sqlite_repository.update_solution(99, text="x") is None


def test_category_crud(sqlite_repository):
    category = sqlite_repository.create_category("Printers", "Print issues")

    renamed = sqlite_repository.update_category(category.id, name="Printing")

    assert renamed.name == "Printing"
    assert renamed.description == "Print issues"
    assert sqlite_repository.delete_category(category.id) is True
    assert sqlite_repository.delete_category(category.id) is False
    assert sqlite_repository.list_categories() == []


def test_solutions_sorted_by_step(sqlite_repository, sample_solutions):
    for solution in sample_solutions:
        sqlite_repository.create_solution(
            solution.question_id, solution.step, solution.text
        )

    steps = [solution.step for solution in sqlite_repository.list_solutions(42)]

    assert steps == [1, 2]
    assert sqlite_repository.get_solution_step(42, 2).text == (
        "Restart the print spooler."
    )
    assert sqlite_repository.get_solution_step(42, 3) is None


def test_solution_links_and_type_round_trip(sqlite_repository):
    solution = sqlite_repository.create_solution(
        1, 1, "See docs", type="link", helpful_links=["https://example.com"]
    )

    stored = sqlite_repository.get_solution_step(1, 1)

    assert stored == solution
    assert stored.type == "link"
    assert stored.helpful_links == ["https://example.com"]


def test_update_and_delete_solution(sqlite_repository):
    solution = sqlite_repository.create_solution(1, 1, "Old")

    updated = sqlite_repository.update_solution(solution.id, step=2, text="New")

    assert (updated.step, updated.text) == (2, "New")
    assert sqlite_repository.delete_solution(solution.id) is True
    assert sqlite_repository.list_solutions(1) == []


def test_delete_question_does_not_cascade(sqlite_repository):
    question = sqlite_repository.create_question(1, "Title")
    sqlite_repository.create_solution(question.id, 1, "Step")

    assert sqlite_repository.delete_question(question.id) is True
    assert len(sqlite_repository.list_solutions(question.id)) == 1


def test_invalid_step_rejected_by_storage(sqlite_repository):
    with pytest.raises(RepositoryUnavailableError):
        sqlite_repository.create_solution(1, 0, "Step zero")


def test_create_user_and_lookup_case_insensitive(sqlite_repository):
    user = sqlite_repository.create_user("Agent@Example.com", "hash", "Agent")

    found = sqlite_repository.find_user_by_email("agent@example.com")

    assert found.id == user.id
    assert found.role == UserRole.MEMBER
    assert sqlite_repository.find_user_by_email("nobody@example.com") is None


def test_duplicate_user_rejected(sqlite_repository):
    sqlite_repository.create_user("agent@example.com", "hash")

    with pytest.raises(ValueError, match="already exists"):
        sqlite_repository.create_user("AGENT@example.com", "hash")


def test_save_conversation(seeded_sqlite_repository, manager_factory):
    manager = manager_factory(seeded_sqlite_repository)
    manager.submit_user_input("boot")

    first = manager.save_conversation()
    second = manager.save_conversation()

    assert second == first + 1
    with sqlite3.connect(seeded_sqlite_repository.db_path) as conn:
        (count,) = conn.execute("SELECT COUNT(*) FROM conversations").fetchone()
    assert count == 2


def test_users_table_created_with_role_column(sqlite_repository):
    with sqlite3.connect(sqlite_repository.db_path) as conn:
        columns = {row[1] for row in conn.execute("PRAGMA table_info(users)")}

    assert {"email", "password_hash", "name", "role"} <= columns


def test_connection_errors_become_unavailable(sqlite_repository):
    with (
        patch(
            "helpdesk.repository.sqlite_store.sqlite3.connect",
            side_effect=sqlite3.OperationalError("unable to open database file"),
        ),
        pytest.raises(RepositoryUnavailableError, match="Cannot open"),
    ):
        sqlite_repository.list_questions()
