"""Shared interface and helpers for knowledge base repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING

from helpdesk.config import config

if TYPE_CHECKING:
    from collections.abc import Iterable

    from helpdesk.models import (
        Category,
        ChatMessage,
        Question,
        Solution,
        SolutionType,
        User,
        UserRole,
    )

logger = config.get_logger(__name__)


class RepositoryUnavailableError(RuntimeError):
    """Raised when the backing store cannot be reached or fails mid-request."""


def sort_solutions(solutions: Iterable[Solution]) -> list[Solution]:
    """Order solutions by step, then id, so duplicates resolve consistently.

    Returns:
        New list sorted ascending by step.
    """
    return sorted(solutions, key=lambda solution: (solution.step, solution.id))


def normalize_keywords(keywords: Iterable[str]) -> list[str]:
    """Strip whitespace and drop empty or repeated keywords, keeping order.

    Returns:
        Cleaned keyword list.
    """
    cleaned = [str(keyword).strip() for keyword in keywords]
    return list(dict.fromkeys(keyword for keyword in cleaned if keyword))


def transcript_record(messages: Iterable[ChatMessage]) -> list[dict[str, str]]:
    """Convert chat messages into the stored transcript shape.

    Returns:
        List of ``{"type", "content", "timestamp"}`` mappings.
    """
    return [
        {
            "type": message.role,
            "content": message.content,
            "timestamp": message.timestamp.isoformat(),
        }
        for message in messages
    ]


class KnowledgeRepository:
    """Access to categories, questions, solutions, users and transcripts.

    Subclasses implement storage; lookups that can be derived from the list
    operations live here. Implementations raise ``RepositoryUnavailableError``
    when the store cannot be used. Missing records are ``None``, never errors.
    """

    backend = "base"

    # Categories
    def list_categories(self) -> list[Category]:
        raise NotImplementedError

    def create_category(self, name: str, description: str = "") -> Category:
        raise NotImplementedError

    def update_category(
        self,
        category_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Category | None:
        raise NotImplementedError

    def delete_category(self, category_id: int) -> bool:
        raise NotImplementedError

    # Questions
    def list_questions(self) -> list[Question]:
        raise NotImplementedError

    def get_question(self, question_id: int) -> Question | None:
        """Find a question by its id.

        Returns:
            The question, or None if no question has that id.
        """
        for question in self.list_questions():
            if question.id == question_id:
                return question
        return None

    def get_question_by_position(self, position: int) -> Question | None:
        """Find a question by its 1-based position in ``list_questions()``.

        Returns:
            The question at that position, or None when out of range.
        """
        questions = self.list_questions()
        if 1 <= position <= len(questions):
            return questions[position - 1]
        return None

    def create_question(
        self,
        category_id: int,
        title: str,
        description: str = "",
        keywords: Iterable[str] = (),
    ) -> Question:
        raise NotImplementedError

    def update_question(
        self,
        question_id: int,
        *,
        category_id: int | None = None,
        title: str | None = None,
        description: str | None = None,
        keywords: Iterable[str] | None = None,
    ) -> Question | None:
        raise NotImplementedError

    def delete_question(self, question_id: int) -> bool:
        raise NotImplementedError

    # Solutions
    def list_solutions(self, question_id: int | None = None) -> list[Solution]:
        raise NotImplementedError

    def get_solution_step(self, question_id: int, step: int) -> Solution | None:
        """Find the solution for a given step of a question.

        Returns:
            The first solution with that step, or None if there is none.
        """
        for solution in self.list_solutions(question_id):
            if solution.step == step:
                return solution
        return None

    def create_solution(  # noqa: PLR0913
        self,
        question_id: int,
        step: int,
        text: str,
        *,
        type: SolutionType = "text",  # noqa: A002
        helpful_links: Iterable[str] = (),
    ) -> Solution:
        raise NotImplementedError

    def update_solution(  # noqa: PLR0913
        self,
        solution_id: int,
        *,
        step: int | None = None,
        text: str | None = None,
        type: SolutionType | None = None,  # noqa: A002
        helpful_links: Iterable[str] | None = None,
    ) -> Solution | None:
        raise NotImplementedError

    def delete_solution(self, solution_id: int) -> bool:
        raise NotImplementedError

    # Users
    def find_user_by_email(self, email: str) -> User | None:
        raise NotImplementedError

    def create_user(
        self,
        email: str,
        password_hash: str,
        name: str = "",
        role: UserRole | None = None,
    ) -> User:
        raise NotImplementedError

    # Conversations
    def save_conversation(self, messages: Iterable[ChatMessage]) -> int:
        raise NotImplementedError
