"""Validated knowledge base maintenance for administrators."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import config
from .models import SOLUTION_TYPES

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .auth import AuthService
    from .models import Category, Question, Solution, SolutionType
    from .repository import KnowledgeRepository

logger = config.get_logger(__name__)


def parse_keywords(raw: str) -> list[str]:
    """Split a comma-separated keyword field.

    Returns:
        Trimmed, non-empty keywords in input order without repeats.
    """
    keywords = [keyword.strip() for keyword in raw.split(",")]
    return list(dict.fromkeys(keyword for keyword in keywords if keyword))


def parse_links(raw: str) -> list[str]:
    """Split a link field with one URL per line.

    Returns:
        Non-empty links in input order.
    """
    return [line.strip() for line in raw.splitlines() if line.strip()]


def _require_text(value: str, field: str) -> str:
    text = value.strip()
    if not text:
        msg = f"{field} must not be empty"
        raise ValueError(msg)
    return text


def validate_step(step: object) -> int:
    """Check that a step number is a positive integer.

    Raises:
        ValueError: If the step is not a positive integer.

    Returns:
        The step as an int.
    """
    if isinstance(step, bool) or not isinstance(step, int) or step < 1:
        msg = f"Step must be a positive integer, got {step!r}"
        raise ValueError(msg)
    return step


def validate_solution_type(value: str) -> SolutionType:
    """Check that a solution type is one of the supported kinds.

    Raises:
        ValueError: If the type is not supported.

    Returns:
        The validated type.
    """
    if value not in SOLUTION_TYPES:
        msg = f"Solution type must be one of {', '.join(SOLUTION_TYPES)}, got {value!r}"
        raise ValueError(msg)
    return value  # type: ignore[return-value]


class KnowledgeBaseAdmin:
    """CRUD over categories, questions and solutions for logged-in admins.

    Every operation checks the current session with
    ``AuthService.require_admin`` first and raises ``PermissionError`` for
    anyone else. Inputs are validated before they reach the repository.
    """

    def __init__(self, repository: KnowledgeRepository, auth: AuthService) -> None:
        self.repository = repository
        self.auth = auth

    def _authorize(self, action: str) -> None:
        user = self.auth.require_admin()
        logger.info("%s by %s", action, user.email)

    # Categories
    def list_categories(self) -> list[Category]:
        self.auth.require_admin()
        return self.repository.list_categories()

    def create_category(self, name: str, description: str = "") -> Category:
        self._authorize("Create category")
        return self.repository.create_category(
            _require_text(name, "Category name"), description.strip()
        )

    def update_category(
        self, category_id: int, *, name: str, description: str = ""
    ) -> Category | None:
        self._authorize(f"Update category {category_id}")
        return self.repository.update_category(
            category_id,
            name=_require_text(name, "Category name"),
            description=description.strip(),
        )

    def delete_category(self, category_id: int) -> bool:
        self._authorize(f"Delete category {category_id}")
        return self.repository.delete_category(category_id)

    # Questions
    def list_questions(self) -> list[Question]:
        self.auth.require_admin()
        return self.repository.list_questions()

    def create_question(
        self,
        category_id: int,
        title: str,
        description: str = "",
        keywords: str | Iterable[str] = "",
    ) -> Question:
        self._authorize("Create question")
        return self.repository.create_question(
            category_id,
            _require_text(title, "Question title"),
            description.strip(),
            parse_keywords(keywords) if isinstance(keywords, str) else keywords,
        )

    def update_question(
        self,
        question_id: int,
        *,
        category_id: int,
        title: str,
        description: str = "",
        keywords: str | Iterable[str] = "",
    ) -> Question | None:
        self._authorize(f"Update question {question_id}")
        return self.repository.update_question(
            question_id,
            category_id=category_id,
            title=_require_text(title, "Question title"),
            description=description.strip(),
            keywords=parse_keywords(keywords) if isinstance(keywords, str) else keywords,
        )

    def delete_question(self, question_id: int) -> bool:
        self._authorize(f"Delete question {question_id}")
        return self.repository.delete_question(question_id)

    # Solutions
    def list_solutions(self, question_id: int | None = None) -> list[Solution]:
        self.auth.require_admin()
        return self.repository.list_solutions(question_id)

    def create_solution(  # noqa: PLR0913
        self,
        question_id: int,
        step: int,
        text: str,
        *,
        type: str = "text",  # noqa: A002
        helpful_links: str | Iterable[str] = (),
    ) -> Solution:
        self._authorize(f"Create step {step} for question {question_id}")
        return self.repository.create_solution(
            question_id,
            validate_step(step),
            _require_text(text, "Solution text"),
            type=validate_solution_type(type),
            helpful_links=(
                parse_links(helpful_links)
                if isinstance(helpful_links, str)
                else helpful_links
            ),
        )

    def update_solution(  # noqa: PLR0913
        self,
        solution_id: int,
        *,
        step: int,
        text: str,
        type: str = "text",  # noqa: A002
        helpful_links: str | Iterable[str] = (),
    ) -> Solution | None:
        self._authorize(f"Update solution {solution_id}")
        return self.repository.update_solution(
            solution_id,
            step=validate_step(step),
            text=_require_text(text, "Solution text"),
            type=validate_solution_type(type),
            helpful_links=(
                parse_links(helpful_links)
                if isinstance(helpful_links, str)
                else helpful_links
            ),
        )

    def delete_solution(self, solution_id: int) -> bool:
        self._authorize(f"Delete solution {solution_id}")
        return self.repository.delete_solution(solution_id)

    def step_gaps(self, question_id: int) -> list[int]:
        """Find step numbers missing from a question's 1..n sequence.

        A gap ends the walk early: the conversation treats the missing step
        as "no more steps".

        Returns:
            Missing step numbers in ascending order; empty if the steps are
            contiguous from 1.
        """
        self.auth.require_admin()
        steps = {solution.step for solution in self.repository.list_solutions(question_id)}
        if not steps:
            return []
        return [step for step in range(1, max(steps) + 1) if step not in steps]
