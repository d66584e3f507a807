"""Repository wrapper that degrades to static data when the primary is down."""

from __future__ import annotations

from typing import TYPE_CHECKING, ParamSpec, TypeVar

from helpdesk.config import config
from helpdesk.repository.base import KnowledgeRepository, RepositoryUnavailableError
from helpdesk.repository.static_store import StaticKnowledgeRepository

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from helpdesk.models import (
        Category,
        ChatMessage,
        Question,
        Solution,
        SolutionType,
        User,
        UserRole,
    )

P = ParamSpec("P")
T = TypeVar("T")

logger = config.get_logger(__name__)


class FallbackKnowledgeRepository(KnowledgeRepository):
    """Serves knowledge base reads from a static copy when the primary fails.

    Only category, question and solution reads fall back. Writes, user lookups
    and transcripts always go to the primary and propagate its errors, so
    admin changes and logins never land in the in-memory copy.
    """

    def __init__(
        self,
        primary: KnowledgeRepository,
        fallback: KnowledgeRepository | None = None,
    ) -> None:
        """Wrap a primary repository.

        Args:
            primary: Repository used whenever it is reachable.
            fallback: Repository used for reads when the primary is not.
                Defaults to the static dataset.
        """
        self.primary = primary
        self.fallback = fallback or StaticKnowledgeRepository()
        self.backend = primary.backend
        self.degraded = False

    def _read(
        self,
        operation: Callable[P, T],
        fallback: Callable[P, T],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        try:
            result = operation(*args, **kwargs)
        except RepositoryUnavailableError:
            if not self.degraded:
                logger.warning(
                    "%s knowledge base unavailable, serving static fallback data",
                    self.primary.backend,
                )
            self.degraded = True
            return fallback(*args, **kwargs)
        else:
            if self.degraded:
                logger.info("%s knowledge base is reachable again", self.primary.backend)
            self.degraded = False
            return result

    # Reads
    def list_categories(self) -> list[Category]:
        return self._read(self.primary.list_categories, self.fallback.list_categories)

    def list_questions(self) -> list[Question]:
        return self._read(self.primary.list_questions, self.fallback.list_questions)

    def get_question(self, question_id: int) -> Question | None:
        return self._read(
            self.primary.get_question, self.fallback.get_question, question_id
        )

    def get_question_by_position(self, position: int) -> Question | None:
        return self._read(
            self.primary.get_question_by_position,
            self.fallback.get_question_by_position,
            position,
        )

    def list_solutions(self, question_id: int | None = None) -> list[Solution]:
        return self._read(
            self.primary.list_solutions, self.fallback.list_solutions, question_id
        )

    def get_solution_step(self, question_id: int, step: int) -> Solution | None:
        return self._read(
            self.primary.get_solution_step,
            self.fallback.get_solution_step,
            question_id,
            step,
        )

    # Writes go straight to the primary
    def create_category(self, name: str, description: str = "") -> Category:
        return self.primary.create_category(name, description)

    def update_category(
        self,
        category_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Category | None:
        return self.primary.update_category(
            category_id, name=name, description=description
        )

    def delete_category(self, category_id: int) -> bool:
        return self.primary.delete_category(category_id)

    def create_question(
        self,
        category_id: int,
        title: str,
        description: str = "",
        keywords: Iterable[str] = (),
    ) -> Question:
        return self.primary.create_question(category_id, title, description, keywords)

    def update_question(
        self,
        question_id: int,
        *,
        category_id: int | None = None,
        title: str | None = None,
        description: str | None = None,
        keywords: Iterable[str] | None = None,
    ) -> Question | None:
        return self.primary.update_question(
            question_id,
            category_id=category_id,
            title=title,
            description=description,
            keywords=keywords,
        )

    def delete_question(self, question_id: int) -> bool:
        return self.primary.delete_question(question_id)

    def create_solution(  # noqa: PLR0913
        self,
        question_id: int,
        step: int,
        text: str,
        *,
        type: SolutionType = "text",  # noqa: A002
        helpful_links: Iterable[str] = (),
    ) -> Solution:
        return self.primary.create_solution(
            question_id, step, text, type=type, helpful_links=helpful_links
        )

    def update_solution(  # noqa: PLR0913
        self,
        solution_id: int,
        *,
        step: int | None = None,
        text: str | None = None,
        type: SolutionType | None = None,  # noqa: A002
        helpful_links: Iterable[str] | None = None,
    ) -> Solution | None:
        return self.primary.update_solution(
            solution_id, step=step, text=text, type=type, helpful_links=helpful_links
        )

    def delete_solution(self, solution_id: int) -> bool:
        return self.primary.delete_solution(solution_id)

    def find_user_by_email(self, email: str) -> User | None:
        return self.primary.find_user_by_email(email)

    def create_user(
        self,
        email: str,
        password_hash: str,
        name: str = "",
        role: UserRole | None = None,
    ) -> User:
        return self.primary.create_user(email, password_hash, name, role)

    def save_conversation(self, messages: Iterable[ChatMessage]) -> int:
        return self.primary.save_conversation(messages)
