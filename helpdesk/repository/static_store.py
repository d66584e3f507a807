"""In-memory knowledge base seeded from the static defaults."""

from __future__ import annotations

import copy
import datetime
from dataclasses import replace
from typing import TYPE_CHECKING

from helpdesk.config import config
from helpdesk.defaults import (
    DEFAULT_CATEGORIES,
    DEFAULT_QUESTIONS,
    DEFAULT_SOLUTIONS,
    default_users,
)
from helpdesk.models import Category, Question, Solution, User, UserRole
from helpdesk.repository.base import (
    KnowledgeRepository,
    normalize_keywords,
    sort_solutions,
    transcript_record,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from helpdesk.models import ChatMessage, SolutionType

logger = config.get_logger(__name__)


def _next_id(records: Iterable[Category | Question | Solution | User]) -> int:
    return max((record.id for record in records), default=0) + 1


class StaticKnowledgeRepository(KnowledgeRepository):
    """Keeps the knowledge base in process memory.

    Serves as the offline fallback data source and as a lightweight backend
    for demos and tests. Returned records are copies, so callers cannot
    mutate the store by accident.
    """

    backend = "static"

    def __init__(
        self,
        categories: Iterable[Category] | None = None,
        questions: Iterable[Question] | None = None,
        solutions: Iterable[Solution] | None = None,
        users: Iterable[User] | None = None,
    ) -> None:
        """Initialize the store, defaulting every collection to the static data.

        Args:
            categories: Initial categories.
            questions: Initial questions, in display order.
            solutions: Initial solution steps.
            users: Initial user accounts.
        """
        self._categories = copy.deepcopy(
            list(DEFAULT_CATEGORIES if categories is None else categories)
        )
        self._questions = copy.deepcopy(
            list(DEFAULT_QUESTIONS if questions is None else questions)
        )
        self._solutions = copy.deepcopy(
            list(DEFAULT_SOLUTIONS if solutions is None else solutions)
        )
        self._users = list(default_users() if users is None else users)
        self.conversations: list[dict[str, object]] = []

    # Categories
    def list_categories(self) -> list[Category]:
        return copy.deepcopy(self._categories)

    def create_category(self, name: str, description: str = "") -> Category:
        category = Category(
            id=_next_id(self._categories), name=name, description=description
        )
        self._categories.append(category)
        return copy.deepcopy(category)

    def update_category(
        self,
        category_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Category | None:
        for index, category in enumerate(self._categories):
            if category.id == category_id:
                updated = replace(
                    category,
                    name=category.name if name is None else name,
                    description=(
                        category.description if description is None else description
                    ),
                )
                self._categories[index] = updated
                return copy.deepcopy(updated)
        return None

    def delete_category(self, category_id: int) -> bool:
        before = len(self._categories)
        self._categories = [c for c in self._categories if c.id != category_id]
        return len(self._categories) < before

    # Questions
    def list_questions(self) -> list[Question]:
        return copy.deepcopy(self._questions)

    def create_question(
        self,
        category_id: int,
        title: str,
        description: str = "",
        keywords: Iterable[str] = (),
    ) -> Question:
        question = Question(
            id=_next_id(self._questions),
            category_id=category_id,
            title=title,
            description=description,
            keywords=normalize_keywords(keywords),
        )
        self._questions.append(question)
        return copy.deepcopy(question)

    def update_question(
        self,
        question_id: int,
        *,
        category_id: int | None = None,
        title: str | None = None,
        description: str | None = None,
        keywords: Iterable[str] | None = None,
    ) -> Question | None:
        for index, question in enumerate(self._questions):
            if question.id == question_id:
                updated = replace(
                    question,
                    category_id=(
                        question.category_id if category_id is None else category_id
                    ),
                    title=question.title if title is None else title,
                    description=(
                        question.description if description is None else description
                    ),
                    keywords=(
                        list(question.keywords)
                        if keywords is None
                        else normalize_keywords(keywords)
                    ),
                )
                self._questions[index] = updated
                return copy.deepcopy(updated)
        return None

    def delete_question(self, question_id: int) -> bool:
        before = len(self._questions)
        self._questions = [q for q in self._questions if q.id != question_id]
        return len(self._questions) < before

    # Solutions
    def list_solutions(self, question_id: int | None = None) -> list[Solution]:
        solutions = [
            s
            for s in self._solutions
            if question_id is None or s.question_id == question_id
        ]
        return copy.deepcopy(sort_solutions(solutions))

    def create_solution(  # noqa: PLR0913
        self,
        question_id: int,
        step: int,
        text: str,
        *,
        type: SolutionType = "text",  # noqa: A002
        helpful_links: Iterable[str] = (),
    ) -> Solution:
        solution = Solution(
            id=_next_id(self._solutions),
            question_id=question_id,
            step=step,
            text=text,
            type=type,
            helpful_links=list(helpful_links),
        )
        self._solutions.append(solution)
        return copy.deepcopy(solution)

    def update_solution(  # noqa: PLR0913
        self,
        solution_id: int,
        *,
        step: int | None = None,
        text: str | None = None,
        type: SolutionType | None = None,  # noqa: A002
        helpful_links: Iterable[str] | None = None,
    ) -> Solution | None:
        for index, solution in enumerate(self._solutions):
            if solution.id == solution_id:
                updated = replace(
                    solution,
                    step=solution.step if step is None else step,
                    text=solution.text if text is None else text,
                    type=solution.type if type is None else type,
                    helpful_links=(
                        list(solution.helpful_links)
                        if helpful_links is None
                        else list(helpful_links)
                    ),
                )
                self._solutions[index] = updated
                return copy.deepcopy(updated)
        return None

    def delete_solution(self, solution_id: int) -> bool:
        before = len(self._solutions)
        self._solutions = [s for s in self._solutions if s.id != solution_id]
        return len(self._solutions) < before

    # Users
    def find_user_by_email(self, email: str) -> User | None:
        wanted = email.strip().lower()
        for user in self._users:
            if user.email.lower() == wanted:
                return copy.deepcopy(user)
        return None

    def create_user(
        self,
        email: str,
        password_hash: str,
        name: str = "",
        role: UserRole | None = None,
    ) -> User:
        if self.find_user_by_email(email) is not None:
            msg = f"User with email '{email}' already exists"
            raise ValueError(msg)
        user = User(
            id=_next_id(self._users),
            email=email.strip(),
            password_hash=password_hash,
            name=name,
            role=role or UserRole.MEMBER,
        )
        self._users.append(user)
        return copy.deepcopy(user)

    # Conversations
    def save_conversation(self, messages: Iterable[ChatMessage]) -> int:
        conversation_id = len(self.conversations) + 1
        self.conversations.append({
            "id": conversation_id,
            "timestamp": datetime.datetime.now(tz=datetime.UTC).isoformat(),
            "messages": transcript_record(messages),
        })
        logger.info("Stored conversation %d in memory", conversation_id)
        return conversation_id
