"""Knowledge base repository backed by a JSON REST API.

The API follows json-server conventions: one collection per resource
(``/categories``, ``/questions``, ``/solutions``, ``/users``,
``/conversations``), query-string filters on field values, and camelCase
field names on the wire.
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from helpdesk.config import config
from helpdesk.models import SOLUTION_TYPES, Category, Question, Solution, User, UserRole
from helpdesk.repository.base import (
    KnowledgeRepository,
    RepositoryUnavailableError,
    normalize_keywords,
    sort_solutions,
    transcript_record,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from helpdesk.models import ChatMessage, SolutionType

logger = config.get_logger(__name__)

T = TypeVar("T")

HTTP_NOT_FOUND = 404


def category_from_record(record: dict[str, Any]) -> Category:
    return Category(
        id=int(record["id"]),
        name=str(record.get("name", "")),
        description=str(record.get("description", "")),
    )


def question_from_record(record: dict[str, Any]) -> Question:
    return Question(
        id=int(record["id"]),
        category_id=int(record.get("categoryId", 0)),
        title=str(record.get("title", "")),
        description=str(record.get("description", "")),
        keywords=[str(keyword) for keyword in record.get("keywords") or []],
    )


def solution_from_record(record: dict[str, Any]) -> Solution:
    solution_type = record.get("type", "text")
    return Solution(
        id=int(record["id"]),
        question_id=int(record.get("questionId", 0)),
        step=int(record.get("step", 0)),
        text=str(record.get("text", "")),
        type=solution_type if solution_type in SOLUTION_TYPES else "text",
        helpful_links=[str(link) for link in record.get("helpfulLinks") or []],
    )


def user_from_record(record: dict[str, Any]) -> User:
    """Map a user record; records without a role are members.

    Returns:
        User with the stored password value as ``password_hash``.
    """
    try:
        role = UserRole(record.get("role") or UserRole.MEMBER)
    except ValueError:
        role = UserRole.MEMBER
    return User(
        id=int(record["id"]),
        email=str(record.get("email", "")),
        password_hash=str(record.get("password", "")),
        name=str(record.get("name", "")),
        role=role,
    )


def _record_id(record: dict[str, Any]) -> int:
    return int(record["id"])


def _without_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


class HTTPKnowledgeRepository(KnowledgeRepository):
    """Reads and writes the knowledge base through a REST API."""

    backend = "http"

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the HTTP repository.

        Args:
            base_url: API root, e.g. ``http://localhost:3001``. Defaults to
                config.KB_API_BASE_URL.
            timeout: Per-request timeout in seconds. Defaults to
                config.KB_API_TIMEOUT.
            client: Preconfigured client, mainly for tests.
        """
        self.base_url = (base_url or config.KB_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.KB_API_TIMEOUT
        self.client = client or httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=config.get_api_headers(),
        )

    def close(self) -> None:
        self.client.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        allow_missing: bool = False,
    ) -> Any:  # noqa: ANN401
        """Send a request and decode the JSON body.

        Args:
            method: HTTP method.
            path: Path relative to the API root.
            params: Query-string filters.
            json: Request body.
            allow_missing: Return None instead of failing on 404.

        Raises:
            RepositoryUnavailableError: On transport errors, error statuses or
                undecodable bodies.

        Returns:
            Decoded JSON body, or None for empty bodies and allowed 404s.
        """
        try:
            response = self.client.request(method, path, params=params, json=json)
            if allow_missing and response.status_code == HTTP_NOT_FOUND:
                return None
            response.raise_for_status()
            if not response.content:
                return None
            return response.json()
        except httpx.HTTPError as e:
            logger.warning("Knowledge base API %s %s failed: %s", method, path, e)
            msg = f"Knowledge base API unavailable: {e}"
            raise RepositoryUnavailableError(msg) from e
        except ValueError as e:
            logger.warning("Knowledge base API returned invalid JSON for %s", path)
            msg = "Knowledge base API returned an invalid response"
            raise RepositoryUnavailableError(msg) from e

    @staticmethod
    def _decode(mapper: Callable[[dict[str, Any]], T], record: Any) -> T:  # noqa: ANN401
        """Map a wire record, treating malformed data as an unusable backend.

        Raises:
            RepositoryUnavailableError: If the record lacks a field or holds a
                value of the wrong shape, such as a non-numeric id.

        Returns:
            The mapped model.
        """
        try:
            return mapper(record)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Knowledge base API returned a malformed record: %r", record)
            msg = "Knowledge base API returned a malformed record"
            raise RepositoryUnavailableError(msg) from e

    def _list(self, path: str, params: dict[str, Any] | None = None) -> list[Any]:
        payload = self._request("GET", path, params=params)
        if not isinstance(payload, list):
            msg = f"Expected a list from {path}"
            raise RepositoryUnavailableError(msg)
        return payload

    def _create(self, path: str, *, json: dict[str, Any]) -> dict[str, Any]:
        record = self._request("POST", path, json=json)
        if not isinstance(record, dict):
            msg = f"Expected the created record from {path}"
            raise RepositoryUnavailableError(msg)
        return record

    # Categories
    def list_categories(self) -> list[Category]:
        return [
            self._decode(category_from_record, record)
            for record in self._list("/categories")
        ]

    def create_category(self, name: str, description: str = "") -> Category:
        record = self._create(
            "/categories", json={"name": name, "description": description}
        )
        return self._decode(category_from_record, record)

    def update_category(
        self,
        category_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Category | None:
        record = self._request(
            "PATCH",
            f"/categories/{category_id}",
            json=_without_none({"name": name, "description": description}),
            allow_missing=True,
        )
        return self._decode(category_from_record, record) if record else None

    def delete_category(self, category_id: int) -> bool:
        return self._delete(f"/categories/{category_id}")

    # Questions
    def list_questions(self) -> list[Question]:
        return [
            self._decode(question_from_record, record)
            for record in self._list("/questions")
        ]

    def get_question(self, question_id: int) -> Question | None:
        record = self._request(
            "GET", f"/questions/{question_id}", allow_missing=True
        )
        return self._decode(question_from_record, record) if record else None

    def create_question(
        self,
        category_id: int,
        title: str,
        description: str = "",
        keywords: Iterable[str] = (),
    ) -> Question:
        record = self._create(
            "/questions",
            json={
                "categoryId": int(category_id),
                "keywords": normalize_keywords(keywords),
                "title": title,
                "description": description,
            },
        )
        return self._decode(question_from_record, record)

    def update_question(
        self,
        question_id: int,
        *,
        category_id: int | None = None,
        title: str | None = None,
        description: str | None = None,
        keywords: Iterable[str] | None = None,
    ) -> Question | None:
        payload = _without_none({
            "categoryId": category_id,
            "title": title,
            "description": description,
            "keywords": normalize_keywords(keywords) if keywords is not None else None,
        })
        record = self._request(
            "PATCH", f"/questions/{question_id}", json=payload, allow_missing=True
        )
        return self._decode(question_from_record, record) if record else None

    def delete_question(self, question_id: int) -> bool:
        return self._delete(f"/questions/{question_id}")

    # Solutions
    def list_solutions(self, question_id: int | None = None) -> list[Solution]:
        params = {"questionId": question_id} if question_id is not None else None
        records = self._list("/solutions", params)
        return sort_solutions(
            self._decode(solution_from_record, record) for record in records
        )

    def get_solution_step(self, question_id: int, step: int) -> Solution | None:
        records = self._list(
            "/solutions", {"questionId": question_id, "step": step}
        )
        solutions = sort_solutions(
            self._decode(solution_from_record, record) for record in records
        )
        return solutions[0] if solutions else None

    def create_solution(  # noqa: PLR0913
        self,
        question_id: int,
        step: int,
        text: str,
        *,
        type: SolutionType = "text",  # noqa: A002
        helpful_links: Iterable[str] = (),
    ) -> Solution:
        record = self._create(
            "/solutions",
            json={
                "questionId": int(question_id),
                "step": int(step),
                "text": text,
                "type": type,
                "helpfulLinks": list(helpful_links),
            },
        )
        return self._decode(solution_from_record, record)

    def update_solution(  # noqa: PLR0913
        self,
        solution_id: int,
        *,
        step: int | None = None,
        text: str | None = None,
        type: SolutionType | None = None,  # noqa: A002
        helpful_links: Iterable[str] | None = None,
    ) -> Solution | None:
        payload = _without_none({
            "step": step,
            "text": text,
            "type": type,
            "helpfulLinks": list(helpful_links) if helpful_links is not None else None,
        })
        record = self._request(
            "PATCH", f"/solutions/{solution_id}", json=payload, allow_missing=True
        )
        return self._decode(solution_from_record, record) if record else None

    def delete_solution(self, solution_id: int) -> bool:
        return self._delete(f"/solutions/{solution_id}")

    def _delete(self, path: str) -> bool:
        try:
            response = self.client.delete(path)
        except httpx.HTTPError as e:
            msg = f"Knowledge base API unavailable: {e}"
            raise RepositoryUnavailableError(msg) from e
        if response.status_code == HTTP_NOT_FOUND:
            return False
        if response.is_error:
            msg = f"Delete {path} failed with status {response.status_code}"
            raise RepositoryUnavailableError(msg)
        return True

    # Users
    def find_user_by_email(self, email: str) -> User | None:
        records = self._list("/users", {"email": email.strip()})
        return self._decode(user_from_record, records[0]) if records else None

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
        record = self._create(
            "/users",
            json={
                "email": email.strip(),
                "password": password_hash,
                "name": name,
                "role": (role or UserRole.MEMBER).value,
            },
        )
        return self._decode(user_from_record, record)

    # Conversations
    def save_conversation(self, messages: Iterable[ChatMessage]) -> int:
        record = self._create(
            "/conversations",
            json={
                "timestamp": datetime.datetime.now(tz=datetime.UTC).isoformat(),
                "messages": transcript_record(messages),
            },
        )
        return self._decode(_record_id, record)
