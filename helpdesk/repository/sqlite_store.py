"""SQLite-backed knowledge base repository."""

from __future__ import annotations

import datetime
import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from helpdesk.config import config
from helpdesk.defaults import (
    DEFAULT_CATEGORIES,
    DEFAULT_QUESTIONS,
    DEFAULT_SOLUTIONS,
    default_users,
)
from helpdesk.models import SOLUTION_TYPES, Category, Question, Solution, User, UserRole
from helpdesk.repository.base import (
    KnowledgeRepository,
    RepositoryUnavailableError,
    normalize_keywords,
    transcript_record,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from helpdesk.models import ChatMessage, SolutionType

logger = config.get_logger(__name__)

QUESTION_COLUMNS = "id, category_id, title, description, keywords"
SOLUTION_COLUMNS = "id, question_id, step, text, type, helpful_links"
USER_COLUMNS = "id, email, password_hash, name, role"


def _load_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed list column value: %r", raw)
        return []
    return [str(item) for item in value] if isinstance(value, list) else []


def _normalize_type(value: str | None) -> SolutionType:
    if value in SOLUTION_TYPES:
        return value  # type: ignore[return-value]
    return "text"


def _normalize_role(value: str | None) -> UserRole:
    try:
        return UserRole(value or UserRole.MEMBER)
    except ValueError:
        logger.warning("Unknown user role %r, treating as member", value)
        return UserRole.MEMBER


class SQLiteKnowledgeRepository(KnowledgeRepository):
    """Knowledge base stored in a single SQLite database file.

    Questions are listed in insertion order (by id), which is the order the
    numeric shortcut in the chat refers to. Category and question references
    are soft: deleting a category or question does not cascade.
    """

    backend = "sqlite"

    def __init__(self, db_path: Path = Path("data/helpdesk.db")) -> None:
        """Initialize the repository and ensure the schema exists.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self._create_tables()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Cursor]:
        """Open a connection, commit on success and always close it.

        Raises:
            RepositoryUnavailableError: If SQLite reports an error.
        """
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            msg = f"Cannot open knowledge base at {self.db_path}"
            raise RepositoryUnavailableError(msg) from e

        try:
            cursor = conn.cursor()
            yield cursor
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.exception("SQLite knowledge base operation failed")
            msg = "Knowledge base storage error"
            raise RepositoryUnavailableError(msg) from e
        finally:
            conn.close()

    def _create_tables(self) -> None:
        """Create tables if they don't exist."""
        with self._connect() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS categories (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT ''
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS questions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    category_id INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    keywords TEXT NOT NULL DEFAULT '[]'
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS solutions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    question_id INTEGER NOT NULL,
                    step INTEGER NOT NULL CHECK(step > 0),
                    text TEXT NOT NULL,
                    type TEXT NOT NULL DEFAULT 'text' CHECK(
                        type IN ('text','image','link')
                    ),
                    helpful_links TEXT NOT NULL DEFAULT '[]'
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    password_hash TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    role TEXT NOT NULL DEFAULT 'member'
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS conversations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    messages TEXT NOT NULL
                )
            """)

            cursor.execute(
                (
                    "CREATE INDEX IF NOT EXISTS idx_questions_category "
                    "ON questions(category_id)"
                ),
            )
            cursor.execute(
                (
                    "CREATE INDEX IF NOT EXISTS idx_solutions_question_step "
                    "ON solutions(question_id, step)"
                ),
            )

    def is_empty(self) -> bool:
        """Check whether the knowledge base holds any questions.

        Returns:
            True if the questions table is empty.
        """
        with self._connect() as cursor:
            cursor.execute("SELECT COUNT(*) FROM questions")
            (count,) = cursor.fetchone()
        return count == 0

    def seed_defaults(self) -> bool:
        """Load the static dataset and admin account into an empty database.

        Returns:
            True if data was inserted, False if the database already had data.
        """
        if not self.is_empty():
            return False

        with self._connect() as cursor:
            cursor.executemany(
                "INSERT INTO categories (id, name, description) VALUES (?, ?, ?)",
                [(c.id, c.name, c.description) for c in DEFAULT_CATEGORIES],
            )
            cursor.executemany(
                """
                INSERT INTO questions (id, category_id, title, description, keywords)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (q.id, q.category_id, q.title, q.description, json.dumps(q.keywords))
                    for q in DEFAULT_QUESTIONS
                ],
            )
            cursor.executemany(
                """
                INSERT INTO solutions (
                    id, question_id, step, text, type, helpful_links
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        s.id,
                        s.question_id,
                        s.step,
                        s.text,
                        s.type,
                        json.dumps(s.helpful_links),
                    )
                    for s in DEFAULT_SOLUTIONS
                ],
            )
            for user in default_users():
                cursor.execute(
                    """
                    INSERT OR IGNORE INTO users (email, password_hash, name, role)
                    VALUES (?, ?, ?, ?)
                    """,
                    (user.email, user.password_hash, user.name, user.role.value),
                )

        logger.info(
            "Seeded knowledge base with %d questions and %d solutions",
            len(DEFAULT_QUESTIONS),
            len(DEFAULT_SOLUTIONS),
        )
        return True

    @staticmethod
    def _build_question(row: tuple[Any, ...]) -> Question:
        question_id, category_id, title, description, keywords = row
        return Question(
            id=int(question_id),
            category_id=int(category_id),
            title=title,
            description=description or "",
            keywords=_load_list(keywords),
        )

    @staticmethod
    def _build_solution(row: tuple[Any, ...]) -> Solution:
        solution_id, question_id, step, text, solution_type, helpful_links = row
        return Solution(
            id=int(solution_id),
            question_id=int(question_id),
            step=int(step),
            text=text,
            type=_normalize_type(solution_type),
            helpful_links=_load_list(helpful_links),
        )

    @staticmethod
    def _build_user(row: tuple[Any, ...]) -> User:
        user_id, email, password_hash, name, role = row
        return User(
            id=int(user_id),
            email=email,
            password_hash=password_hash,
            name=name or "",
            role=_normalize_role(role),
        )

    # Categories
    def list_categories(self) -> list[Category]:
        with self._connect() as cursor:
            cursor.execute("SELECT id, name, description FROM categories ORDER BY id")
            rows = cursor.fetchall()
        return [
            Category(id=int(row[0]), name=row[1], description=row[2] or "")
            for row in rows
        ]

    def create_category(self, name: str, description: str = "") -> Category:
        with self._connect() as cursor:
            cursor.execute(
                "INSERT INTO categories (name, description) VALUES (?, ?)",
                (name, description),
            )
            category_id = cursor.lastrowid
        if category_id is None:
            msg = "Failed to insert category row"
            raise RepositoryUnavailableError(msg)
        logger.info("Created category %d (%s)", category_id, name)
        return Category(id=int(category_id), name=name, description=description)

    def update_category(
        self,
        category_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Category | None:
        with self._connect() as cursor:
            cursor.execute(
                """
                UPDATE categories
                SET name = COALESCE(?, name), description = COALESCE(?, description)
                WHERE id = ?
                """,
                (name, description, int(category_id)),
            )
            cursor.execute(
                "SELECT id, name, description FROM categories WHERE id = ?",
                (int(category_id),),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return Category(id=int(row[0]), name=row[1], description=row[2] or "")

    def delete_category(self, category_id: int) -> bool:
        with self._connect() as cursor:
            cursor.execute("DELETE FROM categories WHERE id = ?", (int(category_id),))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted category %d", category_id)
        return deleted

    # Questions
    def list_questions(self) -> list[Question]:
        with self._connect() as cursor:
            cursor.execute(f"SELECT {QUESTION_COLUMNS} FROM questions ORDER BY id")  # noqa: S608
            rows = cursor.fetchall()
        return [self._build_question(row) for row in rows]

    def get_question(self, question_id: int) -> Question | None:
        with self._connect() as cursor:
            cursor.execute(
                f"SELECT {QUESTION_COLUMNS} FROM questions WHERE id = ?",  # noqa: S608
                (int(question_id),),
            )
            row = cursor.fetchone()
        return self._build_question(row) if row is not None else None

    def get_question_by_position(self, position: int) -> Question | None:
        if position < 1:
            return None
        with self._connect() as cursor:
            cursor.execute(
                f"SELECT {QUESTION_COLUMNS} FROM questions ORDER BY id LIMIT 1 OFFSET ?",  # noqa: S608
                (int(position) - 1,),
            )
            row = cursor.fetchone()
        return self._build_question(row) if row is not None else None

    def create_question(
        self,
        category_id: int,
        title: str,
        description: str = "",
        keywords: Iterable[str] = (),
    ) -> Question:
        cleaned_keywords = normalize_keywords(keywords)
        with self._connect() as cursor:
            cursor.execute(
                """
                INSERT INTO questions (category_id, title, description, keywords)
                VALUES (?, ?, ?, ?)
                """,
                (int(category_id), title, description, json.dumps(cleaned_keywords)),
            )
            question_id = cursor.lastrowid
        if question_id is None:
            msg = "Failed to insert question row"
            raise RepositoryUnavailableError(msg)
        logger.info("Created question %d (%s)", question_id, title)
        return Question(
            id=int(question_id),
            category_id=int(category_id),
            title=title,
            description=description,
            keywords=cleaned_keywords,
        )

    def update_question(
        self,
        question_id: int,
        *,
        category_id: int | None = None,
        title: str | None = None,
        description: str | None = None,
        keywords: Iterable[str] | None = None,
    ) -> Question | None:
        keywords_json = (
            json.dumps(normalize_keywords(keywords)) if keywords is not None else None
        )
        with self._connect() as cursor:
            cursor.execute(
                """
                UPDATE questions
                SET category_id = COALESCE(?, category_id),
                    title = COALESCE(?, title),
                    description = COALESCE(?, description),
                    keywords = COALESCE(?, keywords)
                WHERE id = ?
                """,
                (category_id, title, description, keywords_json, int(question_id)),
            )
        return self.get_question(question_id)

    def delete_question(self, question_id: int) -> bool:
        with self._connect() as cursor:
            cursor.execute("DELETE FROM questions WHERE id = ?", (int(question_id),))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted question %d", question_id)
        return deleted

    # Solutions
    def list_solutions(self, question_id: int | None = None) -> list[Solution]:
        with self._connect() as cursor:
            if question_id is None:
                cursor.execute(
                    f"SELECT {SOLUTION_COLUMNS} FROM solutions ORDER BY step, id"  # noqa: S608
                )
            else:
                cursor.execute(
                    f"""
                    SELECT {SOLUTION_COLUMNS} FROM solutions
                    WHERE question_id = ?
                    ORDER BY step, id
                    """,  # noqa: S608
                    (int(question_id),),
                )
            rows = cursor.fetchall()
        return [self._build_solution(row) for row in rows]

    def get_solution_step(self, question_id: int, step: int) -> Solution | None:
        with self._connect() as cursor:
            cursor.execute(
                f"""
                SELECT {SOLUTION_COLUMNS} FROM solutions
                WHERE question_id = ? AND step = ?
                ORDER BY id
                LIMIT 1
                """,  # noqa: S608
                (int(question_id), int(step)),
            )
            row = cursor.fetchone()
        return self._build_solution(row) if row is not None else None

    def _get_solution(self, solution_id: int) -> Solution | None:
        with self._connect() as cursor:
            cursor.execute(
                f"SELECT {SOLUTION_COLUMNS} FROM solutions WHERE id = ?",  # noqa: S608
                (int(solution_id),),
            )
            row = cursor.fetchone()
        return self._build_solution(row) if row is not None else None

    def create_solution(  # noqa: PLR0913
        self,
        question_id: int,
        step: int,
        text: str,
        *,
        type: SolutionType = "text",  # noqa: A002
        helpful_links: Iterable[str] = (),
    ) -> Solution:
        links = list(helpful_links)
        with self._connect() as cursor:
            cursor.execute(
                """
                INSERT INTO solutions (question_id, step, text, type, helpful_links)
                VALUES (?, ?, ?, ?, ?)
                """,
                (int(question_id), int(step), text, type, json.dumps(links)),
            )
            solution_id = cursor.lastrowid
        if solution_id is None:
            msg = "Failed to insert solution row"
            raise RepositoryUnavailableError(msg)
        logger.info("Created step %d for question %d", step, question_id)
        return Solution(
            id=int(solution_id),
            question_id=int(question_id),
            step=int(step),
            text=text,
            type=type,
            helpful_links=links,
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
        links_json = (
            json.dumps(list(helpful_links)) if helpful_links is not None else None
        )
        with self._connect() as cursor:
            cursor.execute(
                """
                UPDATE solutions
                SET step = COALESCE(?, step),
                    text = COALESCE(?, text),
                    type = COALESCE(?, type),
                    helpful_links = COALESCE(?, helpful_links)
                WHERE id = ?
                """,
                (step, text, type, links_json, int(solution_id)),
            )
        return self._get_solution(solution_id)

    def delete_solution(self, solution_id: int) -> bool:
        with self._connect() as cursor:
            cursor.execute("DELETE FROM solutions WHERE id = ?", (int(solution_id),))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted solution %d", solution_id)
        return deleted

    # Users
    def find_user_by_email(self, email: str) -> User | None:
        with self._connect() as cursor:
            cursor.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE email = ?",  # noqa: S608
                (email.strip(),),
            )
            row = cursor.fetchone()
        return self._build_user(row) if row is not None else None

    def create_user(
        self,
        email: str,
        password_hash: str,
        name: str = "",
        role: UserRole | None = None,
    ) -> User:
        """Insert a user account.

        Raises:
            ValueError: If a user with the same email already exists.

        Returns:
            The stored user.
        """
        user_role = role or UserRole.MEMBER
        try:
            with self._connect() as cursor:
                cursor.execute(
                    """
                    INSERT INTO users (email, password_hash, name, role)
                    VALUES (?, ?, ?, ?)
                    """,
                    (email.strip(), password_hash, name, user_role.value),
                )
                user_id = cursor.lastrowid
        except RepositoryUnavailableError as e:
            if isinstance(e.__cause__, sqlite3.IntegrityError):
                msg = f"User with email '{email}' already exists"
                raise ValueError(msg) from e
            raise
        return User(
            id=int(user_id or 0),
            email=email.strip(),
            password_hash=password_hash,
            name=name,
            role=user_role,
        )

    # Conversations
    def save_conversation(self, messages: Iterable[ChatMessage]) -> int:
        timestamp = datetime.datetime.now(tz=datetime.UTC).isoformat()
        with self._connect() as cursor:
            cursor.execute(
                "INSERT INTO conversations (timestamp, messages) VALUES (?, ?)",
                (timestamp, json.dumps(transcript_record(messages))),
            )
            conversation_id = cursor.lastrowid
        if conversation_id is None:
            msg = "Failed to insert conversation row"
            raise RepositoryUnavailableError(msg)
        logger.info("Saved conversation %d", conversation_id)
        return int(conversation_id)
