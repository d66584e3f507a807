"""Data models for the helpdesk knowledge base and chat sessions."""

import datetime
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal

SolutionType = Literal["text", "image", "link"]
MessageRole = Literal["user", "bot"]

SOLUTION_TYPES: tuple[SolutionType, ...] = ("text", "image", "link")


class UserRole(StrEnum):
    """Access level of a user account."""

    ADMIN = "admin"
    MEMBER = "member"


@dataclass
class Category:
    """Groups related questions, e.g. Hardware or Network."""

    id: int
    name: str
    description: str = ""


@dataclass
class Question:
    """A known problem users can be walked through."""

    id: int
    category_id: int
    title: str
    description: str = ""
    keywords: list[str] = field(default_factory=list)


@dataclass
class Solution:
    """One ordered troubleshooting step for a question."""

    id: int
    question_id: int
    step: int
    text: str
    type: SolutionType = "text"
    helpful_links: list[str] = field(default_factory=list)


@dataclass
class User:
    """A credential record from the user store."""

    id: int
    email: str
    password_hash: str
    name: str = ""
    role: UserRole = UserRole.MEMBER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def _now() -> datetime.datetime:
    return datetime.datetime.now(tz=datetime.UTC)


def _message_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class ChatMessage:
    """Represents a single message in the chat log."""

    role: MessageRole
    content: str
    id: str = field(default_factory=_message_id)
    timestamp: datetime.datetime = field(default_factory=_now)
    question_id: int | None = None
    step: int | None = None
    show_actions: bool = False


@dataclass
class ConversationState:
    """Per-session chat state: the active question, its step and the log."""

    current_question: Question | None = None
    current_step: int = 0
    messages: list[ChatMessage] = field(default_factory=list)
    is_typing: bool = False

    @property
    def is_idle(self) -> bool:
        return self.current_question is None
