"""HelpdeskBot: rule-based troubleshooting chat over a small knowledge base."""

from .admin import KnowledgeBaseAdmin
from .auth import AuthService, InMemorySessionStore, SessionStore
from .conversation import ConversationManager
from .matcher import QueryMatcher
from .models import (
    Category,
    ChatMessage,
    ConversationState,
    Question,
    Solution,
    User,
    UserRole,
)
from .repository import (
    KnowledgeRepository,
    RepositoryUnavailableError,
    get_repository,
)

__version__ = "0.1.0"
__all__ = [
    "AuthService",
    "Category",
    "ChatMessage",
    "ConversationManager",
    "ConversationState",
    "InMemorySessionStore",
    "KnowledgeBaseAdmin",
    "KnowledgeRepository",
    "QueryMatcher",
    "Question",
    "RepositoryUnavailableError",
    "SessionStore",
    "Solution",
    "User",
    "UserRole",
    "get_repository",
]
