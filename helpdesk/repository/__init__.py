"""Knowledge base repository adapters and factory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from helpdesk.config import config

from .base import KnowledgeRepository, RepositoryUnavailableError
from .fallback import FallbackKnowledgeRepository
from .http_store import HTTPKnowledgeRepository
from .sqlite_store import SQLiteKnowledgeRepository
from .static_store import StaticKnowledgeRepository

if TYPE_CHECKING:
    from pathlib import Path

KnowledgeBackend = Literal["sqlite", "http", "static"]

logger = config.get_logger(__name__)


def get_repository(  # noqa: PLR0913
    backend: KnowledgeBackend | None = None,
    *,
    db_path: Path | None = None,
    base_url: str | None = None,
    timeout: float | None = None,
    static_fallback: bool | None = None,
    seed_defaults: bool | None = None,
) -> KnowledgeRepository:
    """Return a configured knowledge base repository.

    Raises:
        ValueError: If an unsupported backend is requested.
    """
    backend_value = backend if backend is not None else config.KB_BACKEND
    if static_fallback is None:
        static_fallback = config.KB_STATIC_FALLBACK
    if seed_defaults is None:
        seed_defaults = config.KB_SEED_DEFAULTS
    name = backend_value.lower()

    repository: KnowledgeRepository
    if name == "static":
        return StaticKnowledgeRepository()

    if name == "sqlite":
        sqlite_repository = SQLiteKnowledgeRepository(
            db_path=db_path if db_path is not None else config.KB_DB_PATH
        )
        if seed_defaults:
            sqlite_repository.seed_defaults()
        repository = sqlite_repository
    elif name == "http":
        repository = HTTPKnowledgeRepository(base_url=base_url, timeout=timeout)
    else:
        msg = f"Unsupported knowledge base backend: {backend_value}"
        raise ValueError(msg)

    logger.info("Using %s knowledge base", repository.backend)
    if static_fallback:
        return FallbackKnowledgeRepository(repository)
    return repository


__all__ = [
    "FallbackKnowledgeRepository",
    "HTTPKnowledgeRepository",
    "KnowledgeBackend",
    "KnowledgeRepository",
    "RepositoryUnavailableError",
    "SQLiteKnowledgeRepository",
    "StaticKnowledgeRepository",
    "get_repository",
]
