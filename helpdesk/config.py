"""Settings for HelpdeskBot, read from the environment and an optional .env file."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)

SUPPORTED_BACKENDS = ("sqlite", "http", "static")
DEFAULT_ADMIN_PASSWORD = "admin123"  # noqa: S105
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """HelpdeskBot settings. Values are fixed when the module is imported."""

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    HTTPX_LOG_LEVEL: str = os.getenv("HTTPX_LOG_LEVEL", "WARNING").upper()

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Knowledge base storage
    KB_BACKEND: str = os.getenv("KB_BACKEND", "sqlite").lower()
    KB_DB_PATH: Path = Path(os.getenv("KB_DB_PATH", "data/helpdesk.db"))
    KB_API_BASE_URL: str = os.getenv("KB_API_BASE_URL", "http://localhost:3001")
    KB_API_TIMEOUT: float = float(os.getenv("KB_API_TIMEOUT", "5.0"))
    KB_STATIC_FALLBACK: bool = _env_flag("KB_STATIC_FALLBACK", "true")
    KB_SEED_DEFAULTS: bool = _env_flag("KB_SEED_DEFAULTS", "true")

    # Seconds the chat UI shows the typing indicator before answering
    TYPING_DELAY_SECONDS: float = float(os.getenv("TYPING_DELAY_SECONDS", "0.8"))

    # Seeded admin account
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@example.com")
    ADMIN_NAME: str = os.getenv("ADMIN_NAME", "Administrator")

    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "HelpdeskBot/1.0")

    @classmethod
    def get_admin_password(cls) -> str:
        """Password for the seeded admin account.

        Read on every call so the value never sits on the class.

        Returns:
            ``ADMIN_PASSWORD`` from the environment, or the development default.
        """
        return os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD)

    @classmethod
    def validate(cls) -> None:
        """Reject settings the application cannot start with.

        Raises:
            ValueError: If ``KB_BACKEND`` names an unknown backend, or the
                default admin password is still in use in production.
        """
        if cls.KB_BACKEND not in SUPPORTED_BACKENDS:
            msg = (
                f"Unsupported KB_BACKEND '{cls.KB_BACKEND}'. "
                f"Choose one of: {', '.join(SUPPORTED_BACKENDS)}."
            )
            raise ValueError(msg)

        if cls.is_production() and cls.get_admin_password() == DEFAULT_ADMIN_PASSWORD:
            msg = "ADMIN_PASSWORD must be changed from the default in production."
            raise ValueError(msg)

    @classmethod
    def is_production(cls) -> bool:
        """Check whether the app runs in production.

        Returns:
            True if ``ENVIRONMENT`` is production, ignoring case and spaces.
        """
        return cls.ENVIRONMENT.strip().lower() == "production"

    @classmethod
    def setup_logging(cls) -> None:
        """Configure root logging once, at process start.

        Unknown level names fall back to INFO for the application and
        WARNING for httpx.
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
        )

        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(
            getattr(logging, cls.HTTPX_LOG_LEVEL, logging.WARNING)
        )

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a module logger.

        Args:
            name: Logger name, usually ``__name__``.

        Returns:
            The named logger from the standard logging hierarchy.
        """
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Headers sent with every knowledge base API request.

        Returns:
            ``Accept`` plus ``User-Agent`` when one is configured.
        """
        headers = {"Accept": "application/json"}
        if cls.API_USER_AGENT:
            headers["User-Agent"] = cls.API_USER_AGENT
        return headers


config = Config()
