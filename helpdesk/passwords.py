"""Password hashing for stored credentials."""

import hmac
import secrets

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import config

ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 260_000
SALT_BYTES = 16
KEY_LENGTH = 32

logger = config.get_logger(__name__)


def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )


def hash_password(password: str, *, iterations: int = ITERATIONS) -> str:
    """Hash a password with a random salt.

    Returns:
        Encoded hash in the form ``pbkdf2_sha256$<iterations>$<salt>$<digest>``.
    """
    salt = secrets.token_hex(SALT_BYTES)
    digest = _kdf(salt.encode("ascii"), iterations).derive(password.encode("utf-8"))
    return f"{ALGORITHM}${iterations}${salt}${digest.hex()}"


def is_hashed(stored: str) -> bool:
    return stored.startswith(f"{ALGORITHM}$")


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored value.

    Stored values that are not in the hashed format are legacy plaintext
    records; they are still compared in constant time.

    Returns:
        True if the password matches.
    """
    if not stored:
        return False

    if not is_hashed(stored):
        logger.warning("Verifying against a plaintext password record")
        return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))

    try:
        _algorithm, iterations, salt, expected = stored.split("$")
        rounds = int(iterations)
        salt_bytes = salt.encode("ascii")
        expected_digest = bytes.fromhex(expected)
    except ValueError:
        logger.warning("Malformed password hash record")
        return False

    try:
        _kdf(salt_bytes, rounds).verify(password.encode("utf-8"), expected_digest)
    except InvalidKey:
        return False
    return True
