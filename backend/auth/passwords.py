from functools import lru_cache

import bcrypt

from backend.core import config

# bcrypt only reads the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


def _encode(password: str | None) -> bytes:
    # Lone surrogates cannot be hashed at signup, so they can never match.
    return (password or "").encode("utf-8", "surrogatepass")


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash a password with bcrypt and a fresh random salt.

    Args:
        password: Plain text password
        rounds: Cost factor (defaults to BCRYPT_ROUNDS)

    Returns:
        Bcrypt hash string, different on every call for the same input

    Raises:
        ValueError: If the password is empty, longer than 72 bytes or not
            valid UTF-8 text
    """
    if not password:
        raise ValueError("Password cannot be empty")
    secret = password.encode("utf-8")
    if len(secret) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds or config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(secret, salt).decode("utf-8")


@lru_cache(maxsize=1)
def _dummy_hash() -> bytes:
    return bcrypt.hashpw(b"cet-portal-dummy-password", bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS))


def burn_verification(password: str | None) -> None:
    """Spend the cost of one verification without a real digest."""
    secret = _encode(password)[:MAX_PASSWORD_BYTES]
    bcrypt.checkpw(secret, _dummy_hash())


def verify_password(password: str | None, password_hash: str | None) -> bool:
    """
    Verify a password against a bcrypt hash with constant-time comparison.

    Never raises. Malformed hashes, empty input and over-long passwords
    return False after the same amount of hashing work as a mismatch.
    """
    secret = _encode(password)
    digest = (password_hash or "").encode("utf-8")

    if not secret or len(secret) > MAX_PASSWORD_BYTES or not digest:
        burn_verification(password)
        return False

    try:
        return bcrypt.checkpw(secret, digest)
    except ValueError:
        # Invalid salt or hash format
        burn_verification(password)
        return False
