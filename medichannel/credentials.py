"""Password hashing with bcrypt.

Plaintext passwords are only ever held in memory long enough to hash or
verify them.
"""
import bcrypt

from medichannel import config


def hash_password(password: str, rounds: int = None) -> str:
    """Hash password using bcrypt with a fresh salt."""
    salt = bcrypt.gensalt(rounds=rounds or config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode(), salt).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash counts
    as a failed match rather than an error.
    """
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False
