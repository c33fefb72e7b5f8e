"""
Password hashing utilities using bcrypt.

Passwords are hashed before they reach the database and are never
serialized back to clients.
"""

import bcrypt

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Example:
        hashed = hash_password("mypassword123")
        # Returns something like: $2b$12$...
    """
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def is_password_hash(value: str) -> bool:
    """True when ``value`` already looks like a bcrypt hash."""
    return value.startswith(_BCRYPT_PREFIXES) and len(value) == 60


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash. Non-bcrypt values never match."""
    if not is_password_hash(hashed_password):
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
