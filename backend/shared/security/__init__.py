"""
Security module: Password hashing.
"""

from shared.security.password import hash_password, is_password_hash, verify_password

__all__ = [
    "hash_password",
    "is_password_hash",
    "verify_password",
]
