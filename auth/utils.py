"""
Utility functions for the auth module.
"""

import hashlib
import hmac


def hash_password(password: str) -> str:
    """
    Return a SHA256 hash of the given password.

    Note:
        This is only for demo purposes.
        In production, use a strong hashing library such as passlib[bcrypt].
    """
    return hashlib.sha256(password.encode()).hexdigest()


def password_matches(stored: str, password: str) -> bool:
    """Constant-time comparison against a plain-text or hashed stored password."""
    stored_bytes = stored.encode()
    return hmac.compare_digest(stored_bytes, password.encode()) or hmac.compare_digest(
        stored_bytes, hash_password(password).encode()
    )
