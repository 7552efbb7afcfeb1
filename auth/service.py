"""
Core authentication logic.

This module handles validation of credentials.
Currently uses an in-memory user store, but can be
extended to check against a database or external provider.
"""

from fastapi import HTTPException, status
from .config import USERS
from .utils import password_matches


def authenticate_user(username: str, password: str) -> str:
    """
    Authenticate a user by validating their username and password.

    Returns:
        str: The authenticated username, used as the link owner id.

    Raises:
        HTTPException: If authentication fails (401 Unauthorized).
    """
    stored_password = USERS.get(username)

    if stored_password is None or not password_matches(stored_password, password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return username
