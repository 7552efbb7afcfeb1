"""
Configuration for the auth module.

Accounts are link owners: the authenticated username becomes `owner_id`.
For demo purposes users live in an in-memory dictionary
(username -> password or SHA-256 hex digest).

Environment:
    DEMO_USER_PASSWORD   : password of `shortlink_demo`
    ADMIN_USER_PASSWORD  : password of `shortlink_admin`
    SHORTLINK_AUTH_USERS : extra accounts, "alice:pw,bob:<sha256 hex>"
"""

from typing import Dict
import os


def parse_users(raw: str) -> Dict[str, str]:
    """
    Parse "user:password" pairs separated by commas.
    Entries without a colon or with an empty name are skipped.
    """
    users: Dict[str, str] = {}
    for entry in raw.split(","):
        name, sep, password = entry.strip().partition(":")
        if sep and name.strip():
            users[name.strip()] = password
    return users


USERS: Dict[str, str] = {
    "shortlink_demo": os.getenv("DEMO_USER_PASSWORD", "shortlink_demo"),
    "shortlink_admin": os.getenv("ADMIN_USER_PASSWORD", "shortlink_admin"),
}
USERS.update(parse_users(os.getenv("SHORTLINK_AUTH_USERS", "")))
