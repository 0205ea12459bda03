"""User accounts stored in the ``accounts`` database."""

from inkwell.accounts.models import User, UserRole, UserStatus, check_password, hash_password
from inkwell.accounts.repository import UserRepository

__all__ = [
    "User",
    "UserRepository",
    "UserRole",
    "UserStatus",
    "check_password",
    "hash_password",
]
