"""
Password hashing for accounts provisioned by the request server.
"""
import logging

import bcrypt

from edurecords.core.config import settings

logger = logging.getLogger(__name__)


def get_password_hash(password: str, rounds: int = None) -> str:
    """Hash a plain text password with bcrypt."""
    if not password:
        raise ValueError("Password cannot be empty")
    salt = bcrypt.gensalt(rounds=rounds or settings.PASSWORD_HASH_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check a plain text password against a stored bcrypt hash."""
    if not password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError as e:
        logger.warning(f"Invalid password hash format: {e}")
        return False
