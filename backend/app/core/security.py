"""
Password and token hashing helpers.
"""

import hashlib

import bcrypt


def get_password_hash(password: str) -> str:
    """Hash a plaintext password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def hash_token(token: str) -> str:
    """SHA-256 hex digest used to store refresh tokens without keeping them in clear."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
