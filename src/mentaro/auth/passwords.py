"""
mentaro.auth.passwords

bcrypt password hashing.
"""

from __future__ import annotations

import re

import bcrypt

# bcrypt only looks at the first 72 bytes of the secret.
_BCRYPT_MAX_BYTES = 72

PASSWORD_POLICY = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{6,}$")


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, *, rounds: int = 12) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash.
        return False


WEAK_PASSWORD = (
    "Password must be at least 6 characters and contain at least one lowercase letter, "
    "one uppercase letter, and one number"
)


def is_strong(password: str) -> bool:
    return PASSWORD_POLICY.match(password) is not None
