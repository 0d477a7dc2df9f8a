"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor (rounds=12) takes ~100ms per hash on modern hardware,
which is why BcryptHasher pushes the work onto a thread.
"""

import asyncio

import bcrypt

from tasksync.ports.services import Hasher

ROUNDS = 12


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=ROUNDS)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


class BcryptHasher(Hasher):
    async def hash(self, plain: str) -> str:
        return await asyncio.to_thread(hash_password, plain)

    async def compare(self, plain: str, hashed: str) -> bool:
        return await asyncio.to_thread(verify_password, plain, hashed)
