"""Salted one-way digests for player PINs.

bcrypt embeds the salt in its hash; the salt is also stored on its own column
so the stored pair matches the ``{hash, salt}`` contract of the player store.
"""

import secrets
from typing import NamedTuple

import bcrypt


class HashedCredential(NamedTuple):
    hash: str
    salt: str


def hash_credential(secret: str) -> HashedCredential:
    if not isinstance(secret, str):
        raise TypeError("secret must be a string")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(secret.encode("utf-8"), salt)
    return HashedCredential(hash=hashed.decode("utf-8"), salt=salt.decode("utf-8"))


def verify_credential(secret: str, hashed: str, salt: str) -> bool:
    if not all(isinstance(v, str) and v for v in (secret, hashed, salt)):
        return False
    try:
        candidate = bcrypt.hashpw(secret.encode("utf-8"), salt.encode("utf-8"))
    except ValueError:
        return False
    return secrets.compare_digest(candidate, hashed.encode("utf-8"))
