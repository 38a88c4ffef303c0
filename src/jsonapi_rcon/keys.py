"""Credential key derivation.

Every call and subscription carries a key proving knowledge of the
password without sending it: sha256 over username, the operation name,
password and salt, in that order, hex encoded.
"""

from __future__ import annotations

import hashlib

from pydantic import BaseModel, ConfigDict


def derive_key(username: str, name: str, password: str, salt: str) -> str:
    """Derive the key for a single operation.

    Args:
        username: Account name sent alongside the key
        name: Method name for calls, source name for subscriptions
        password: Account password
        salt: Server-configured salt

    Returns:
        64 lowercase hex characters
    """
    material = f"{username}{name}{password}{salt}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class Credentials(BaseModel):
    """Account credentials, fixed for the lifetime of a client."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: str
    salt: str = ""

    def key_for(self, name: str) -> str:
        """Key for the method or source `name`."""
        return derive_key(self.username, name, self.password, self.salt)

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r})"
