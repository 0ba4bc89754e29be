"""
Basic authentication for the DoneDone API.
"""

import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class Credential:
    """A username and password/API token pair."""

    username: str
    secret: str

    def encode(self) -> str:
        """Base64 token of ``username:secret``."""
        raw = f"{self.username}:{self.secret}".encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    def header(self) -> str:
        """Value for the Authorization header."""
        return f"Basic {self.encode()}"

    def __repr__(self) -> str:
        return f"Credential(username={self.username!r}, secret='***')"
