"""
Cutover — Provider authentication helpers.

GitHub takes a bearer token, GitLab a PRIVATE-TOKEN header. Tokens are
opaque: they come from configuration and are never refreshed here.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BearerToken:
    token: str

    def as_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@dataclass(frozen=True)
class PrivateToken:
    token: str

    def as_headers(self) -> dict[str, str]:
        return {"PRIVATE-TOKEN": self.token}
