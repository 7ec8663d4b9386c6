"""
Cutover — Structured error catalog.

Every error has a code, human message, suggested fix, and a kind.
The orchestrator maps kinds to user messages and status codes; no raw
httpx or provider-specific exception leaks past a provider client.
"""

from __future__ import annotations

import enum
from typing import Any


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    PROVIDER_AUTH = "provider_auth"
    PROVIDER_REQUEST = "provider_request"
    MERGE_CONFLICT = "merge_conflict"
    MERGE_TIMEOUT = "merge_timeout"
    PERSISTENCE = "persistence"
    NOTIFICATION = "notification"


class ReleaseError(Exception):
    """Base error with structured code + suggestion."""

    kind: ErrorKind = ErrorKind.PROVIDER_REQUEST

    def __init__(self, code: str, message: str, suggestion: str = "", detail: Any = None):
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "error_code": self.code,
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.suggestion:
            d["suggestion"] = self.suggestion
        if self.detail:
            d["detail"] = self.detail
        return d


class ValidationError(ReleaseError):
    kind = ErrorKind.VALIDATION

    def __init__(self, fields: list[str]):
        self.fields = fields
        verb = "is" if len(fields) == 1 else "are"
        super().__init__(
            code="VALIDATION_FAILED",
            message=f"{', '.join(fields)} {verb} invalid",
            suggestion="Check required fields: repo_owner, repo_name, branch_base, release_version.",
            detail=fields,
        )


class ConfigurationError(ReleaseError):
    kind = ErrorKind.CONFIGURATION

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            code="CONFIGURATION_INVALID",
            message=reason,
            suggestion="Check the provider token and base URL settings in backend/.env.",
        )


class ProviderAuthError(ReleaseError):
    kind = ErrorKind.PROVIDER_AUTH

    def __init__(self, provider: str, action: str, status: int, body: str = ""):
        self.provider = provider
        self.action = action
        self.status = status
        super().__init__(
            code=f"{provider.upper()}_AUTH_FAILED",
            message=f"{provider} rejected credentials for '{action}' (HTTP {status})",
            suggestion=f"Rotate the {provider} token or check its scopes.",
            detail=body[:500] if body else None,
        )


class ProviderRequestError(ReleaseError):
    kind = ErrorKind.PROVIDER_REQUEST

    def __init__(self, provider: str, action: str, status: int | None = None, body: str = ""):
        self.provider = provider
        self.action = action
        self.status = status
        where = f"HTTP {status}" if status is not None else "no response"
        super().__init__(
            code=f"{provider.upper()}_REQUEST_FAILED",
            message=f"{provider} '{action}' failed ({where})",
            suggestion=f"Check the branches, tag and repository on {provider}.",
            detail=body[:500] if body else None,
        )


class MergeFailedError(ProviderRequestError):
    """The merge call errored, or was accepted without merging."""

    def __init__(self, provider: str, action: str, status: int | None = None, body: str = ""):
        super().__init__(provider, action, status, body)
        self.code = f"{provider.upper()}_MERGE_FAILED"


class MergeConflictError(ReleaseError):
    kind = ErrorKind.MERGE_CONFLICT

    def __init__(self, number: int, attempts: int):
        self.number = number
        self.attempts = attempts
        super().__init__(
            code="MERGE_CONFLICT",
            message=f"merge request {number} has merge conflicts",
            suggestion="Resolve the conflicts between head and base, then retry the release.",
        )


class MergeTimeoutError(ReleaseError):
    kind = ErrorKind.MERGE_TIMEOUT

    def __init__(self, number: int, attempts: int):
        self.number = number
        self.attempts = attempts
        super().__init__(
            code="MERGE_TIMEOUT",
            message=f"merge request {number} never became mergeable after {attempts} checks",
            suggestion="Raise MERGE_POLL_MAX_ATTEMPTS or MERGE_POLL_DELAY, or merge it by hand.",
        )


class PersistenceError(ReleaseError):
    kind = ErrorKind.PERSISTENCE

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(
            code="VERSION_RECORD_FAILED",
            message=f"Could not record latest version for {key}: {message}",
            suggestion="Check VERSION_STORE_PATH is writable.",
        )


class NotificationError(ReleaseError):
    kind = ErrorKind.NOTIFICATION

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(
            code="NOTIFICATION_FAILED",
            message=f"Release notification failed: {message}",
            suggestion="Check SLACK_WEBHOOK_URL.",
        )
