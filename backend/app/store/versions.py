"""
Cutover — Latest-version record store.

One record per repository, keyed "<owner>/<name>". Writes happen only
after a release was created; a failing write is reported as a
PersistenceError and downgraded to a warning by the orchestrator.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from app.errors import PersistenceError
from app.utils.logging import logger


def repo_key(repo_owner: str, repo_name: str) -> str:
    return f"{repo_owner}/{repo_name}"


class VersionStore(Protocol):
    def put(self, repo_owner: str, repo_name: str, version: str) -> None:
        ...

    def get(self, repo_owner: str, repo_name: str) -> str | None:
        ...


class InMemoryVersionStore:
    def __init__(self):
        self._versions: dict[str, str] = {}

    def put(self, repo_owner: str, repo_name: str, version: str) -> None:
        self._versions[repo_key(repo_owner, repo_name)] = version

    def get(self, repo_owner: str, repo_name: str) -> str | None:
        return self._versions.get(repo_key(repo_owner, repo_name))


class JsonFileVersionStore:
    """Records kept in a single JSON document, replaced atomically on write."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def put(self, repo_owner: str, repo_name: str, version: str) -> None:
        key = repo_key(repo_owner, repo_name)
        with self._lock:
            try:
                records = self._load()
                records[key] = {
                    "repo_owner": repo_owner,
                    "repo_name": repo_name,
                    "latest_version": version,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as handle:
                        json.dump(records, handle, indent=2, sort_keys=True)
                    os.replace(tmp, self.path)
                except BaseException:
                    Path(tmp).unlink(missing_ok=True)
                    raise
            except (OSError, ValueError) as exc:
                logger.error("  Version record for %s failed: %s", key, exc)
                raise PersistenceError(key, str(exc)) from exc
        logger.info("  Recorded %s latest version %s", key, version)

    def get(self, repo_owner: str, repo_name: str) -> str | None:
        key = repo_key(repo_owner, repo_name)
        with self._lock:
            try:
                records = self._load()
            except (OSError, ValueError) as exc:
                raise PersistenceError(key, str(exc)) from exc
        record = records.get(key)
        if not isinstance(record, dict):
            return None
        return record.get("latest_version")


def build_version_store(path: str) -> VersionStore:
    if path:
        return JsonFileVersionStore(path)
    return InMemoryVersionStore()
