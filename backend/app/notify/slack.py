"""
Cutover — Release notifications.

Posts a plain-text message to a Slack incoming webhook. Delivery is
best-effort: failures raise NotificationError and the orchestrator
keeps the release outcome as a success.
"""

from __future__ import annotations

from typing import Protocol

import httpx

from app.errors import NotificationError
from app.utils.logging import logger


class Notifier(Protocol):
    async def send(self, text: str) -> None:
        ...


class SlackNotifier:
    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport

    async def send(self, text: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(self.webhook_url, json={"text": text})
        except httpx.TransportError as exc:
            logger.error("  Slack webhook unreachable: %s", exc)
            raise NotificationError(str(exc)) from exc

        if not resp.is_success:
            logger.error("  Slack webhook returned %d: %s", resp.status_code, resp.text[:200])
            raise NotificationError(f"HTTP {resp.status_code}", status=resp.status_code)
        logger.info("  Slack notification delivered")


class LogNotifier:
    """Used when no webhook is configured."""

    async def send(self, text: str) -> None:
        logger.info("  Notification: %s", text.replace("\n", " ⏎ "))


def build_notifier(webhook_url: str, timeout: float = 10.0) -> Notifier:
    if webhook_url:
        return SlackNotifier(webhook_url, timeout=timeout)
    return LogNotifier()


def release_message(repo_name: str, version: str, provider_label: str, body: str) -> str:
    text = f"Released {repo_name} version {version} on {provider_label}."
    if body:
        text = f"{text}\n\n{body}"
    return text
