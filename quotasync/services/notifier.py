"""
Notifier - failure alerts and the monthly usage summary.

Alerts go out synchronously at the point of failure. The summary is a
calendar-triggered report, sent on the configured day of the month whether
or not that day's backup ran.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ..errors import NotificationError
from ..models import BatchDecision, LocalUsage, MailConfig, QuotaSnapshot
from ..protocols import IMailer
from .units import format_bytes

logger = logging.getLogger(__name__)


class SendGridMailer:
    """
    SendGrid v3 mail/send adapter.

    Implements IMailer protocol.
    """

    def __init__(
        self,
        config: MailConfig,
        timeout: int = 30,
        max_retries: int = 3,
        retry_delay: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not config.enabled:
            raise ValueError("SendGridMailer requires api_key, sender and recipient")
        self._config = config
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._transport = transport

    def build_payload(self, subject: str, body: str) -> Dict[str, Any]:
        return {
            "personalizations": [{"to": [{"email": self._config.recipient}]}],
            "from": {"email": self._config.sender},
            "subject": subject,
            "content": [{"type": "text/plain", "value": body}],
        }

    async def send(self, subject: str, body: str) -> None:
        headers = {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }
        payload = self.build_payload(subject, body)
        last_exception: Optional[Exception] = None

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for attempt in range(self._max_retries):
                try:
                    response = await client.post(self._config.api_url, json=payload, headers=headers)

                    if response.status_code >= 500 and attempt < self._max_retries - 1:
                        await asyncio.sleep(self._retry_delay * (attempt + 1))
                        continue

                    if response.status_code >= 400:
                        raise NotificationError(
                            f"mail API error {response.status_code}: {response.text[:300]}"
                        )
                    return
                except (httpx.RequestError, httpx.TimeoutException) as exc:
                    last_exception = exc
                    if attempt < self._max_retries - 1:
                        await asyncio.sleep(self._retry_delay * (attempt + 1))
                        continue
                    raise NotificationError(f"mail API unreachable: {exc}") from exc

        if last_exception:
            raise NotificationError(f"mail API unreachable: {last_exception}")
        raise NotificationError(f"failed to send mail after {self._max_retries} attempts")


class LogMailer:
    """Stand-in used when no mail API is configured; messages only reach the log."""

    async def send(self, subject: str, body: str) -> None:
        logger.warning(f"[mail disabled] {subject}: {body}")


def create_mailer(config: MailConfig) -> IMailer:
    if config.enabled:
        return SendGridMailer(config)
    return LogMailer()


@dataclass(frozen=True)
class SummarySchedule:
    """Fires on one fixed day of the month."""
    day_of_month: int = 1

    def __post_init__(self):
        if not 1 <= self.day_of_month <= 31:
            raise ValueError(f"day_of_month must be 1-31, got {self.day_of_month}")

    def is_summary_day(self, day: date) -> bool:
        return day.day == self.day_of_month


def read_local_usage(path: Path) -> LocalUsage:
    usage = shutil.disk_usage(path)
    return LocalUsage(path=Path(path), total_bytes=usage.total, used_bytes=usage.used, free_bytes=usage.free)


def compose_summary(
    quota: Optional[QuotaSnapshot],
    local: Optional[LocalUsage],
    decision: Optional[BatchDecision] = None,
) -> str:
    lines = []
    if quota is not None:
        lines.append(f"Remote storage used: {quota.used_percent:.1f}% "
                     f"({format_bytes(quota.used_bytes)} of {format_bytes(quota.total_bytes)})")
        lines.append(f"Remote storage available: {format_bytes(quota.available_bytes)}")
    else:
        lines.append("Remote storage usage: unavailable")
    if local is not None:
        lines.append(f"Local volume {local.path} free: {format_bytes(local.free_bytes)} "
                     f"of {format_bytes(local.total_bytes)}")
    else:
        lines.append("Local volume free space: unavailable")
    if decision is not None:
        lines.append(f"Today's backup decision: {decision.value}")
    return "\n".join(lines)


class Notifier:
    """Sends alerts and summaries; a failed delivery is logged, never raised."""

    def __init__(self, mailer: IMailer, subject_prefix: str = "[quotasync]"):
        self._mailer = mailer
        self._prefix = subject_prefix

    async def _deliver(self, subject: str, body: str) -> bool:
        full_subject = f"{self._prefix} {subject}" if self._prefix else subject
        try:
            await self._mailer.send(full_subject, body)
        except NotificationError as exc:
            logger.error(f"Could not deliver notification '{subject}': {exc}")
            return False
        return True

    async def alert(self, subject: str, body: str) -> bool:
        logger.error(f"ALERT {subject}: {body}")
        return await self._deliver(subject, body)

    async def send_summary(
        self,
        quota: Optional[QuotaSnapshot],
        local: Optional[LocalUsage],
        decision: Optional[BatchDecision] = None,
    ) -> bool:
        body = compose_summary(quota, local, decision)
        logger.info(f"Sending monthly usage summary:\n{body}")
        return await self._deliver("Monthly storage summary", body)
