"""Operator notifier.

Delivery is best-effort: a transport failure is logged and returned as a
failed StageResult.  It never raises and never changes the run verdict.
"""

from __future__ import annotations

import logging

from pgwarden.collaborators import MessageTransport
from pgwarden.core.clock import Deadline
from pgwarden.models.results import StageResult
from pgwarden.tasks.base import BaseTask

logger = logging.getLogger(__name__)

TASK_ID = "notify"


class Notifier(BaseTask):
    """Sends subject + body from ``from_address`` to ``to_address``.

    Parameters
    ----------
    transport:
        The message transport collaborator.
    from_address, to_address:
        Envelope addresses.
    timeout_seconds:
        Default transport timeout, capped by *deadline*.
    """

    def __init__(
        self,
        transport: MessageTransport,
        from_address: str,
        to_address: str,
        *,
        timeout_seconds: float = 30.0,
        deadline: Deadline | None = None,
    ) -> None:
        super().__init__(deadline)
        self.transport = transport
        self.from_address = from_address
        self.to_address = to_address
        self.timeout_seconds = timeout_seconds

    def notify(self, subject: str, body: str) -> StageResult:
        logger.info("Sending notification to %s: %s", self.to_address, subject)
        try:
            self.transport.send(
                self.from_address,
                self.to_address,
                subject,
                body,
                self.timeout(self.timeout_seconds),
            )
        except Exception as exc:  # noqa: BLE001
            return self.failure(
                TASK_ID, f"Failed to send notification: {subject}", exc, logger
            )
        logger.info("Notification sent: %s", subject)
        return StageResult.ok(TASK_ID, detail=subject)
