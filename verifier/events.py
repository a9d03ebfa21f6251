from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)


class VerificationEventKind(str, Enum):
    STARTED = "verification_started"
    FAILED = "verification_failed"
    VERIFIED = "verification_succeeded"


@dataclass(frozen=True)
class VerificationEvent:
    kind: VerificationEventKind
    stage: str
    message: Optional[str] = None
    credential_id: Optional[str] = None
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class VerificationObserver(Protocol):
    """
    Sink for what happens during verification.

    Implementations are observational only: whatever they do, the
    verification result is decided without them.
    """

    def notify(self, event: VerificationEvent) -> None:
        ...


class NullObserver:
    def notify(self, event: VerificationEvent) -> None:
        return


class LoggingObserver:
    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def notify(self, event: VerificationEvent) -> None:
        if event.kind is VerificationEventKind.FAILED:
            self.log.warning("Credential %s rejected at %s: %s", event.credential_id, event.stage, event.message)
        elif event.kind is VerificationEventKind.VERIFIED:
            self.log.info("Credential %s verified", event.credential_id)
        else:
            self.log.debug("Verifying credential %s", event.credential_id)


class MemoryObserver:
    """Keeps every event in order; handy in tests and for batch reports."""

    def __init__(self) -> None:
        self.events: List[VerificationEvent] = []

    def notify(self, event: VerificationEvent) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> List[VerificationEventKind]:
        return [e.kind for e in self.events]

    def clear(self) -> None:
        self.events.clear()
