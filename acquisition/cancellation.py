"""Cooperative cancellation for long-running acquisition."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from utils.exceptions import AcquisitionCancelled


logger = logging.getLogger(__name__)


class CancellationToken:
    """Set once, polled between candidates and during readiness waits."""

    def __init__(self, predicate: Optional[Callable[[], bool]] = None) -> None:
        self._predicate = predicate
        self._cancelled = False
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled by user") -> None:
        if not self._cancelled:
            logger.info("Cancellation requested: %s", reason)
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        if self._cancelled:
            return True
        if self._predicate is not None and self._predicate():
            self.cancel("cancellation predicate fired")
            return True
        return False

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise AcquisitionCancelled(self.reason or "cancelled")
