"""
Interaction boundary: confirmation prompts and user notifications.

The rendering layer supplies real implementations; the ones here log or
answer from a fixed policy.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Confirmer(Protocol):
    def confirm(self, message: str) -> bool:
        """Ask the user; True only on an affirmative answer."""
        ...


@runtime_checkable
class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that writes to the log."""

    def success(self, message: str) -> None:
        logger.info("%s", message)

    def error(self, message: str) -> None:
        logger.warning("%s", message)


class FixedConfirmer:
    """Answers every prompt the same way and remembers the prompts."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.prompts: list[str] = []

    def confirm(self, message: str) -> bool:
        self.prompts.append(message)
        logger.debug("Confirmation %r answered %s", message, self.answer)
        return self.answer
