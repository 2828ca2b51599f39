"""Error/status channel: the single observable blocking-condition cell.

Backed by a reactivex ``BehaviorSubject`` so a subscriber (the modal
renderer) immediately receives the current value and then every change.
Each write bumps ``version``; writers that awaited the engine compare the
version they started from before publishing, so a late response from a
superseded operation cannot overwrite a newer condition.
"""

from __future__ import annotations

import dataclasses
import logging

from reactivex import Observable
from reactivex.subject import BehaviorSubject

from archivelib.models import BlockingCondition

logger = logging.getLogger(__name__)


class StatusChannel:
    """Holds at most one :class:`BlockingCondition`, or ``None``."""

    def __init__(self) -> None:
        self._subject: BehaviorSubject = BehaviorSubject(None)
        self._version = 0

    @property
    def current(self) -> BlockingCondition | None:
        """The condition currently shown to the user, if any."""
        return self._subject.value

    @property
    def version(self) -> int:
        """Monotonic counter incremented by every set/clear."""
        return self._version

    def set(self, condition: BlockingCondition) -> BlockingCondition:
        """Replace the current condition; returns the stamped instance."""
        self._version += 1
        stamped = dataclasses.replace(condition, token=self._version)
        logger.info(
            "Blocking condition set: %s%s",
            stamped.title,
            f" ({stamped.detail})" if stamped.detail else "",
        )
        self._subject.on_next(stamped)
        return stamped

    def clear(self) -> None:
        """Remove the current condition."""
        self._version += 1
        if self._subject.value is not None:
            logger.info("Blocking condition cleared")
        self._subject.on_next(None)

    def is_current(self, condition: BlockingCondition) -> bool:
        """True if *condition* is the publication the channel holds now."""
        current = self.current
        return current is not None and current.token == condition.token

    def observe(self) -> Observable:
        """Observable of condition changes, replaying the current value first."""
        return self._subject

    def dispose(self) -> None:
        """Complete the stream; subscribers receive ``on_completed``."""
        self._subject.on_completed()
