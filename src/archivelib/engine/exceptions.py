"""Exception types reported by storage engines."""

from __future__ import annotations

from archivelib.models import EngineTag


class EngineError(Exception):
    """A storage engine operation failed with a vocabulary tag.

    ``tag`` is one of :class:`EngineTag` values for known failures, or an
    arbitrary string for anything the engine could not classify.
    """

    def __init__(self, tag: str | EngineTag, message: str | None = None) -> None:
        self.tag = tag.value if isinstance(tag, EngineTag) else str(tag)
        super().__init__(message or self.tag)

    def is_tag(self, tag: EngineTag) -> bool:
        """True when this error carries the known tag *tag*."""
        return self.tag == tag.value


class LockHeldError(Exception):
    """The store's exclusive lock is held by another process."""
