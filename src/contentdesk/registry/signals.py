"""Cache invalidation signal.

Emitted by the bulk executor and by successful edit-buffer commits.
Whatever owns the source collections listens and re-fetches.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from contentdesk.registry.models import Provenance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Invalidation:
    """Which source collections went stale, and why."""

    reason: str
    provenances: frozenset[Provenance] = field(
        default_factory=lambda: frozenset(Provenance)
    )


Listener = Callable[[Invalidation], None]


class InvalidationSignal:
    """Synchronous fan-out of invalidation events to connected listeners."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def connect(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def disconnect(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: Invalidation) -> None:
        logger.debug("Invalidation: %s (%s)", event.reason, sorted(event.provenances))
        for listener in list(self._listeners):
            listener(event)
