"""Bulk operation executor.

Processes a selection one item at a time, awaiting each mutation before
starting the next, so load on the CMS stays bounded and the progress
counter advances in order.  One item's failure never stops the rest.
Preconditions are checked once, up front, for the whole selection.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel, Field

from contentdesk.errors import PreconditionError
from contentdesk.registry.models import ContentItem, Provenance
from contentdesk.registry.selection import SelectionSet
from contentdesk.registry.signals import Invalidation, InvalidationSignal

logger = logging.getLogger(__name__)

Mutation = Callable[[ContentItem], Awaitable[bool]]
Eligibility = Callable[[ContentItem], bool]


class PreconditionPolicy(StrEnum):
    """How an action's eligibility check applies to the selection."""

    # Every selected item must be eligible, otherwise nothing runs.
    REQUIRE_ALL = "require_all"
    # Ineligible items are left out; rejected only if none are eligible.
    SKIP_INELIGIBLE = "skip_ineligible"


@dataclass(frozen=True)
class BulkAction:
    """Descriptor of one bulk action and its per-item mutation."""

    name: str
    label: str
    mutation: Mutation
    eligible: Eligibility | None = None
    precondition_message: str = "Selected items are not eligible for this action"
    policy: PreconditionPolicy = PreconditionPolicy.REQUIRE_ALL
    invalidates: frozenset[Provenance] = field(default_factory=lambda: frozenset(Provenance))


class BulkProgress(BaseModel):
    current: int = 0
    total: int = 0

    @property
    def done(self) -> bool:
        return self.current >= self.total


class BulkFailure(BaseModel):
    item_id: str
    reason: str


class BulkResult(BaseModel):
    """Aggregate outcome of a bulk action."""

    action: str
    succeeded: int = 0
    total: int = 0
    skipped: int = 0
    failures: list[BulkFailure] = Field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def all_succeeded(self) -> bool:
        return self.succeeded == self.total

    def summary(self) -> str:
        return f"{self.succeeded}/{self.total}"


ProgressCallback = Callable[[BulkProgress], None]


class BulkExecutor:
    """Runs bulk actions sequentially and reports partial failures."""

    def __init__(self, *, signal: InvalidationSignal | None = None) -> None:
        self._signal = signal

    def check_preconditions(
        self, action: BulkAction, items: Sequence[ContentItem]
    ) -> list[ContentItem]:
        """Return the items the action will run on.

        Raises:
            PreconditionError: If nothing is selected, or the selection
                violates the action's eligibility policy.
        """
        if not items:
            raise PreconditionError(action.name, "No items selected")
        if action.eligible is None:
            return list(items)

        eligible = [item for item in items if action.eligible(item)]
        ineligible = [item.id for item in items if not action.eligible(item)]

        if action.policy == PreconditionPolicy.REQUIRE_ALL and ineligible:
            raise PreconditionError(action.name, action.precondition_message, ineligible)
        if not eligible:
            raise PreconditionError(action.name, action.precondition_message, ineligible)
        return eligible

    async def run(
        self,
        action: BulkAction,
        items: Sequence[ContentItem],
        *,
        selection: SelectionSet | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BulkResult:
        """Apply ``action`` to every eligible item, one at a time.

        The result accumulates ``{current, total, failures}`` as each
        mutation resolves.  Afterwards the selection is cleared and the
        affected sources are invalidated.

        Raises:
            PreconditionError: Before any mutation, if preconditions fail.
        """
        targets = self.check_preconditions(action, items)
        result = BulkResult(
            action=action.name,
            total=len(targets),
            skipped=len(items) - len(targets),
        )
        progress = BulkProgress(current=0, total=len(targets))
        if on_progress is not None:
            on_progress(progress.model_copy())

        for item in targets:
            try:
                ok = bool(await action.mutation(item))
                reason = "" if ok else "mutation reported failure"
            except Exception as exc:
                logger.warning("%s failed for %s", action.name, item.id, exc_info=True)
                ok = False
                reason = str(exc) or type(exc).__name__

            if ok:
                result.succeeded += 1
            else:
                result.failures.append(BulkFailure(item_id=item.id, reason=reason))

            progress.current += 1
            if on_progress is not None:
                on_progress(progress.model_copy())

        logger.info("%s: %s item(s) succeeded", action.label, result.summary())

        if selection is not None:
            selection.clear()
        if self._signal is not None:
            self._signal.emit(Invalidation(f"bulk {action.name}", action.invalidates))
        return result
