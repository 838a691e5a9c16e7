"""Invintus Sync - Lifecycle States & Status Registry.

Defines the local lifecycle states and the classification sets that map
Invintus event statuses onto them. Each set can be extended through
configuration (LIVE_STATUSES, FUTURE_STATUSES, PUBLISH_STATUSES).
"""

from enum import Enum
from typing import FrozenSet, Iterable, Optional

from invintus_sync.config import settings


class LifecycleState(str, Enum):
    """Visibility/workflow state of a local content record."""

    DRAFT = "draft"
    FUTURE = "future"  # Scheduled, not started yet
    LIVE = "live"  # Currently streaming, on break or disconnected
    PUBLISH = "publish"
    PRIVATE = "private"  # Never stored, see ReconciliationEngine


class StatusSets:
    """The remote status strings recognised for each lifecycle state."""

    def __init__(
        self,
        live: Iterable[str],
        future: Iterable[str],
        publish: Iterable[str],
    ):
        self.live: FrozenSet[str] = frozenset(live)
        self.future: FrozenSet[str] = frozenset(future)
        self.publish: FrozenSet[str] = frozenset(publish)

    @classmethod
    def from_settings(cls) -> "StatusSets":
        return cls(
            live=settings.live_statuses,
            future=settings.future_statuses,
            publish=settings.publish_statuses,
        )

    def extended(
        self,
        live: Iterable[str] = (),
        future: Iterable[str] = (),
        publish: Iterable[str] = (),
    ) -> "StatusSets":
        """Return a copy with extra strings added to each set."""
        return StatusSets(
            live=self.live | set(live),
            future=self.future | set(future),
            publish=self.publish | set(publish),
        )

    def __repr__(self) -> str:
        return (
            f"<StatusSets live={sorted(self.live)} future={sorted(self.future)} "
            f"publish={sorted(self.publish)}>"
        )


# ─────────────────────────────────────────────
# DEFAULT CLASSIFICATION
# ─────────────────────────────────────────────

DEFAULT_STATUS_SETS = StatusSets(
    live=["live", "onBreak", "disconnected", "break", "on break"],
    future=["new", "available"],
    publish=["published"],
)


def map_status(
    remote_status: Optional[str], status_sets: Optional[StatusSets] = None
) -> LifecycleState:
    """Map a remote event status to a lifecycle state.

    Case-sensitive exact match; anything unrecognised is a draft.
    """
    sets = status_sets or DEFAULT_STATUS_SETS
    if remote_status in sets.live:
        return LifecycleState.LIVE
    if remote_status in sets.future:
        return LifecycleState.FUTURE
    if remote_status in sets.publish:
        return LifecycleState.PUBLISH
    return LifecycleState.DRAFT


def visible_state(
    state: LifecycleState, can_public_future_events: bool = False
) -> LifecycleState:
    """Return the state a record is exposed with to readers.

    Live records always read as published; scheduled ones only when the
    ``can_public_future_events`` option is on.
    """
    if state == LifecycleState.LIVE:
        return LifecycleState.PUBLISH
    if state == LifecycleState.FUTURE and can_public_future_events:
        return LifecycleState.PUBLISH
    return state
