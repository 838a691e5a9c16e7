"""Invintus Sync - Reconciliation Extension Points.

Callbacks are registered explicitly on a SyncHooks instance that is handed
to the engine; they run synchronously in registration order.

  prepare(record, event) -> record        after normalization
  before_save(record, existing_ids) -> record   before any write
  after_save(record, record_id, op) -> None      after insert/update
"""

from typing import Callable, List

from invintus_sync.models.content_models import ContentRecord
from invintus_sync.models.payload_models import RemoteEvent
from invintus_sync.models.sync_models import NormalizedRecord, SyncOperation

PrepareHook = Callable[[NormalizedRecord, RemoteEvent], NormalizedRecord]
BeforeSaveHook = Callable[[NormalizedRecord, List[int]], NormalizedRecord]
AfterSaveHook = Callable[[ContentRecord, int, SyncOperation], None]


class SyncHooks:
    """Ordered callback lists for one engine."""

    def __init__(self):
        self.prepare: List[PrepareHook] = []
        self.before_save: List[BeforeSaveHook] = []
        self.after_save: List[AfterSaveHook] = []

    def on_prepare(self, hook: PrepareHook) -> PrepareHook:
        self.prepare.append(hook)
        return hook

    def on_before_save(self, hook: BeforeSaveHook) -> BeforeSaveHook:
        self.before_save.append(hook)
        return hook

    def on_after_save(self, hook: AfterSaveHook) -> AfterSaveHook:
        self.after_save.append(hook)
        return hook

    def run_prepare(self, record: NormalizedRecord, event: RemoteEvent) -> NormalizedRecord:
        for hook in self.prepare:
            record = hook(record, event)
        return record

    def run_before_save(
        self, record: NormalizedRecord, existing_ids: List[int]
    ) -> NormalizedRecord:
        for hook in self.before_save:
            record = hook(record, existing_ids)
        return record

    def run_after_save(
        self, record: ContentRecord, record_id: int, op: SyncOperation
    ) -> None:
        for hook in self.after_save:
            hook(record, record_id, op)
