"""
Dry-run CRM service adapter.

Wraps a real adapter: queries go through unchanged, writes are logged and
reported as successful without reaching the remote service.
"""

import logging
from typing import Any, Optional, Sequence

from pdtemplate.adapters.base import CrmServiceAdapter
from pdtemplate.schemas import BatchOutcome, MutationRequest, Record, describe_request


class DryRunCrmServiceAdapter:
    """Read-through, write-nothing wrapper around another CrmServiceAdapter."""

    def __init__(self, inner: CrmServiceAdapter, logger: Optional[logging.Logger] = None):
        self._inner = inner
        self._logger = logger or logging.getLogger(__name__)

    def retrieve_multiple_by_attribute(
        self,
        entity: str,
        attribute: str,
        values: Sequence[Any],
        columns: Optional[Sequence[str]] = None,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[Record]:
        return self._inner.retrieve_multiple_by_attribute(entity, attribute, values, columns, filters)

    def retrieve(self, entity: str, record_id: str, columns: Optional[Sequence[str]] = None) -> Record:
        return self._inner.retrieve(entity, record_id, columns)

    def update(self, record: Record) -> None:
        self._logger.info(
            f"[DRY-RUN] Update {record.logical_name} {record.id}: {sorted(record.attributes)}"
        )

    def execute_multiple(
        self,
        requests: Sequence[MutationRequest],
        impersonate_as: Optional[str] = None,
        fallback_to_existing_user: bool = True,
    ) -> BatchOutcome:
        who = f" as {impersonate_as}" if impersonate_as else ""
        self._logger.info(f"[DRY-RUN] Batch of {len(requests)} request(s){who}")
        for request in requests:
            self._logger.info(f"[DRY-RUN]   {describe_request(request)}")
        return BatchOutcome.from_faults(len(requests), [])
