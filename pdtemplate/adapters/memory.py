"""
In-memory CRM service adapter.

Holds records in a dict keyed by entity logical name and record id and
applies updates and state changes the way the organization service does.
String comparisons in queries are case-insensitive, matching the remote
service's default collation.

Faults can be injected per record id to exercise partial batch failure, and
every call is journaled so callers can assert on what was sent.
"""

import copy
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from pdtemplate.errors import ImpersonationError, PermanentError
from pdtemplate.schemas import (
    BatchItemFault,
    BatchOutcome,
    MutationRequest,
    Record,
    SetStateRequest,
    UpdateRequest,
)

logger = logging.getLogger(__name__)


@dataclass
class BatchCall:
    """Journal entry for one execute_multiple call."""
    requests: list[MutationRequest]
    impersonate_as: Optional[str]
    executed_as: str


@dataclass
class CallJournal:
    """Everything sent to an InMemoryCrmServiceAdapter, in order."""
    queries: list[tuple[str, str, list[Any]]] = field(default_factory=list)
    retrieves: list[tuple[str, str]] = field(default_factory=list)
    updates: list[Record] = field(default_factory=list)
    batches: list[BatchCall] = field(default_factory=list)
    # Interleaved write order: ("update", record_id) / ("batch", n_requests)
    writes: list[tuple[str, Any]] = field(default_factory=list)


def _matches(stored: Any, wanted: Any) -> bool:
    if isinstance(stored, str) and isinstance(wanted, str):
        return stored.lower() == wanted.lower()
    if isinstance(stored, bool) or isinstance(wanted, bool):
        return stored is wanted
    return stored == wanted


class InMemoryCrmServiceAdapter:
    """
    Dict-backed implementation of CrmServiceAdapter.

    Args:
        caller: Domain name of the authenticated (invoking) user
        users: Domain names that exist remotely and can be impersonated
    """

    def __init__(self, caller: str = "deployer@contoso.com", users: Optional[Sequence[str]] = None):
        self.caller = caller
        self.users = {u.lower() for u in (users or [])}
        self.users.add(caller.lower())
        self.journal = CallJournal()
        self._records: dict[str, dict[str, Record]] = {}
        self._faults: dict[str, str] = {}

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def add(self, logical_name: str, attributes: Optional[dict[str, Any]] = None, record_id: Optional[str] = None) -> Record:
        """Store a record and return a copy of it."""
        record = Record(logical_name, record_id or str(uuid.uuid4()), dict(attributes or {}))
        self._records.setdefault(logical_name, {})[record.id] = record
        return copy.deepcopy(record)

    def fail_on(self, record_id: str, message: str) -> None:
        """Make any batched request targeting `record_id` fault with `message`."""
        self._faults[record_id] = message

    def get(self, logical_name: str, record_id: str) -> Record:
        """Return a copy of the stored record (no journaling)."""
        return copy.deepcopy(self._records[logical_name][record_id])

    # -------------------------------------------------------------------------
    # CrmServiceAdapter
    # -------------------------------------------------------------------------

    def retrieve_multiple_by_attribute(
        self,
        entity: str,
        attribute: str,
        values: Sequence[Any],
        columns: Optional[Sequence[str]] = None,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[Record]:
        self.journal.queries.append((entity, attribute, list(values)))
        results = []
        for record in self._records.get(entity, {}).values():
            if not any(_matches(record.attributes.get(attribute), v) for v in values):
                continue
            if filters and not all(_matches(record.attributes.get(k), v) for k, v in filters.items()):
                continue
            results.append(self._project(record, columns))
        return results

    def retrieve(self, entity: str, record_id: str, columns: Optional[Sequence[str]] = None) -> Record:
        self.journal.retrieves.append((entity, record_id))
        try:
            record = self._records[entity][record_id]
        except KeyError:
            raise PermanentError(f"{entity} with id {record_id} does not exist") from None
        return self._project(record, columns)

    def update(self, record: Record) -> None:
        self.journal.updates.append(copy.deepcopy(record))
        self.journal.writes.append(("update", record.id))
        self._apply_update(record)

    def execute_multiple(
        self,
        requests: Sequence[MutationRequest],
        impersonate_as: Optional[str] = None,
        fallback_to_existing_user: bool = True,
    ) -> BatchOutcome:
        executed_as = self._resolve_caller(impersonate_as, fallback_to_existing_user)
        self.journal.batches.append(BatchCall(list(requests), impersonate_as, executed_as))
        self.journal.writes.append(("batch", len(requests)))

        faults = []
        for index, request in enumerate(requests):
            message = self._faults.get(request.target_reference.id)
            if message is None:
                try:
                    self._apply(request)
                except PermanentError as e:
                    message = str(e)
            if message is not None:
                faults.append(BatchItemFault(index=index, message=message))
        return BatchOutcome.from_faults(len(requests), faults)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _resolve_caller(self, impersonate_as: Optional[str], fallback: bool) -> str:
        if not impersonate_as:
            return self.caller
        if impersonate_as.lower() in self.users:
            return impersonate_as
        if not fallback:
            raise ImpersonationError(f"User {impersonate_as} does not exist")
        logger.warning(f"User {impersonate_as} not found; executing as {self.caller}.")
        return self.caller

    def _apply(self, request: MutationRequest) -> None:
        if isinstance(request, UpdateRequest):
            self._apply_update(request.target)
        elif isinstance(request, SetStateRequest):
            target = self._stored(request.target.logical_name, request.target.id)
            target["statecode"] = request.state
            target["statuscode"] = request.status
        else:
            raise PermanentError(f"Unsupported request: {type(request).__name__}")

    def _apply_update(self, record: Record) -> None:
        stored = self._stored(record.logical_name, record.id)
        for name, value in record.attributes.items():
            stored[name] = value

    def _stored(self, entity: str, record_id: str) -> Record:
        try:
            return self._records[entity][record_id]
        except KeyError:
            raise PermanentError(f"{entity} with id {record_id} does not exist") from None

    @staticmethod
    def _project(record: Record, columns: Optional[Sequence[str]]) -> Record:
        if columns is None:
            attributes = dict(record.attributes)
        else:
            attributes = {c: record.attributes[c] for c in columns if c in record.attributes}
        return Record(record.logical_name, record.id, copy.deepcopy(attributes))
