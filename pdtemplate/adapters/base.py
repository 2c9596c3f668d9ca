"""
CRM service adapter interface.

This module defines the protocol that any organization-service client must
implement, so the deployment services never talk to a transport directly.

Implementations:
- InMemoryCrmServiceAdapter: dict-backed store for tests and local runs
- DryRunCrmServiceAdapter: delegates reads, logs writes without applying them
- DataverseWebApiAdapter: Dataverse Web API over HTTP
"""

from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from pdtemplate.schemas import BatchOutcome, MutationRequest, Record


@runtime_checkable
class CrmServiceAdapter(Protocol):
    """
    Protocol for the organization-service operations the deployment steps need.

    Column sets follow one rule everywhere: None means all columns, an empty
    sequence means the id only.
    """

    def retrieve_multiple_by_attribute(
        self,
        entity: str,
        attribute: str,
        values: Sequence[Any],
        columns: Optional[Sequence[str]] = None,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[Record]:
        """
        Query records whose `attribute` equals any of `values`.

        Args:
            entity: Entity logical name
            attribute: Attribute to match on
            values: Accepted values (OR semantics)
            columns: Columns to return
            filters: Extra attribute == value conditions, AND'ed with the match

        Returns:
            Matching records, in no particular order
        """
        ...

    def retrieve(
        self,
        entity: str,
        record_id: str,
        columns: Optional[Sequence[str]] = None,
    ) -> Record:
        """Retrieve a single record by id."""
        ...

    def update(self, record: Record) -> None:
        """Synchronously update the attributes carried by `record`."""
        ...

    def execute_multiple(
        self,
        requests: Sequence[MutationRequest],
        impersonate_as: Optional[str] = None,
        fallback_to_existing_user: bool = True,
    ) -> BatchOutcome:
        """
        Execute requests as one batch with continue-on-error semantics.

        Args:
            requests: Requests to submit, in order
            impersonate_as: Domain name of the user to execute as
            fallback_to_existing_user: Execute as the authenticated user when
                `impersonate_as` does not exist remotely

        Returns:
            One response per request, in submission order

        Raises:
            ImpersonationError: If the user does not exist and fallback is disabled
        """
        ...
