"""
Shared activate/deactivate flow for lifecycle-bearing components.

Subclasses name the entity kind, the attribute holding the component name and
any fixed filter; the state/status codes come from STATE_TABLE.
"""

import logging
from typing import Any, ClassVar, Iterable, Optional

from pdtemplate.adapters.base import CrmServiceAdapter
from pdtemplate.errors import InvalidArgumentError
from pdtemplate.schemas import BatchOutcome, DesiredState, MutationKind, Record
from pdtemplate.services.batch import BatchMutator
from pdtemplate.services.resolver import NameResolver

_VERBS = {
    DesiredState.ACTIVE: ("activate", "activating"),
    DesiredState.INACTIVE: ("deactivate", "deactivating"),
}


class ComponentStateService:
    """
    Activates and deactivates components of one entity kind by name.

    Args:
        crm_svc: Adapter for the organization service
        logger: Logger for all messages of this service
        resolver: NameResolver to use (defaults to one over crm_svc)
        mutator: BatchMutator to use (defaults to one over crm_svc)
    """

    kind: ClassVar[MutationKind]
    name_attribute: ClassVar[str] = "name"
    filters: ClassVar[Optional[dict[str, Any]]] = None
    label: ClassVar[str] = "components"

    def __init__(
        self,
        crm_svc: CrmServiceAdapter,
        logger: Optional[logging.Logger] = None,
        resolver: Optional[NameResolver] = None,
        mutator: Optional[BatchMutator] = None,
    ):
        if crm_svc is None:
            raise InvalidArgumentError("crm_svc is required")
        self._crm_svc = crm_svc
        self._logger = logger or logging.getLogger(type(self).__module__)
        self._resolver = resolver or NameResolver(crm_svc, self._logger)
        self._mutator = mutator or BatchMutator(crm_svc, self._logger)

    def activate(self, names: Optional[Iterable[str]]) -> Optional[BatchOutcome]:
        """Set the named components to their active state. Returns None when nothing is configured."""
        return self._set_state(names, DesiredState.ACTIVE)

    def deactivate(self, names: Optional[Iterable[str]]) -> Optional[BatchOutcome]:
        """Set the named components to their inactive state. Returns None when nothing is configured."""
        return self._set_state(names, DesiredState.INACTIVE)

    def query_by_name(self, names: Iterable[str]) -> list[Record]:
        return self._resolver.resolve(
            self.kind.value,
            self.name_attribute,
            names,
            columns=[],
            filters=self.filters,
            label=self.label,
        )

    def _set_state(self, names: Optional[Iterable[str]], desired: DesiredState) -> Optional[BatchOutcome]:
        verb, gerund = _VERBS[desired]
        names = list(names or [])
        if not names:
            self._logger.info(f"No {self.label} to {verb} have been configured.")
            return None

        records = self.query_by_name(names)
        return self._mutator.set_state(
            records, self.kind, desired, error_message=f"Error {gerund} {self.label}."
        )
