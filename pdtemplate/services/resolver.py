"""
NameResolver - resolve human-readable names to remote records.

One attribute-equality query per call (OR across the requested values),
AND'ed with any fixed filter the caller supplies. Names that match nothing
are logged and dropped: a package may reference components that do not
exist in every target environment.
"""

import logging
from typing import Any, Iterable, Optional, Sequence

from pdtemplate.adapters.base import CrmServiceAdapter
from pdtemplate.errors import InvalidArgumentError, UnresolvedRecordsError
from pdtemplate.schemas import Record


class NameResolver:
    """
    Resolves names to records through a CrmServiceAdapter.

    Args:
        crm_svc: Adapter for the organization service
        logger: Logger for resolution messages
        strict: Raise UnresolvedRecordsError instead of dropping unmatched names
    """

    def __init__(self, crm_svc: CrmServiceAdapter, logger: Optional[logging.Logger] = None, strict: bool = False):
        if crm_svc is None:
            raise InvalidArgumentError("crm_svc is required")
        self._crm_svc = crm_svc
        self._logger = logger or logging.getLogger(__name__)
        self.strict = strict

    def resolve(
        self,
        entity: str,
        attribute: str,
        values: Optional[Iterable[str]],
        columns: Optional[Sequence[str]] = None,
        filters: Optional[dict[str, Any]] = None,
        label: Optional[str] = None,
    ) -> list[Record]:
        """
        Resolve `values` of `attribute` on `entity` to records.

        Args:
            entity: Entity logical name
            attribute: Attribute holding the name
            values: Names to resolve
            columns: Columns to return (None = all)
            filters: Fixed attribute == value conditions
            label: Plural noun used in log messages (defaults to "{entity} records")

        Returns:
            The matched records; may be fewer than `values`

        Raises:
            InvalidArgumentError: If values is None
            UnresolvedRecordsError: In strict mode, if any name is unmatched
        """
        if values is None:
            raise InvalidArgumentError("values is required")

        label = label or f"{entity} records"
        wanted = list(dict.fromkeys(values))
        if not wanted:
            self._logger.info(f"No {label} have been configured.")
            return []

        if columns is not None and attribute not in columns:
            columns = [*columns, attribute]

        records = self._crm_svc.retrieve_multiple_by_attribute(
            entity, attribute, wanted, columns=columns, filters=filters
        )
        self._logger.info(f"Found {len(records)} of {len(wanted)} {label}.")

        unresolved = self._unresolved(wanted, records, attribute)
        if unresolved:
            if self.strict:
                raise UnresolvedRecordsError(entity, unresolved)
            self._logger.warning(f"Could not find {label}: {', '.join(unresolved)}")
        return records

    @staticmethod
    def _unresolved(wanted: list[str], records: list[Record], attribute: str) -> list[str]:
        found = {
            value.lower()
            for value in (r.attributes.get(attribute) for r in records)
            if isinstance(value, str)
        }
        return [w for w in wanted if w.lower() not in found]
