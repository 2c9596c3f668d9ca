"""
Connection reference deployment.

Points connection references at the connections configured for the target
environment. Runs in two passes:
1. Custom connector pre-pass: references to custom connectors get their
   connector id rewritten to the canonical form for the connector's internal
   id, one update at a time and only when the stored value differs.
2. Main batch: every resolved reference gets its connection id set from the
   connection map, in a single batch, optionally impersonating the
   connection owner.
"""

import logging
from typing import Mapping, Optional

from pdtemplate import constants
from pdtemplate.adapters.base import CrmServiceAdapter
from pdtemplate.errors import InvalidArgumentError
from pdtemplate.schemas import BatchOutcome, Record, UpdateRequest
from pdtemplate.services.batch import BatchMutator
from pdtemplate.services.resolver import NameResolver

Fields = constants.ConnectionReference.Fields


def normalize_connection_map(connection_map: Mapping[str, str]) -> dict[str, str]:
    """Lowercase connection reference logical names; later keys win on collision."""
    return {name.lower(): connection_id for name, connection_id in connection_map.items()}


def custom_connector_id(internal_id: str) -> str:
    return constants.CUSTOM_CONNECTOR_ID_FORMAT.format(internal_id=internal_id)


class ConnectionReferenceDeploymentService:
    """
    Functionality related to deploying connection references.

    Args:
        crm_svc: Adapter for the organization service
        logger: Logger for all messages of this service
        resolver: NameResolver to use (defaults to one over crm_svc)
        mutator: BatchMutator to use (defaults to one over crm_svc)
    """

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
        self._logger = logger or logging.getLogger(__name__)
        self._resolver = resolver or NameResolver(crm_svc, self._logger)
        self._mutator = mutator or BatchMutator(crm_svc, self._logger)

    def connect_connection_references(
        self,
        connection_map: Optional[Mapping[str, str]],
        connection_owner: Optional[str] = None,
    ) -> Optional[BatchOutcome]:
        """
        Update connection references to use the provided connections.

        Args:
            connection_map: Connection id by connection reference logical name
            connection_owner: Domain name of the connections' owner. If not
                provided, the authenticated user must own the connections.

        Returns:
            Outcome of the main batch, or None when no connections are configured
        """
        if not connection_map:
            self._logger.info("No connections have been configured.")
            return None

        connection_map = normalize_connection_map(connection_map)
        connection_references = self._get_connection_references(list(connection_map))

        self._set_custom_connector_internal_ids(connection_references)

        return self._connect_references(connection_references, connection_map, connection_owner)

    def _get_connection_references(self, logical_names: list[str]) -> list[Record]:
        return self._resolver.resolve(
            constants.ConnectionReference.LOGICAL_NAME,
            Fields.CONNECTION_REFERENCE_LOGICAL_NAME,
            logical_names,
            label="connection references",
        )

    def _set_custom_connector_internal_ids(self, connection_references: list[Record]) -> int:
        """Rewrite custom connector ids that are not in canonical form. Returns the number of writes."""
        writes = 0
        for connection_reference in connection_references:
            connector_ref = connection_reference.get_reference(Fields.CUSTOM_CONNECTOR_ID)
            if connector_ref is None:
                continue

            connector = self._crm_svc.retrieve(
                constants.Connector.LOGICAL_NAME,
                connector_ref.id,
                columns=[constants.Connector.Fields.CONNECTOR_INTERNAL_ID],
            )
            internal_id = connector.get_str(constants.Connector.Fields.CONNECTOR_INTERNAL_ID)
            if not internal_id:
                self._logger.warning(f"Custom connector {connector_ref.id} has no internal id.")
                continue

            old_value = connection_reference.get_str(Fields.CONNECTOR_ID)
            new_value = custom_connector_id(internal_id)

            if old_value == new_value:
                continue

            self._logger.debug(
                f"Updating connection reference connector id from '{old_value}' to '{new_value}'."
            )
            self._crm_svc.update(Record(
                connection_reference.logical_name,
                connection_reference.id,
                {Fields.CONNECTOR_ID: new_value},
            ))
            connection_reference[Fields.CONNECTOR_ID] = new_value
            writes += 1
        return writes

    def _connect_references(
        self,
        connection_references: list[Record],
        connection_map: dict[str, str],
        connection_owner: Optional[str],
    ) -> BatchOutcome:
        requests = []
        for connection_reference in connection_references:
            logical_name = (connection_reference.get_str(Fields.CONNECTION_REFERENCE_LOGICAL_NAME) or "").lower()
            connection_id = connection_map.get(logical_name)
            if connection_id is None:
                self._logger.warning(
                    f"No connection configured for connection reference '{logical_name}' ({connection_reference.id}); skipping."
                )
                continue

            requests.append(UpdateRequest(Record(
                constants.ConnectionReference.LOGICAL_NAME,
                connection_reference.id,
                {
                    Fields.CONNECTION_REFERENCE_ID: connection_reference.id,
                    Fields.CONNECTION_ID: connection_id,
                },
            )))

        if connection_owner:
            self._logger.info(f"Impersonating {connection_owner} as owner of connections.")

        return self._mutator.execute(requests, impersonate_as=connection_owner)
