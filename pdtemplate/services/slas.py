"""
SLA deployment steps.

SLAs must be inactive while a solution containing them is imported, so the
template deactivates them before import and reactivates them afterwards.
Default SLAs are flagged with a batched field update.
"""

from typing import Iterable, Optional

from pdtemplate import constants
from pdtemplate.schemas import BatchOutcome, MutationKind, Record, UpdateRequest
from pdtemplate.services.activation import ComponentStateService


class SlaDeploymentService(ComponentStateService):
    """Activates, deactivates and sets default SLAs by name."""

    kind = MutationKind.SLA
    name_attribute = constants.Sla.Fields.NAME
    label = "SLAs"

    def set_defaults(self, names: Optional[Iterable[str]]) -> Optional[BatchOutcome]:
        """Mark the named SLAs as the default SLA for their entity."""
        names = list(names or [])
        if not names:
            self._logger.info("No default SLAs have been configured.")
            return None

        slas = self.query_by_name(names)
        requests = [
            UpdateRequest(Record(sla.logical_name, sla.id, {constants.Sla.Fields.IS_DEFAULT: True}))
            for sla in slas
        ]
        return self._mutator.execute(requests, error_message="Error setting default SLAs.")
