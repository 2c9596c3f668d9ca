"""Activation and deactivation of processes (workflows, flows, business rules)."""

from typing import Iterable

from pdtemplate import constants
from pdtemplate.schemas import MutationKind, Record
from pdtemplate.services.activation import ComponentStateService


class ProcessActivatorService(ComponentStateService):
    """
    Sets processes to the state configured for them after deployment.

    Only workflow definitions are matched, never the activation records
    created for a running process.
    """

    kind = MutationKind.PROCESS
    name_attribute = constants.Workflow.Fields.NAME
    filters = {constants.Workflow.Fields.TYPE: constants.Workflow.TYPE_DEFINITION}
    label = "processes"

    def query_workflows_by_name(self, names: Iterable[str]) -> list[Record]:
        return self.query_by_name(names)
