"""
Desired lifecycle state and its mapping to remote state/status codes.

The remote platform changes a record's lifecycle with a (statecode,
statuscode) pair whose values differ per entity kind. STATE_TABLE is the
single place these pairs are defined.
"""

from enum import Enum
from typing import NamedTuple

from pdtemplate import constants


class DesiredState(str, Enum):
    """Lifecycle state a component should be left in after deployment."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class MutationKind(str, Enum):
    """Lifecycle-bearing entity kinds, valued by their logical name."""
    PROCESS = constants.Workflow.LOGICAL_NAME
    SDK_STEP = constants.SdkMessageProcessingStep.LOGICAL_NAME
    SLA = constants.Sla.LOGICAL_NAME


class StateCode(NamedTuple):
    state: int
    status: int


STATE_TABLE: dict[tuple[MutationKind, DesiredState], StateCode] = {
    # workflow: Draft 0/1, Activated 1/2
    (MutationKind.PROCESS, DesiredState.ACTIVE): StateCode(1, 2),
    (MutationKind.PROCESS, DesiredState.INACTIVE): StateCode(0, 1),
    # sdkmessageprocessingstep: Enabled 0/1, Disabled 1/2
    (MutationKind.SDK_STEP, DesiredState.ACTIVE): StateCode(0, 1),
    (MutationKind.SDK_STEP, DesiredState.INACTIVE): StateCode(1, 2),
    # sla: Draft 0/1, Active 1/2
    (MutationKind.SLA, DesiredState.ACTIVE): StateCode(1, 2),
    (MutationKind.SLA, DesiredState.INACTIVE): StateCode(0, 1),
}


def state_for(kind: MutationKind, desired: DesiredState) -> StateCode:
    """
    Look up the state/status pair for a kind and desired state.

    Raises:
        KeyError: If the combination is not in STATE_TABLE
    """
    try:
        return STATE_TABLE[(MutationKind(kind), DesiredState(desired))]
    except KeyError:
        raise KeyError(f"No state mapping for {kind!s}/{desired!s}") from None
