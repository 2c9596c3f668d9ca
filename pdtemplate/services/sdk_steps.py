"""Enabling and disabling SDK message processing steps (plug-in steps)."""

from pdtemplate import constants
from pdtemplate.schemas import MutationKind
from pdtemplate.services.activation import ComponentStateService


class SdkStepActivatorService(ComponentStateService):
    """Sets SDK message processing steps to their configured state."""

    kind = MutationKind.SDK_STEP
    name_attribute = constants.SdkMessageProcessingStep.Fields.NAME
    label = "SDK steps"
