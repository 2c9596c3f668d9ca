"""
Deployment services.

Each service resolves named records, builds a batch of mutations and executes
it with continue-on-error semantics through the BatchMutator:

    from pdtemplate.services import ProcessActivatorService

    ProcessActivatorService(crm_svc).activate(["Send welcome email"])
"""

from pdtemplate.services.resolver import NameResolver
from pdtemplate.services.batch import BatchMutator
from pdtemplate.services.activation import ComponentStateService
from pdtemplate.services.process_activator import ProcessActivatorService
from pdtemplate.services.sdk_steps import SdkStepActivatorService
from pdtemplate.services.slas import SlaDeploymentService
from pdtemplate.services.connection_references import (
    ConnectionReferenceDeploymentService,
    custom_connector_id,
    normalize_connection_map,
)

__all__ = [
    "NameResolver",
    "BatchMutator",
    "ComponentStateService",
    "ProcessActivatorService",
    "SdkStepActivatorService",
    "SlaDeploymentService",
    "ConnectionReferenceDeploymentService",
    "custom_connector_id",
    "normalize_connection_map",
]
