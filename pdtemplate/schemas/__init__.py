"""
pdtemplate.schemas - data structures passed between the services and the CRM adapter.

Record -> MutationRequest -> BatchOutcome

Lifecycle:
1. Record: resolved from the remote service by the NameResolver
2. UpdateRequest / SetStateRequest: built per orchestration call
3. BatchOutcome: per-item result of one execute-multiple call
"""

from .records import AttributeValue, EntityReference, Record
from .requests import MutationRequest, SetStateRequest, UpdateRequest, describe_request
from .outcome import BatchItemFault, BatchItemResponse, BatchOutcome
from .states import STATE_TABLE, DesiredState, MutationKind, StateCode, state_for

__all__ = [
    # Records
    "AttributeValue",
    "EntityReference",
    "Record",
    # Requests
    "MutationRequest",
    "SetStateRequest",
    "UpdateRequest",
    "describe_request",
    # Outcome
    "BatchItemFault",
    "BatchItemResponse",
    "BatchOutcome",
    # States
    "STATE_TABLE",
    "DesiredState",
    "MutationKind",
    "StateCode",
    "state_for",
]
