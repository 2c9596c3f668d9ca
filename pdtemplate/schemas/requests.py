"""
Mutation requests consumed by the batch executor.

Each request is immutable once built and is submitted exactly once as part
of an execute-multiple batch.
"""

from dataclasses import dataclass
from typing import Union

from .records import EntityReference, Record


@dataclass(frozen=True)
class UpdateRequest:
    """Set the attributes carried by `target` on the record with the same id."""
    target: Record

    request_name = "Update"

    @property
    def target_reference(self) -> EntityReference:
        return self.target.to_reference()


@dataclass(frozen=True)
class SetStateRequest:
    """Move a record to a state/status code pair."""
    target: EntityReference
    state: int
    status: int

    request_name = "SetState"

    @property
    def target_reference(self) -> EntityReference:
        return self.target


MutationRequest = Union[UpdateRequest, SetStateRequest]


def describe_request(request: MutationRequest) -> str:
    """One-line description used in log messages."""
    ref = request.target_reference
    return f"{request.request_name} {ref.logical_name} {ref.id}"
