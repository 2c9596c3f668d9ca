"""
BatchOutcome - aggregate result of an execute-multiple batch.

One BatchItemResponse exists per submitted request, in submission order.
A faulted outcome does not undo the items that succeeded: they are already
applied remotely.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional


@dataclass(frozen=True)
class BatchItemFault:
    """
    Error returned for one request in a batch.

    Attributes:
        index: Zero-based position of the request in the batch
        message: Error message from the remote service
        code: Remote error code, if one was returned
    """
    index: int
    message: str
    code: Optional[str] = None


@dataclass(frozen=True)
class BatchItemResponse:
    """Response for one request in a batch. `fault` is None on success."""
    index: int
    fault: Optional[BatchItemFault] = None

    @property
    def succeeded(self) -> bool:
        return self.fault is None


@dataclass
class BatchOutcome:
    """
    Ordered per-item responses for a batch.

    Attributes:
        responses: One response per submitted request
    """
    responses: list[BatchItemResponse] = field(default_factory=list)

    @classmethod
    def from_faults(cls, total: int, faults: list[BatchItemFault]) -> "BatchOutcome":
        """Build an outcome of `total` items where only `faults` failed."""
        by_index = {f.index: f for f in faults}
        return cls([BatchItemResponse(i, by_index.get(i)) for i in range(total)])

    def __len__(self) -> int:
        return len(self.responses)

    def __iter__(self) -> Iterator[BatchItemResponse]:
        return iter(self.responses)

    @property
    def is_faulted(self) -> bool:
        return any(r.fault is not None for r in self.responses)

    @property
    def faults(self) -> list[BatchItemFault]:
        return [r.fault for r in self.responses if r.fault is not None]

    @property
    def succeeded(self) -> list[int]:
        """Indexes of the requests that succeeded."""
        return [r.index for r in self.responses if r.fault is None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": len(self.responses),
            "is_faulted": self.is_faulted,
            "faults": [
                {"index": f.index, "message": f.message, "code": f.code}
                for f in self.faults
            ],
        }
