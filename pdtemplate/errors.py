"""
Error classes for pdtemplate deployment steps.

These error types separate the failures that halt a deployment from the
ones that are reported and skipped:
- TransientError: Safe to retry (rate limits, network issues, temporary failures)
- PermanentError: Do not retry (auth failures, malformed requests, missing resources)
- InvalidArgumentError: A caller broke a service contract (fails fast)

Record-level batch faults are NOT exceptions. They are carried in a
BatchOutcome and logged by the BatchMutator, so one bad record never blocks
the rest of the deployment.
"""


class PdtError(Exception):
    """Base exception for pdtemplate."""
    pass


class TransientError(PdtError):
    """
    Transient transport error - safe to retry.

    Examples:
    - Rate limit exceeded (429)
    - Network timeout
    - Service temporarily unavailable (5xx)
    - Connection reset
    """
    pass


class PermanentError(PdtError):
    """
    Permanent transport error - do not retry.

    Examples:
    - Authorization failed (401/403)
    - Malformed request (400)
    - Resource not found (404)
    - Adapter returned a response that breaks its contract
    """
    pass


class ImpersonationError(PermanentError):
    """Impersonation target does not exist and fallback is disabled."""
    pass


class InvalidArgumentError(PdtError, ValueError):
    """A required argument was None or otherwise violates the call contract."""
    pass


class AttributeKindError(PdtError, TypeError):
    """A record attribute holds a different kind of value than requested."""
    pass


class UnresolvedRecordsError(PdtError):
    """
    Raised by a strict NameResolver when some names did not match a record.

    Attributes:
        entity: Logical name of the entity that was queried
        unresolved: The values that matched no record
    """

    def __init__(self, entity: str, unresolved: list[str]):
        self.entity = entity
        self.unresolved = unresolved
        super().__init__(
            f"Could not resolve {len(unresolved)} {entity} record(s): {', '.join(unresolved)}"
        )
