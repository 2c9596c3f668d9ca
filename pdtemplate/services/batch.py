"""
BatchMutator - submit mutation requests as one continue-on-error batch.

The remote service evaluates each request independently and returns one
response per request. Faulted items are logged and returned to the caller;
they are never raised, so a bad record does not block the rest of the
deployment. Transport failures from the adapter propagate unchanged.
"""

import logging
from typing import Optional, Sequence

from pdtemplate.adapters.base import CrmServiceAdapter
from pdtemplate.errors import InvalidArgumentError, PermanentError
from pdtemplate.schemas import (
    BatchOutcome,
    DesiredState,
    MutationKind,
    MutationRequest,
    Record,
    SetStateRequest,
    state_for,
)
from pdtemplate.utils import log_execute_multiple_errors


class BatchMutator:
    """
    Executes batches of MutationRequests through a CrmServiceAdapter.

    Args:
        crm_svc: Adapter for the organization service
        logger: Logger for impersonation and per-item error messages
    """

    def __init__(self, crm_svc: CrmServiceAdapter, logger: Optional[logging.Logger] = None):
        if crm_svc is None:
            raise InvalidArgumentError("crm_svc is required")
        self._crm_svc = crm_svc
        self._logger = logger or logging.getLogger(__name__)

    def execute(
        self,
        requests: Sequence[MutationRequest],
        impersonate_as: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> BatchOutcome:
        """
        Execute `requests` as a single batch.

        Args:
            requests: Requests to submit, in order
            impersonate_as: Domain name of the user to execute as. Falls back
                to the authenticated user when that user does not exist.
            error_message: Summary logged ahead of the per-item lines when
                any request fails

        Returns:
            BatchOutcome with one response per request

        Raises:
            InvalidArgumentError: If requests is None
            PermanentError: If the adapter returns the wrong number of responses
        """
        if requests is None:
            raise InvalidArgumentError("requests is required")
        requests = list(requests)
        if not requests:
            self._logger.debug("No requests to execute.")
            return BatchOutcome()

        if impersonate_as:
            self._logger.debug(f"Executing {len(requests)} request(s) as {impersonate_as}.")

        outcome = self._crm_svc.execute_multiple(
            requests,
            impersonate_as=impersonate_as or None,
            fallback_to_existing_user=True,
        )

        if len(outcome) != len(requests):
            raise PermanentError(
                f"Batch returned {len(outcome)} responses for {len(requests)} requests"
            )

        if outcome.is_faulted:
            if error_message:
                self._logger.error(error_message)
            log_execute_multiple_errors(self._logger, outcome, requests)
        else:
            self._logger.debug(f"Executed {len(requests)} request(s) without errors.")
        return outcome

    def set_state(
        self,
        records: Sequence[Record],
        kind: MutationKind,
        desired: DesiredState,
        error_message: Optional[str] = None,
    ) -> BatchOutcome:
        """Batch a state change of `records` to the state/status pair for `desired`."""
        code = state_for(kind, desired)
        requests = [
            SetStateRequest(target=r.to_reference(), state=code.state, status=code.status)
            for r in records
        ]
        return self.execute(requests, error_message=error_message)
