"""Tests for BatchMutator.

Tests cover:
- Empty batches make no remote call
- Partial failure is reported per item and never raised
- Impersonation with fallback to the invoking identity
- State changes built from the state table
"""

import logging
from unittest.mock import MagicMock

import pytest

from pdtemplate.errors import InvalidArgumentError, PermanentError
from pdtemplate.schemas import (
    BatchOutcome,
    DesiredState,
    MutationKind,
    Record,
    SetStateRequest,
    UpdateRequest,
)
from pdtemplate.services import BatchMutator


@pytest.fixture
def mutator(crm, logger):
    return BatchMutator(crm, logger)


def _set_active(record):
    return SetStateRequest(record.to_reference(), 1, 2)


class TestExecute:

    def test_empty_requests_make_no_call(self, mutator, crm):
        outcome = mutator.execute([])
        assert len(outcome) == 0
        assert crm.journal.batches == []

    def test_none_requests_is_contract_violation(self, mutator):
        with pytest.raises(InvalidArgumentError):
            mutator.execute(None)

    def test_single_batch_for_all_requests(self, mutator, crm, add_workflow):
        records = [add_workflow(n) for n in ("a", "b", "c")]

        outcome = mutator.execute([_set_active(r) for r in records])

        assert len(crm.journal.batches) == 1
        assert len(crm.journal.batches[0].requests) == 3
        assert not outcome.is_faulted

    def test_partial_failure_is_reported_not_raised(self, mutator, crm, add_workflow, log_sink):
        """Request #2 of 3 fails: items 1 and 3 succeed, one error line names item 2."""
        a, b, c = add_workflow("a"), add_workflow("b"), add_workflow("c")
        crm.fail_on(b.id, "The process is missing a required step")

        outcome = mutator.execute([_set_active(a), _set_active(b), _set_active(c)])

        assert outcome.is_faulted
        assert outcome.succeeded == [0, 2]
        assert [f.index for f in outcome.faults] == [1]
        assert len(log_sink.errors) == 1
        assert log_sink.errors[0] == (
            f"Request 2 of 3 (SetState workflow {b.id}) failed: The process is missing a required step"
        )
        assert crm.get("workflow", a.id).get_int("statecode") == 1
        assert crm.get("workflow", c.id).get_int("statecode") == 1

    def test_error_line_carries_request_index(self, mutator, crm, add_workflow, log_sink):
        a = add_workflow("a")
        crm.fail_on(a.id, "locked")
        mutator.execute([_set_active(a)])
        assert log_sink.records[-1].request_index == 0

    def test_wrong_response_count_raises(self, logger):
        crm = MagicMock()
        crm.execute_multiple.return_value = BatchOutcome.from_faults(1, [])

        with pytest.raises(PermanentError, match="1 responses for 2 requests"):
            BatchMutator(crm, logger).execute([
                UpdateRequest(Record("workflow", "1", {"name": "a"})),
                UpdateRequest(Record("workflow", "2", {"name": "b"})),
            ])

    def test_transport_errors_propagate(self, logger):
        crm = MagicMock()
        crm.execute_multiple.side_effect = PermanentError("401 Unauthorized")

        with pytest.raises(PermanentError):
            BatchMutator(crm, logger).execute([UpdateRequest(Record("workflow", "1", {"name": "a"}))])


class TestImpersonation:

    def test_executes_as_given_user(self, mutator, crm, add_workflow, log_sink):
        a = add_workflow("a")
        mutator.execute([_set_active(a)], impersonate_as="connections.owner@contoso.com")

        batch = crm.journal.batches[0]
        assert batch.executed_as == "connections.owner@contoso.com"
        assert "Executing 1 request(s) as connections.owner@contoso.com." in log_sink.messages(logging.DEBUG)
        assert log_sink.infos == []

    def test_invalid_identity_falls_back(self, mutator, crm, add_workflow):
        """An unknown impersonation target runs the batch as the invoking identity."""
        a = add_workflow("a")

        outcome = mutator.execute([_set_active(a)], impersonate_as="ghost@contoso.com")

        assert not outcome.is_faulted
        assert crm.journal.batches[0].executed_as == "deployer@contoso.com"
        assert crm.get("workflow", a.id).get_int("statecode") == 1

    def test_requests_fallback_from_adapter(self, logger):
        crm = MagicMock()
        crm.execute_multiple.return_value = BatchOutcome.from_faults(1, [])

        BatchMutator(crm, logger).execute(
            [UpdateRequest(Record("workflow", "1", {"name": "a"}))], impersonate_as="x@y.com"
        )

        assert crm.execute_multiple.call_args.kwargs == {
            "impersonate_as": "x@y.com",
            "fallback_to_existing_user": True,
        }


class TestSetState:

    def test_uses_state_table(self, mutator, crm, add_workflow):
        a = add_workflow("a")
        mutator.set_state([a], MutationKind.PROCESS, DesiredState.INACTIVE)

        request = crm.journal.batches[0].requests[0]
        assert request == SetStateRequest(a.to_reference(), 0, 1)
        assert crm.journal.batches[0].impersonate_as is None

    def test_no_records_no_call(self, mutator, crm):
        mutator.set_state([], MutationKind.SDK_STEP, DesiredState.ACTIVE)
        assert crm.journal.batches == []


def test_requires_adapter():
    with pytest.raises(InvalidArgumentError):
        BatchMutator(None)


class TestErrorSummary:

    def test_summary_precedes_item_lines(self, mutator, crm, add_workflow, log_sink):
        a = add_workflow("a")
        crm.fail_on(a.id, "locked")

        mutator.execute([_set_active(a)], error_message="Error activating processes.")

        assert log_sink.errors == [
            "Error activating processes.",
            f"Request 1 of 1 (SetState workflow {a.id}) failed: locked",
        ]

    def test_no_summary_without_faults(self, mutator, add_workflow, log_sink):
        a = add_workflow("a")
        mutator.execute([_set_active(a)], error_message="Error activating processes.")
        assert log_sink.errors == []
