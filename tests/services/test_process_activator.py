"""Tests for ProcessActivatorService."""

import pytest

from pdtemplate.errors import InvalidArgumentError, UnresolvedRecordsError
from pdtemplate.schemas import SetStateRequest
from pdtemplate.services import NameResolver, ProcessActivatorService


@pytest.fixture
def service(crm, logger):
    return ProcessActivatorService(crm, logger)


class TestActivate:

    def test_activate_uses_activated_codes(self, service, crm, add_workflow):
        """Activation sends statecode 1 / statuscode 2 to every matched workflow."""
        a, b = add_workflow("a"), add_workflow("b")

        outcome = service.activate(["a", "b"])

        assert not outcome.is_faulted
        assert crm.journal.batches[0].requests == [
            SetStateRequest(a.to_reference(), 1, 2),
            SetStateRequest(b.to_reference(), 1, 2),
        ]
        stored = crm.get("workflow", a.id)
        assert (stored.get_int("statecode"), stored.get_int("statuscode")) == (1, 2)

    def test_deactivate_uses_draft_codes(self, service, crm, add_workflow):
        a = add_workflow("a", state=1)

        service.deactivate(["a"])

        assert crm.journal.batches[0].requests == [SetStateRequest(a.to_reference(), 0, 1)]

    def test_only_definitions_are_matched(self, service, crm, add_workflow):
        definition = add_workflow("a")
        add_workflow("a", workflow_type=2)

        service.activate(["a"])

        [request] = crm.journal.batches[0].requests
        assert request.target.id == definition.id
        assert crm.journal.queries == [("workflow", "name", ["a"])]

    def test_partial_failure_logs_summary(self, service, crm, add_workflow, log_sink):
        add_workflow("a")
        b = add_workflow("b")
        add_workflow("c")
        crm.fail_on(b.id, "Process has no steps")

        outcome = service.activate(["a", "b", "c"])

        assert outcome.succeeded == [0, 2]
        assert log_sink.errors[0] == "Error activating processes."
        assert log_sink.errors[1].startswith("Request 2 of 3")
        assert len(log_sink.errors) == 2

    def test_deactivation_failure_summary(self, service, crm, add_workflow, log_sink):
        a = add_workflow("a", state=1)
        crm.fail_on(a.id, "locked")

        service.deactivate(["a"])

        assert log_sink.errors[0] == "Error deactivating processes."

    def test_missing_process_is_skipped(self, service, crm, add_workflow, log_sink):
        add_workflow("a")

        outcome = service.activate(["a", "b"])

        assert len(outcome) == 1
        assert "Found 1 of 2 processes." in log_sink.infos
        assert log_sink.errors == []


class TestNothingConfigured:

    @pytest.mark.parametrize("names", [None, []])
    def test_no_remote_calls(self, service, crm, log_sink, names):
        assert service.activate(names) is None
        assert service.deactivate(names) is None

        assert crm.journal.queries == []
        assert crm.journal.batches == []
        assert log_sink.infos == [
            "No processes to activate have been configured.",
            "No processes to deactivate have been configured.",
        ]


class TestQueryWorkflowsByName:

    def test_returns_ids_only(self, service, add_workflow):
        a = add_workflow("a")
        [record] = service.query_workflows_by_name(["a"])
        assert record.id == a.id
        assert "statecode" not in record

    def test_strict_resolver(self, crm, logger):
        service = ProcessActivatorService(crm, logger, resolver=NameResolver(crm, logger, strict=True))
        with pytest.raises(UnresolvedRecordsError):
            service.activate(["missing"])
        assert crm.journal.batches == []


def test_requires_adapter():
    with pytest.raises(InvalidArgumentError):
        ProcessActivatorService(None)
