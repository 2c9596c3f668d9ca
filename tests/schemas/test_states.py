"""Tests for the desired-state to state/status code table."""

import pytest

from pdtemplate.schemas import STATE_TABLE, DesiredState, MutationKind, StateCode, state_for


class TestStateTable:
    """The table holds the remote platform's fixed state/status pairs."""

    def test_process_active(self):
        assert state_for(MutationKind.PROCESS, DesiredState.ACTIVE) == StateCode(1, 2)

    def test_process_inactive(self):
        assert state_for(MutationKind.PROCESS, DesiredState.INACTIVE) == StateCode(0, 1)

    def test_sdk_step_enabled_and_disabled(self):
        assert state_for(MutationKind.SDK_STEP, DesiredState.ACTIVE) == StateCode(0, 1)
        assert state_for(MutationKind.SDK_STEP, DesiredState.INACTIVE) == StateCode(1, 2)

    def test_sla(self):
        assert state_for(MutationKind.SLA, DesiredState.ACTIVE) == StateCode(1, 2)
        assert state_for(MutationKind.SLA, DesiredState.INACTIVE) == StateCode(0, 1)

    def test_every_kind_maps_both_states(self):
        for kind in MutationKind:
            for desired in DesiredState:
                assert (kind, desired) in STATE_TABLE

    def test_accepts_raw_values(self):
        """Kinds and states can be passed as their string values."""
        assert state_for("workflow", "active") == StateCode(1, 2)

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError):
            state_for("account", DesiredState.ACTIVE)

    def test_state_code_fields(self):
        code = state_for(MutationKind.PROCESS, DesiredState.ACTIVE)
        assert code.state == 1
        assert code.status == 2
