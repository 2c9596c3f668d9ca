"""Tests for BatchOutcome aggregation."""

from pdtemplate.schemas import BatchItemFault, BatchItemResponse, BatchOutcome


class TestBatchOutcome:

    def test_empty_outcome_is_not_faulted(self):
        outcome = BatchOutcome()
        assert len(outcome) == 0
        assert not outcome.is_faulted

    def test_from_faults_keeps_length_and_order(self):
        outcome = BatchOutcome.from_faults(3, [BatchItemFault(index=1, message="boom")])

        assert len(outcome) == 3
        assert [r.index for r in outcome] == [0, 1, 2]
        assert outcome.is_faulted
        assert outcome.succeeded == [0, 2]
        assert [f.index for f in outcome.faults] == [1]

    def test_all_succeeded(self):
        outcome = BatchOutcome.from_faults(2, [])
        assert not outcome.is_faulted
        assert all(r.succeeded for r in outcome)

    def test_to_dict(self):
        outcome = BatchOutcome([
            BatchItemResponse(0),
            BatchItemResponse(1, BatchItemFault(1, "Access denied", code="0x80040220")),
        ])
        assert outcome.to_dict() == {
            "total": 2,
            "is_faulted": True,
            "faults": [{"index": 1, "message": "Access denied", "code": "0x80040220"}],
        }
