"""Tests for metadata models, fix parameters and run statistics."""

import pytest
from pydantic import ValidationError

from bpsets.contracts.models import (
    BPSetMetadata,
    BPSetRecord,
    BPSetStats,
    BPSetStatus,
    FixParameter,
    RequiredParameter,
    normalize_fix_parameters,
)


class TestBPSetMetadata:
    def test_defaults(self):
        metadata = BPSetMetadata(name="Rule")
        assert metadata.priority == 3
        assert metadata.required_parameters_for_fix == ()
        assert metadata.is_fix_function_uses_destructive_command is False

    def test_priority_must_be_positive(self):
        with pytest.raises(ValidationError):
            BPSetMetadata(name="Rule", priority=0)

    def test_name_is_required(self):
        with pytest.raises(ValidationError):
            BPSetMetadata(name="")

    def test_metadata_is_immutable(self):
        metadata = BPSetMetadata(name="Rule")
        with pytest.raises(ValidationError):
            metadata.priority = 1

    def test_required_parameter_names(self):
        metadata = BPSetMetadata(
            name="Rule",
            required_parameters_for_fix=[
                RequiredParameter(name="iam-instance-profile", example="EC2InstanceProfile"),
                RequiredParameter(name="retention-period-days"),
            ],
        )
        assert metadata.required_parameter_names == ["iam-instance-profile", "retention-period-days"]

    def test_dump_by_alias_round_trips(self):
        metadata = BPSetMetadata(name="Rule", priority_reason="why", aws_service="EC2")
        dumped = metadata.model_dump(by_alias=True)
        assert dumped["priorityReason"] == "why"
        assert BPSetMetadata.model_validate(dumped) == metadata


class TestFixParameters:
    def test_later_duplicates_win(self):
        params = normalize_fix_parameters([("days", "7"), FixParameter(name="days", value="30")])
        assert params == {"days": "30"}

    def test_none_is_empty(self):
        assert normalize_fix_parameters(None) == {}

    def test_mapping_needs_name_and_value(self):
        with pytest.raises(ValidationError):
            normalize_fix_parameters([{"name": "days"}])


class TestBPSetStats:
    def test_record_error_sets_status(self):
        stats = BPSetStats()
        entry = stats.record_error("boom")
        assert stats.status == BPSetStatus.ERROR
        assert stats.error_message == [entry]

    def test_copy_does_not_alias_lists(self):
        stats = BPSetStats(compliant_resources=["a"])
        clone = stats.copy()
        clone.compliant_resources.append("b")
        assert stats.compliant_resources == ["a"]

    def test_to_dict(self):
        stats = BPSetStats(non_compliant_resources=["x"])
        stats.record_error("boom")
        payload = stats.to_dict()
        assert payload["status"] == "ERROR"
        assert payload["non_compliant_resources"] == ["x"]
        assert payload["error_message"][0]["message"] == "boom"
        assert payload["error_message"][0]["code"] == "SYSTEM_001"
        assert "date" in payload["error_message"][0]


def test_record_to_dict_merges_metadata_and_stats():
    record = BPSetRecord(metadata=BPSetMetadata(name="Rule"), idx=4)
    payload = record.to_dict()
    assert record.name == "Rule"
    assert payload["name"] == "Rule"
    assert payload["status"] == "LOADED"
    assert payload["idx"] == 4
