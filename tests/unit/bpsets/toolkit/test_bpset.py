"""
Unit tests for the BPSet base class.

Tests the status state machine around check(), error recording, parameter
validation in fix() and the default per-resource remediation loop.
"""

import asyncio

import pytest

from bpsets.contracts.models import (
    BPSetMetadata,
    BPSetStatus,
    FixParameter,
    RequiredParameter,
)
from bpsets.errors import ErrorCode, InvalidFixParameterError, MissingFixParameterError
from bpsets.toolkit.bpset import BPSet


class StaticBPSet(BPSet):
    metadata = BPSetMetadata(name="StaticBPSet", description="Fixed inventory")

    def __init__(self, compliant=(), non_compliant=(), error=None):
        super().__init__()
        self.compliant = list(compliant)
        self.non_compliant = list(non_compliant)
        self.error = error
        self.fixed = []
        self.broken = set()

    async def check_impl(self):
        if self.error is not None:
            raise self.error
        return self.compliant, self.non_compliant

    async def fix_resource(self, resource_id, params):
        if resource_id in self.broken:
            raise RuntimeError(f"cannot fix {resource_id}")
        self.fixed.append((resource_id, dict(params)))


class ParameterizedBPSet(StaticBPSet):
    metadata = BPSetMetadata(
        name="ParameterizedBPSet",
        required_parameters_for_fix=[RequiredParameter(name="foo"), RequiredParameter(name="days")],
    )


class TestCheck:
    def test_fresh_bpset_is_loaded(self):
        stats = StaticBPSet().get_stats()
        assert stats.status == BPSetStatus.LOADED
        assert stats.compliant_resources == []
        assert stats.non_compliant_resources == []
        assert stats.error_message == []

    @pytest.mark.asyncio
    async def test_successful_check_records_resources(self):
        bpset = StaticBPSet(compliant=["i-1"], non_compliant=["i-2", "i-3"])
        await bpset.check()

        stats = bpset.get_stats()
        assert stats.status == BPSetStatus.FINISHED
        assert stats.compliant_resources == ["i-1"]
        assert stats.non_compliant_resources == ["i-2", "i-3"]

    @pytest.mark.asyncio
    async def test_status_is_checking_while_in_flight(self):
        release = asyncio.Event()

        class SlowBPSet(StaticBPSet):
            async def check_impl(self):
                await release.wait()
                return [], []

        bpset = SlowBPSet()
        task = asyncio.ensure_future(bpset.check())
        await asyncio.sleep(0)
        assert bpset.get_stats().status == BPSetStatus.CHECKING

        release.set()
        await task
        assert bpset.get_stats().status == BPSetStatus.FINISHED

    @pytest.mark.asyncio
    async def test_failed_check_records_one_error(self):
        bpset = StaticBPSet(error=RuntimeError("AccessDenied"))
        await bpset.check()

        stats = bpset.get_stats()
        assert stats.status == BPSetStatus.ERROR
        assert len(stats.error_message) == 1
        assert stats.error_message[0].message == "AccessDenied"
        assert stats.error_message[0].code == ErrorCode.BPSET_CHECK_FAILED
        assert stats.error_message[0].date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_errors_accumulate_and_survive_a_later_success(self):
        bpset = StaticBPSet(error=RuntimeError("first"))
        await bpset.check()
        bpset.error = RuntimeError("second")
        await bpset.check()
        assert [entry.message for entry in bpset.get_stats().error_message] == ["first", "second"]

        bpset.error = None
        await bpset.check()
        assert bpset.get_stats().status == BPSetStatus.FINISHED
        assert len(bpset.get_stats().error_message) == 2

    @pytest.mark.asyncio
    async def test_bpsets_error_keeps_its_own_code(self):
        bpset = StaticBPSet(error=InvalidFixParameterError("StaticBPSet", "days", "negative"))
        await bpset.check()

        entry = bpset.get_stats().error_message[0]
        assert entry.code == ErrorCode.FIX_PARAMETER_INVALID
        assert entry.message == "Parameter 'days' is invalid: negative"

    @pytest.mark.asyncio
    async def test_exception_without_message_uses_type_name(self):
        bpset = StaticBPSet(error=KeyError())
        await bpset.check()
        assert bpset.get_stats().error_message[0].message == "KeyError"

    @pytest.mark.asyncio
    async def test_clear_stats_returns_to_loaded(self):
        bpset = StaticBPSet(error=RuntimeError("boom"))
        await bpset.check()
        bpset.clear_stats()

        stats = bpset.get_stats()
        assert stats.status == BPSetStatus.LOADED
        assert stats.error_message == []
        assert stats.non_compliant_resources == []

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        class HangingBPSet(StaticBPSet):
            async def check_impl(self):
                await asyncio.Event().wait()

        bpset = HangingBPSet()
        task = asyncio.ensure_future(bpset.check())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestFix:
    @pytest.mark.asyncio
    async def test_missing_parameter_raises_before_any_remediation(self):
        bpset = ParameterizedBPSet()

        with pytest.raises(MissingFixParameterError) as exc_info:
            await bpset.fix(["i-1"], [FixParameter(name="days", value="7")])

        assert exc_info.value.parameter == "foo"
        assert exc_info.value.code == ErrorCode.FIX_PARAMETER_MISSING
        assert "Required parameter 'foo' is missing." in str(exc_info.value)
        assert bpset.fixed == []
        assert bpset.get_stats().status == BPSetStatus.LOADED

    @pytest.mark.asyncio
    async def test_blank_parameter_counts_as_missing(self):
        bpset = ParameterizedBPSet()
        with pytest.raises(MissingFixParameterError):
            await bpset.fix(["i-1"], {"foo": "  ", "days": "7"}.items())

    @pytest.mark.asyncio
    async def test_parameters_accept_models_mappings_and_pairs(self):
        bpset = ParameterizedBPSet()
        await bpset.fix(
            ["i-1"],
            [FixParameter(name="foo", value="bar"), {"name": "days", "value": "7"}, ("extra", "x")],
        )
        assert bpset.fixed == [("i-1", {"foo": "bar", "days": "7", "extra": "x"})]

    @pytest.mark.asyncio
    async def test_no_declared_parameters_accepts_none(self):
        bpset = StaticBPSet()
        await bpset.fix(["a", "b"])
        assert [resource for resource, _ in bpset.fixed] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_failing_resource_does_not_stop_the_loop(self):
        bpset = StaticBPSet()
        bpset.broken = {"b"}

        await bpset.fix(["a", "b", "c"])

        assert [resource for resource, _ in bpset.fixed] == ["a", "c"]
        stats = bpset.get_stats()
        assert stats.status == BPSetStatus.ERROR
        assert len(stats.error_message) == 1
        assert stats.error_message[0].message.startswith("Fix failed for 1 of 3 resources")
        assert "cannot fix b" in stats.error_message[0].message
        assert stats.error_message[0].code == ErrorCode.BPSET_FIX_FAILED

    @pytest.mark.asyncio
    async def test_failing_fix_impl_is_recorded(self):
        class BrokenFix(StaticBPSet):
            async def fix_impl(self, resources, params):
                raise RuntimeError("throttled")

        bpset = BrokenFix()
        await bpset.fix(["a"])
        assert bpset.get_stats().status == BPSetStatus.ERROR
        assert bpset.get_stats().error_message[0].message == "throttled"
        assert bpset.get_stats().error_message[0].code == ErrorCode.BPSET_FIX_FAILED

    @pytest.mark.asyncio
    async def test_successful_fix_leaves_status_alone(self):
        bpset = StaticBPSet(non_compliant=["a"])
        await bpset.check()
        await bpset.fix(["a"])
        assert bpset.get_stats().status == BPSetStatus.FINISHED
        assert bpset.get_stats().error_message == []

    @pytest.mark.asyncio
    async def test_missing_fix_resource_is_recorded_per_resource(self):
        class NoFix(BPSet):
            metadata = BPSetMetadata(name="NoFix")

            async def check_impl(self):
                return [], []

        bpset = NoFix()
        await bpset.fix(["a"])
        assert "does not implement fix_resource()" in bpset.get_stats().error_message[0].message


class TestHelpers:
    def test_int_parameter_rejects_non_integers(self):
        with pytest.raises(InvalidFixParameterError) as exc_info:
            StaticBPSet().int_parameter({"days": "seven"}, "days")
        assert exc_info.value.parameter == "days"

    def test_int_parameter_parses(self):
        assert StaticBPSet().int_parameter({"days": "30"}, "days") == 30

    @pytest.mark.asyncio
    async def test_mark_error_moves_to_error(self):
        bpset = StaticBPSet()
        entry = bpset.mark_error("Check timed out after 1s", ErrorCode.BPSET_CHECK_TIMEOUT)
        assert bpset.get_stats().status == BPSetStatus.ERROR
        assert entry.code == ErrorCode.BPSET_CHECK_TIMEOUT
        assert bpset.get_stats().error_message == [entry]
