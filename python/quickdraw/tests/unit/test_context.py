# Copyright Rand Arete @ Ananke 2025
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""Unit tests for the draw context and failure capture.

PYTEST_DONT_REWRITE: the properties here assert with messages that the tests
compare exactly, so pytest must not rewrite their asserts.
"""

import pytest

from quickdraw.core.bitstream import BufBitStream, RandomBitStream
from quickdraw.core.errors import InvalidData
from quickdraw.engine.context import SkipTest, StopTest, T, check_once, draw_once
from quickdraw.engine.failure import FailureRecord, FailureReport, OutcomeKind, is_engine_frame
from quickdraw.generators import ints, ints_range, just, tuples


# ==============================================================================
# Properties under test
# ==============================================================================


def prop_passes(t, v):
    assert v == v


def prop_errors(t):
    t.error("first")
    t.error("second")
    t.log("after")


def prop_fatal(t):
    t.fatal("stop here")
    t.log("unreachable")


def prop_skip(t):
    t.skip("not interesting")


def prop_divides(t, v):
    return 1 // (v - v)


def prop_asserts(t, v):
    assert v < 0, "negative expected"


class TestT:
    """Tests for T draws and logging."""

    def test_default_labels(self, stream):
        t = T(stream)
        t.draw(just(1))
        t.draw(just(2), "named")
        t.draw(just(3))
        assert t.draws == [("#0", 1), ("named", 2), ("#2", 3)]

    def test_draws_are_grouped_by_label(self, stream):
        t = T(stream)
        t.draw(ints(), "x")
        labels = [g.label for g in stream.recorded.groups]
        assert labels[0] == "x"
        assert labels[1] == "Ints()"

    def test_log_collects_output(self, stream):
        t = T(stream)
        t.log("one")
        t.log("two")
        assert t.output == ["one", "two"]
        assert not t.failed

    def test_error_keeps_running(self, stream):
        t = T(stream)
        t.error("bad")
        t.log("still here")
        assert t.failed
        assert t.output == ["bad", "still here"]

    def test_fatal_raises(self, stream):
        t = T(stream)
        with pytest.raises(StopTest, match="boom"):
            t.fatal("boom")
        assert t.output == ["boom"]

    def test_fail_is_fatal(self, stream):
        with pytest.raises(StopTest):
            T(stream).fail("boom")

    def test_skip_is_invalid_data(self, stream):
        with pytest.raises(InvalidData):
            T(stream).skip()
        assert issubclass(SkipTest, InvalidData)


class TestCheckOnce:
    """Tests for mapping property outcomes to FailureRecords."""

    def test_pass(self, stream):
        assert check_once(T(stream), prop_passes, ints()) is None

    def test_errors_are_reported_after_the_property_returns(self, stream):
        t = T(stream)
        record = check_once(t, prop_errors)
        assert record.kind is OutcomeKind.ASSERTION
        assert record.message == "first (and 1 more errors)"
        assert record.origin.endswith("in prop_errors")
        assert t.output == ["first", "second", "after"]

    def test_fatal_origin_is_the_call_site(self, stream):
        t = T(stream)
        record = check_once(t, prop_fatal)
        assert record.kind is OutcomeKind.ASSERTION
        assert record.origin.endswith("in prop_fatal")
        assert "test_context.py" in record.origin
        assert t.output == ["stop here"]

    def test_skip_is_invalid(self, stream):
        record = check_once(T(stream), prop_skip)
        assert record.kind is OutcomeKind.INVALID
        assert not record.is_failure

    def test_assertion(self, stream):
        record = check_once(T(stream), prop_asserts, ints_range(0, 10))
        assert record.kind is OutcomeKind.ASSERTION
        assert record.message == "negative expected"
        assert record.exc_type == "builtins.AssertionError"
        assert record.origin.endswith("in prop_asserts")
        assert not record.internal

    def test_runtime_fault(self, stream):
        record = check_once(T(stream), prop_divides, ints())
        assert record.kind is OutcomeKind.RUNTIME_FAULT
        assert record.exc_type == "builtins.ZeroDivisionError"
        assert record.describe().startswith("panic: ZeroDivisionError")
        assert isinstance(record.exception, ZeroDivisionError)

    def test_overrun_is_invalid(self):
        record = check_once(T(BufBitStream([])), prop_passes, ints())
        assert record.kind is OutcomeKind.INVALID
        assert record.words == ()

    def test_records_consumed_words(self, stream):
        record = check_once(T(stream), prop_asserts, ints_range(0, 10))
        assert record.words == tuple(stream.to_words())
        assert len(record.words) > 0

    def test_multi_arity_values_are_splatted(self, stream):
        seen = []

        def prop(t, a, b, c):
            seen.append((a, b, c))

        assert check_once(T(stream), prop, tuples(just(1), just(2)), just(3)) is None
        assert seen == [(1, 2, 3)]

    def test_same_failure_has_same_signature(self):
        source = RandomBitStream(seed=7)
        first = check_once(T(source), prop_asserts, ints_range(0, 10))
        second = check_once(T(BufBitStream(first.words)), prop_asserts, ints_range(0, 10))
        assert first.signature == second.signature
        assert first == second


class TestDrawOnce:
    """Tests for drawing a single value outside of a property."""

    def test_value(self, zero_stream):
        value, record = draw_once(ints(), zero_stream)
        assert value == 0
        assert record is None

    def test_filter_exhaustion_points_into_the_engine(self, stream):
        value, record = draw_once(ints().filter(lambda v: False), stream)
        assert value is None
        assert record.kind is OutcomeKind.INVALID
        assert record.origin.endswith("in _satisfy")
        assert record.internal

    def test_fault_in_user_function(self, stream):
        value, record = draw_once(ints().map(lambda v: 1 // 0), stream)
        assert value is None
        assert record.kind is OutcomeKind.RUNTIME_FAULT
        assert record.origin.endswith("in <lambda>")
        assert not record.internal
        # engine frames are hidden when the fault is in user code
        assert len(record.trace) == 1


class TestFailureReport:
    """Tests for FailureRecord and FailureReport rendering."""

    def test_engine_frames(self):
        import traceback

        frame = traceback.extract_stack(limit=1)[0]
        assert not is_engine_frame(frame)

    def test_describe_without_message(self):
        record = FailureRecord.from_exception(OutcomeKind.ASSERTION, AssertionError())
        assert record.describe() == "assertion: AssertionError"
        assert record.origin == "<unknown>"

    def test_format(self, stream):
        t = T(stream)
        record = check_once(t, prop_asserts, ints_range(0, 10))
        report = FailureReport(
            property_name="prop_asserts",
            failure=record,
            words=record.words,
            draws=list(t.draws),
            seed=99,
            valid=4,
        )
        text = report.format()
        assert text.startswith("[quickdraw] prop_asserts failed after 4 tests: assertion:")
        assert "run with seed=99" in text
        assert report.hex in text
        assert "Minimal example:" in text
        assert f"arg0: {report.values[0]!r}" in text
        assert "Failed test output:" not in text

    def test_format_flaky(self):
        record = FailureRecord.from_exception(OutcomeKind.ASSERTION, AssertionError("x"))
        report = FailureReport("prop_x", record, (), original=record, flaky=True)
        text = report.format()
        assert "flaky test prop_x" in text
        assert "Original failure:" in text
        assert "<empty>" in text
