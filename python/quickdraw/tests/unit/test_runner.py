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
"""Unit tests for check, replay and make_check.

PYTEST_DONT_REWRITE: the properties here assert with messages that the tests
compare exactly, so pytest must not rewrite their asserts.
"""

import logging

import pytest

from quickdraw.core.bitstream import BufBitStream
from quickdraw.core.errors import ConfigurationError, PropertyFailure
from quickdraw.engine.context import T, check_once
from quickdraw.engine.failure import OutcomeKind
from quickdraw.engine.runner import (
    CheckResult,
    _report,
    base_seed,
    check,
    find_bug,
    make_check,
    replay,
)
from quickdraw.generators import custom, ints, lists_of, lists_of_n
from quickdraw.observability import MetricsCollector, get_global_collector, set_global_collector


# ==============================================================================
# Properties under test
# ==============================================================================


def prop_commutative(t, a, b):
    """Addition commutes."""
    assert a + b == b + a


def prop_short_lists(t, xs):
    assert len(xs) < 3, "list too long"


def prop_no_zero_division(t, v):
    return 1 // (v - v)


def prop_always_skips(t, v):
    t.skip()


def _raw16(data):
    return data.source.draw_bits(16)


RAW16 = custom(_raw16)


def prop_small(t, v):
    assert v < 1000


def _failure(prop, *gens, settings):
    with pytest.raises(PropertyFailure) as info:
        check(prop, *gens, settings=settings)
    return info.value


class TestCheckPasses:
    """Tests for checks that pass."""

    def test_result(self, fast_settings):
        result = check(prop_commutative, ints(), ints(), settings=fast_settings)
        assert isinstance(result, CheckResult)
        assert result.property_name == "prop_commutative"
        assert result.valid == fast_settings.checks
        assert result.invalid == 0
        assert result.seed == fast_settings.seed

    def test_logs_ok(self, fast_settings, caplog):
        caplog.set_level(logging.INFO, logger="quickdraw")
        check(prop_commutative, ints(), ints(), settings=fast_settings)
        assert "[quickdraw] OK prop_commutative, passed 50 tests" in caplog.text

    def test_arity_mismatch(self, fast_settings):
        with pytest.raises(ConfigurationError):
            check(prop_commutative, ints(), settings=fast_settings)

    def test_base_seed_is_stable(self):
        assert base_seed() == base_seed()
        assert base_seed() >= 0


class TestCheckFails:
    """Tests for failing checks."""

    def test_report(self, fast_settings):
        exc = _failure(prop_short_lists, lists_of(ints()), settings=fast_settings)
        report = exc.report
        assert report is not None
        assert not report.flaky
        assert report.failure.kind is OutcomeKind.ASSERTION
        assert report.failure.message == "list too long"
        assert len(report.values[0]) == 3
        assert report.original is not None
        assert report.seed >= fast_settings.seed
        assert "[quickdraw] prop_short_lists failed after" in str(exc)
        assert f"run with seed={report.seed}" in str(exc)

    def test_report_replays(self, fast_settings):
        report = _failure(prop_short_lists, lists_of(ints()), settings=fast_settings).report
        for buffer in (report.hex, report.buffer, report.words):
            failure, t = replay(prop_short_lists, lists_of(ints()), buffer=buffer)
            assert failure is not None
            assert failure.signature == report.failure.signature
            assert t.draws == report.draws

    def test_reported_seed_reproduces(self, fast_settings):
        report = _failure(prop_short_lists, lists_of(ints()), settings=fast_settings).report
        found = find_bug(
            prop_short_lists,
            (lists_of(ints()),),
            fast_settings.replace(seed=report.seed, checks=1),
        )
        assert found.failure is not None
        assert found.failure.signature == report.original.signature

    def test_runtime_fault(self, fast_settings):
        report = _failure(prop_no_zero_division, ints(), settings=fast_settings).report
        assert report.failure.kind is OutcomeKind.RUNTIME_FAULT
        assert report.failure.describe().startswith("panic: ZeroDivisionError")
        assert report.failure.origin.endswith("in prop_no_zero_division")
        assert report.values == [0]
        assert report.words == (0, 0, 0)

    def test_shrinking_reduces(self, fast_settings):
        report = _failure(prop_short_lists, lists_of(ints()), settings=fast_settings).report
        assert len(report.words) <= len(report.original.words)
        assert report.shrinks > 0
        assert report.shrink_tries >= report.shrinks

    def test_flaky(self, fast_settings):
        calls = []

        def prop_flaky(t, v):
            calls.append(v)
            assert len(calls) != 3

        report = _failure(prop_flaky, ints(), settings=fast_settings).report
        assert report.flaky
        assert report.shrinks == 0
        assert "flaky test prop_flaky" in report.format()

    def test_final_replay_is_logged(self, fast_settings, caplog):
        caplog.set_level(logging.INFO, logger="quickdraw")
        _failure(prop_short_lists, lists_of(ints()), settings=fast_settings)
        assert "replaying minimal failing example of prop_short_lists" in caplog.text
        assert "[quickdraw] draw arg0:" in caplog.text


class TestCheckInvalid:
    """Tests for checks that cannot find enough valid examples."""

    def test_too_many_invalid(self, fast_settings):
        settings = fast_settings.replace(checks=5)
        exc = _failure(prop_always_skips, ints(), settings=settings)
        assert exc.report is None
        assert "only 0 valid examples out of 50 attempts" in str(exc)
        assert "entropy budget" not in str(exc)

    def test_entropy_hint(self, fast_settings):
        settings = fast_settings.replace(checks=5, max_entropy_words=1)
        exc = _failure(prop_short_lists, lists_of_n(ints(), 5, 5), settings=settings)
        assert "raise max_entropy_words" in str(exc)


class TestCollector:
    """Tests for metrics recorded by check."""

    def test_passing_check(self, fast_settings):
        collector = MetricsCollector()
        check(prop_commutative, ints(), ints(), settings=fast_settings, collector=collector)
        summary = collector.get_summary()
        assert summary["checks"] == 1
        assert summary["outcomes"]["passed"] == 1
        assert summary["valid"] == fast_settings.checks
        assert summary["shrinks"] == 0

    def test_failing_check(self, fast_settings):
        collector = MetricsCollector()
        with pytest.raises(PropertyFailure):
            check(prop_short_lists, lists_of(ints()), settings=fast_settings, collector=collector)
        summary = collector.get_summary()
        assert summary["outcomes"]["failed"] == 1
        assert summary["shrinks"] == 1
        assert summary["shrink_tries"] == collector.get_shrinks()[0].tries

    def test_failure_is_recorded(self, fast_settings):
        collector = MetricsCollector()
        alerts = []
        collector.register_alert_callback(lambda kind, data: alerts.append(kind))
        with pytest.raises(PropertyFailure) as info:
            check(prop_short_lists, lists_of(ints()), settings=fast_settings, collector=collector)
        (failure,) = collector.get_failures()
        assert failure.property_name == "prop_short_lists"
        assert failure.kind == "assertion"
        assert failure.message == "list too long"
        assert failure.buffer_hex == info.value.report.hex
        assert "property_failed" in alerts
        again, _ = replay(prop_short_lists, lists_of(ints()), buffer=failure.buffer_hex)
        assert again is not None

    def test_global_collector_by_default(self, fast_settings):
        previous = get_global_collector()
        collector = MetricsCollector()
        set_global_collector(collector)
        try:
            check(prop_commutative, ints(), ints(), settings=fast_settings)
            with pytest.raises(PropertyFailure):
                check(prop_short_lists, lists_of(ints()), settings=fast_settings)
        finally:
            set_global_collector(previous)
        summary = collector.get_summary()
        assert summary["outcomes"]["passed"] == 1
        assert summary["outcomes"]["failed"] == 1
        assert len(collector.get_failures()) == 1


class TestFinalReplay:
    """Tests for the replay that produces the reported example."""

    def test_reproducing_words_are_kept(self, fast_settings):
        s = BufBitStream([5000])
        expected = check_once(T(s, fast_settings), prop_small, RAW16)
        words, failure, t = _report(
            "prop_small", prop_small, (RAW16,), [1200], [5000], expected, fast_settings
        )
        assert words == (1200,)
        assert failure.signature == expected.signature
        assert t.draws == [("arg0", 1200)]

    def test_falls_back_to_original_words(self, fast_settings, caplog):
        caplog.set_level(logging.WARNING, logger="quickdraw")
        s = BufBitStream([5000])
        expected = check_once(T(s, fast_settings), prop_small, RAW16)
        words, failure, t = _report(
            "prop_small", prop_small, (RAW16,), [7], [5000], expected, fast_settings
        )
        assert words == (5000,)
        assert failure.signature == expected.signature
        assert t.draws == [("arg0", 5000)]
        assert "did not fail the same way" in caplog.text


class TestMakeCheck:
    """Tests for binding properties into test functions."""

    def test_metadata(self, fast_settings):
        run = make_check(prop_commutative, ints(), ints(), settings=fast_settings)
        assert run.__name__ == "prop_commutative"
        assert run.__doc__ == "Addition commutes."
        assert run().valid == fast_settings.checks

    def test_failure_propagates(self, fast_settings):
        run = make_check(prop_short_lists, lists_of(ints()), settings=fast_settings)
        with pytest.raises(PropertyFailure):
            run()
