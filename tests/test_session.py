from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest

from jamanak.errors import AlreadyRunning, JamanakError, NotRunning
from jamanak.session import Jamanak
from jamanak.types import State, Unit


def make_clock(ticks_ns: Iterable[int]):
    it = iter(ticks_ns)
    return lambda: next(it)


def test_paired_calls_record_in_order() -> None:
    durs = Jamanak("Counting Durations", clock=make_clock([0, 1_500_000, 2_000_000, 2_250_000]))
    durs.start("A")
    first = durs.end()
    durs.start("B")
    second = durs.end()

    records = durs.records()
    assert [jam.label for jam in records] == ["A", "B"]
    assert records == (first, second)
    assert first.duration_ms == pytest.approx(1.5)
    assert second.duration_ms == pytest.approx(0.25)
    assert all(jam.end_ns >= jam.start_ns for jam in records)


def test_real_clock_durations_are_non_negative() -> None:
    durs = Jamanak("Counting Durations")
    durs.start("A")
    durs.end()
    durs.start("B")
    durs.end()
    assert len(durs.records()) == 2
    assert all(jam.duration_ms >= 0.0 for jam in durs.records())


def test_start_twice_raises_already_running() -> None:
    durs = Jamanak("t", clock=make_clock([10, 20]))
    durs.start("x")
    with pytest.raises(AlreadyRunning) as excinfo:
        durs.start("y")
    assert excinfo.value.running == "x"
    assert excinfo.value.requested == "y"
    assert durs.is_running()
    assert durs.records() == ()

    jam = durs.end()
    assert jam.label == "x"


def test_end_without_start_raises_not_running() -> None:
    durs = Jamanak("t")
    with pytest.raises(NotRunning):
        durs.end()
    assert durs.state is State.IDLE
    assert durs.records() == ()


def test_end_after_pair_closed_raises() -> None:
    durs = Jamanak("t", clock=make_clock([0, 5]))
    durs.start("a")
    durs.end()
    with pytest.raises(NotRunning):
        durs.end()
    assert len(durs.records()) == 1


def test_errors_are_runtime_errors() -> None:
    assert issubclass(AlreadyRunning, JamanakError)
    assert issubclass(NotRunning, RuntimeError)


def test_running_record_is_not_listed() -> None:
    durs = Jamanak("t", clock=make_clock([0, 1_000_000, 2_000_000]))
    durs.start("done")
    durs.end()
    durs.start("pending")
    assert [jam.label for jam in durs.records()] == ["done"]
    assert "pending" not in durs.render()


def test_clear_mid_measurement_resets_everything() -> None:
    durs = Jamanak("t", clock=make_clock([0, 123_456_789, 200_000_000, 300_000_000, 301_000_000]))
    durs.start("a long label")
    durs.end()
    durs.start("b")
    durs.clear()

    assert durs.records() == ()
    assert not durs.is_running()
    assert durs.max_label_width == 0
    assert durs.max_duration_width == 0
    assert durs.max_integer_digit_width == 0

    durs.start("c")
    durs.end()
    assert [jam.label for jam in durs.records()] == ["c"]


def test_alignment_widths_track_maxima() -> None:
    durs = Jamanak("t", clock=make_clock([0, 123_456_789, 0, 1_000_000]))
    durs.start("load")
    durs.end()
    durs.start("x")
    durs.end()
    # 123.45679 and 1.00000
    assert durs.max_label_width == 4
    assert durs.max_duration_width == len("123.45679")
    assert durs.max_integer_digit_width == 3


def test_labels_are_not_validated() -> None:
    durs = Jamanak("t", clock=make_clock([0, 1, 2, 3]))
    durs.start("")
    durs.end()
    durs.start("")
    durs.end()
    assert [jam.label for jam in durs.records()] == ["", ""]


def test_section_records_even_when_body_raises() -> None:
    durs = Jamanak("t", clock=make_clock([0, 2_000_000]))
    with pytest.raises(KeyError):
        with durs.section("boom"):
            raise KeyError("x")
    assert not durs.is_running()
    assert durs.records()[0].label == "boom"
    assert durs.records()[0].duration_ms == pytest.approx(2.0)


def test_section_cleared_in_body_keeps_body_exception() -> None:
    durs = Jamanak("t", clock=make_clock([0, 1]))
    with pytest.raises(KeyError):
        with durs.section("a"):
            durs.clear()
            raise KeyError("x")
    assert not durs.is_running()
    assert durs.records() == ()


def test_section_cleared_in_body_without_error() -> None:
    durs = Jamanak("t", clock=make_clock([0, 1, 2]))
    with durs.section("a"):
        durs.clear()
        durs.start("b")
    assert durs.is_running()
    assert durs.end().label == "b"


def test_section_start_conflict_leaves_running_jam() -> None:
    durs = Jamanak("t", clock=make_clock([0, 1]))
    durs.start("outer")
    with pytest.raises(AlreadyRunning):
        with durs.section("inner"):
            pass
    assert durs.is_running()
    assert durs.end().label == "outer"


def test_only_millis_supported() -> None:
    with pytest.raises(ValueError):
        Jamanak("t", unit=Unit.NANO)
    assert Jamanak("t").unit is Unit.MILLI


def test_records_are_immutable() -> None:
    durs = Jamanak("t", clock=make_clock([0, 1]))
    durs.start("a")
    jam = durs.end()
    with pytest.raises(AttributeError):
        jam.duration_ms = 99.0  # type: ignore[misc]
