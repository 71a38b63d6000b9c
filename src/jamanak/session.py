"""Timing session that records labelled sections and renders an aligned report."""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Iterator, List, Optional, Tuple

from .errors import AlreadyRunning, NotRunning
from .report import digits_before_decimal, format_duration, render_report
from .types import NS_PER_MS, Jam, ReportStyle, State, Unit

log = logging.getLogger(__name__)

Clock = Callable[[], int]


class Jamanak:
    """Records durations for labelled code sections, one section at a time.

    ``start(label)`` and ``end()`` must alternate. Completed sections are kept
    in completion order and can be rendered with :meth:`render`.
    """

    def __init__(
        self,
        title: str,
        *,
        clock: Clock = time.perf_counter_ns,
        unit: Unit = Unit.MILLI,
    ) -> None:
        if unit is not Unit.MILLI:
            raise ValueError(f"unsupported unit {unit.value!r}; only milliseconds are rendered")
        self._title = title
        self._clock = clock
        self.unit = unit
        self._jams: List[Jam] = []
        self._current: Optional[Jam] = None
        self._state = State.IDLE

        self._longest = 0
        self._longest_dur = 0
        self._longest_bc = 0

    @property
    def title(self) -> str:
        return self._title

    @property
    def state(self) -> State:
        return self._state

    @property
    def max_label_width(self) -> int:
        return self._longest

    @property
    def max_duration_width(self) -> int:
        return self._longest_dur

    @property
    def max_integer_digit_width(self) -> int:
        return self._longest_bc

    def start(self, label: str) -> None:
        if self._state is State.RUNNING:
            assert self._current is not None
            raise AlreadyRunning(self._current.label, label)
        self._current = Jam(label=label, start_ns=self._clock())
        self._state = State.RUNNING
        log.debug("jam '%s' started", label)

    def end(self) -> Jam:
        if self._state is State.IDLE or self._current is None:
            raise NotRunning()

        end_ns = self._clock()
        current = self._current
        jam = replace(
            current,
            end_ns=end_ns,
            duration_ms=(end_ns - current.start_ns) / NS_PER_MS,
        )
        self._jams.append(jam)

        s = format_duration(jam.duration_ms)
        self._longest = max(self._longest, len(jam.label))
        self._longest_dur = max(self._longest_dur, len(s))
        self._longest_bc = max(self._longest_bc, digits_before_decimal(s))

        self._current = None
        self._state = State.IDLE
        log.debug("%s took %.5f ms", jam.label, jam.duration_ms)
        return jam

    def clear(self) -> None:
        """Drop every measurement, including a running one, and reset the widths."""
        if self._current is not None:
            log.debug("discarding running jam '%s'", self._current.label)
        self._jams.clear()
        self._current = None
        self._state = State.IDLE
        self._longest = self._longest_dur = self._longest_bc = 0

    def records(self) -> Tuple[Jam, ...]:
        return tuple(self._jams)

    def is_running(self) -> bool:
        return self._state is State.RUNNING

    @contextmanager
    def section(self, label: str) -> Iterator["Jamanak"]:
        self.start(label)
        own = self._current
        try:
            yield self
        finally:
            # the body may have cleared the session
            if own is not None and self._current is own:
                self.end()

    def render(self, style: Optional[ReportStyle] = None) -> str:
        return render_report(
            self._title,
            self._jams,
            label_width=self._longest,
            duration_width=self._longest_dur,
            integer_width=self._longest_bc,
            style=style or ReportStyle(),
        )

    def __str__(self) -> str:
        return self.render(ReportStyle(color=False))

    def __repr__(self) -> str:
        return f"Jamanak(title={self._title!r}, jams={len(self._jams)}, state={self._state.value})"
