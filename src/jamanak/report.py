"""Render a session's measurements as a fenced, column-aligned text report."""

from __future__ import annotations

from typing import Iterable, List, Optional

from rich.color import ColorSystem
from rich.style import Style

from .types import Jam, ReportStyle

__all__ = [
    "DECIMALS",
    "digits_before_decimal",
    "format_duration",
    "render_report",
]

DECIMALS = 5
BORDER_LEFT = "|| "
BORDER_RIGHT = " ||"
# Width the borders, separators, padding and unit suffix add to the table.
FRAME_WIDTH = 13


def format_duration(duration_ms: float) -> str:
    """Fixed-point duration string, always with a ``.`` separator."""
    return f"{duration_ms:.{DECIMALS}f}"


def digits_before_decimal(num: str) -> int:
    """Characters before the decimal point, e.g. ``"123.45600"`` -> 3."""
    idx = num.find(".")
    if idx < 0:
        return len(num)
    return idx


def _fence(n: int, f: str) -> str:
    return f * max(n, 0)


def _rgb_style(rgb) -> Style:
    r, g, b = rgb
    return Style(bold=True, color=f"rgb({r},{g},{b})")


def render_report(
    title: str,
    jams: Iterable[Jam],
    *,
    label_width: int,
    duration_width: int,
    integer_width: int,
    style: ReportStyle,
) -> str:
    color_system: Optional[ColorSystem] = ColorSystem.TRUECOLOR if style.color else None
    accent = _rgb_style(style.accent)
    highlight = _rgb_style(style.highlight)

    def paint(st: Style, text: str) -> str:
        return st.render(text, color_system=color_system)

    total = max(label_width + duration_width, len(title)) + FRAME_WIDTH
    indent = total // 2 - len(title) // 2
    rule = _fence(total, style.fence)

    lines: List[str] = [
        paint(accent, rule),
        paint(accent, _fence(indent, " ") + title),
        paint(accent, rule),
    ]
    for jam in jams:
        s = format_duration(jam.duration_ms)
        pad = _fence(integer_width - digits_before_decimal(s), " ")
        lines.append(
            paint(accent, BORDER_LEFT)
            + paint(highlight, jam.label)
            + _fence(label_width - len(jam.label) + 2, style.fence)
            + ": "
            + paint(highlight, pad + s)
            + " ms"
            + paint(accent, BORDER_RIGHT)
        )
    lines.append(paint(accent, rule))
    return "\n".join(lines) + "\n"
