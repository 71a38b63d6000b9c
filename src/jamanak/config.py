from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Sequence, Tuple

import yaml

from .types import ReportStyle


HARDCODED_DEFAULTS: Dict[str, Any] = {
    "report": {
        "color": True,
        "fence": "–",
        "accent_rgb": [227, 225, 127],
        "highlight_rgb": [143, 227, 125],
    },
    "demo": {
        "title": "Counting Durations",
        "loops": [10_000, 10_000_000, 10_000_000_000],
        "scale": 1000,
    },
}


def load_config(path: str) -> dict:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    return yaml.safe_load(p.read_text(encoding="utf-8"))


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key in base:
        value = base[key]
        if isinstance(value, Mapping):
            result[key] = copy.deepcopy(value)
        elif isinstance(value, list):
            result[key] = list(value)
        else:
            result[key] = value
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)  # type: ignore[arg-type]
        else:
            result[key] = value
    return result


def load_config_with_defaults(path: Optional[Path]) -> Dict[str, Any]:
    if path is None:
        return deep_merge(HARDCODED_DEFAULTS, {})
    loaded = load_config(str(path))
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, MutableMapping):
        raise ValueError("Config root must be a mapping")
    return deep_merge(HARDCODED_DEFAULTS, dict(loaded))


def set_nested(config: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    if not path:
        return
    cursor: MutableMapping[str, Any] = config
    for key in path[:-1]:
        next_value = cursor.get(key)
        if not isinstance(next_value, MutableMapping):
            next_value = {}
            cursor[key] = next_value
        cursor = next_value
    cursor[path[-1]] = value


def parse_override(entry: str) -> Tuple[Tuple[str, ...], Any]:
    """Split ``report.color=false`` into a key path and a YAML-parsed value."""
    if "=" not in entry:
        raise ValueError("--opts expects 'path=value'")
    raw_path, raw_value = entry.split("=", 1)
    path = tuple(part.strip() for part in raw_path.split(".") if part.strip())
    if not path:
        raise ValueError("--opts needs a key path, e.g. report.fence")
    try:
        value = yaml.safe_load(raw_value)
    except yaml.YAMLError as exc:
        raise ValueError(f"--opts {raw_path}: value could not be parsed ({exc})") from exc
    return path, value


def _parse_rgb(value: Any, key: str) -> Tuple[int, int, int]:
    if not isinstance(value, Sequence) or isinstance(value, str) or len(value) != 3:
        raise ValueError(f"report.{key} must be a list of three integers")
    channels = []
    for channel in value:
        if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
            raise ValueError(f"report.{key} channels must be integers in 0..255, got {channel!r}")
        channels.append(channel)
    return channels[0], channels[1], channels[2]


def style_from_config(cfg: Mapping[str, Any]) -> ReportStyle:
    report_cfg = cfg.get("report", {})
    if not isinstance(report_cfg, Mapping):
        raise ValueError("report config must be a mapping")
    defaults = HARDCODED_DEFAULTS["report"]

    fence = report_cfg.get("fence", defaults["fence"])
    if not isinstance(fence, str) or len(fence) != 1:
        raise ValueError(f"report.fence must be a single character, got {fence!r}")

    return ReportStyle(
        accent=_parse_rgb(report_cfg.get("accent_rgb", defaults["accent_rgb"]), "accent_rgb"),
        highlight=_parse_rgb(
            report_cfg.get("highlight_rgb", defaults["highlight_rgb"]), "highlight_rgb"
        ),
        fence=fence,
        color=bool(report_cfg.get("color", defaults["color"])),
    )


@dataclass(frozen=True)
class DemoSettings:
    title: str
    loops: Tuple[int, ...]
    scale: int


def demo_from_config(cfg: Mapping[str, Any]) -> DemoSettings:
    demo_cfg = cfg.get("demo", {})
    if not isinstance(demo_cfg, Mapping):
        raise ValueError("demo config must be a mapping")
    defaults = HARDCODED_DEFAULTS["demo"]

    title = demo_cfg.get("title", defaults["title"])
    if not isinstance(title, str):
        raise ValueError(f"demo.title must be a string, got {title!r}")

    loops = demo_cfg.get("loops", defaults["loops"])
    if not isinstance(loops, list):
        raise ValueError(f"demo.loops must be a list of integers, got {loops!r}")
    for n in loops:
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise ValueError(f"demo.loops entries must be non-negative integers, got {n!r}")

    scale = demo_cfg.get("scale", defaults["scale"])
    if isinstance(scale, bool) or not isinstance(scale, int) or scale < 1:
        raise ValueError(f"demo.scale must be an integer >= 1, got {scale!r}")

    return DemoSettings(title=title, loops=tuple(loops), scale=scale)
