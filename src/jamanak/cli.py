from __future__ import annotations

import logging
import shlex
import subprocess
import textwrap
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

from .config import (
    demo_from_config,
    load_config_with_defaults,
    parse_override,
    set_nested,
    style_from_config,
)
from .session import Jamanak
from .types import ReportStyle


log = logging.getLogger(__name__)


class Logger:
    def __init__(self, verbose: bool) -> None:
        self.verbose = verbose
        theme = Theme({
            "info": "cyan",
            "step": "bold cyan",
            "warning": "bold yellow",
            "error": "bold red",
        })
        self.console = Console(theme=theme, highlight=False, record=False)
        self.err_console = Console(theme=theme, highlight=False, record=False, stderr=True)

    def _print(self, message: str, style: str | None = None, *, err: bool = False) -> None:
        target = self.err_console if err else self.console
        if style:
            target.print(f"[{style}]{escape(message)}[/{style}]")
        else:
            target.print(escape(message))

    def info(self, message: str) -> None:
        self._print(message, style="info")

    def step(self, message: str) -> None:
        self.console.print(f"[step]▶ {escape(message)}")

    def warn(self, message: str) -> None:
        self._print(message, style="warning")

    def error(self, message: str) -> None:
        self._print(message, style="error", err=True)

    def debug(self, message: str) -> None:
        if self.verbose:
            self.console.print(f"[dim]{escape(message)}[/dim]")


class _LoggingBridge(logging.Handler):
    def __init__(self, cli_logger: Logger, level: int) -> None:
        super().__init__(level)
        self._cli_logger = cli_logger

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        msg = self.format(record)
        if record.levelno >= logging.ERROR:
            self._cli_logger.error(msg)
        elif record.levelno >= logging.WARNING:
            self._cli_logger.warn(msg)
        elif record.levelno >= logging.INFO:
            self._cli_logger.info(msg)
        else:
            self._cli_logger.debug(msg)


def _install_bridge(logger: Logger) -> None:
    level = logging.DEBUG if logger.verbose else logging.INFO
    pkg_logger = logging.getLogger("jamanak")
    pkg_logger.handlers = [h for h in pkg_logger.handlers if not isinstance(h, _LoggingBridge)]
    pkg_logger.addHandler(_LoggingBridge(logger, level))
    pkg_logger.setLevel(level)
    pkg_logger.propagate = False


def _resolve_style(
    logger: Logger,
    config: Optional[Path],
    opts: List[str],
    no_color: bool,
) -> Tuple[Dict[str, Any], ReportStyle]:
    try:
        cfg = load_config_with_defaults(config)
    except yaml.YAMLError as exc:
        raise ValueError(f"Config could not be read: {exc}") from exc
    for entry in opts:
        path, value = parse_override(entry)
        set_nested(cfg, path, value)
    if no_color:
        set_nested(cfg, ("report", "color"), False)

    config_yaml = yaml.safe_dump(cfg, sort_keys=False, default_flow_style=False, allow_unicode=True).strip()
    logger.debug("Active config:\n" + textwrap.indent(config_yaml, "  "))
    return cfg, style_from_config(cfg)


def _parse_step(entry: str) -> Tuple[str, List[str]]:
    if "=" not in entry:
        raise ValueError(f"--step expects 'LABEL=COMMAND', got {entry!r}")
    label, command = entry.split("=", 1)
    argv = shlex.split(command)
    if not argv:
        raise ValueError(f"--step {label!r} has an empty command")
    return label, argv


def _run_command(argv: List[str]) -> None:
    log.debug("running %s", shlex.join(argv))
    completed = subprocess.run(argv, check=False)
    if completed.returncode != 0:
        raise RuntimeError(f"{Path(argv[0]).name} exited with code {completed.returncode}")


def _count_to(n: int) -> int:
    i = 0
    for i in range(n):
        pass
    return i


def _handle_known_exception(logger: Logger, exc: Exception, *, prefix: str | None = None) -> None:
    message = str(exc) if str(exc) else exc.__class__.__name__
    if prefix:
        message = f"{prefix}: {message}"
    logger.error(message)


app = typer.Typer(help="Time labelled code sections and print an aligned report")


@app.command("demo")
def demo(
    title: Optional[str] = typer.Option(None, "--title", help="Report headline"),
    scale: Optional[int] = typer.Option(
        None,
        "--scale",
        min=1,
        help="Divide every loop size by this factor",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        resolve_path=True,
        help="Path to a YAML config",
    ),
    opts: List[str] = typer.Option(
        [],
        "--opts",
        help="Config override 'path=value', repeatable",
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable ANSI colors"),
    verbose: bool = typer.Option(False, "--verbose", is_flag=True, help="Verbose output"),
) -> None:
    logger = Logger(verbose=verbose)
    _install_bridge(logger)
    try:
        cfg, style = _resolve_style(logger, config, opts, no_color)
        settings = demo_from_config(cfg)
        factor = scale if scale is not None else settings.scale
        loops = [n // factor for n in settings.loops]

        durs = Jamanak(title if title is not None else settings.title)
        for count in loops:
            with durs.section(f"Till {count}"):
                _count_to(count)

        typer.echo(durs.render(style), nl=False)
        typer.echo("")
        for jam in durs.records():
            typer.echo(f"{jam.label}: {jam.duration_ms:.6f} ms")
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        _handle_known_exception(logger, exc, prefix="Error")
        raise typer.Exit(code=2) from exc
    except Exception as exc:  # pragma: no cover - fallback path
        _handle_known_exception(logger, exc, prefix="Unexpected error")
        raise typer.Exit(code=1) from exc


@app.command("exec")
def exec_steps(
    steps: List[str] = typer.Option(
        ...,
        "--step",
        help="Timed step 'LABEL=COMMAND', repeatable, run in order",
    ),
    title: str = typer.Option("Steps", "--title", show_default=True, help="Report headline"),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        resolve_path=True,
        help="Path to a YAML config",
    ),
    opts: List[str] = typer.Option(
        [],
        "--opts",
        help="Config override 'path=value', repeatable",
    ),
    keep_going: bool = typer.Option(
        False,
        "--keep-going",
        help="Continue with the next step when one fails",
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable ANSI colors"),
    verbose: bool = typer.Option(False, "--verbose", is_flag=True, help="Verbose output"),
) -> None:
    logger = Logger(verbose=verbose)
    _install_bridge(logger)
    try:
        _, style = _resolve_style(logger, config, opts, no_color)
        parsed = [_parse_step(entry) for entry in steps]

        session = Jamanak(title)
        failed: List[str] = []
        try:
            for label, argv in parsed:
                logger.step(label)
                try:
                    with session.section(label):
                        _run_command(argv)
                except (FileNotFoundError, RuntimeError) as exc:
                    failed.append(label)
                    if not keep_going:
                        raise
                    logger.warn(f"{label}: {exc}")
        finally:
            typer.echo(session.render(style), nl=False)

        if failed:
            raise RuntimeError(f"{len(failed)} step(s) failed: {', '.join(failed)}")
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        _handle_known_exception(logger, exc, prefix="Error")
        raise typer.Exit(code=2) from exc
    except Exception as exc:  # pragma: no cover - fallback path
        _handle_known_exception(logger, exc, prefix="Unexpected error")
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
