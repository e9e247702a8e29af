from __future__ import annotations
import logging
import os
import sys
from contextlib import contextmanager
from importlib.metadata import version as pkg_version, PackageNotFoundError
from typing import Iterator, List, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .bootstrap import build_app
from .config_loader import Settings, default_config_path, load_settings, save_settings
from .core.errors import AskError, ConfigError
from .core.messages import build_messages, compose_inputs, split_question
from .core.types import Provider, RenderMode
from .providers.endpoints import all_models

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    help=(
        "Ask an AI from the command line.\n\n"
        "  ask <question>\n\n"
        "  ask <preset> <question...>\n\n"
        "If <preset> names a saved preset its prompt is sent before the question."
    ),
)
config_app = typer.Typer(help="Show or change settings.", no_args_is_help=True)
preset_app = typer.Typer(help="Manage named prompt presets.", no_args_is_help=True)
app.add_typer(config_app, name="config")
app.add_typer(preset_app, name="preset")

_err = Console(stderr=True)
logger = logging.getLogger(__name__)

EXIT_CANCELLED = 130
_PASSTHROUGH = {"config", "preset", "-h", "--help", "-V", "--version"}


def _configure_logging() -> None:
    debug = os.getenv("ASK_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_err, show_path=False, rich_tracebacks=debug)],
    )


def _fail(err: Exception, code: int = 1) -> NoReturn:
    _err.print(f"[bold red]error:[/bold red] {escape(str(err))}")
    raise typer.Exit(code=code)


def _version_callback(value: bool) -> None:
    if value:
        try:
            typer.echo(f"ask {pkg_version('ask-cli')}")
        except PackageNotFoundError:
            typer.echo("ask (unknown version)")
        raise typer.Exit()


@app.callback()
def _root(
    version: Optional[bool] = typer.Option(
        None, "--version", "-V", callback=_version_callback, is_eager=True, help="Show the version and exit."
    ),
) -> None:
    pass


# ----- Questions -----

@app.command("query", hidden=True)
def query(words: List[str] = typer.Argument(..., metavar="[PRESET] QUESTION...")) -> None:
    _configure_logging()
    try:
        preset, question = split_question(words)
        ctx = build_app()
        messages = build_messages(compose_inputs(preset, question, ctx["settings"].presets))
        reply = ctx["session"].run(messages)
    except AskError as e:
        _fail(e)
    except KeyboardInterrupt:
        raise typer.Exit(code=EXIT_CANCELLED)
    except Exception as e:
        logger.debug("unexpected failure", exc_info=True)
        _fail(e)

    if reply is None:
        raise typer.Exit(code=EXIT_CANCELLED)


# ----- Settings -----

@contextmanager
def _editing() -> Iterator[Settings]:
    # Only the file's own values: env overrides must never be persisted
    path = default_config_path()
    try:
        settings = load_settings(path, apply_env=False)
    except ConfigError as e:
        _fail(e)
    yield settings
    save_settings(settings, path)


@config_app.command("show")
def config_show() -> None:
    """Print the effective settings (file + ASK_* environment)."""
    try:
        s = load_settings(default_config_path())
    except ConfigError as e:
        _fail(e)
    timeout = "" if s.timeout is None else f"{s.timeout:g}"
    typer.echo(f"provider => {s.provider or ''}")
    typer.echo(f"model => {s.model or ''}")
    typer.echo(f"timeout => {timeout}")
    typer.echo(f"stream => {'on' if s.stream else 'off'}")
    typer.echo(f"render => {s.render}")


@config_app.command("provider")
def config_provider(provider: Provider = typer.Argument(..., help="AI provider to use.")) -> None:
    with _editing() as s:
        s.provider = provider.value
    typer.echo(f"AI provider set to: {provider.value}")


@config_app.command("model")
def config_model(model: str = typer.Argument(..., help=f"One of: {', '.join(all_models())}")) -> None:
    name = model.strip().lower()
    if name not in all_models():
        _fail(ConfigError(f"Unknown model '{model}' (expected one of: {', '.join(all_models())})"))
    with _editing() as s:
        s.model = name
    typer.echo(f"AI model set to: {name}")


@config_app.command("timeout")
def config_timeout(seconds: int = typer.Argument(..., min=1, help="Request timeout in seconds.")) -> None:
    with _editing() as s:
        s.timeout = float(seconds)
    typer.echo(f"Request timeout set to: {seconds} seconds")


@config_app.command("stream")
def config_stream(enabled: bool = typer.Argument(..., help="true/false")) -> None:
    with _editing() as s:
        s.stream = enabled
    typer.echo(f"Streaming {'enabled' if enabled else 'disabled'}")


@config_app.command("render")
def config_render(mode: RenderMode = typer.Argument(..., help="spinner: print when done; live: redraw while streaming.")) -> None:
    with _editing() as s:
        s.render = mode.value
    typer.echo(f"Render mode set to: {mode.value}")


# ----- Presets -----

@preset_app.command("set")
def preset_set(
    name: str = typer.Argument(..., help="Name of the preset."),
    prompt: List[str] = typer.Argument(..., help="Prompt text for the preset."),
) -> None:
    text = " ".join(prompt).strip()
    if not text:
        _fail(ConfigError("Preset prompt is empty"))
    with _editing() as s:
        s.presets[name] = text
    typer.echo(f"Preset '{name}' set with prompt: {text}")


@preset_app.command("list")
def preset_list() -> None:
    try:
        presets = load_settings(default_config_path(), apply_env=False).presets
    except ConfigError as e:
        _fail(e)
    if not presets:
        typer.echo("No presets found")
        return
    for name in sorted(presets):
        typer.echo(f"{name} => {presets[name]}")


@preset_app.command("remove")
def preset_remove(name: str = typer.Argument(..., help="Name of the preset to remove.")) -> None:
    with _editing() as s:
        prompt = s.presets.pop(name, None)
    if prompt is None:
        typer.echo(f"No preset found for '{name}'")
    else:
        typer.echo(f"Removed preset '{name}': {prompt}")


def route_args(argv: List[str]) -> List[str]:
    """
    Anything that is not a known subcommand or flag is a question:
    `ask why is the sky blue` -> `query -- why is the sky blue`.
    """
    if not argv or argv[0] == "help":
        return ["--help"]
    if argv[0] in _PASSTHROUGH:
        return list(argv)
    return ["query", "--", *argv]


def main(argv: Optional[List[str]] = None) -> None:
    args = list(sys.argv[1:] if argv is None else argv)
    app(args=route_args(args), prog_name="ask")
