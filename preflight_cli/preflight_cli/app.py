"""Preflight CLI application -- Typer-based developer interface.

Provides the ``check`` command that evaluates the host against the core
platform requirements plus any application requirement files.
Human-readable output goes to *stderr* via Rich when attached to a
terminal; plain text and JSON go to *stdout* so that pipelines can compose
cleanly.
"""

from __future__ import annotations

import typer

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="preflight",
    help="Preflight - host requirements checker",
    no_args_is_help=True,
)

# Register commands.
from preflight_cli.commands.check import check_command  # noqa: E402

app.command(name="check")(check_command)

# Mutable global options populated by the Typer callback.
_json_output: bool = False
_debug: bool = False
_env: str = "dev"


# ---------------------------------------------------------------------------
# Callback -- global options
# ---------------------------------------------------------------------------


@app.callback()
def _global_options(
    json_mode: bool = typer.Option(
        False,
        "--json/--no-json",
        help="Emit structured JSON to stdout instead of human-readable output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Log probe details to stderr.",
        envvar="PREFLIGHT_DEBUG",
    ),
    env: str = typer.Option(
        "dev",
        "--env",
        help="Environment override (dev | staging | prod).",
        envvar="PREFLIGHT_ENV",
    ),
) -> None:
    """Global options applied to every command."""
    global _json_output, _debug, _env  # noqa: PLW0603
    _json_output = json_mode
    _debug = debug
    _env = env
