"""``preflight check`` -- evaluate the host against its requirements.

Runs the core platform requirements (unless ``--no-platform``), then every
requirement file given on the command line, and renders the cumulative
report.  The presentation is chosen from the execution context: Rich on an
interactive terminal, plain text otherwise, JSON when asked for.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape

logger = logging.getLogger(__name__)

console = Console(stderr=True)

_FORMATS = ("auto", "rich", "text", "json")


def _parse_folders(values: list[str]) -> dict[str, str]:
    """Parse ``name=path`` pairs, keeping command-line order."""
    folders: dict[str, str] = {}
    for value in values:
        name, sep, path = value.partition("=")
        if not sep or not name.strip() or not path.strip():
            console.print(f"[red]Invalid --folder '{escape(value)}'. Expected NAME=PATH.[/red]")
            raise typer.Exit(code=2)
        folders[name.strip()] = path.strip()
    return folders


def _resolve_format(output_format: str, json_output: bool) -> str:
    if json_output:
        return "json"
    if output_format == "auto":
        return "rich" if console.is_terminal else "text"
    return output_format


def check_command(
    requirement_files: list[Path] | None = typer.Argument(
        None,
        help="Requirement declaration files (.yaml, .yml, .json or .toml).",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    db_config: Path | None = typer.Option(
        None,
        "--db-config",
        help="Database credential file (server, user, password, database, driver).",
        envvar="PREFLIGHT_DB_CONFIG_PATH",
    ),
    script_file: Path | None = typer.Option(
        None,
        "--script-file",
        help="Absolute path of the public entry script, for the web root check.",
    ),
    script_url: str | None = typer.Option(
        None,
        "--script-url",
        help="Public URL path of the entry script, e.g. /index.php.",
    ),
    folders: list[str] = typer.Option(
        [],
        "--folder",
        help="Sensitive folder as NAME=PATH; repeat for each folder.",
    ),
    no_platform: bool = typer.Option(
        False,
        "--no-platform",
        help="Skip the core platform requirements.",
    ),
    fail_on_warn: bool = typer.Option(
        False,
        "--fail-on-warn",
        help="Treat warnings as failures (exit code 1).",
    ),
    output_format: str = typer.Option(
        "auto",
        "--format",
        "-f",
        help="Output format: auto, rich, text, or json.",
    ),
) -> None:
    """Check the host against the platform and application requirements.

    Examples::

        preflight check
        preflight check config/requirements.yaml --db-config config/db.yaml
        preflight check --script-file /var/www/public/index.php --script-url /index.php \\
            --folder storage=/var/www/storage --folder config=/var/www/config
        preflight check --format json --fail-on-warn
    """
    from pydantic import ValidationError

    from preflight_cli.app import _debug, _env, _json_output
    from preflight_cli.display import display_requirements, format_requirements_text, result_to_json
    from preflight_core.config import load_settings
    from preflight_core.logging_config import configure_logging
    from preflight_core.requirements import (
        DeclarationLoadError,
        RequirementsChecker,
        RequirementsUsageError,
        UnsupportedDriverError,
        WebrootContext,
    )

    if output_format not in _FORMATS:
        console.print(f"[red]Invalid format '{output_format}'. Must be one of: {', '.join(_FORMATS)}.[/red]")
        raise typer.Exit(code=2)

    overrides: dict[str, Any] = {"env": _env}
    if db_config is not None:
        overrides["db_config_path"] = db_config
    if _debug:
        overrides["debug"] = True
    try:
        settings = load_settings(**overrides)
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration: {escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc
    configure_logging(settings)

    folder_map = _parse_folders(folders)
    webroot_context: WebrootContext | None = None
    if script_file is not None or script_url is not None:
        if script_file is None or script_url is None:
            console.print("[red]--script-file and --script-url must be given together.[/red]")
            raise typer.Exit(code=2)
        webroot_context = WebrootContext(script_file=script_file, script_url=script_url)

    checker = RequirementsChecker(settings=settings)
    try:
        if not no_platform:
            checker.check_platform(webroot_folders=folder_map, webroot_context=webroot_context)
        for path in requirement_files or []:
            checker.check(path)
        if settings.requirements_file is not None:
            checker.check(settings.requirements_file)
    except (RequirementsUsageError, DeclarationLoadError) as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc
    except UnsupportedDriverError as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(code=3) from exc
    finally:
        checker.close()

    result = checker.get_result()
    if result is None:
        console.print("[red]Error: Nothing to render![/red]")
        raise typer.Exit(code=2)

    context = checker.render_context()
    fmt = _resolve_format(output_format, _json_output)
    if fmt == "json":
        sys.stdout.write(result_to_json(result, context) + "\n")
    elif fmt == "rich":
        display_requirements(console, result, context)
    else:
        sys.stdout.write(format_requirements_text(result, context))

    logger.debug(
        "Requirements check finished: total=%d errors=%d warnings=%d",
        result.summary.total,
        result.summary.errors,
        result.summary.warnings,
    )

    # Exit code: 0 = passed, 1 = unmet mandatory requirements.
    if not result.passed:
        raise typer.Exit(code=1)
    if fail_on_warn and result.has_warnings:
        raise typer.Exit(code=1)
