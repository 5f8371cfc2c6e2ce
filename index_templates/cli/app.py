"""Main CLI application."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from pydantic import ValidationError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from typing_extensions import Annotated

from ..core.errors import RemoteUnavailable, TemplateSyncError
from ..core.models import DeclaredTemplate, TransportConfig
from ..reconcile import ConvergeReport, TemplateReconciler
from ..remote.client import TemplateClient
from ..remote.snapshot import instances
from ..settings import Settings
from .parsers import load_declarations, parse_output_format

logger = logging.getLogger(__name__)

RETRY_WAIT = wait_exponential(multiplier=1, min=2, max=30)

app = typer.Typer(
    name="index-templates",
    help="Converge index templates on a remote search cluster.",
    no_args_is_help=True,
)


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(f"error: {exc}", err=True)
    return typer.Exit(code=2)


def _config(ctx: typer.Context) -> TransportConfig:
    return ctx.obj


def _emit(data: Any, output_format: str) -> None:
    if output_format == "yaml":
        typer.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=True), nl=False)
    else:
        typer.echo(json.dumps(data, indent=2, sort_keys=True))


@app.callback()
def connection(
    ctx: typer.Context,
    scheme: Annotated[
        Optional[str],
        typer.Option("--scheme", help="http or https (default from settings)."),
    ] = None,
    host: Annotated[
        Optional[str], typer.Option("--host", help="Service host.", metavar="HOST")
    ] = None,
    port: Annotated[
        Optional[int], typer.Option("--port", help="Service port.", metavar="PORT")
    ] = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Request timeout in seconds.", metavar="SECONDS"),
    ] = None,
    username: Annotated[
        Optional[str], typer.Option("--username", help="Basic auth user.")
    ] = None,
    password: Annotated[
        Optional[str], typer.Option("--password", help="Basic auth password.")
    ] = None,
    insecure: Annotated[
        bool,
        typer.Option("--insecure", help="Skip TLS certificate validation."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging."),
    ] = False,
) -> None:
    """Connection options shared by every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
        force=True,
    )

    try:
        ctx.obj = Settings().transport(
            scheme=scheme,
            host=host,
            port=port,
            timeout=timeout,
            username=username,
            password=password,
            verify_tls=False if insecure else None,
        )
    except ValidationError as e:
        raise typer.BadParameter(str(e)) from e

    logger.debug("Target: %s (auth: %s)", ctx.obj.base_url, ctx.obj.auth_enabled)


@app.command("list")
def list_command(
    ctx: typer.Context,
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: json or yaml.", metavar="FORMAT"),
    ] = "json",
) -> None:
    """Print every remote template, normalized."""
    fmt = parse_output_format(output_format)
    try:
        with TemplateClient(_config(ctx)) as client:
            records = instances(client)
    except TemplateSyncError as e:
        raise _fail(e) from e

    _emit({record.name: record.to_dict()["content"] for record in records}, fmt)


@app.command("diff")
def diff_command(
    ctx: typer.Context,
    declarations: Annotated[
        Path, typer.Argument(help="YAML file with a 'templates' mapping.")
    ],
) -> None:
    """Show declared templates that differ from the remote service."""
    try:
        declared = load_declarations(declarations)
        with TemplateClient(_config(ctx)) as client:
            reconciler = TemplateReconciler(client)
            pending = [
                (item, reconciler.plan(item), reconciler.diff(item)) for item in declared
            ]
    except TemplateSyncError as e:
        raise _fail(e) from e

    diverged = 0
    for item, action, changes in pending:
        if action == "unchanged":
            continue
        diverged += 1
        typer.echo(f"{action:<9} {item.name}")
        if changes:
            typer.echo(json.dumps(changes, indent=2, sort_keys=True))

    typer.echo(f"{diverged} of {len(pending)} template(s) differ")
    if diverged:
        raise typer.Exit(code=1)


def _converge(
    config: TransportConfig, declared: list[DeclaredTemplate], dry_run: bool
) -> ConvergeReport:
    with TemplateClient(config) as client:
        return TemplateReconciler(client).converge(declared, dry_run=dry_run)


@app.command("apply")
def apply_command(
    ctx: typer.Context,
    declarations: Annotated[
        Path, typer.Argument(help="YAML file with a 'templates' mapping.")
    ],
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Report planned changes without writing."),
    ] = False,
    retries: Annotated[
        int,
        typer.Option(
            "--retries",
            min=0,
            help="Re-run the whole pass this many times if the listing is unavailable.",
        ),
    ] = 0,
) -> None:
    """Create or update declared templates that differ from the remote service."""
    config = _config(ctx)
    run = retry(
        reraise=True,
        retry=retry_if_exception_type(RemoteUnavailable),
        stop=stop_after_attempt(retries + 1),
        wait=RETRY_WAIT,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )(_converge)

    try:
        declared = load_declarations(declarations)
        report = run(config, declared, dry_run)
    except TemplateSyncError as e:
        raise _fail(e) from e

    for outcome in report.outcomes:
        line = f"{outcome.action:<9} {outcome.name}"
        if outcome.error:
            line += f": {outcome.error}"
        typer.echo(line)

    prefix = "planned" if report.dry_run else "applied"
    typer.echo(f"{prefix}: {len(report.changed)} change(s), {len(report.outcomes)} template(s)")
    if not report.ok:
        raise typer.Exit(code=1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
