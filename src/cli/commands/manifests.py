"""Manifest inspection commands: validate, show, graph and listings."""

from typing import Annotated

import typer
import yaml
from rich.syntax import Syntax
from rich.table import Table

from src.cli.context import get_cli_context
from src.cli.deployment.rollout import RolloutPipeline
from src.core import vault
from src.core.manifest import (
    ManifestError,
    ManifestFailure,
    available_services,
    build,
    load_raw_manifest,
)
from src.core.vault import VaultError

from .shared import RegionOption, console, with_error_handling

list_app = typer.Typer(help="List services and regions", no_args_is_help=True)


def _pipeline(
    typer_ctx: typer.Context, region_name: str, live_secrets: bool
) -> RolloutPipeline:
    ctx = get_cli_context(typer_ctx)
    region = ctx.region(region_name)
    store = vault.regional(region.vault) if live_secrets else vault.mocked(region.vault)
    return RolloutPipeline(ctx.root, ctx.config, region, store)


@with_error_handling
def validate(
    typer_ctx: typer.Context,
    services: Annotated[list[str], typer.Argument(help="Services to validate")],
    region: RegionOption,
    secrets: Annotated[
        bool,
        typer.Option("--secrets", help="Read real secrets instead of mocked values"),
    ] = False,
) -> None:
    """Merge, reconcile and validate manifests for a region."""
    pipeline = _pipeline(typer_ctx, region, secrets)
    failures = 0
    for service in services:
        try:
            manifest = pipeline.complete(pipeline.load(service))
        except ManifestFailure as e:
            failures += 1
            console.error(f"{service}: {e.message} (bug)")
            continue
        except (ManifestError, VaultError) as e:
            failures += 1
            console.error(str(e))
            continue
        console.ok(f"{manifest.name} is valid for {region}")

    if failures:
        console.handle_error(f"{failures} of {len(services)} manifests failed validation")


@with_error_handling
def show(
    typer_ctx: typer.Context,
    service: Annotated[str, typer.Argument(help="Service to show")],
    region: RegionOption,
    secrets: Annotated[
        bool,
        typer.Option("--secrets", help="Read real secrets instead of mocked values"),
    ] = False,
) -> None:
    """Print the completed manifest with secrets redacted."""
    pipeline = _pipeline(typer_ctx, region, secrets)
    manifest = pipeline.complete(pipeline.load(service))
    document = yaml.safe_dump(manifest.redacted(), sort_keys=False)
    console.print(Syntax(document, "yaml"))


@with_error_handling
def graph(
    typer_ctx: typer.Context,
    region: RegionOption,
    batches: Annotated[
        bool, typer.Option("--batches", help="Group services into parallel batches")
    ] = False,
) -> None:
    """Print the dependency ordered rollout of every service in a region."""
    ctx = get_cli_context(typer_ctx)
    pipeline = _pipeline(typer_ctx, region, live_secrets=False)
    manifests = [
        pipeline.load(service)
        for service in available_services(ctx.root)
    ]
    dependency_graph = build(m for m in manifests if region in m.regions)

    if batches:
        for index, batch in enumerate(dependency_graph.batches(), start=1):
            console.print(f"[bold]{index}.[/bold] {', '.join(batch)}")
        return
    for index, service in enumerate(dependency_graph.rollout_order(), start=1):
        deps = dependency_graph.dependencies_of(service)
        suffix = f" [dim](after {', '.join(deps)})[/dim]" if deps else ""
        console.print(f"[bold]{index}.[/bold] {service}{suffix}")


@list_app.command("services")
@with_error_handling
def list_services(
    typer_ctx: typer.Context,
    region: Annotated[
        str | None, typer.Option("--region", "-r", help="Only services in this region")
    ] = None,
) -> None:
    """List services with a manifest."""
    ctx = get_cli_context(typer_ctx)
    if region is not None:
        ctx.region(region)
    for service in available_services(ctx.root):
        if region is not None and region not in load_raw_manifest(ctx.root, service).regions:
            continue
        console.print(service)


@list_app.command("regions")
@with_error_handling
def list_regions(typer_ctx: typer.Context) -> None:
    """List configured regions."""
    ctx = get_cli_context(typer_ctx)
    table = Table()
    table.add_column("Region", style="bold")
    table.add_column("Namespace")
    table.add_column("Environment")
    table.add_column("Cluster")
    table.add_column("Versioning")
    for region in ctx.config.regions:
        table.add_row(
            region.name,
            region.namespace,
            region.environment,
            region.cluster or "-",
            region.versioning_scheme.value,
        )
    console.print(table)
