"""Rollout command."""

from typing import Annotated

import typer

from src.cli.context import get_cli_context
from src.cli.deployment.rollout import (
    BackgroundNotifier,
    HelmExecutor,
    LoggingNotifier,
    RolloutOrchestrator,
    RolloutPipeline,
    UpgradeMode,
)
from src.core import vault

from .shared import RegionOption, console, with_error_handling


@with_error_handling
def rollout(
    typer_ctx: typer.Context,
    services: Annotated[list[str], typer.Argument(help="Services to roll out")],
    region: RegionOption,
    mode: Annotated[
        UpgradeMode, typer.Option("--mode", "-m", help="Rollout action")
    ] = UpgradeMode.UPGRADE_WAIT,
    parallel: Annotated[
        int | None,
        typer.Option("--parallel", "-p", min=1, help="Services rolled out at once"),
    ] = None,
    version: Annotated[
        str | None, typer.Option("--version", help="Override the manifest version")
    ] = None,
    ordered: Annotated[
        bool,
        typer.Option("--ordered", help="Roll out in dependency order, batch by batch"),
    ] = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """
    Roll out services to a region.

    Each service is merged, has its secrets reconciled and is validated
    first; services failing that are reported as skipped. The rest are
    dispatched in parallel and the command exits non-zero unless every
    service succeeded.
    """
    ctx = get_cli_context(typer_ctx)
    region_config = ctx.region(region)
    max_parallel = parallel or ctx.constants.DEFAULT_PARALLELISM

    kube_context = ctx.commands.kubectl.current_context()
    if region_config.cluster and kube_context != region_config.cluster:
        console.handle_error(
            f"kubectl context '{kube_context or 'none'}' does not match "
            f"cluster '{region_config.cluster}' of region {region}",
            "Switch context with: kubectl config use-context "
            f"{region_config.cluster}",
        )
    console.info(f"Using kubectl context {kube_context or '(default)'}")

    if mode.mutates and not console.confirm_action(
        f"{mode.value} {len(services)} services in {region}",
        details=", ".join(services),
        force=yes,
    ):
        raise typer.Exit(1)

    pipeline = RolloutPipeline(
        ctx.root, ctx.config, region_config, vault.regional(region_config.vault)
    )
    executor = HelmExecutor(
        ctx.commands, ctx.root / ctx.constants.CHARTS_DIR, ctx.constants
    )
    notifier = BackgroundNotifier([LoggingNotifier()])
    orchestrator = RolloutOrchestrator(
        executor, notifier=notifier, constants=ctx.constants
    )

    try:
        report = pipeline.rollout(
            orchestrator,
            services,
            mode,
            max_parallel,
            version=version,
            ordered=ordered,
        )
    finally:
        notifier.close()

    console.print_report(report)
    if not report.ok:
        raise typer.Exit(1)
