"""Secret store commands."""

from typing import Annotated

import typer

from src.cli.context import get_cli_context
from src.core import vault
from src.core.manifest import (
    SecretReconciliationError,
    load_manifest,
    vault_path,
    verify_secrets_exist,
)

from .shared import RegionOption, console, with_error_handling

secrets_app = typer.Typer(help="🔐 Secret store commands", no_args_is_help=True)


@secrets_app.command("verify")
@with_error_handling
def verify(
    typer_ctx: typer.Context,
    services: Annotated[list[str], typer.Argument(help="Services to check")],
    region: RegionOption,
) -> None:
    """
    Check that every secret the services declare exists in the secret store.

    Lists each service's folder instead of reading the secrets, so values
    never leave the store.
    """
    ctx = get_cli_context(typer_ctx)
    region_config = ctx.region(region)
    store = vault.regional(region_config.vault)
    folders = ctx.config.vault_folders()

    missing = 0
    for service in services:
        manifest = load_manifest(ctx.root, service, ctx.config, region)
        try:
            verify_secrets_exist(manifest, store, region_config.vault, folders)
        except SecretReconciliationError as e:
            missing += 1
            console.error(e.message)
            continue
        path = vault_path(manifest, region_config.vault, folders)
        console.ok(f"{service}: secrets present in {path}")

    if missing:
        console.handle_error(f"{missing} of {len(services)} services have missing secrets")
