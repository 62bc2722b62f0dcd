from pathlib import Path
from typing import Optional

import typer

from eksdeploy.utils import EksDeployError
from .run import config_option, dry_run_option, build_pipeline


def delete(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    config: Optional[Path] = config_option(),
    dry_run: bool = dry_run_option(),
):
    """Delete the EKS cluster and its nodegroups."""
    pipeline = build_pipeline(config, dry_run)
    name = pipeline.config.cluster.name
    if not yes:
        confirm = typer.confirm(f"Are you sure you want to delete the cluster '{name}'?", default=False)
        if not confirm:
            typer.echo("❌ Deletion cancelled.")
            raise typer.Exit()
    try:
        pipeline.delete()
    except EksDeployError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
