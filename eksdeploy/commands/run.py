import logging
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from eksdeploy.config import Config, DeployConfig
from eksdeploy.models import Phase
from eksdeploy.pipeline import STEP_NAMES, Pipeline
from eksdeploy.utils.shell import Shell

logger = logging.getLogger("eksdeploy.commands")

def config_option():
    return typer.Option(None, "--config", "-c", help="Path to a YAML config file")


def dry_run_option():
    return typer.Option(Config.DRY_RUN, "--dry-run", help="Log mutating commands instead of running them")


def workdir_option():
    return typer.Option(None, "--workdir", help="Directory the application source is cloned into")


def load_config(config_path: Optional[Path]) -> DeployConfig:
    try:
        return DeployConfig.load(config_path)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        logger.error("❌ Invalid configuration: %s", e)
        raise typer.Exit(code=1)


def build_pipeline(config_path: Optional[Path], dry_run: bool, workdir: Optional[Path] = None) -> Pipeline:
    return Pipeline(load_config(config_path), shell=Shell(dry_run=dry_run), workdir=workdir)


def execute(
    config_path: Optional[Path],
    dry_run: bool,
    skip: Optional[List[str]] = None,
    only: Optional[str] = None,
    workdir: Optional[Path] = None,
) -> None:
    """Run the pipeline and turn a failed step into exit status 1."""
    for name in skip or []:
        if name not in STEP_NAMES:
            raise typer.BadParameter(f"Unknown step '{name}'. Choose from: {', '.join(STEP_NAMES)}")

    state = build_pipeline(config_path, dry_run, workdir).run(skip=skip or (), only=only)
    if state.phase == Phase.FAILED:
        raise typer.Exit(code=1)
    if state.image_uri:
        typer.echo(f"Image: {state.image_uri}")


def run(
    skip: List[str] = typer.Option([], "--skip", help=f"Step to skip ({', '.join(STEP_NAMES)})"),
    config: Optional[Path] = config_option(),
    dry_run: bool = dry_run_option(),
    workdir: Optional[Path] = workdir_option(),
):
    """Full flow: install tools → configure AWS → publish image → create cluster → verify."""
    execute(config, dry_run, skip=skip, workdir=workdir)


def install(config: Optional[Path] = config_option(), dry_run: bool = dry_run_option()):
    """Install missing OS packages and CLI tools."""
    execute(config, dry_run, only="install")


def configure(config: Optional[Path] = config_option(), dry_run: bool = dry_run_option()):
    """Resolve region and account id and export them to the shell profile."""
    execute(config, dry_run, only="configure")


def publish(
    config: Optional[Path] = config_option(),
    dry_run: bool = dry_run_option(),
    workdir: Optional[Path] = workdir_option(),
):
    """Build the application image and push it to ECR."""
    execute(config, dry_run, only="publish", workdir=workdir)


def provision(config: Optional[Path] = config_option(), dry_run: bool = dry_run_option()):
    """Create the EKS cluster, OIDC provider and managed nodegroup."""
    execute(config, dry_run, only="provision")


def verify(config: Optional[Path] = config_option(), dry_run: bool = dry_run_option()):
    """Wait until the cluster, nodegroup and nodes are ready."""
    execute(config, dry_run, only="verify")
