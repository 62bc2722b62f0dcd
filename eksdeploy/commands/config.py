from pathlib import Path
from typing import Optional

import typer
import yaml

from eksdeploy.config import DeployConfig
from .run import config_option, load_config

app = typer.Typer(help="Inspect or create configuration files.")


@app.command("show")
def show_config(config: Optional[Path] = config_option()):
    """Print the effective configuration as YAML."""
    effective = load_config(config)
    typer.echo(yaml.safe_dump(effective.model_dump(), default_flow_style=False, sort_keys=False))


@app.command("init")
def init_config(
    path: Path = typer.Argument(Path("eksdeploy.yaml"), help="Where to write the config file"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Write a config file populated with the defaults."""
    if path.exists() and not force:
        typer.echo(f"❌ {path} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(code=1)
    DeployConfig().save(path)
    typer.echo(f"✅ Wrote default configuration to {path}")
