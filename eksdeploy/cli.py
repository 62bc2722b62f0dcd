import typer
import logging
import sys
from typing import Optional
from eksdeploy.commands import run, delete, config
from eksdeploy.logging import setup_logging

app = typer.Typer(help="Provision an EKS cluster and publish the application image.")

# Global debug flag
debug_mode = False

# Pipeline steps, runnable together or one at a time
app.command("run")(run.run)
app.command("install")(run.install)
app.command("configure")(run.configure)
app.command("publish")(run.publish)
app.command("provision")(run.provision)
app.command("verify")(run.verify)
app.command("delete")(delete.delete)

app.add_typer(config.app, name="config")

# Global options callback
@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file"),
):
    """EKSDeploy - EKS provisioning CLI."""
    global debug_mode
    debug_mode = debug
    setup_logging(debug, log_file)
    if debug:
        logging.debug("Debug mode enabled")

def run_cli():
    """Console entry point: run the app and turn unexpected errors into exit 1."""
    try:
        app()
    except Exception as e:
        if debug_mode:
            import traceback
            logging.error(f"Unhandled exception: {e}\n{traceback.format_exc()}")
        else:
            logging.error(f"Error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    run_cli()
