import logging
import logging.handlers

import pytest
import yaml
from typer.testing import CliRunner

from eksdeploy import cli
from eksdeploy.cli import app
from eksdeploy.commands import run as run_cmd
from eksdeploy.models import Phase, PipelineState

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class StubPipeline:
    instances = []

    def __init__(self, config, shell=None, workdir=None):
        self.config = config
        self.shell = shell
        self.calls = []
        StubPipeline.instances.append(self)

    def run(self, skip=(), only=None):
        self.calls.append((tuple(skip), only))
        state = PipelineState()
        state.update_phase(self.outcome)
        return state


def stub(monkeypatch, outcome):
    StubPipeline.outcome = outcome
    StubPipeline.instances = []
    monkeypatch.setattr(run_cmd, "Pipeline", StubPipeline)


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("run", "install", "configure", "publish", "provision", "verify", "delete", "config"):
        assert command in result.stdout


def test_run_help_lists_options():
    result = runner.invoke(app, ["run", "--help"])
    assert "--skip" in result.stdout
    assert "--dry-run" in result.stdout


def test_run_success_exits_zero(monkeypatch):
    stub(monkeypatch, Phase.COMPLETED)
    result = runner.invoke(app, ["run", "--skip", "install"])
    assert result.exit_code == 0
    assert StubPipeline.instances[0].calls == [(("install",), None)]


def test_run_failure_exits_one(monkeypatch):
    stub(monkeypatch, Phase.FAILED)
    result = runner.invoke(app, ["run"])
    assert result.exit_code == 1


def test_log_file_option_adds_rotating_handler(monkeypatch, tmp_path):
    stub(monkeypatch, Phase.COMPLETED)
    log_file = tmp_path / "logs" / "eksdeploy.log"

    result = runner.invoke(app, ["--log-file", str(log_file), "run"])

    assert result.exit_code == 0
    assert log_file.parent.is_dir()
    handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    assert [h.baseFilename for h in handlers] == [str(log_file)]
    for handler in handlers:
        handler.close()

def test_single_step_command(monkeypatch):
    stub(monkeypatch, Phase.COMPLETED)
    result = runner.invoke(app, ["verify", "--dry-run"])
    assert result.exit_code == 0
    pipeline = StubPipeline.instances[0]
    assert pipeline.calls == [((), "verify")]
    assert pipeline.shell.dry_run is True


def test_unknown_skip_rejected(monkeypatch):
    stub(monkeypatch, Phase.COMPLETED)
    result = runner.invoke(app, ["run", "--skip", "teardown"])
    assert result.exit_code != 0
    assert StubPipeline.instances == []


def test_bad_config_exits_one(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({"cluster": {"nodes": 9, "nodes_max": 4}}))
    result = runner.invoke(app, ["run", "--config", str(path)])
    assert result.exit_code == 1


def test_config_init_and_show(tmp_path):
    path = tmp_path / "eksdeploy.yaml"
    result = runner.invoke(app, ["config", "init", str(path)])
    assert result.exit_code == 0
    assert yaml.safe_load(path.read_text())["cluster"]["name"] == "eksdemo"

    result = runner.invoke(app, ["config", "init", str(path)])
    assert result.exit_code == 1

    result = runner.invoke(app, ["config", "show", "--config", str(path)])
    assert result.exit_code == 0
    assert "portfolio-website" in result.stdout


def test_delete_cancelled(monkeypatch):
    called = []
    monkeypatch.setattr("eksdeploy.pipeline.Pipeline.delete", lambda self: called.append(True))
    result = runner.invoke(app, ["delete"], input="n\n")
    assert "cancelled" in result.stdout
    assert called == []


def test_delete_confirmed(monkeypatch):
    called = []
    monkeypatch.setattr("eksdeploy.pipeline.Pipeline.delete", lambda self: called.append(True))
    result = runner.invoke(app, ["delete", "--yes"])
    assert result.exit_code == 0
    assert called == [True]


def test_console_entry_point_exits_one_on_unexpected_error(monkeypatch):
    def broken():
        raise RuntimeError("boom")

    monkeypatch.setattr(cli, "app", broken)
    with pytest.raises(SystemExit) as exc:
        cli.run_cli()
    assert exc.value.code == 1


def test_module_entry_point_uses_console_handler():
    import eksdeploy.__main__ as main_mod

    assert main_mod.run_cli is cli.run_cli
