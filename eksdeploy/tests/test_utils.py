import subprocess

import pytest

from eksdeploy.config import RetryPolicy
from eksdeploy.utils import CommandError, ContextError, RetryExhaustedError, retry_fixed
from eksdeploy.utils.shell import Shell


def test_retry_stops_after_exact_attempt_count():
    calls = []

    def always_fails():
        calls.append(1)
        raise CommandError(["false"], 1)

    with pytest.raises(RetryExhaustedError) as excinfo:
        retry_fixed(always_fails, RetryPolicy(attempts=3, delay=0), "flaky", exceptions=(CommandError,))

    assert len(calls) == 3
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, CommandError)


def test_retry_sleeps_fixed_delay_between_attempts():
    sleeps = []

    def unreachable():
        raise ContextError("nope")

    with pytest.raises(RetryExhaustedError):
        retry_fixed(
            unreachable,
            RetryPolicy(attempts=4, delay=7),
            "sleepy",
            sleep=sleeps.append,
        )
    assert sleeps == [7, 7, 7]


def test_retry_returns_first_success():
    outcomes = iter([CommandError(["x"], 1), "ok"])

    def sometimes():
        value = next(outcomes)
        if isinstance(value, Exception):
            raise value
        return value

    assert retry_fixed(sometimes, RetryPolicy(attempts=3, delay=0), "eventually", exceptions=(CommandError,)) == "ok"


def test_retry_does_not_swallow_other_errors():
    calls = []

    def broken():
        calls.append(1)
        raise KeyError("bug")

    with pytest.raises(KeyError):
        retry_fixed(broken, RetryPolicy(attempts=3, delay=0), "broken", exceptions=(CommandError,))
    assert len(calls) == 1


def test_shell_raises_command_error(monkeypatch):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 2, stdout="", stderr="denied\n")

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(CommandError) as excinfo:
        Shell().run(["aws", "sts", "get-caller-identity"])
    assert excinfo.value.returncode == 2
    assert excinfo.value.stderr == "denied"
    assert "aws sts get-caller-identity" in str(excinfo.value)


def test_shell_missing_binary_is_command_error(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(CommandError):
        Shell().run(["definitely-not-installed"])
    assert Shell().succeeds(["definitely-not-installed"]) is False


def test_dry_run_skips_mutating_commands_only(monkeypatch):
    executed = []

    def fake_run(cmd, **kwargs):
        executed.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="us-east-1\n", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    shell = Shell(dry_run=True)
    shell.run(["eksctl", "create", "cluster"])
    assert executed == []

    assert shell.output(["aws", "configure", "get", "region"]) == "us-east-1"
    assert executed == [["aws", "configure", "get", "region"]]
