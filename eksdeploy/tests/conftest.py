import subprocess
from pathlib import Path

import pytest

from eksdeploy.config import DeployConfig, RetryPolicy
from eksdeploy.utils import CommandError
from eksdeploy.utils.shell import Shell


def _strip_sudo(cmd):
    return cmd[1:] if cmd and cmd[0] == "sudo" else cmd


class FakeShell(Shell):
    """Records commands instead of running them.

    ``responses`` maps a command prefix to ``(returncode, stdout)`` or a list
    of those, consumed in order with the last one repeating.
    """

    def __init__(self, responses=None, dry_run=False):
        super().__init__(dry_run=dry_run)
        self.responses = dict(responses or {})
        self.calls = []
        self.inputs = []

    def _lookup(self, line):
        matches = [key for key in self.responses if line.startswith(key)]
        if not matches:
            return 0, ""
        key = max(matches, key=len)
        value = self.responses[key]
        if isinstance(value, list):
            return value.pop(0) if len(value) > 1 else value[0]
        return value

    def run(self, cmd, check=True, input=None, cwd=None, timeout=None, mutating=True):
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)
        self.inputs.append(input)
        returncode, stdout = self._lookup(" ".join(_strip_sudo(cmd)))
        if returncode != 0 and check:
            raise CommandError(cmd, returncode, "boom")
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="boom" if returncode else "")

    def download(self, url, dest, timeout=60):
        self.calls.append(["download", url])
        return Path(dest)

    def commands(self, prefix=""):
        return [
            " ".join(_strip_sudo(cmd)) for cmd in self.calls
            if " ".join(_strip_sudo(cmd)).startswith(prefix)
        ]


@pytest.fixture
def fake_shell():
    return FakeShell()


@pytest.fixture
def deploy_config(tmp_path):
    """Defaults with zero-delay retries and a throwaway profile."""
    config = DeployConfig(profile_path=str(tmp_path / ".bash_profile"))
    config.aws.metadata_retry = RetryPolicy(attempts=3, delay=0)
    config.image.login_retry = RetryPolicy(attempts=3, delay=0)
    config.cluster.create_retry = RetryPolicy(attempts=3, delay=0)
    config.verify.poll = RetryPolicy(attempts=4, delay=0)
    return config
