"""Dependency installation.

Makes sure the OS packages and CLI tools the pipeline shells out to are
present. Tools that are already installed are left alone.
"""

import logging
import os
import platform
import shutil
import tarfile
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import requests

from eksdeploy.config import ToolsConfig
from eksdeploy.models import Tool
from eksdeploy.utils import CommandError, InstallError
from eksdeploy.utils.shell import Shell, command_exists

logger = logging.getLogger("eksdeploy.installer")

# apt package -> binary name or path proving it is installed
APT_PROBES: Dict[str, str] = {
    "unzip": "unzip",
    "jq": "jq",
    "bash-completion": "/usr/share/bash-completion/bash_completion",
    "python3-pip": "pip3",
    "curl": "curl",
    "git": "git",
}


def is_present(probe: str) -> bool:
    """Check a tool probe: an absolute path must exist, a name must be on PATH."""
    if probe.startswith("/"):
        return os.path.exists(probe)
    return command_exists(probe)


@contextmanager
def _workdir() -> Iterator[Path]:
    path = Path(tempfile.mkdtemp(prefix="eksdeploy-"))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


class DependencyInstaller:
    """Installs missing tools, each with its own fixed procedure."""

    def __init__(self, shell: Shell, tools: Optional[ToolsConfig] = None):
        self.shell = shell
        self.tools = tools or ToolsConfig()
        self._apt_updated = False

    def required_tools(self) -> List[Tool]:
        """Tools in installation order; apt packages come first."""
        return [
            Tool("aws", "aws", self.install_awscli, ["aws", "--version"]),
            Tool("kubectl", "kubectl", self.install_kubectl, ["kubectl", "version", "--client=true"]),
            Tool("eksctl", "eksctl", self.install_eksctl, ["eksctl", "version"]),
            Tool("docker", "docker", self.install_docker, ["docker", "--version"]),
        ]

    def ensure_all(self) -> List[str]:
        """Install everything that is missing and return what was installed."""
        logger.info("📦 Checking system dependencies...")
        installed = self.ensure_apt_packages(self.tools.apt_packages)
        for tool in self.required_tools():
            if self.ensure(tool):
                installed.append(tool.name)
        if installed:
            logger.info("✅ Installed: %s", ", ".join(installed))
        else:
            logger.info("✅ All dependencies already present")
        return installed

    def ensure(self, tool: Tool) -> bool:
        """Install ``tool`` if absent. Returns True when an install happened."""
        if is_present(tool.probe):
            logger.info("%s already installed%s", tool.name, self._version_suffix(tool))
            return False

        logger.info("⬇️  Installing %s...", tool.name)
        try:
            tool.install()
        except (CommandError, requests.RequestException, tarfile.TarError, OSError) as e:
            raise InstallError(f"Failed to install {tool.name}: {e}") from e

        if not self.shell.dry_run and not is_present(tool.probe):
            raise InstallError(f"{tool.name} still not found after installation")
        logger.info("✅ %s installed successfully%s", tool.name, self._version_suffix(tool))
        return True

    def ensure_apt_packages(self, packages: List[str]) -> List[str]:
        """apt-get install the packages whose probe fails."""
        missing = [pkg for pkg in packages if not is_present(APT_PROBES.get(pkg, pkg))]
        if not missing:
            return []

        logger.info("⬇️  Installing system packages: %s", " ".join(missing))
        try:
            self._apt_update()
            self.shell.sudo(["apt", "install", "-y"] + missing)
        except CommandError as e:
            raise InstallError(f"Failed to install system packages {missing}: {e}") from e
        return missing

    def _apt_update(self) -> None:
        if not self._apt_updated:
            self.shell.sudo(["apt", "update"])
            self._apt_updated = True

    def _version_suffix(self, tool: Tool) -> str:
        if not tool.version_cmd or self.shell.dry_run:
            return ""
        result = self.shell.run(tool.version_cmd, check=False, mutating=False)
        version = (result.stdout or result.stderr).strip().splitlines()
        return f": {version[0]}" if version else ""

    def install_awscli(self) -> None:
        with _workdir() as tmp:
            archive = self.shell.download(self.tools.awscli_url, tmp / "awscliv2.zip")
            self.shell.run(["unzip", "-q", archive, "-d", tmp])
            self.shell.sudo([str(tmp / "aws" / "install")])

    def install_kubectl(self) -> None:
        with _workdir() as tmp:
            binary = self.shell.download(self.tools.kubectl_url, tmp / "kubectl")
            self._install_binary(binary, "kubectl")

    def install_eksctl(self) -> None:
        url = self.tools.eksctl_url.format(system=platform.system())
        with _workdir() as tmp:
            archive = self.shell.download(url, tmp / "eksctl.tar.gz")
            if self.shell.dry_run:
                return
            with tarfile.open(archive, "r:gz") as tar:
                tar.extract("eksctl", path=tmp)
            self._install_binary(tmp / "eksctl", "eksctl")

    def install_docker(self) -> None:
        with _workdir() as tmp:
            script = self.shell.download(self.tools.docker_script_url, tmp / "get-docker.sh")
            self.shell.sudo(["sh", script])
        self.shell.sudo(["usermod", "-aG", "docker", self.tools.docker_user])

    def _install_binary(self, source: Path, name: str) -> None:
        target = Path(self.tools.install_dir) / name
        self.shell.sudo(["install", "-m", "0755", source, target])
