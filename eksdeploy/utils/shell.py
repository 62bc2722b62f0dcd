"""Local command execution helpers."""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import requests

from . import CommandError

logger = logging.getLogger("eksdeploy.shell")

DOWNLOAD_CHUNK_SIZE = 1024 * 1024


def command_exists(name: str) -> bool:
    """Return True if ``name`` resolves to an executable on PATH."""
    return shutil.which(name) is not None


class Shell:
    """Runs external commands, raising CommandError on non-zero exit.

    With ``dry_run`` set, mutating commands are only logged. Read-only
    queries (``mutating=False``) always execute so later steps still get
    real answers.
    """

    def __init__(self, dry_run: bool = False, env: Optional[Dict[str, str]] = None):
        self.dry_run = dry_run
        self.env = env

    def run(
        self,
        cmd: Sequence[str],
        check: bool = True,
        input: Optional[str] = None,
        cwd: Optional[Union[str, Path]] = None,
        timeout: Optional[int] = None,
        mutating: bool = True,
    ) -> subprocess.CompletedProcess:
        """Execute a command and capture its output.

        Raises:
            CommandError: if check=True and the command exits non-zero or
                cannot be started
        """
        cmd = [str(part) for part in cmd]
        if self.dry_run and mutating:
            logger.info("[DRY RUN] Would execute: %s", " ".join(cmd))
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        logger.debug("Executing: %s", " ".join(cmd))
        env = {**os.environ, **self.env} if self.env else None
        try:
            result = subprocess.run(
                cmd,
                input=input,
                cwd=str(cwd) if cwd else None,
                env=env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            if check:
                raise CommandError(cmd, -1, str(e)) from e
            return subprocess.CompletedProcess(cmd, -1, stdout="", stderr=str(e))

        if result.returncode != 0:
            logger.debug("Command exited %d: %s", result.returncode, result.stderr.strip())
            if check:
                raise CommandError(cmd, result.returncode, result.stderr)
        return result

    def output(self, cmd: Sequence[str], **kwargs) -> str:
        """Run a read-only query and return its stripped stdout."""
        kwargs.setdefault("mutating", False)
        return self.run(cmd, **kwargs).stdout.strip()

    def succeeds(self, cmd: Sequence[str], **kwargs) -> bool:
        """Run a read-only query and report whether it exited zero."""
        kwargs.setdefault("mutating", False)
        return self.run(cmd, check=False, **kwargs).returncode == 0

    def sudo(self, cmd: List[str], **kwargs) -> subprocess.CompletedProcess:
        """Run a command through ``sudo`` unless already root."""
        if hasattr(os, "geteuid") and os.geteuid() == 0:
            return self.run(cmd, **kwargs)
        return self.run(["sudo"] + list(cmd), **kwargs)

    def download(self, url: str, dest: Union[str, Path], timeout: int = 60) -> Path:
        """Stream ``url`` to ``dest`` and return the destination path."""
        dest = Path(dest)
        if self.dry_run:
            logger.info("[DRY RUN] Would download %s -> %s", url, dest)
            return dest

        logger.debug("Downloading %s -> %s", url, dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
        return dest
