"""Utility functions and helpers for the eksdeploy application."""
import logging
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from ..config import RetryPolicy

T = TypeVar('T')

logger = logging.getLogger("eksdeploy.utils")


class EksDeployError(Exception):
    """Base class for all provisioning errors."""


class CommandError(EksDeployError):
    """An external command exited with a non-zero status."""

    def __init__(self, cmd, returncode: int, stderr: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        message = f"Command '{' '.join(self.cmd)}' failed with exit code {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)


class InstallError(EksDeployError):
    """A required tool could not be installed."""


class ContextError(EksDeployError):
    """Region or account could not be resolved."""


class RegistryError(EksDeployError):
    """Image build or registry interaction failed."""


class ClusterError(EksDeployError):
    """Cluster or node group provisioning failed."""


class VerificationError(EksDeployError):
    """The cluster did not become ready in time."""


class RetryExhaustedError(EksDeployError):
    """Custom exception for retry-related errors."""

    def __init__(self, description: str, attempts: int, last_error: Optional[BaseException]):
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{description} failed after {attempts} attempts. Last error: {last_error}"
        )


def retry_fixed(
    func: Callable[..., T],
    policy: RetryPolicy,
    description: str,
    exceptions: Tuple[Type[BaseException], ...] = (EksDeployError,),
    sleep: Optional[Callable[[float], Any]] = None,
) -> T:
    """Call ``func`` until it succeeds or ``policy.attempts`` calls have failed.

    Only ``exceptions`` trigger another attempt; anything else propagates
    immediately. Waits ``policy.delay`` seconds between attempts.

    Raises:
        RetryExhaustedError: after exactly ``policy.attempts`` failed calls
    """
    kwargs = {}
    if sleep is not None:
        kwargs["sleep"] = sleep

    retrying = Retrying(
        stop=stop_after_attempt(policy.attempts),
        wait=wait_fixed(policy.delay),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        **kwargs,
    )
    try:
        return retrying(func)
    except RetryError as e:
        last = e.last_attempt.exception()
        logger.error("❌ %s: giving up after %d attempts", description, policy.attempts)
        raise RetryExhaustedError(description, policy.attempts, last) from last
