"""
Data models for EKS provisioning.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional
import time


class Phase(str, Enum):
    """Phases of the provisioning pipeline."""
    NOT_STARTED = 'not_started'
    RUNNING = 'running'
    COMPLETED = 'completed'
    FAILED = 'failed'


@dataclass
class Tool:
    """A CLI tool or OS package the pipeline depends on.

    ``probe`` is either a binary name looked up on PATH or, when it
    starts with '/', a filesystem path that must exist.
    """
    name: str
    probe: str
    install: Callable[[], None]
    version_cmd: Optional[List[str]] = None


@dataclass
class DeployContext:
    """Values resolved once and read by later steps."""
    region: str
    account_id: str

    @property
    def registry(self) -> str:
        return f"{self.account_id}.dkr.ecr.{self.region}.amazonaws.com"

    def image_uri(self, repository: str, tag: str = "latest") -> str:
        return f"{self.registry}/{repository}:{tag}"


@dataclass
class PipelineState:
    """Tracks the progress of a provisioning run."""
    phase: Phase = Phase.NOT_STARTED
    completed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[str] = None
    context: Optional[DeployContext] = None
    image_uri: Optional[str] = None
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    def update_phase(self, phase: Phase) -> None:
        self.phase = phase
        if phase in (Phase.COMPLETED, Phase.FAILED):
            self.end_time = time.time()

    def record_failure(self, step: str, error: BaseException) -> None:
        self.failed_step = step
        self.error = str(error)
        self.update_phase(Phase.FAILED)

    @property
    def duration(self) -> float:
        return (self.end_time or time.time()) - self.start_time
