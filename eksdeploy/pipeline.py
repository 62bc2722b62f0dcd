"""Provisioning sequencer.

Runs the steps strictly in order::

    install -> configure -> publish -> provision -> verify

The first step that raises stops the run; no later step executes.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

from eksdeploy.config import DeployConfig
from eksdeploy.models import DeployContext, Phase, PipelineState
from eksdeploy.modules import context as context_mod
from eksdeploy.modules.cluster import ClusterProvisioner
from eksdeploy.modules.image import ImagePublisher
from eksdeploy.modules.installer import DependencyInstaller
from eksdeploy.modules.verify import ClusterVerifier
from eksdeploy.utils import EksDeployError
from eksdeploy.utils.shell import Shell

logger = logging.getLogger("eksdeploy.pipeline")

Step = Callable[[PipelineState], None]

STEP_NAMES = ("install", "configure", "publish", "provision", "verify")


class Pipeline:
    """Ordered provisioning workflow."""

    def __init__(
        self,
        config: DeployConfig,
        shell: Optional[Shell] = None,
        workdir: Optional[Union[str, Path]] = None,
    ):
        self.config = config
        self.shell = shell or Shell()
        self.workdir = workdir

    @property
    def steps(self) -> List[Tuple[str, Step]]:
        return [
            ("install", self.install),
            ("configure", self.configure),
            ("publish", self.publish),
            ("provision", self.provision),
            ("verify", self.verify),
        ]

    def run(self, skip: Iterable[str] = (), only: Optional[str] = None) -> PipelineState:
        """Execute the steps in order and return the final state."""
        skip = set(skip)
        unknown = (skip | ({only} if only else set())) - set(STEP_NAMES)
        if unknown:
            raise ValueError(f"Unknown step(s): {', '.join(sorted(unknown))}")

        state = PipelineState()
        state.update_phase(Phase.RUNNING)
        logger.info("🚀 Starting provisioning...")

        for name, step in self.steps:
            if name in skip or (only and name != only):
                state.skipped.append(name)
                continue
            logger.info("▶️  Step: %s", name)
            try:
                step(state)
            except EksDeployError as e:
                logger.error("❌ Step '%s' failed: %s", name, e)
                state.record_failure(name, e)
                return state
            state.completed.append(name)

        state.update_phase(Phase.COMPLETED)
        logger.info("✅ Provisioning completed in %.1fs", state.duration)
        return state

    def _context(self, state: PipelineState) -> DeployContext:
        if state.context is None:
            state.context = context_mod.from_environment(self.config.aws)
        if state.context is None:
            # configure was skipped and nothing was exported before
            self.configure(state)
        return state.context

    def install(self, state: PipelineState) -> None:
        DependencyInstaller(self.shell, self.config.tools).ensure_all()

    def configure(self, state: PipelineState) -> None:
        state.context = context_mod.configure(
            self.shell, self.config.aws, self.config.profile_path
        )

    def publish(self, state: PipelineState) -> None:
        publisher = ImagePublisher(
            self.shell, self.config.image, self._context(state), workdir=self.workdir
        )
        state.image_uri = publisher.publish()

    def provision(self, state: PipelineState) -> None:
        ClusterProvisioner(self.shell, self.config.cluster, self._context(state)).provision()

    def verify(self, state: PipelineState) -> None:
        ClusterVerifier(
            self.shell, self.config.cluster, self._context(state), poll=self.config.verify.poll
        ).wait_until_ready()

    def delete(self) -> None:
        ClusterProvisioner(self.shell, self.config.cluster, self._context(PipelineState())).delete()
