"""Container image build and ECR publishing."""

import logging
from pathlib import Path
from typing import Optional, Union

from eksdeploy.config import ImageConfig
from eksdeploy.models import DeployContext
from eksdeploy.utils import CommandError, RegistryError, RetryExhaustedError, retry_fixed
from eksdeploy.utils.shell import Shell

logger = logging.getLogger("eksdeploy.image")


class ImagePublisher:
    """Builds the application image and pushes it to ECR."""

    def __init__(
        self,
        shell: Shell,
        settings: ImageConfig,
        context: DeployContext,
        workdir: Optional[Union[str, Path]] = None,
    ):
        self.shell = shell
        self.settings = settings
        self.context = context
        self.workdir = Path(workdir or Path.cwd())

    @property
    def checkout(self) -> Path:
        return self.workdir / self.settings.checkout_dir

    @property
    def build_dir(self) -> Path:
        return self.checkout / self.settings.app_subdir

    @property
    def image_uri(self) -> str:
        return self.context.image_uri(self.settings.repository, self.settings.tag)

    def fetch_source(self) -> Path:
        """Clone the application repository unless it is already checked out."""
        if self.checkout.is_dir():
            logger.info("Source already present at %s", self.checkout)
        else:
            logger.info("📥 Cloning %s...", self.settings.source_repo)
            self.shell.run(["git", "clone", self.settings.source_repo, self.checkout])
        return self.build_dir

    def ensure_repository(self) -> bool:
        """Create the ECR repository if missing. Returns True when created."""
        exists = self.shell.succeeds([
            "aws", "ecr", "describe-repositories",
            "--repository-names", self.settings.repository,
            "--region", self.context.region,
        ])
        if exists:
            logger.info("ECR repository %s already exists", self.settings.repository)
            return False

        logger.info("🗄️  Creating ECR repository %s...", self.settings.repository)
        scan = "true" if self.settings.scan_on_push else "false"
        self.shell.run([
            "aws", "ecr", "create-repository",
            "--repository-name", self.settings.repository,
            "--image-scanning-configuration", f"scanOnPush={scan}",
            "--region", self.context.region,
        ])
        return True

    def _login_once(self) -> None:
        password = self.shell.output(
            ["aws", "ecr", "get-login-password", "--region", self.context.region],
            mutating=True,
        )
        self.shell.run(
            ["docker", "login", "--username", "AWS", "--password-stdin", self.context.registry],
            input=password,
        )

    def login(self) -> None:
        """Authenticate docker against the registry with a fixed retry budget."""
        logger.info("🔑 Logging in to %s...", self.context.registry)
        try:
            retry_fixed(
                self._login_once,
                self.settings.login_retry,
                "Registry login",
                exceptions=(CommandError,),
            )
        except RetryExhaustedError as e:
            raise RegistryError(str(e)) from e

    def build(self) -> None:
        logger.info("🔨 Building image %s...", self.settings.repository)
        self.shell.run(
            ["docker", "build", "-t", f"{self.settings.repository}:{self.settings.tag}", "."],
            cwd=self.build_dir,
        )

    def run_local(self) -> None:
        """Start the image locally, replacing an older container of the same name."""
        name = self.settings.repository
        logger.info("▶️  Starting local container %s on port %d...", name, self.settings.local_port)
        self.shell.run(["docker", "rm", "-f", name], check=False)
        self.shell.run([
            "docker", "run", "-d",
            "-p", f"{self.settings.local_port}:{self.settings.container_port}",
            "--name", name,
            f"{self.settings.repository}:{self.settings.tag}",
        ])

    def push(self) -> str:
        source = f"{self.settings.repository}:{self.settings.tag}"
        logger.info("📤 Pushing %s...", self.image_uri)
        self.shell.run(["docker", "tag", source, self.image_uri])
        self.shell.run(["docker", "push", self.image_uri])
        return self.image_uri

    def publish(self) -> str:
        """Run the whole build-and-push sequence and return the pushed image URI."""
        self.fetch_source()
        self.ensure_repository()
        self.login()
        self.build()
        if self.settings.local_run:
            self.run_local()
        uri = self.push()
        logger.info("✅ Image published: %s", uri)
        return uri
