"""Configuration management for the eksdeploy application.

Settings come from the following sources, in order of precedence:
1. Explicitly passed parameters
2. Environment variables (a local .env file is honoured)
3. Configuration files
4. Default values
"""
import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file if it exists
load_dotenv()

logger = logging.getLogger("eksdeploy.config")

# Default configuration paths
DEFAULT_CONFIG_PATHS = [
    Path("/etc/eksdeploy/config.yaml"),
    Path("~/.config/eksdeploy/config.yaml").expanduser(),
    Path("eksdeploy.yaml").absolute(),
]


class Config:
    """Process-level settings with sensible defaults."""

    # Logging
    LOG_LEVEL: str = os.getenv("EKSDEPLOY_LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "EKSDEPLOY_LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    LOG_FILE: Optional[str] = os.getenv("EKSDEPLOY_LOG_FILE") or None

    # Shell profile that receives the exported AWS variables
    PROFILE_PATH: str = os.getenv("EKSDEPLOY_PROFILE", "~/.bash_profile")

    # Explicit configuration file
    CONFIG_PATH: Optional[str] = os.getenv("EKSDEPLOY_CONFIG") or None

    DRY_RUN: bool = os.getenv("EKSDEPLOY_DRY_RUN", "false").lower() in ("1", "true", "yes")


class RetryPolicy(BaseModel):
    """Fixed-count retry with a fixed sleep between attempts."""
    attempts: int = Field(default=3, ge=1, description="Total number of attempts")
    delay: float = Field(default=5.0, ge=0, description="Seconds to wait between attempts")


class ToolsConfig(BaseModel):
    """Versions and locations of the CLI tools the pipeline installs."""
    kubectl_version: str = "1.27.4"
    kubectl_date: str = "2023-08-16"
    install_dir: str = "/usr/local/bin"
    awscli_url: str = "https://awscli.amazonaws.com/awscli-exe-linux-x86_64.zip"
    eksctl_url: str = (
        "https://github.com/weaveworks/eksctl/releases/latest/download/eksctl_{system}_amd64.tar.gz"
    )
    docker_script_url: str = "https://get.docker.com"
    docker_user: str = "ubuntu"
    apt_packages: List[str] = Field(
        default_factory=lambda: ["unzip", "jq", "bash-completion", "python3-pip", "curl", "git"]
    )

    @property
    def kubectl_url(self) -> str:
        return (
            "https://s3.us-west-2.amazonaws.com/amazon-eks/"
            f"{self.kubectl_version}/{self.kubectl_date}/bin/linux/amd64/kubectl"
        )


class AWSConfig(BaseModel):
    """Region/account discovery settings."""
    region: Optional[str] = Field(default=None, description="Skip metadata lookup when set")
    account_id: Optional[str] = Field(default=None, description="Skip STS lookup when set")
    metadata_url: str = "http://169.254.169.254"
    token_ttl: int = 21600
    request_timeout: float = 2.0
    metadata_retry: RetryPolicy = Field(default_factory=lambda: RetryPolicy(attempts=5, delay=2.0))


class ImageConfig(BaseModel):
    """Container image build and ECR publishing settings."""
    repository: str = "portfolio-website"
    tag: str = "latest"
    source_repo: str = "https://github.com/rajnages/alb-ec2-project.git"
    checkout_dir: str = "alb-ec2-project"
    app_subdir: str = "portfolio-website"
    scan_on_push: bool = True
    login_retry: RetryPolicy = Field(default_factory=lambda: RetryPolicy(attempts=3, delay=5.0))
    local_run: bool = False
    local_port: int = 8080
    container_port: int = 3000


class ClusterConfig(BaseModel):
    """EKS cluster and managed node group settings."""
    name: str = "eksdemo"
    zone_suffixes: List[str] = Field(default_factory=lambda: ["a", "b"])
    nodegroup_name: str = "eksdemo-ng-public1"
    node_type: str = "t3.medium"
    nodes: int = 2
    nodes_min: int = 2
    nodes_max: int = 4
    node_volume_size: int = 20
    ssh_public_key: Optional[str] = "eks-cluster-key"
    access_grants: List[str] = Field(
        default_factory=lambda: [
            "asg-access",
            "external-dns-access",
            "full-ecr-access",
            "appmesh-access",
            "alb-ingress-access",
        ]
    )
    create_retry: RetryPolicy = Field(default_factory=lambda: RetryPolicy(attempts=3, delay=30.0))

    @field_validator("nodes_max")
    @classmethod
    def check_node_range(cls, v: int, info) -> int:
        """Ensure nodes_min <= nodes <= nodes_max."""
        nodes_min = info.data.get("nodes_min", 0)
        nodes = info.data.get("nodes", 0)
        if not nodes_min <= nodes <= v:
            raise ValueError(
                f"node counts must satisfy nodes_min <= nodes <= nodes_max "
                f"(got {nodes_min}, {nodes}, {v})"
            )
        return v

    def zones(self, region: str) -> List[str]:
        return [f"{region}{suffix}" for suffix in self.zone_suffixes]


class VerifyConfig(BaseModel):
    """Readiness polling budget."""
    poll: RetryPolicy = Field(default_factory=lambda: RetryPolicy(attempts=20, delay=30.0))


class DeployConfig(BaseModel):
    """Complete provisioning configuration."""
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    aws: AWSConfig = Field(default_factory=AWSConfig)
    image: ImageConfig = Field(default_factory=ImageConfig)
    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    verify: VerifyConfig = Field(default_factory=VerifyConfig)
    profile_path: str = Field(default_factory=lambda: Config.PROFILE_PATH, validate_default=True)

    model_config = {"extra": "ignore"}

    @field_validator("profile_path")
    @classmethod
    def expand_profile_path(cls, v: str) -> str:
        """Expand the user home directory in the profile path."""
        return os.path.expanduser(v)

    @classmethod
    def load(cls, config_path: Optional[Union[str, Path]] = None) -> "DeployConfig":
        """Load configuration from file, falling back to the default paths."""
        config_data: Dict[str, Any] = {}

        config_path = config_path or Config.CONFIG_PATH
        if config_path:
            config_path = Path(config_path).expanduser().absolute()
            if not config_path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
            config_data = cls._load_config_file(config_path)
        else:
            for path in DEFAULT_CONFIG_PATHS:
                path = path.expanduser().absolute()
                if path.exists():
                    config_data = cls._load_config_file(path)
                    break

        return cls(**config_data)

    @classmethod
    def _load_config_file(cls, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file."""
        logger.debug("Loading configuration from %s", path)
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to a file."""
        path = Path(path).expanduser().absolute()
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(self.model_dump(exclude_none=True), f, default_flow_style=False, sort_keys=False)
