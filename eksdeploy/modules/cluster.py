"""EKS cluster provisioning through eksctl."""

import logging
from typing import List

from eksdeploy.config import ClusterConfig
from eksdeploy.models import DeployContext
from eksdeploy.utils import ClusterError, CommandError, RetryExhaustedError, retry_fixed
from eksdeploy.utils.shell import Shell

logger = logging.getLogger("eksdeploy.cluster")


class ClusterProvisioner:
    """Creates the cluster, its OIDC provider and the managed node group."""

    def __init__(self, shell: Shell, settings: ClusterConfig, context: DeployContext):
        self.shell = shell
        self.settings = settings
        self.context = context

    @property
    def region(self) -> str:
        return self.context.region

    def cluster_exists(self) -> bool:
        return self.shell.succeeds([
            "eksctl", "get", "cluster",
            "--name", self.settings.name,
            "--region", self.region,
        ])

    def nodegroup_exists(self) -> bool:
        return self.shell.succeeds([
            "eksctl", "get", "nodegroup",
            "--cluster", self.settings.name,
            "--name", self.settings.nodegroup_name,
            "--region", self.region,
        ])

    def create_cluster_command(self) -> List[str]:
        return [
            "eksctl", "create", "cluster",
            f"--name={self.settings.name}",
            f"--region={self.region}",
            f"--zones={','.join(self.settings.zones(self.region))}",
            "--without-nodegroup",
        ]

    def create_nodegroup_command(self) -> List[str]:
        s = self.settings
        cmd = [
            "eksctl", "create", "nodegroup",
            f"--cluster={s.name}",
            f"--region={self.region}",
            f"--name={s.nodegroup_name}",
            f"--node-type={s.node_type}",
            f"--nodes={s.nodes}",
            f"--nodes-min={s.nodes_min}",
            f"--nodes-max={s.nodes_max}",
            f"--node-volume-size={s.node_volume_size}",
        ]
        if s.ssh_public_key:
            cmd += ["--ssh-access", f"--ssh-public-key={s.ssh_public_key}"]
        cmd.append("--managed")
        cmd += [f"--{grant}" for grant in s.access_grants]
        return cmd

    def create_cluster(self) -> bool:
        """Create the control plane. Returns False when it already existed."""
        if self.cluster_exists():
            logger.info("Cluster %s already exists in %s", self.settings.name, self.region)
            return False

        logger.info("☸️  Creating EKS cluster %s without nodegroup...", self.settings.name)
        try:
            retry_fixed(
                lambda: self.shell.run(self.create_cluster_command()),
                self.settings.create_retry,
                f"Creating cluster {self.settings.name}",
                exceptions=(CommandError,),
            )
        except RetryExhaustedError as e:
            raise ClusterError(str(e)) from e
        return True

    def associate_oidc_provider(self) -> None:
        logger.info("🔗 Associating IAM OIDC provider...")
        self.shell.run([
            "eksctl", "utils", "associate-iam-oidc-provider",
            "--region", self.region,
            "--cluster", self.settings.name,
            "--approve",
        ])

    def create_nodegroup(self) -> bool:
        """Create the managed node group. Returns False when it already existed."""
        if self.nodegroup_exists():
            logger.info("Nodegroup %s already exists", self.settings.nodegroup_name)
            return False

        logger.info("🖥️  Creating nodegroup %s...", self.settings.nodegroup_name)
        self.shell.run(self.create_nodegroup_command())
        return True

    def update_kubeconfig(self) -> None:
        self.shell.run([
            "aws", "eks", "update-kubeconfig",
            "--name", self.settings.name,
            "--region", self.region,
        ])

    def provision(self) -> None:
        self.create_cluster()
        self.associate_oidc_provider()
        self.create_nodegroup()
        self.update_kubeconfig()
        logger.info("✅ Cluster %s provisioned", self.settings.name)

    def delete(self) -> None:
        """Tear the cluster and its node groups down."""
        if not self.cluster_exists():
            logger.info("Cluster %s not found in %s, nothing to delete", self.settings.name, self.region)
            return
        logger.info("🗑️  Deleting cluster %s...", self.settings.name)
        try:
            self.shell.run([
                "eksctl", "delete", "cluster",
                "--name", self.settings.name,
                "--region", self.region,
                "--wait",
            ])
        except CommandError as e:
            raise ClusterError(f"Failed to delete cluster {self.settings.name}: {e}") from e
        logger.info("✅ Cluster %s deleted", self.settings.name)
