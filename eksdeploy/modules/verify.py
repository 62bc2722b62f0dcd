"""Cluster readiness verification.

Polls the cluster status, the node group status and the Kubernetes node
list until all three report ready or the polling budget runs out.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from eksdeploy.config import ClusterConfig, RetryPolicy
from eksdeploy.models import DeployContext
from eksdeploy.utils import CommandError, RetryExhaustedError, VerificationError, retry_fixed
from eksdeploy.utils.shell import Shell

logger = logging.getLogger("eksdeploy.verify")

ACTIVE = "ACTIVE"


def _status_of(items: Any, name: str) -> Optional[str]:
    """Pick the status of ``name`` out of eksctl's JSON list output."""
    if isinstance(items, dict):
        items = [items]
    for item in items or []:
        item_name = item.get("Name") or item.get("name")
        if item_name in (None, name):
            return item.get("Status") or item.get("status")
    return None


def check_nodes(min_ready: int) -> Dict[str, Any]:
    """Report node readiness through the Kubernetes API."""
    try:
        config.load_kube_config()
        nodes = client.CoreV1Api().list_node().items
    except (ApiException, ConfigException, HTTPError) as e:
        raise VerificationError(f"Could not list nodes: {e}") from e

    ready: List[str] = []
    not_ready: List[str] = []
    for node in nodes:
        conditions = node.status.conditions or []
        if any(c.type == "Ready" and c.status == "True" for c in conditions):
            ready.append(node.metadata.name)
        else:
            not_ready.append(node.metadata.name)
    return {
        "ready": ready,
        "not_ready": not_ready,
        "healthy": len(ready) >= min_ready and not not_ready,
    }


class ClusterVerifier:
    """Bounded readiness polling for the provisioned cluster."""

    def __init__(
        self,
        shell: Shell,
        settings: ClusterConfig,
        context: DeployContext,
        poll: Optional[RetryPolicy] = None,
    ):
        self.shell = shell
        self.settings = settings
        self.context = context
        self.poll = poll or RetryPolicy(attempts=20, delay=30.0)

    def _eksctl_json(self, cmd: List[str]) -> Any:
        raw = self.shell.output(cmd + ["--region", self.context.region, "-o", "json"])
        try:
            return json.loads(raw or "[]")
        except ValueError as e:
            raise VerificationError(f"Unexpected eksctl output: {raw[:200]}") from e

    def cluster_status(self) -> Optional[str]:
        data = self._eksctl_json(["eksctl", "get", "cluster", "--name", self.settings.name])
        return _status_of(data, self.settings.name)

    def nodegroup_status(self) -> Optional[str]:
        data = self._eksctl_json([
            "eksctl", "get", "nodegroup",
            "--cluster", self.settings.name,
            "--name", self.settings.nodegroup_name,
        ])
        return _status_of(data, self.settings.nodegroup_name)

    def check_once(self) -> Dict[str, Any]:
        """Run all three status queries once; raise if anything is not ready."""
        cluster = self.cluster_status()
        nodegroup = self.nodegroup_status()
        nodes = check_nodes(self.settings.nodes_min)

        report = {"cluster": cluster, "nodegroup": nodegroup, "nodes": nodes}
        issues = []
        if cluster != ACTIVE:
            issues.append(f"cluster status is {cluster}")
        if nodegroup != ACTIVE:
            issues.append(f"nodegroup status is {nodegroup}")
        if not nodes["healthy"]:
            issues.append(
                f"{len(nodes['ready'])}/{self.settings.nodes_min} nodes ready"
                + (f", not ready: {', '.join(nodes['not_ready'])}" if nodes["not_ready"] else "")
            )
        if issues:
            logger.info("⏳ Cluster not ready yet: %s", "; ".join(issues))
            raise VerificationError("; ".join(issues))
        return report

    def wait_until_ready(self) -> Dict[str, Any]:
        logger.info("🔍 Verifying cluster status...")
        if self.shell.dry_run:
            logger.info("[DRY RUN] Skipping readiness polling")
            return {}
        try:
            report = retry_fixed(
                self.check_once,
                self.poll,
                f"Waiting for cluster {self.settings.name}",
                exceptions=(VerificationError, CommandError),
            )
        except RetryExhaustedError as e:
            raise VerificationError(str(e)) from e
        logger.info(
            "✅ Cluster %s is ready with %d nodes",
            self.settings.name, len(report["nodes"]["ready"]),
        )
        return report
