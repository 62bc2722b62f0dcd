import os
import subprocess
import sys
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from eksdeploy.config import ClusterConfig, DeployConfig


def test_defaults_match_deployment_constants():
    config = DeployConfig()
    assert config.tools.kubectl_version == "1.27.4"
    assert config.tools.kubectl_url.endswith("/amazon-eks/1.27.4/2023-08-16/bin/linux/amd64/kubectl")
    assert config.image.repository == "portfolio-website"
    assert config.image.login_retry.attempts == 3
    assert config.cluster.name == "eksdemo"
    assert config.cluster.nodegroup_name == "eksdemo-ng-public1"
    assert (config.cluster.nodes, config.cluster.nodes_min, config.cluster.nodes_max) == (2, 2, 4)
    assert config.cluster.create_retry.attempts == 3


def test_zones_follow_region():
    assert ClusterConfig().zones("eu-west-1") == ["eu-west-1a", "eu-west-1b"]


def test_load_from_yaml(tmp_path):
    path = tmp_path / "eksdeploy.yaml"
    path.write_text(yaml.safe_dump({
        "cluster": {"name": "demo", "nodes_max": 6},
        "aws": {"region": "us-west-2"},
        "unknown_section": {"ignored": True},
    }))
    config = DeployConfig.load(path)
    assert config.cluster.name == "demo"
    assert config.cluster.nodes_max == 6
    assert config.aws.region == "us-west-2"
    assert config.image.repository == "portfolio-website"


def test_missing_explicit_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        DeployConfig.load(tmp_path / "nope.yaml")


def test_invalid_node_range():
    with pytest.raises(ValidationError):
        ClusterConfig(nodes=5, nodes_min=2, nodes_max=4)


def test_save_round_trips_through_load(tmp_path):
    path = tmp_path / "out" / "config.yaml"
    DeployConfig(cluster=ClusterConfig(name="saved")).save(path)
    assert DeployConfig.load(path).cluster.name == "saved"


def run_validate_script(path):
    root = Path(__file__).resolve().parents[2]
    env = {**os.environ, "PYTHONPATH": str(root)}
    return subprocess.run(
        [sys.executable, str(root / "scripts" / "validate-config.py"), str(path)],
        capture_output=True, text=True, env=env,
    )


def test_validate_script_accepts_defaults(tmp_path):
    path = tmp_path / "eksdeploy.yaml"
    DeployConfig().save(path)
    result = run_validate_script(path)
    assert result.returncode == 0
    assert "validation passed" in result.stdout


def test_validate_script_rejects_uppercase_repository(tmp_path):
    path = tmp_path / "eksdeploy.yaml"
    path.write_text(yaml.safe_dump({"image": {"repository": "Portfolio"}}))
    result = run_validate_script(path)
    assert result.returncode == 1
    assert "lowercase" in result.stdout
