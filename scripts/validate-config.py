#!/usr/bin/env python3
import re
import sys

import yaml
from pydantic import ValidationError

from eksdeploy.config import DeployConfig


def fail(msg):
    print(f"❌ {msg}")
    sys.exit(1)

if len(sys.argv) != 2:
    fail("Usage: validate-config.py <path/to/eksdeploy.yaml>")

yaml_path = sys.argv[1]

try:
    with open(yaml_path) as f:
        raw = yaml.safe_load(f) or {}
except Exception as e:
    fail(f"Invalid YAML: {e}")

try:
    config = DeployConfig(**raw)
except ValidationError as e:
    fail(f"Config validation error: {e}")

# EKS naming rules: alphanumerics and hyphens, starting with a letter
name_re = re.compile(r"^[a-zA-Z][a-zA-Z0-9-]{0,99}$")
for label, value in (("cluster", config.cluster.name), ("nodegroup", config.cluster.nodegroup_name)):
    if not name_re.match(value):
        fail(f"Invalid {label} name: {value}")

# ECR repository names are lowercase
if config.image.repository != config.image.repository.lower():
    fail(f"ECR repository name must be lowercase: {config.image.repository}")

# EKS needs subnets in at least two availability zones
if len(set(config.cluster.zone_suffixes)) < 2:
    fail("At least two distinct availability zones are required")

if config.cluster.ssh_public_key is None:
    print("⚠️  No SSH public key configured. Nodes will not accept SSH logins.")

print("✅ eksdeploy config validation passed.")
