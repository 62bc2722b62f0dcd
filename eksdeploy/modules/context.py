"""Region and account discovery.

The region comes from the EC2 instance metadata service (IMDSv2), the
account id from STS. Both are exported to the environment, written to the
user's shell profile and the region becomes the AWS CLI default.
"""

import logging
import os
import re
from pathlib import Path
from typing import Dict, Optional, Union

import requests

from eksdeploy.config import AWSConfig
from eksdeploy.models import DeployContext
from eksdeploy.utils import CommandError, ContextError, RetryExhaustedError, retry_fixed
from eksdeploy.utils.shell import Shell

logger = logging.getLogger("eksdeploy.context")

TOKEN_PATH = "/latest/api/token"
IDENTITY_DOCUMENT_PATH = "/latest/dynamic/instance-identity/document"


class MetadataClient:
    """Minimal IMDSv2 client."""

    def __init__(self, settings: AWSConfig, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def _fetch_token_once(self) -> str:
        try:
            response = self.session.put(
                self.settings.metadata_url + TOKEN_PATH,
                headers={"X-aws-ec2-metadata-token-ttl-seconds": str(self.settings.token_ttl)},
                timeout=self.settings.request_timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise ContextError(f"Metadata token request failed: {e}") from e
        token = response.text.strip()
        if not token:
            raise ContextError("Metadata service returned an empty token")
        return token

    def fetch_token(self) -> str:
        """Fetch a session token with the configured fixed retry budget."""
        return retry_fixed(
            self._fetch_token_once,
            self.settings.metadata_retry,
            "Fetching instance metadata token",
            exceptions=(ContextError,),
        )

    def region(self) -> str:
        token = self.fetch_token()
        try:
            response = self.session.get(
                self.settings.metadata_url + IDENTITY_DOCUMENT_PATH,
                headers={"X-aws-ec2-metadata-token": token},
                timeout=self.settings.request_timeout,
            )
            response.raise_for_status()
            document = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ContextError(f"Instance identity document lookup failed: {e}") from e

        region = (document.get("region") or "").strip()
        if not region:
            raise ContextError("Instance identity document has no region")
        return region


def lookup_account_id(shell: Shell) -> str:
    """Resolve the caller's account id through STS."""
    try:
        account_id = shell.output(
            ["aws", "sts", "get-caller-identity", "--query", "Account", "--output", "text"]
        )
    except CommandError as e:
        raise ContextError(f"STS caller identity lookup failed: {e}") from e
    if not account_id or account_id == "None":
        raise ContextError("STS returned an empty account id")
    return account_id


def update_profile(path: Union[str, Path], exports: Dict[str, str]) -> None:
    """Write one ``export NAME=value`` line per variable into a shell profile.

    Existing export lines for the same variables are replaced; every other
    line is preserved in order.
    """
    path = Path(path).expanduser()
    lines = path.read_text().splitlines() if path.exists() else []

    patterns = {
        name: re.compile(rf"^\s*export\s+{re.escape(name)}=")
        for name in exports
    }
    kept = [
        line for line in lines
        if not any(pattern.match(line) for pattern in patterns.values())
    ]
    kept.extend(f"export {name}={value}" for name, value in exports.items())

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(kept) + "\n")
    logger.debug("Updated %s with %s", path, ", ".join(exports))


def configure(
    shell: Shell,
    settings: AWSConfig,
    profile_path: Union[str, Path],
    metadata: Optional[MetadataClient] = None,
) -> DeployContext:
    """Resolve region and account id and persist them."""
    logger.info("🔐 Configuring AWS environment...")

    try:
        region = settings.region or (metadata or MetadataClient(settings)).region()
    except RetryExhaustedError as e:
        raise ContextError(str(e)) from e
    account_id = settings.account_id or lookup_account_id(shell)

    os.environ["AWS_REGION"] = region
    os.environ["ACCOUNT_ID"] = account_id

    if shell.dry_run:
        logger.info("[DRY RUN] Would export AWS_REGION/ACCOUNT_ID to %s", profile_path)
    else:
        try:
            update_profile(profile_path, {"AWS_REGION": region, "ACCOUNT_ID": account_id})
        except OSError as e:
            raise ContextError(f"Could not update profile {profile_path}: {e}") from e

    try:
        shell.run(["aws", "configure", "set", "default.region", region])
    except CommandError as e:
        raise ContextError(f"Could not set default region: {e}") from e

    logger.info("✅ Region %s, account %s", region, account_id)
    return DeployContext(region=region, account_id=account_id)


def from_environment(settings: AWSConfig) -> Optional[DeployContext]:
    """Rebuild a context from overrides or variables exported by an earlier run."""
    region = settings.region or os.getenv("AWS_REGION")
    account_id = settings.account_id or os.getenv("ACCOUNT_ID")
    if region and account_id:
        return DeployContext(region=region, account_id=account_id)
    return None
