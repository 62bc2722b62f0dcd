"""
Provisioning steps.
"""
from .installer import DependencyInstaller
from .context import MetadataClient, configure
from .image import ImagePublisher
from .cluster import ClusterProvisioner
from .verify import ClusterVerifier

__all__ = [
    'DependencyInstaller',
    'MetadataClient',
    'configure',
    'ImagePublisher',
    'ClusterProvisioner',
    'ClusterVerifier',
]
