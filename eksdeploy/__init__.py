"""EKS cluster provisioning and image publishing toolkit."""

__version__ = "0.1.0"
