"""Kubernetes operator reconciling GKE clusters and node pools."""

__version__ = "0.1.0"
