"""Kubernetes API integrations."""
