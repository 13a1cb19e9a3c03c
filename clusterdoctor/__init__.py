"""Analyzers that find misconfigured Kubernetes resources in an in-memory cluster and report them."""

__version__ = "0.1.0"