"""Kubernetes security posture evaluation: workloads, exceptions, scoring and reports."""

__version__ = "0.1.0"