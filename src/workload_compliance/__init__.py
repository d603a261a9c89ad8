"""Workload compliance engine.

Evaluates workload descriptors (container, pod, network policy, cluster
configuration and scanner results) against a battery of security rules and
produces a scored pass/fail ComplianceReport.
"""

__version__ = "0.1.0"
