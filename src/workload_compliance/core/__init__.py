"""Core data model: workload descriptors, rule results and compliance reports."""
