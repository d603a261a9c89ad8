"""HTTP API for the workload compliance engine."""
