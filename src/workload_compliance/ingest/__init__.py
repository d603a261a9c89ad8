"""Adapters that translate external artifacts into descriptor fields.

Modules:
- kubernetes: Manifests and AdmissionReview payloads
- scanners: Trivy, SARIF, OWASP ZAP and Dependency-Check reports
"""
