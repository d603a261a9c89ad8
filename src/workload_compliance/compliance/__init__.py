"""Compliance rule engine.

Modules:
- rules: Rule protocol and the ten baseline security rules
- registry: Ordered, name-unique rule registry
- scoring: Threshold validation and verdict computation
- engine: Evaluation loop producing ComplianceReports
- reporting: JSON, text and Markdown rendering
"""
