"""Mitigate - remediation tasks and recommendations for identity environments."""

__version__ = "0.1.0"
