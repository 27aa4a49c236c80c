"""Road-level aggregation and SLA deadline engine."""

__version__ = "0.1.0"
