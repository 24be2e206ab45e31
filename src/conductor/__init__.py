"""Conductor: deterministic control plane for permission-scoped agent pipelines."""

__version__ = "0.1.0"
