"""Pipeline stages: routing, disambiguation, execution, validation."""

from conductor.agents import coordinator, dev, product, qa

__all__ = ["coordinator", "product", "dev", "qa"]
