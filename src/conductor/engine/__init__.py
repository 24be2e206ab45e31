"""Pipeline engine."""

from conductor.engine.orchestrator import Orchestrator, PipelineState, Stages, build_inline_spec

__all__ = [
    "Orchestrator",
    "PipelineState",
    "Stages",
    "build_inline_spec",
]
