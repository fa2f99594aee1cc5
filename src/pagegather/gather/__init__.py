"""Multi-pass gather orchestration."""

from pagegather.gather.accumulator import merge_artifacts
from pagegather.gather.base_artifacts import BaseArtifactsBuilder, BaseStage
from pagegather.gather.benchmark import get_benchmark_index
from pagegather.gather.context import GatherOptions, PassContext
from pagegather.gather.orchestrator import PassOrchestrator, PassOutcome, RunState

__all__ = [
    "BaseArtifactsBuilder",
    "BaseStage",
    "GatherOptions",
    "PassContext",
    "PassOrchestrator",
    "PassOutcome",
    "RunState",
    "get_benchmark_index",
    "merge_artifacts",
]
