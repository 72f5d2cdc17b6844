"""Reconciliation pipeline orchestration."""

from hitsync.pipeline.orchestrator import (
    PipelineConfig,
    ReconciliationPipeline,
    ReconciliationResult,
)

__all__ = ["PipelineConfig", "ReconciliationPipeline", "ReconciliationResult"]
