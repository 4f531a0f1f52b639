"""fluxdose workflows module for complete analysis pipelines."""

from fluxdose.workflows.analysis import (
    DEFAULT_SOURCE_STRENGTH,
    AnalysisConfig,
    AnalysisResult,
    run_analysis,
)

__all__ = [
    'DEFAULT_SOURCE_STRENGTH',
    'AnalysisConfig',
    'AnalysisResult',
    'run_analysis',
]
