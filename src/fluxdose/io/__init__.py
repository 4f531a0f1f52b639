"""fluxdose I/O module for Serpent 2 output files."""

from fluxdose.io.serpent import (
    ResultTable,
    DetectorTally,
    DetectorFile,
    read_result_steps,
    read_results_file,
    read_detector_file,
)

__all__ = [
    "ResultTable",
    "DetectorTally",
    "DetectorFile",
    "read_result_steps",
    "read_results_file",
    "read_detector_file",
]
