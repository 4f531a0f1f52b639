"""
Serpent Flux/Dose Analysis Pipeline

Complete workflow for one Serpent run: load the result and detector
files, resolve the source normalization, convert the flux detector to
absolute flux, estimate the neutron dose rate, and write the report
text, CSV exports, figures and a JSON summary.

Every artifact is written independently and overwritten on each run.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import MISSING, dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from fluxdose.core.normalization import NormalizationFactor, resolve_normalization
from fluxdose.core.provenance import build_provenance, hash_inputs
from fluxdose.core.spectrum import FluxSpectrum, convert_spectrum
from fluxdose.io.serpent import DetectorFile, ResultTable, read_detector_file, read_results_file
from fluxdose.physics.dose import ANSI_ANS_6_1_1_1977, DoseEstimate, dose_from_spectrum
from fluxdose.plots import (
    HAS_MATPLOTLIB,
    close_figure,
    plot_dose_analysis,
    plot_flux_dose_comparison,
    plot_flux_spectrum,
    plot_group_constants,
    plot_lethargy_spectrum,
)
from fluxdose.reporting import (
    conversion_table_records,
    flux_dose_records,
    format_detector_status,
    format_dose_ranges,
    format_dose_summary,
    format_flux_summary,
    format_key_results,
    format_normalization,
    format_simulation_info,
    format_top_contributors,
    write_csv,
)

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_STRENGTH = 1.0e17  # neutrons/second

FLUX_DOSE_CSV = "flux_dose_data.csv"
CONVERSION_CSV = "ansi_ans_611_1977.csv"
SUMMARY_JSON = "analysis_summary.json"

FLUX_FIGURE = "flux_spectrum_analysis.png"
GROUP_CONSTANTS_FIGURE = "additional_analysis.png"
DOSE_FIGURE = "dose_analysis.png"
COMPARISON_FIGURE = "flux_dose_comparison.png"
LETHARGY_FIGURE = "flux_lethargy_analysis.png"


# ============================================================================
# Configuration
# ============================================================================

@dataclass
class AnalysisConfig:
    """Configuration for one flux/dose analysis run."""

    # Inputs
    results_path: Path
    detector_path: Path
    step: int = 0

    # Normalization (neutrons/second)
    source_strength: float = DEFAULT_SOURCE_STRENGTH

    # Detector holding the energy-binned flux tally
    flux_detector: str = "FluxDet"

    # Outputs
    output_dir: Path = Path(".")
    top_n: int = 20
    make_plots: bool = True
    write_csv: bool = True

    # Dose factor interpolation in log(factor) space
    log_space: bool = True

    def __post_init__(self) -> None:
        self.results_path = Path(self.results_path)
        self.detector_path = Path(self.detector_path)
        self.output_dir = Path(self.output_dir)
        self.source_strength = float(self.source_strength)
        if not math.isfinite(self.source_strength) or self.source_strength <= 0:
            raise ValueError(f"source_strength must be finite and positive, got {self.source_strength}")
        if self.top_n < 0:
            raise ValueError(f"top_n must be non-negative, got {self.top_n}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **overrides: Any) -> "AnalysisConfig":
        """Build a config from a mapping; ``overrides`` that are not None win."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        merged = dict(data)
        merged.update({k: v for k, v in overrides.items() if v is not None})
        required = [
            f.name for f in fields(cls)
            if f.default is MISSING and f.default_factory is MISSING
        ]
        missing = [name for name in required if merged.get(name) is None]
        if missing:
            raise ValueError(f"Missing required configuration keys: {missing}")
        return cls(**merged)

    @classmethod
    def from_json(cls, path: Union[str, Path], **overrides: Any) -> "AnalysisConfig":
        """Load a config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")), **overrides)


# ============================================================================
# Results
# ============================================================================

@dataclass
class AnalysisResult:
    """Everything computed and written by one analysis run."""

    config: AnalysisConfig
    results: ResultTable
    detectors: DetectorFile
    normalization: Optional[NormalizationFactor] = None
    spectrum: Optional[FluxSpectrum] = None
    dose: Optional[DoseEstimate] = None
    sections: List[str] = field(default_factory=list)
    artifacts: Dict[str, Path] = field(default_factory=dict)

    @property
    def report(self) -> str:
        """Full console report."""
        return "\n".join(self.sections)

    def summary(self) -> Dict[str, Any]:
        """JSON-serializable summary of the integral results."""
        data: Dict[str, Any] = {
            "title": self.results.text("TITLE"),
            "flux_detector": self.config.flux_detector,
            "source_strength": self.config.source_strength,
        }
        if self.normalization is not None:
            data["normalization"] = self.normalization.to_dict()
        if self.spectrum is not None:
            regions = self.spectrum.regions
            data["flux"] = {
                "n_bins": self.spectrum.n_bins,
                "total": regions.total,
                "regions": dict(regions.sums),
                "fractions": regions.fractions,
            }
        if self.dose is not None:
            regions = self.dose.regions
            data["dose"] = {
                "total": self.dose.total_dose,
                "regions": dict(regions.sums),
                "percentages": {
                    r: self.dose.percentage_of_total(v) for r, v in regions.sums.items()
                },
            }
        data["artifacts"] = {name: str(path) for name, path in self.artifacts.items()}
        return data


# ============================================================================
# Pipeline
# ============================================================================

def _save_figure(
    result: AnalysisResult,
    name: str,
    plot_fn: Callable[..., Any],
    *args: Any,
) -> None:
    path = result.config.output_dir / name
    output = plot_fn(*args, save_path=path)
    if output is None:
        return
    close_figure(output[0])
    result.artifacts[name] = path
    logger.info(f"Figure saved as {path}")


def run_analysis(config: AnalysisConfig) -> AnalysisResult:
    """
    Run the full flux/dose analysis for one Serpent case.

    Parameters
    ----------
    config : AnalysisConfig
        Run configuration

    Returns
    -------
    AnalysisResult
        Loaded tables, derived spectra, report sections and artifact paths

    Raises
    ------
    FileNotFoundError
        The detector or results file is missing.
    """
    logger.info("Starting analysis of Serpent simulation results")

    detectors = read_detector_file(config.detector_path)
    results = read_results_file(config.results_path, step=config.step)

    output_dir = config.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    result = AnalysisResult(config=config, results=results, detectors=detectors)
    result.sections.append(format_simulation_info(results))
    result.sections.append(format_key_results(results))
    result.sections.append(format_detector_status(detectors, config.flux_detector))

    plots_enabled = config.make_plots
    if plots_enabled and not HAS_MATPLOTLIB:
        logger.warning("matplotlib is not installed; skipping figures")
        plots_enabled = False

    tally = None
    if config.flux_detector in detectors:
        try:
            tally = detectors.tally(config.flux_detector)
        except (KeyError, ValueError) as exc:
            logger.warning(f"Cannot build flux spectrum: {exc}")
    else:
        logger.warning(f"Flux detector {config.flux_detector} not found; skipping flux and dose analysis")

    if tally is not None:
        result.normalization = resolve_normalization(results, config.source_strength)
        result.sections.append(format_normalization(result.normalization))

        result.spectrum = convert_spectrum(tally, result.normalization)
        result.sections.append(format_flux_summary(result.spectrum))
        if plots_enabled:
            _save_figure(result, FLUX_FIGURE, plot_flux_spectrum, result.spectrum)

    if plots_enabled and results.contains("INF_FLX"):
        _save_figure(result, GROUP_CONSTANTS_FIGURE, plot_group_constants, results)

    if result.spectrum is not None:
        try:
            result.dose = dose_from_spectrum(result.spectrum, ANSI_ANS_6_1_1_1977, log_space=config.log_space)
        except ValueError as exc:
            logger.warning(f"Cannot estimate dose rate: {exc}")

    if result.dose is not None:
        result.sections.append(format_dose_summary(result.dose))
        result.sections.append(format_top_contributors(result.dose, config.top_n))
        result.sections.append(format_dose_ranges(result.dose))
        if plots_enabled:
            _save_figure(result, DOSE_FIGURE, plot_dose_analysis, result.dose)
            _save_figure(result, COMPARISON_FIGURE, plot_flux_dose_comparison, result.dose)
            _save_figure(result, LETHARGY_FIGURE, plot_lethargy_spectrum, result.spectrum)

    if config.write_csv:
        if result.spectrum is not None:
            headers, rows = flux_dose_records(result.spectrum, result.dose)
            result.artifacts[FLUX_DOSE_CSV] = write_csv(output_dir / FLUX_DOSE_CSV, headers, rows)
            logger.info(f"Flux and dose data exported to {output_dir / FLUX_DOSE_CSV}")

        headers, rows = conversion_table_records(ANSI_ANS_6_1_1_1977)
        result.artifacts[CONVERSION_CSV] = write_csv(output_dir / CONVERSION_CSV, headers, rows)
        logger.info(f"{ANSI_ANS_6_1_1_1977.name} data exported to {output_dir / CONVERSION_CSV}")

    summary_path = output_dir / SUMMARY_JSON
    result.artifacts[SUMMARY_JSON] = summary_path
    summary = result.summary()
    summary["provenance"] = build_provenance(
        units={"energy": "MeV", "flux": "n/cm²/s", "dose_rate": "rem/hr", "source_strength": "n/s"},
        normalization=result.normalization.to_dict() if result.normalization else None,
        conversion_table=ANSI_ANS_6_1_1_1977.name,
        source_hashes=hash_inputs([config.results_path, config.detector_path]),
    )
    summary_path.write_text(json.dumps(summary, indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info("Analysis complete")
    return result
