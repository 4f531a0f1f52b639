"""
Text and tabular reporting for flux/dose analyses.

Provides:
- Fixed-width console sections (simulation info, integral flux, dose)
- Top dose contributor and per-range dose tables
- Flat records with unit-bearing headers for CSV export

Formatting never mutates its inputs.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from fluxdose.core.normalization import NormalizationFactor
from fluxdose.core.spectrum import FAST_LIMIT_MEV, THERMAL_LIMIT_MEV, FluxSpectrum, RegionSummary
from fluxdose.io.serpent import DetectorFile, ResultTable
from fluxdose.physics.dose import ANSI_ANS_6_1_1_1977, ConversionTable, DoseEstimate

FLUX_UNITS = "neutrons/cm²/s"
DOSE_UNITS = "rem/hr"

FLUX_HEADERS = [
    "Energy_Lower(MeV)",
    "Energy_Upper(MeV)",
    "Energy_Mean(MeV)",
    "Flux(n/cm²/s)",
    "Flux_Error(n/cm²/s)",
    "Flux_per_Energy(n/cm²/s/MeV)",
    "Flux_per_Energy_Error(n/cm²/s/MeV)",
]
DOSE_HEADER = "Dose_Rate(rem/hr)"
CONVERSION_HEADERS = ["Energy(MeV)", "Conversion_Factor(rem/hr_per_n/cm²/s)"]

_REGION_LABELS = {
    "thermal": ("Thermal", f"<{THERMAL_LIMIT_MEV:g} MeV"),
    "epithermal": ("Epithermal", f"{THERMAL_LIMIT_MEV:g}-{FAST_LIMIT_MEV:g} MeV"),
    "fast": ("Fast", f">{FAST_LIMIT_MEV:g} MeV"),
}

Records = Tuple[List[str], List[List[float]]]


def _section(title: str) -> str:
    return f"\n==== {title} ===="


def _percent(value: Optional[float]) -> str:
    return "undefined" if value is None else f"{value:.2f}%"


# =============================================================================
# Run information
# =============================================================================

def format_simulation_info(results: ResultTable) -> str:
    """Title, version, dates, population and timing of the Serpent run."""

    def text(name: str) -> str:
        return results.text(name) or "n/a"

    def number(name: str, fmt: str, scale: float = 1.0) -> str:
        value = results.first(name)
        return "n/a" if value is None else format(value * scale, fmt)

    lines = [_section("Simulation Information")]
    lines.append(f"Title: {text('TITLE')}")
    lines.append(f"Version: {text('VERSION')}")
    lines.append(f"Compilation date: {text('COMPILE_DATE')}")
    lines.append(f"Run start date: {text('START_DATE')}")
    lines.append(f"Run completion date: {text('COMPLETE_DATE')}")
    lines.append(f"Population per cycle: {number('POP', '.0f')}")
    lines.append(f"Number of batches: {number('BATCHES', '.0f')}")
    # Serpent reports times in minutes
    lines.append(f"CPU time: {number('TOT_CPU_TIME', '.2f', 1.0 / 60.0)} hours")
    lines.append(f"Running time: {number('RUNNING_TIME', '.2f', 1.0 / 60.0)} hours")
    return "\n".join(lines)


def format_key_results(results: ResultTable) -> str:
    """Criticality and spectral indices from the analog estimators."""
    lines = [_section("Key Results")]

    keff = results.means("ANA_KEFF")
    keff_err = results.rel_errors("ANA_KEFF")
    if keff is not None and keff.size and keff_err is not None and keff_err.size:
        lines.append(f"Criticality (k-eff): {keff[0]:.5f} ± {keff_err[0]:.5f}")
    else:
        lines.append("Criticality (k-eff): n/a")

    gen_time = results.first("ADJ_NAUCHI_GEN_TIME")
    lines.append(
        "Neutron generation time: " + ("n/a" if gen_time is None else f"{gen_time:.2e} s")
    )
    alf = results.first("ANA_ALF")
    lines.append("Average neutron lethargy: " + ("n/a" if alf is None else f"{alf:.4f}"))
    ealf = results.first("ANA_EALF")
    lines.append("Mean neutron energy: " + ("n/a" if ealf is None else f"{ealf:.4e} MeV"))
    return "\n".join(lines)


def format_detector_status(detectors: DetectorFile, flux_detector: Optional[str] = None) -> str:
    """One line per detector saying whether it recorded any score."""
    lines = [_section("Detector Status")]
    for name in detectors.detector_names():
        if name == flux_detector:
            continue
        status = "Data available" if detectors.has_data(name) else "No data recorded"
        lines.append(f"{name}: {status}")

    if flux_detector is not None:
        if flux_detector in detectors:
            n_bins = len(detectors.scores(flux_detector))
            lines.append(f"{flux_detector}: Data available - {n_bins} energy bins")
        else:
            lines.append(f"{flux_detector}: No data recorded")
    return "\n".join(lines)


def format_normalization(norm: NormalizationFactor) -> str:
    """Source strength and the field the normalization factor came from."""
    lines = [_section("Normalization")]
    lines.append(f"Source strength: {norm.source_strength:.4e} neutrons/s")
    if norm.divisor is not None:
        lines.append(f"Normalization source: {norm.source} = {norm.divisor:.4e}")
    else:
        lines.append(f"Normalization source: {norm.source}")
    lines.append(f"Normalization factor: {norm.value:.4e}")
    return "\n".join(lines)


# =============================================================================
# Flux summaries
# =============================================================================

def _region_lines(summary: RegionSummary, noun: str, units: str) -> List[str]:
    lines = []
    for region, (label, bounds) in _REGION_LABELS.items():
        fraction = summary.fraction(region)
        pct = None if fraction is None else fraction * 100.0
        lines.append(
            f"{label} {noun} ({bounds}): {summary.sums[region]:.4e} {units} ({_percent(pct)})"
        )
    return lines


def format_flux_summary(spectrum: FluxSpectrum) -> str:
    """Integral flux parameters and average flux per region."""
    regions = spectrum.regions
    lines = [_section("Integral Flux Parameters")]
    lines.append(f"Total flux: {regions.total:.4e} {FLUX_UNITS}")
    lines.extend(_region_lines(regions, "flux", FLUX_UNITS))

    lines.append(_section("Average Flux by Energy Region"))
    for region in _REGION_LABELS:
        average = regions.average_per_bin(region)
        if average is not None:
            lines.append(f"Average {region} flux: {average:.4e} {FLUX_UNITS} per bin")
    return "\n".join(lines)


# =============================================================================
# Dose summaries
# =============================================================================

def format_dose_summary(dose: DoseEstimate) -> str:
    """Total dose rate and the region contributions."""
    regions = dose.regions
    lines = [_section("Dose Rate Analysis")]
    lines.append(f"Total neutron dose rate: {dose.total_dose:.4e} {DOSE_UNITS}")
    for region, (label, bounds) in _REGION_LABELS.items():
        lines.append(
            f"{label} contribution ({bounds}): {regions.sums[region]:.4e} {DOSE_UNITS} "
            f"({_percent(dose.percentage_of_total(regions.sums[region]))})"
        )
    return "\n".join(lines)


def format_top_contributors(dose: DoseEstimate, n: int = 20) -> str:
    """Largest dose-contributing bins, in descending order."""
    lines = [_section("Detailed Dose Rate by Energy Bin")]
    lines.append("Energy (MeV)    Flux (n/cm²/s)    Dose Factor    Dose Rate (rem/hr)")
    lines.append("============    =============     ===========   ==================")
    for idx in dose.top_contributors(n):
        lines.append(
            f"{dose.energies_MeV[idx]:12.4e}    {dose.flux[idx]:12.4e}    "
            f"{dose.coefficients[idx]:12.4e}    {dose.dose_rate[idx]:12.4e}"
        )
    return "\n".join(lines)


def format_dose_ranges(dose: DoseEstimate) -> str:
    """Dose per conversion-table energy interval; empty intervals omitted."""
    lines = [_section(f"Dose Rate by {dose.table.name} Energy Ranges")]
    lines.append("Energy Range (MeV)         Dose Rate (rem/hr)    Percentage")
    lines.append("==================        ==================    ==========")
    for entry in dose.ranges():
        if entry.dose_rate <= 0:
            continue
        pct = "undefined" if entry.percentage is None else f"{entry.percentage:6.2f}%"
        if entry.is_overflow:
            lines.append(f"{entry.lower_MeV:8.2e} - Inf          {entry.dose_rate:12.4e}          {pct}")
        else:
            lines.append(
                f"{entry.lower_MeV:8.2e} - {entry.upper_MeV:8.2e}    {entry.dose_rate:12.4e}          {pct}"
            )
    return "\n".join(lines)


# =============================================================================
# Tabular exports
# =============================================================================

def flux_dose_records(spectrum: FluxSpectrum, dose: Optional[DoseEstimate] = None) -> Records:
    """
    Header and rows for the per-bin flux (and dose) export.

    The dose column is present only when a dose estimate is given.
    """
    headers = list(FLUX_HEADERS)
    columns = [
        spectrum.lower,
        spectrum.upper,
        spectrum.mean_energy,
        spectrum.flux,
        spectrum.flux_error,
        spectrum.flux_per_energy,
        spectrum.flux_per_energy_error,
    ]
    if dose is not None:
        if dose.n_bins != spectrum.n_bins:
            raise ValueError(f"Dose has {dose.n_bins} bins but spectrum has {spectrum.n_bins}")
        headers.append(DOSE_HEADER)
        columns.append(dose.dose_rate)

    rows = np.column_stack(columns).tolist() if spectrum.n_bins else []
    return headers, rows


def conversion_table_records(table: ConversionTable = ANSI_ANS_6_1_1_1977) -> Records:
    """Header and rows for the reference conversion table export."""
    rows = [[e, f] for e, f in zip(table.energies_MeV, table.factors)]
    return list(CONVERSION_HEADERS), rows


def write_csv(
    path: Union[str, Path],
    headers: Sequence[str],
    rows: Iterable[Sequence[float]],
    delimiter: str = ",",
) -> Path:
    """
    Write records to a delimited text file, overwriting any existing file.

    Args:
        path: Output file path
        headers: Column names with units
        rows: Numeric rows
        delimiter: Column delimiter

    Returns:
        The written path
    """
    path = Path(path)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, delimiter=delimiter)
        writer.writerow(headers)
        for row in rows:
            writer.writerow([f"{value:.6E}" for value in row])
    return path


__all__ = [
    "FLUX_HEADERS",
    "DOSE_HEADER",
    "CONVERSION_HEADERS",
    "format_simulation_info",
    "format_key_results",
    "format_detector_status",
    "format_normalization",
    "format_flux_summary",
    "format_dose_summary",
    "format_top_contributors",
    "format_dose_ranges",
    "flux_dose_records",
    "conversion_table_records",
    "write_csv",
]
