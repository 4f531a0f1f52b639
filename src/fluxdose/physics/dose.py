"""
Dose Rate Calculations for Neutron Flux Spectra

Converts a binned neutron flux spectrum to dose rate using tabulated
flux-to-dose conversion factors, including per-region dose sums,
top-contributor ranking and a breakdown on the table's own energy grid.

Based on ANSI/ANS-6.1.1-1977 neutron flux-to-dose-rate factors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.interpolate import PchipInterpolator

from fluxdose.core.spectrum import FluxSpectrum, RegionSummary, summarize_regions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionTable:
    """
    Reference flux-to-dose conversion table.

    Attributes:
        name: Table identifier
        energies_MeV: Reference energies, strictly increasing (MeV)
        factors: Dose rate per unit flux at each energy
        units: Units of ``factors``
    """

    name: str
    energies_MeV: Tuple[float, ...]
    factors: Tuple[float, ...]
    units: str = "(rem/hr)/(n/cm²/s)"

    def __post_init__(self) -> None:
        if len(self.energies_MeV) != len(self.factors):
            raise ValueError(
                f"{self.name}: {len(self.energies_MeV)} energies but {len(self.factors)} factors"
            )
        if len(self.energies_MeV) < 2:
            raise ValueError(f"{self.name}: at least two reference points are required")
        energies = np.asarray(self.energies_MeV, dtype=float)
        if np.any(energies <= 0) or np.any(np.diff(energies) <= 0):
            raise ValueError(f"{self.name}: energies must be positive and strictly increasing")
        if np.any(np.asarray(self.factors, dtype=float) <= 0):
            raise ValueError(f"{self.name}: conversion factors must be positive")

    @property
    def energies(self) -> np.ndarray:
        return np.array(self.energies_MeV, dtype=float)

    @property
    def coefficients(self) -> np.ndarray:
        return np.array(self.factors, dtype=float)

    def __len__(self) -> int:
        return len(self.energies_MeV)


# Energy [MeV], conversion factor [(rem/hr)/(n/cm²/s)]
ANSI_ANS_6_1_1_1977 = ConversionTable(
    name="ANSI/ANS-6.1.1-1977",
    energies_MeV=(
        2.5e-8, 1.0e-7, 1.0e-6, 1.0e-5, 1.0e-4, 1.0e-3, 1.0e-2, 1.0e-1,
        5.0e-1, 1.0, 2.5, 5.0, 7.0, 10.0, 14.0, 20.0,
    ),
    factors=(
        3.67e-6, 3.67e-6, 4.46e-6, 4.54e-6, 4.18e-6, 3.76e-6, 3.56e-6, 2.17e-5,
        9.26e-5, 1.32e-4, 1.25e-4, 1.56e-4, 1.47e-4, 1.47e-4, 2.08e-4, 2.27e-4,
    ),
)


def interpolate_coefficients(
    energies_MeV: Sequence[float],
    table: ConversionTable = ANSI_ANS_6_1_1_1977,
    log_space: bool = True,
) -> np.ndarray:
    """
    Interpolate dose conversion factors at the given energies.

    Uses shape-preserving piecewise cubic Hermite (pchip) interpolation
    in log-energy, which never overshoots between monotone reference
    points. Energies outside the table are extrapolated.

    Parameters
    ----------
    energies_MeV : array-like
        Query energies in MeV, positive and strictly increasing
    table : ConversionTable
        Reference table (default ANSI/ANS-6.1.1-1977)
    log_space : bool
        Interpolate log(factor) rather than the factor itself

    Returns
    -------
    np.ndarray
        Conversion factor per query energy, in ``table.units``
    """
    energies = np.atleast_1d(np.asarray(energies_MeV, dtype=float))
    if energies.size == 0:
        return np.zeros(0)
    if not np.all(np.isfinite(energies)) or np.any(energies <= 0):
        raise ValueError("Query energies must be finite and positive for log-energy interpolation")
    if np.any(np.diff(energies) <= 0):
        raise ValueError("Query energies must be strictly increasing")

    x = np.log(table.energies)
    y = np.log(table.coefficients) if log_space else table.coefficients
    interpolator = PchipInterpolator(x, y, extrapolate=True)
    values = interpolator(np.log(energies))

    outside = (energies < table.energies[0]) | (energies > table.energies[-1])
    if np.any(outside):
        logger.debug(f"Extrapolating {table.name} factors for {int(np.count_nonzero(outside))} bin(s)")

    return np.exp(values) if log_space else values


@dataclass
class DoseRange:
    """Dose summed over the bins falling in one conversion-table interval."""

    lower_MeV: float
    upper_MeV: Optional[float]  # None for the overflow bucket
    dose_rate: float
    percentage: Optional[float] = None
    n_bins: int = 0

    @property
    def is_overflow(self) -> bool:
        return self.upper_MeV is None


@dataclass
class DoseEstimate:
    """
    Dose rate spectrum and its summaries.

    Attributes:
        energies_MeV: Mean energy per bin (MeV)
        flux: Flux per bin (n/cm²/s)
        coefficients: Interpolated conversion factor per bin
        dose_rate: Dose rate per bin (rem/hr)
        table: Conversion table used
    """

    energies_MeV: np.ndarray
    flux: np.ndarray
    coefficients: np.ndarray
    dose_rate: np.ndarray
    table: ConversionTable = ANSI_ANS_6_1_1_1977

    @property
    def n_bins(self) -> int:
        return len(self.dose_rate)

    @property
    def total_dose(self) -> float:
        return float(np.sum(self.dose_rate))

    @property
    def regions(self) -> RegionSummary:
        return summarize_regions(self.energies_MeV, self.dose_rate)

    def percentage_of_total(self, dose: float) -> Optional[float]:
        """Percentage of the total dose, None when the total is zero."""
        total = self.total_dose
        if total == 0:
            return None
        return 100.0 * dose / total

    def top_contributors(self, n: Optional[int] = None) -> np.ndarray:
        """Bin indices sorted by dose contribution, largest first."""
        order = np.argsort(-self.dose_rate, kind="stable")
        return order if n is None else order[:n]

    @property
    def cumulative_percent(self) -> Optional[np.ndarray]:
        """Running dose percentage in energy order, None when total is zero."""
        total = self.total_dose
        if total == 0:
            return None
        return np.cumsum(self.dose_rate) / total * 100.0

    def ranges(self) -> List[DoseRange]:
        """
        Dose per conversion-table energy interval.

        Bins below the first table energy belong to no interval and are
        left out; bins at or above the last energy form an overflow bucket.
        """
        edges = self.table.energies
        e = self.energies_MeV
        result: List[DoseRange] = []
        for lo, hi in zip(edges[:-1], edges[1:]):
            mask = (e >= lo) & (e < hi)
            dose = float(np.sum(self.dose_rate[mask]))
            result.append(DoseRange(
                lower_MeV=float(lo),
                upper_MeV=float(hi),
                dose_rate=dose,
                percentage=self.percentage_of_total(dose),
                n_bins=int(np.count_nonzero(mask)),
            ))

        mask = e >= edges[-1]
        dose = float(np.sum(self.dose_rate[mask]))
        result.append(DoseRange(
            lower_MeV=float(edges[-1]),
            upper_MeV=None,
            dose_rate=dose,
            percentage=self.percentage_of_total(dose),
            n_bins=int(np.count_nonzero(mask)),
        ))

        below = int(np.count_nonzero(e < edges[0]))
        if below:
            logger.debug(f"{below} bin(s) below {edges[0]:.2e} MeV are not assigned to a dose range")
        return result


def estimate_dose(
    energies_MeV: Sequence[float],
    flux: Sequence[float],
    table: ConversionTable = ANSI_ANS_6_1_1_1977,
    log_space: bool = True,
) -> DoseEstimate:
    """
    Calculate dose rate per bin from mean bin energies and bin flux.

    Parameters
    ----------
    energies_MeV : array-like
        Mean energy per bin in MeV (strictly increasing)
    flux : array-like
        Flux per bin in n/cm²/s
    table : ConversionTable
        Flux-to-dose conversion table
    log_space : bool
        Interpolate factors in log space (see :func:`interpolate_coefficients`)

    Returns
    -------
    DoseEstimate
        Per-bin dose rates with summaries
    """
    energies = np.asarray(energies_MeV, dtype=float)
    flux = np.asarray(flux, dtype=float)
    if energies.shape != flux.shape:
        raise ValueError(f"Energy ({energies.shape}) and flux ({flux.shape}) shapes differ")

    coefficients = interpolate_coefficients(energies, table, log_space=log_space)
    estimate = DoseEstimate(
        energies_MeV=energies,
        flux=flux,
        coefficients=coefficients,
        dose_rate=flux * coefficients,
        table=table,
    )
    if estimate.total_dose == 0:
        logger.warning("Total dose rate is zero; dose percentages are undefined")
    return estimate


def dose_from_spectrum(
    spectrum: FluxSpectrum,
    table: ConversionTable = ANSI_ANS_6_1_1_1977,
    log_space: bool = True,
) -> DoseEstimate:
    """Dose estimate for a converted detector spectrum."""
    return estimate_dose(spectrum.mean_energy, spectrum.flux, table, log_space=log_space)
