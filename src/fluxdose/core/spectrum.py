"""
Spectrum Conversion Module

Turns normalized detector scores into physical flux quantities:

- Total flux per bin (n/cm²/s)
- Flux per unit energy (n/cm²/s/MeV)
- Absolute errors from the relative statistical errors
- Thermal / epithermal / fast region aggregates
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

import numpy as np

from fluxdose.core.normalization import NormalizationFactor
from fluxdose.io.serpent import DetectorTally

logger = logging.getLogger(__name__)

# Region boundaries on mean bin energy (MeV)
THERMAL_LIMIT_MEV = 0.625
FAST_LIMIT_MEV = 1.0

REGIONS = ("thermal", "epithermal", "fast")


def region_masks(energies: np.ndarray) -> Dict[str, np.ndarray]:
    """Boolean masks selecting the thermal, epithermal and fast bins."""
    energies = np.asarray(energies, dtype=float)
    return {
        "thermal": energies < THERMAL_LIMIT_MEV,
        "epithermal": (energies >= THERMAL_LIMIT_MEV) & (energies < FAST_LIMIT_MEV),
        "fast": energies >= FAST_LIMIT_MEV,
    }


@dataclass
class RegionSummary:
    """
    A per-bin quantity summed over the three energy regions.

    Attributes:
        sums: Region name -> summed quantity
        counts: Region name -> number of bins in the region
        total: Sum over all bins
    """

    sums: Dict[str, float]
    counts: Dict[str, int]
    total: float

    @property
    def thermal(self) -> float:
        return self.sums["thermal"]

    @property
    def epithermal(self) -> float:
        return self.sums["epithermal"]

    @property
    def fast(self) -> float:
        return self.sums["fast"]

    def fraction(self, region: str) -> Optional[float]:
        """Share of the total in a region, None when the total is zero."""
        if self.total == 0:
            return None
        return self.sums[region] / self.total

    @property
    def fractions(self) -> Dict[str, Optional[float]]:
        return {region: self.fraction(region) for region in REGIONS}

    def average_per_bin(self, region: str) -> Optional[float]:
        """Mean per-bin value in a region, None for an empty region."""
        n = self.counts[region]
        if n == 0:
            return None
        return self.sums[region] / n


def summarize_regions(energies: np.ndarray, values: np.ndarray) -> RegionSummary:
    """Sum ``values`` over the thermal/epithermal/fast partition of ``energies``."""
    values = np.asarray(values, dtype=float)
    masks = region_masks(energies)
    return RegionSummary(
        sums={region: float(np.sum(values[mask])) for region, mask in masks.items()},
        counts={region: int(np.count_nonzero(mask)) for region, mask in masks.items()},
        total=float(np.sum(values)),
    )


@dataclass
class FluxSpectrum:
    """
    Absolute neutron flux spectrum from one detector.

    All arrays are aligned with the detector's energy bins (ascending).
    """

    detector: str
    lower: np.ndarray
    upper: np.ndarray
    mean_energy: np.ndarray
    rel_error: np.ndarray
    bin_width: np.ndarray
    flux: np.ndarray
    flux_error: np.ndarray
    flux_per_energy: np.ndarray
    flux_per_energy_error: np.ndarray
    normalization: float
    degenerate_bins: np.ndarray = field(default_factory=lambda: np.array([], dtype=bool))
    regions: Optional[RegionSummary] = None

    @property
    def n_bins(self) -> int:
        return len(self.flux)

    @property
    def total_flux(self) -> float:
        return float(np.sum(self.flux))

    @property
    def per_lethargy(self) -> np.ndarray:
        """Flux per unit lethargy, E·φ(E) (n/cm²/s)."""
        return self.flux_per_energy * self.mean_energy


def convert_spectrum(
    tally: DetectorTally,
    normalization: Union[NormalizationFactor, float],
) -> FluxSpectrum:
    """
    Convert raw detector scores to absolute flux.

    Parameters
    ----------
    tally : DetectorTally
        Energy-binned detector tally.
    normalization : NormalizationFactor or float
        Factor from :func:`fluxdose.core.normalization.resolve_normalization`.

    Returns
    -------
    FluxSpectrum
        Per-bin flux, flux per unit energy and their absolute errors.
    """
    norm = normalization.value if isinstance(normalization, NormalizationFactor) else float(normalization)

    flux = tally.raw_score * norm
    bin_width = tally.upper - tally.lower

    degenerate = bin_width <= 0
    if np.any(degenerate):
        logger.warning(
            f"Detector {tally.name}: {int(np.count_nonzero(degenerate))} bin(s) with "
            f"zero or negative width at indices {np.flatnonzero(degenerate).tolist()}; "
            f"flux per unit energy set to 0 there"
        )
    safe_width = np.where(degenerate, 1.0, bin_width)
    flux_per_energy = np.where(degenerate, 0.0, flux / safe_width)

    spectrum = FluxSpectrum(
        detector=tally.name,
        lower=tally.lower.copy(),
        upper=tally.upper.copy(),
        mean_energy=tally.mean_energy.copy(),
        rel_error=tally.rel_error.copy(),
        bin_width=bin_width,
        flux=flux,
        flux_error=tally.rel_error * flux,
        flux_per_energy=flux_per_energy,
        flux_per_energy_error=tally.rel_error * flux_per_energy,
        normalization=norm,
        degenerate_bins=degenerate,
        regions=summarize_regions(tally.mean_energy, flux),
    )
    if spectrum.total_flux == 0:
        logger.warning(f"Detector {tally.name}: total flux is zero; region fractions are undefined")
    return spectrum
