"""Core normalization and spectrum conversion."""

from fluxdose.core.normalization import NormalizationFactor, resolve_normalization
from fluxdose.core.spectrum import (
	FAST_LIMIT_MEV,
	THERMAL_LIMIT_MEV,
	FluxSpectrum,
	RegionSummary,
	convert_spectrum,
	region_masks,
	summarize_regions,
)

__all__ = [
	"NormalizationFactor",
	"resolve_normalization",
	"FAST_LIMIT_MEV",
	"THERMAL_LIMIT_MEV",
	"FluxSpectrum",
	"RegionSummary",
	"convert_spectrum",
	"region_masks",
	"summarize_regions",
]
