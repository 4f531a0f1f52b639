"""Physics models: flux-to-dose conversion."""

from fluxdose.physics.dose import (
    ANSI_ANS_6_1_1_1977,
    ConversionTable,
    DoseEstimate,
    DoseRange,
    dose_from_spectrum,
    estimate_dose,
    interpolate_coefficients,
)

__all__ = [
    "ANSI_ANS_6_1_1_1977",
    "ConversionTable",
    "DoseEstimate",
    "DoseRange",
    "dose_from_spectrum",
    "estimate_dose",
    "interpolate_coefficients",
]
