"""Source normalization for Serpent detector scores.

Detector scores are normalized per source neutron; multiplying by the
factor resolved here gives absolute flux (n/cm²/s) for a reactor whose
source strength is known.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fluxdose.io.serpent import ResultTable

logger = logging.getLogger(__name__)

SOURCE_RATE_FIELD = "TOT_SRCRATE"
SOURCE_MULTIPLICATION_FIELD = "SRC_MULT"
DIRECT_SOURCE = "source_strength"


@dataclass
class NormalizationFactor:
    """
    Scalar converting detector scores to absolute flux.

    Attributes:
        value: Normalization factor
        source: Field that produced the value (``TOT_SRCRATE``, ``SRC_MULT``
            or ``source_strength`` for the direct fallback)
        source_strength: Configured source strength (n/s)
        divisor: Field value the source strength was divided by, if any
        diagnostics: Messages emitted while resolving
    """

    value: float
    source: str
    source_strength: float
    divisor: Optional[float] = None
    diagnostics: List[str] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return self.source == DIRECT_SOURCE

    def to_dict(self) -> Dict[str, object]:
        return {
            "value": self.value,
            "source": self.source,
            "source_strength": self.source_strength,
            "divisor": self.divisor,
            "diagnostics": list(self.diagnostics),
        }


def _usable(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value != 0.0


def resolve_normalization(results: ResultTable, source_strength: float) -> NormalizationFactor:
    """
    Resolve the flux normalization factor from a Serpent result table.

    The first available source wins:

    1. ``source_strength / TOT_SRCRATE[0]``
    2. ``source_strength / SRC_MULT[0]``
    3. ``source_strength`` itself

    Each step taken is logged. A field holding more than one element is
    reduced to its first element with a warning.

    Parameters
    ----------
    results : ResultTable
        Loaded result step.
    source_strength : float
        Absolute source strength in neutrons/second.

    Returns
    -------
    NormalizationFactor
        Factor with provenance; never raises.
    """
    diagnostics: List[str] = []

    def note(level: int, message: str) -> None:
        diagnostics.append(message)
        logger.log(level, message)

    srcrate = results.first(SOURCE_RATE_FIELD)
    if _usable(srcrate):
        n_values = results.size(SOURCE_RATE_FIELD)
        if n_values > 1:
            note(
                logging.WARNING,
                f"{SOURCE_RATE_FIELD} is not a scalar ({n_values} elements); "
                f"using the first element and discarding {n_values - 1}",
            )
        note(logging.INFO, f"Normalizing with {SOURCE_RATE_FIELD} = {srcrate:.5e}")
        return NormalizationFactor(
            value=source_strength / srcrate,
            source=SOURCE_RATE_FIELD,
            source_strength=source_strength,
            divisor=srcrate,
            diagnostics=diagnostics,
        )

    if results.contains(SOURCE_RATE_FIELD):
        note(logging.WARNING, f"{SOURCE_RATE_FIELD} is zero or not finite; using alternative normalization")
    else:
        note(logging.WARNING, f"{SOURCE_RATE_FIELD} not found in results; using alternative normalization")

    src_mult = results.first(SOURCE_MULTIPLICATION_FIELD)
    if _usable(src_mult):
        note(logging.INFO, f"Normalizing with {SOURCE_MULTIPLICATION_FIELD} = {src_mult:.5e}")
        return NormalizationFactor(
            value=source_strength / src_mult,
            source=SOURCE_MULTIPLICATION_FIELD,
            source_strength=source_strength,
            divisor=src_mult,
            diagnostics=diagnostics,
        )

    note(logging.WARNING, "Using direct source strength as normalization factor")
    return NormalizationFactor(
        value=float(source_strength),
        source=DIRECT_SOURCE,
        source_strength=source_strength,
        diagnostics=diagnostics,
    )
