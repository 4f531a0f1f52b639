"""Provenance helpers for fluxdose output artifacts."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import numpy as np
import scipy

from fluxdose import __version__


def hash_bytes(payload: bytes) -> Dict[str, str]:
    """Return standard hashes for a byte payload."""
    sha256 = hashlib.sha256(payload).hexdigest()
    md5 = hashlib.md5(payload).hexdigest()
    return {"sha256": sha256, "md5": md5}


def hash_file(path: Path) -> Dict[str, str]:
    """Hash a file on disk."""
    return hash_bytes(Path(path).read_bytes())


def hash_inputs(paths: Iterable[Path]) -> Dict[str, Dict[str, str]]:
    """Hashes keyed by file name for every existing input file."""
    return {Path(p).name: hash_file(Path(p)) for p in paths if Path(p).exists()}


def build_provenance(
    *,
    units: Dict[str, str],
    normalization: Optional[Dict[str, Any]] = None,
    conversion_table: Optional[str] = None,
    source_hashes: Optional[Dict[str, Dict[str, str]]] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a provenance record for serialized artifacts."""
    provenance: Dict[str, Any] = {
        "created_at": datetime.now(timezone.utc).isoformat(),
        "versions": {
            "fluxdose": __version__,
            "numpy": np.__version__,
            "scipy": scipy.__version__,
        },
        "units": units,
    }
    if normalization:
        provenance["normalization"] = normalization
    if conversion_table:
        provenance["conversion_table"] = conversion_table
    if source_hashes:
        provenance["hashes"] = source_hashes
    if notes:
        provenance["notes"] = notes
    return provenance
