"""
Flux and Dose Visualization Module

Figures for a converted detector spectrum and its dose estimate:
- Flux spectrum analysis (log-log, lin-log, relative errors, region split)
- Dose rate analysis (dose spectrum, flux vs dose, cumulative dose, region split)
- Flux/dose comparison against the conversion-table energy grid
- Flux per unit lethargy
- Infinite-medium group constants from the result table
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

try:
    import matplotlib.pyplot as plt
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

from fluxdose.core.spectrum import REGIONS, FluxSpectrum, RegionSummary
from fluxdose.io.serpent import ResultTable
from fluxdose.physics.dose import DoseEstimate


# =============================================================================
# Plot Style Configuration
# =============================================================================

PLOT_STYLE = {
    "font.size": 10,
    "axes.labelsize": 11,
    "axes.titlesize": 12,
    "legend.fontsize": 9,
    "lines.linewidth": 1.5,
    "lines.markersize": 4,
    "grid.alpha": 0.3,
    "grid.linestyle": "--",
}

COLORS = {
    "flux": "#1f77b4",       # Blue
    "error": "#d62728",      # Red
    "dose": "#e377c2",       # Magenta
    "cumulative": "#2ca02c", # Green
    "reference": "black",
}

REGION_COLORS = {
    "thermal": "#1f77b4",
    "epithermal": "#ff7f0e",
    "fast": "#d62728",
}

ENERGY_TICKS = [
    1e-8, 3e-8, 1e-7, 3e-7, 1e-6, 3e-6, 1e-5, 3e-5, 1e-4, 3e-4,
    1e-3, 3e-3, 1e-2, 3e-2, 1e-1, 3e-1, 1, 3, 10, 20,
]

DPI = 150


def apply_plot_style():
    """Apply the package plot style."""
    if HAS_MATPLOTLIB:
        plt.rcParams.update(PLOT_STYLE)


def _require_matplotlib() -> None:
    if not HAS_MATPLOTLIB:
        raise ImportError("matplotlib required for plotting")
    apply_plot_style()


def energy_tick_labels(ticks: Sequence[float] = ENERGY_TICKS) -> List[str]:
    """
    Tick labels for a logarithmic energy axis.

    Energies of 1 MeV and above are printed plainly; smaller ones as
    ``10^{n}`` or ``m×10^{n}`` in mathtext.
    """
    labels = []
    for tick in ticks:
        if tick >= 1:
            labels.append(f"{tick:g}")
            continue
        exponent = int(np.floor(np.log10(tick)))
        mantissa = tick / 10.0 ** exponent
        if abs(mantissa - 1) < 1e-10:
            labels.append(f"$10^{{{exponent}}}$")
        else:
            labels.append(f"${mantissa:g}\\times10^{{{exponent}}}$")
    return labels


def _style_energy_axis(ax: Any, ticks: Sequence[float] = ENERGY_TICKS) -> None:
    ax.set_xticks(list(ticks))
    ax.set_xticklabels(energy_tick_labels(ticks), rotation=45)
    ax.minorticks_on()
    ax.grid(True, which="both", alpha=0.3)
    ax.set_xlabel("Energy (MeV)")


def _region_pie(ax: Any, summary: RegionSummary, title: str) -> None:
    values = [max(summary.sums[r], 0.0) for r in REGIONS]
    if sum(values) <= 0:
        ax.text(0.5, 0.5, "No data", ha="center", va="center", transform=ax.transAxes)
        ax.set_axis_off()
        ax.set_title(title)
        return

    total = sum(values)
    labels = [f"{r.capitalize()} ({100.0 * v / total:.1f}%)" for r, v in zip(REGIONS, values)]
    ax.pie(values, labels=labels, colors=[REGION_COLORS[r] for r in REGIONS])
    ax.set_title(title)


def close_figure(fig: Any) -> None:
    """Release a figure once it has been saved."""
    if HAS_MATPLOTLIB:
        plt.close(fig)


# =============================================================================
# Flux spectrum figures
# =============================================================================

def plot_flux_spectrum(
    spectrum: FluxSpectrum,
    figsize: Tuple[float, float] = (12, 10),
    save_path: Optional[Union[str, Path]] = None,
) -> Any:
    """
    Four-panel flux spectrum analysis.

    Parameters
    ----------
    spectrum : FluxSpectrum
        Converted detector spectrum
    figsize : tuple
        Figure size
    save_path : str or Path, optional
        Save figure to path

    Returns
    -------
    fig, axes
        Matplotlib figure and 2x2 axes array
    """
    _require_matplotlib()

    e = spectrum.mean_energy
    phi = spectrum.flux_per_energy
    err = spectrum.flux_per_energy_error

    fig, axes = plt.subplots(2, 2, figsize=figsize)

    ax = axes[0, 0]
    ax.loglog(e, phi, "o-", color=COLORS["flux"])
    ax.loglog(e, phi + err, "--", color=COLORS["error"], linewidth=0.5)
    ax.loglog(e, np.maximum(phi - err, 0.0), "--", color=COLORS["error"], linewidth=0.5)
    _style_energy_axis(ax)
    ax.set_ylabel("Neutron Flux (n/cm²/s/MeV)")
    ax.set_title("Neutron Energy Spectrum (log-log)")

    ax = axes[0, 1]
    ax.semilogx(e, phi, "o-", color=COLORS["flux"])
    ax.semilogx(e, phi + err, "--", color=COLORS["error"], linewidth=0.5)
    ax.semilogx(e, phi - err, "--", color=COLORS["error"], linewidth=0.5)
    _style_energy_axis(ax)
    ax.set_ylabel("Neutron Flux (n/cm²/s/MeV)")
    ax.set_title("Neutron Energy Spectrum (linear-log)")

    ax = axes[1, 0]
    ax.semilogx(e, spectrum.rel_error * 100.0, "o-", color=COLORS["error"])
    _style_energy_axis(ax)
    ax.set_ylabel("Relative Error (%)")
    ax.set_title("Relative Errors in Flux Measurements")

    _region_pie(axes[1, 1], spectrum.regions, "Neutron Energy Distribution")

    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=DPI, bbox_inches="tight")

    return fig, axes


def plot_lethargy_spectrum(
    spectrum: FluxSpectrum,
    figsize: Tuple[float, float] = (12, 6),
    save_path: Optional[Union[str, Path]] = None,
) -> Any:
    """Flux per unit energy next to flux per unit lethargy, E·φ(E)."""
    _require_matplotlib()

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=figsize)

    ax1.loglog(spectrum.mean_energy, spectrum.flux_per_energy, "o-", color=COLORS["flux"])
    _style_energy_axis(ax1)
    ax1.set_ylabel("Neutron Flux (n/cm²/s/MeV)")
    ax1.set_title("Simulated Neutron Spectrum")

    ax2.semilogx(spectrum.mean_energy, spectrum.per_lethargy, "o-", color=COLORS["error"])
    _style_energy_axis(ax2)
    ax2.set_ylabel("E×Φ(E) (n/cm²/s)")
    ax2.set_title("Flux per Unit Lethargy")

    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=DPI, bbox_inches="tight")

    return fig, (ax1, ax2)


# =============================================================================
# Dose figures
# =============================================================================

def plot_dose_analysis(
    dose: DoseEstimate,
    figsize: Tuple[float, float] = (14, 10),
    save_path: Optional[Union[str, Path]] = None,
) -> Any:
    """
    Four-panel dose rate analysis.

    Dose spectrum, flux and dose on twin axes, cumulative dose
    contribution with 50% / 90% guides, and the region split.
    """
    _require_matplotlib()

    e = dose.energies_MeV
    fig, axes = plt.subplots(2, 2, figsize=figsize)

    ax = axes[0, 0]
    ax.loglog(e, dose.dose_rate, "o-", color=COLORS["dose"])
    _style_energy_axis(ax)
    ax.set_ylabel("Dose Rate (rem/hr)")
    ax.set_title("Neutron Dose Rate Spectrum")

    ax = axes[0, 1]
    flux_line = ax.loglog(e, dose.flux, "o-", color=COLORS["flux"], label="Flux")
    ax.set_ylabel("Flux (n/cm²/s)", color=COLORS["flux"])
    twin = ax.twinx()
    dose_line = twin.loglog(e, dose.dose_rate, "o-", color=COLORS["error"], label="Dose Rate")
    twin.set_ylabel("Dose Rate (rem/hr)", color=COLORS["error"])
    _style_energy_axis(ax)
    ax.legend(flux_line + dose_line, ["Flux", "Dose Rate"], loc="upper right")
    ax.set_title("Flux vs Dose Rate")

    ax = axes[1, 0]
    cumulative = dose.cumulative_percent
    if cumulative is not None:
        ax.semilogx(e, cumulative, "o-", color=COLORS["cumulative"])
        for level in (50, 90):
            ax.axhline(level, color=COLORS["reference"], linestyle="--", linewidth=1)
            ax.text(1e-6, level + 2, f"{level}%", fontsize=9, backgroundcolor="w")
    else:
        ax.text(0.5, 0.5, "Total dose is zero", ha="center", va="center", transform=ax.transAxes)
    ax.set_xscale("log")
    _style_energy_axis(ax)
    ax.set_ylabel("Cumulative Dose Contribution (%)")
    ax.set_title("Cumulative Dose vs Energy")

    _region_pie(axes[1, 1], dose.regions, "Dose Contribution by Energy Range")

    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=DPI, bbox_inches="tight")

    return fig, axes


def plot_flux_dose_comparison(
    dose: DoseEstimate,
    figsize: Tuple[float, float] = (12, 7),
    save_path: Optional[Union[str, Path]] = None,
) -> Any:
    """Flux and dose rate on twin axes with the table energies marked."""
    _require_matplotlib()

    e = dose.energies_MeV
    fig, ax = plt.subplots(figsize=figsize)

    flux_line = ax.loglog(e, dose.flux, "o-", color=COLORS["flux"], linewidth=2, markersize=6)
    ax.set_ylabel("Neutron Flux (n/cm²/s)", color=COLORS["flux"])
    ax.tick_params(axis="y", colors=COLORS["flux"])

    twin = ax.twinx()
    dose_line = twin.loglog(e, dose.dose_rate, "s-", color=COLORS["error"], linewidth=2, markersize=6)
    twin.set_ylabel("Dose Rate (rem/hr)", color=COLORS["error"])
    twin.tick_params(axis="y", colors=COLORS["error"])

    ticks = [1e-8, 1e-7, 1e-6, 1e-5, 1e-4, 1e-3, 1e-2, 1e-1, 1, 10, 20]
    _style_energy_axis(ax, ticks)

    for energy in dose.table.energies:
        ax.axvline(energy, color=COLORS["reference"], linestyle="--", linewidth=0.5, alpha=0.3)

    if dose.n_bins and np.max(dose.flux) > 0:
        y = 0.85 * float(np.max(dose.flux))
        for x, label in ((1e-7, "Thermal"), (1e-1, "Epithermal"), (2, "Fast")):
            ax.text(x, y, label, fontsize=10, bbox=dict(facecolor="white", edgecolor="black"))

    ax.legend(flux_line + dose_line, ["Neutron Flux", "Dose Rate"], loc="upper left")
    ax.set_title("Neutron Flux and Dose Rate vs Energy")

    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=DPI, bbox_inches="tight")

    return fig, (ax, twin)


# =============================================================================
# Group constants
# =============================================================================

def plot_group_constants(
    results: ResultTable,
    figsize: Tuple[float, float] = (10, 8),
    save_path: Optional[Union[str, Path]] = None,
) -> Optional[Any]:
    """
    Fission cross sections and energy per fission per energy group.

    Returns None when the result table carries no ``INF_NSF``/``INF_FISS``.
    """
    _require_matplotlib()

    nsf = results.means("INF_NSF")
    fiss = results.means("INF_FISS")
    if nsf is None or fiss is None:
        return None

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=figsize)

    groups_nsf = np.arange(1, len(nsf) + 1)
    groups_fiss = np.arange(1, len(fiss) + 1)
    ax1.plot(groups_nsf, nsf, "o-", color=COLORS["flux"], label="Nu-Sigma-Fission")
    ax1.plot(groups_fiss, fiss, "s-", color=COLORS["error"], label="Sigma-Fission")
    ax1.set_xlabel("Energy group")
    ax1.set_ylabel("Macroscopic cross section (1/cm)")
    ax1.grid(True, alpha=0.3)
    ax1.legend()
    ax1.set_title("Fission Cross Sections")

    kappa = results.means("INF_KAPPA")
    if kappa is not None:
        ax2.plot(np.arange(1, len(kappa) + 1), kappa, "^-", color=COLORS["cumulative"])
        ax2.set_xlabel("Energy group")
        ax2.set_ylabel("Energy per fission (MeV)")
        ax2.grid(True, alpha=0.3)
        ax2.set_title("Energy per Fission (KAPPA)")
    else:
        ax2.set_axis_off()

    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=DPI, bbox_inches="tight")

    return fig, (ax1, ax2)
