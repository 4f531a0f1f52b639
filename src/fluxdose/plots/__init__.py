"""fluxdose plotting module for flux and dose visualization."""

from fluxdose.plots.spectrum import (
    HAS_MATPLOTLIB,
    ENERGY_TICKS,
    apply_plot_style,
    close_figure,
    energy_tick_labels,
    plot_flux_spectrum,
    plot_lethargy_spectrum,
    plot_dose_analysis,
    plot_flux_dose_comparison,
    plot_group_constants,
)

__all__ = [
    'HAS_MATPLOTLIB',
    'ENERGY_TICKS',
    'apply_plot_style',
    'close_figure',
    'energy_tick_labels',
    'plot_flux_spectrum',
    'plot_lethargy_spectrum',
    'plot_dose_analysis',
    'plot_flux_dose_comparison',
    'plot_group_constants',
]
