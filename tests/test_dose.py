"""
Tests for flux-to-dose conversion.
"""

import numpy as np
import pytest
from scipy.interpolate import PchipInterpolator

from fluxdose.core.spectrum import convert_spectrum
from fluxdose.io.serpent import read_detector_file
from fluxdose.physics.dose import (
    ANSI_ANS_6_1_1_1977,
    ConversionTable,
    dose_from_spectrum,
    estimate_dose,
    interpolate_coefficients,
)


class TestConversionTable:
    """Tests for the reference table container."""

    def test_ansi_table(self):
        table = ANSI_ANS_6_1_1_1977
        assert len(table) == 16
        assert table.energies[0] == pytest.approx(2.5e-8)
        assert table.energies[-1] == pytest.approx(20.0)
        assert table.coefficients[0] == pytest.approx(3.67e-6)
        assert table.coefficients[-1] == pytest.approx(2.27e-4)
        assert np.all(np.diff(table.energies) > 0)

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError, match="energies but"):
            ConversionTable("bad", (1.0, 2.0), (1.0,))

    def test_too_short(self):
        with pytest.raises(ValueError, match="at least two"):
            ConversionTable("bad", (1.0,), (1.0,))

    def test_not_increasing(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            ConversionTable("bad", (1.0, 1.0), (1.0, 2.0))

    def test_non_positive_factor(self):
        with pytest.raises(ValueError, match="positive"):
            ConversionTable("bad", (1.0, 2.0), (1.0, 0.0))


class TestInterpolateCoefficients:
    """Tests for pchip interpolation of dose factors."""

    def test_reproduces_table_points(self):
        table = ANSI_ANS_6_1_1_1977
        values = interpolate_coefficients(table.energies, table)
        np.testing.assert_allclose(values, table.coefficients, rtol=1e-10)

    def test_no_overshoot_between_points(self):
        table = ANSI_ANS_6_1_1_1977
        energies = np.logspace(np.log10(2.5e-8), np.log10(20.0), 2000)
        values = interpolate_coefficients(energies, table)

        for lo, hi, f_lo, f_hi in zip(
            table.energies[:-1], table.energies[1:], table.coefficients[:-1], table.coefficients[1:]
        ):
            inside = (energies >= lo) & (energies <= hi)
            segment = values[inside]
            assert np.all(segment >= min(f_lo, f_hi) * (1 - 1e-9))
            assert np.all(segment <= max(f_lo, f_hi) * (1 + 1e-9))

    def test_monotone_on_rising_segment(self):
        energies = np.logspace(-2, 0, 200)
        values = interpolate_coefficients(energies)
        assert np.all(np.diff(values) >= 0)

    def test_flat_segment_stays_flat(self):
        energies = np.linspace(7.0, 10.0, 20)
        values = interpolate_coefficients(energies)
        np.testing.assert_allclose(values, 1.47e-4, rtol=1e-10)

    def test_linear_space_matches_scipy(self):
        table = ANSI_ANS_6_1_1_1977
        energies = np.array([3e-8, 2e-3, 0.3, 3.0, 12.0])
        expected = PchipInterpolator(np.log(table.energies), table.coefficients)(np.log(energies))
        values = interpolate_coefficients(energies, table, log_space=False)
        np.testing.assert_allclose(values, expected)

    def test_extrapolation_is_positive(self):
        values = interpolate_coefficients([1e-9, 30.0])
        assert np.all(np.isfinite(values))
        assert np.all(values > 0)

    def test_empty_query(self):
        assert interpolate_coefficients([]).size == 0

    def test_rejects_non_positive_energy(self):
        with pytest.raises(ValueError, match="positive"):
            interpolate_coefficients([0.0, 1.0])

    def test_rejects_unsorted_energy(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            interpolate_coefficients([1.0, 0.5])


class TestEstimateDose:
    """Tests for per-bin dose and its summaries."""

    @pytest.fixture
    def dose(self):
        energies = [1e-8, 1e-6, 1e-1, 0.8, 2.0, 25.0]
        flux = [1e6, 1e6, 1e5, 1e5, 1e5, 1e3]
        return estimate_dose(energies, flux)

    def test_dose_is_flux_times_factor(self, dose):
        np.testing.assert_allclose(dose.dose_rate, dose.flux * dose.coefficients)
        assert dose.total_dose == pytest.approx(np.sum(dose.dose_rate))

    def test_known_factor(self):
        dose = estimate_dose([1.0], [1e5])
        assert dose.dose_rate[0] == pytest.approx(13.2)

    def test_regions(self, dose):
        regions = dose.regions
        assert regions.counts == {"thermal": 3, "epithermal": 1, "fast": 2}
        assert regions.total == pytest.approx(dose.total_dose)

    def test_top_contributors(self, dose):
        order = dose.top_contributors()
        assert np.all(np.diff(dose.dose_rate[order]) <= 0)
        assert len(dose.top_contributors(2)) == 2
        assert dose.top_contributors(100).tolist() == order.tolist()

    def test_top_contributors_ties_keep_energy_order(self):
        dose = estimate_dose([7.5, 8.0, 9.0], [1.0, 1.0, 1.0])
        assert dose.top_contributors().tolist() == [0, 1, 2]

    def test_cumulative_percent(self, dose):
        cumulative = dose.cumulative_percent
        assert cumulative[-1] == pytest.approx(100.0)
        assert np.all(np.diff(cumulative) >= 0)

    def test_ranges(self, dose):
        ranges = dose.ranges()
        assert len(ranges) == len(ANSI_ANS_6_1_1_1977)

        overflow = ranges[-1]
        assert overflow.is_overflow
        assert overflow.lower_MeV == pytest.approx(20.0)
        assert overflow.n_bins == 1
        assert overflow.dose_rate == pytest.approx(dose.dose_rate[-1])

        # 1e-8 MeV lies below the first table energy
        assert sum(r.n_bins for r in ranges) == dose.n_bins - 1
        assert sum(r.dose_rate for r in ranges) == pytest.approx(dose.total_dose - dose.dose_rate[0])

    def test_range_half_open(self):
        dose = estimate_dose([1.0], [1.0])
        ranges = dose.ranges()
        hits = [r for r in ranges if r.n_bins]
        assert len(hits) == 1
        assert hits[0].lower_MeV == pytest.approx(1.0)
        assert hits[0].upper_MeV == pytest.approx(2.5)
        assert hits[0].percentage == pytest.approx(100.0)

    def test_zero_flux(self, caplog):
        with caplog.at_level("WARNING"):
            dose = estimate_dose([0.1, 1.0], [0.0, 0.0])

        assert dose.total_dose == 0
        assert dose.cumulative_percent is None
        assert dose.percentage_of_total(0.0) is None
        assert all(r.percentage is None for r in dose.ranges())
        assert "dose percentages are undefined" in caplog.text

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match="shapes differ"):
            estimate_dose([0.1, 1.0], [1.0])


class TestDoseFromSpectrum:
    """Tests for dose from a converted detector spectrum."""

    def test_uses_mean_energy_and_flux(self, detector_file):
        tally = read_detector_file(detector_file).tally("FluxDet")
        spectrum = convert_spectrum(tally, 1e3)
        dose = dose_from_spectrum(spectrum)

        np.testing.assert_allclose(dose.energies_MeV, spectrum.mean_energy)
        np.testing.assert_allclose(dose.flux, spectrum.flux)
        np.testing.assert_allclose(
            dose.coefficients, interpolate_coefficients(spectrum.mean_energy)
        )
