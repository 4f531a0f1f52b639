"""
Tests for the Serpent 2 result and detector readers.
"""

import numpy as np
import pytest

from fluxdose.io.serpent import (
    DetectorFile,
    DetectorTally,
    ResultTable,
    read_detector_file,
    read_result_steps,
    read_results_file,
)


class TestResultTable:
    """Tests for the read-only result table."""

    @pytest.fixture
    def table(self):
        return ResultTable({
            "TITLE": "case",
            "POP": 5000.0,
            "SRC_MULT": np.array([155.728, 0.02154]),
            "INF_FLX": np.array([2.0e19, 0.008, 7.0e18, 0.01]),
        })

    def test_contains(self, table):
        assert table.contains("SRC_MULT")
        assert not table.contains("TOT_SRCRATE")
        assert "POP" in table

    def test_first_numeric(self, table):
        assert table.first("POP") == 5000.0
        assert table.first("SRC_MULT") == pytest.approx(155.728)

    def test_first_missing_or_text(self, table):
        assert table.first("TOT_SRCRATE") is None
        assert table.first("TITLE") is None

    def test_text(self, table):
        assert table.text("TITLE") == "case"
        assert table.text("POP") is None

    def test_size(self, table):
        assert table.size("INF_FLX") == 4
        assert table.size("POP") == 1
        assert table.size("TITLE") == 0
        assert table.size("missing") == 0

    def test_means_and_errors(self, table):
        np.testing.assert_allclose(table.means("INF_FLX"), [2.0e19, 7.0e18])
        np.testing.assert_allclose(table.rel_errors("INF_FLX"), [0.008, 0.01])
        assert table.means("missing") is None

    def test_arrays_are_read_only(self, table):
        with pytest.raises(ValueError):
            table["SRC_MULT"][0] = 1.0

    def test_mapping_is_read_only(self, table):
        with pytest.raises(TypeError):
            table["POP"] = 1.0

    def test_input_not_aliased(self):
        source = np.array([1.0, 0.1])
        table = ResultTable({"X": source})
        source[0] = 99.0
        assert table.first("X") == 1.0


class TestReadResultsFile:
    """Tests for _res.m parsing."""

    def test_strings(self, results_file):
        results = read_results_file(results_file)
        assert results.text("TITLE") == "natMaterials"
        assert results.text("VERSION") == "Serpent 2.2.1"
        assert results.text("START_DATE") == "Mon May 12 02:31:58 2025"

    def test_scalars(self, results_file):
        results = read_results_file(results_file)
        assert results.first("POP") == 5000
        assert results.first("BATCHES") == 200
        assert results.first("RUNNING_TIME") == pytest.approx(420.803)

    def test_arrays(self, results_file):
        results = read_results_file(results_file)
        assert results.size("ANA_KEFF") == 6
        assert results.first("ANA_KEFF") == pytest.approx(0.993132)
        np.testing.assert_allclose(results["TOT_SRCRATE"], [5.16447e14, 0.01672])
        np.testing.assert_allclose(results.means("INF_FLX"), [2.09415e19, 7.05693e18])

    def test_comments_ignored(self, results_file):
        results = read_results_file(results_file)
        assert all(not name.startswith("%") for name in results)
        assert "idx" not in results

    def test_source_recorded(self, results_file):
        results = read_results_file(results_file)
        assert results.source == results_file
        assert results.step == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="missing_res.m"):
            read_results_file(tmp_path / "missing_res.m")

    def test_multiple_steps(self, tmp_path):
        text = """
if (exist('idx', 'var'));
  idx = idx + 1;
else;
  idx = 1;
end;
BURNUP                    (idx, [1:  2])  = [  0.00000E+00  0.00000E+00 ];
TOT_SRCRATE               (idx, [1:   2]) = [  1.00000E+14 0.01 ];

if (exist('idx', 'var'));
  idx = idx + 1;
else;
  idx = 1;
end;
BURNUP                    (idx, [1:  2])  = [  1.00000E+00  1.00000E+01 ];
TOT_SRCRATE               (idx, [1:   2]) = [  2.00000E+14 0.01 ];
"""
        path = tmp_path / "dep_res.m"
        path.write_text(text)

        steps = read_result_steps(path)
        assert len(steps) == 2
        assert [s.step for s in steps] == [0, 1]

        assert read_results_file(path).first("TOT_SRCRATE") == pytest.approx(1e14)
        assert read_results_file(path, step=1).first("TOT_SRCRATE") == pytest.approx(2e14)
        assert read_results_file(path, step=-1).first("BURNUP") == pytest.approx(1.0)

    def test_step_out_of_range(self, results_file):
        with pytest.raises(IndexError, match="Step 3"):
            read_results_file(results_file, step=3)

    def test_unparsable_field_skipped(self, tmp_path, caplog):
        path = tmp_path / "bad_res.m"
        path.write_text(
            "GOOD                      (idx, 1)        = 1.0 ;\n"
            "BAD                       (idx, 1)        = abc ;\n"
        )
        with caplog.at_level("WARNING"):
            results = read_results_file(path)
        assert results.first("GOOD") == 1.0
        assert not results.contains("BAD")
        assert "BAD" in caplog.text


class TestDetectorTally:
    """Tests for the energy-binned tally container."""

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="upper"):
            DetectorTally(
                name="FluxDet",
                lower=[0.1, 0.2],
                upper=[0.2],
                mean_energy=[0.15, 0.25],
                raw_score=[1.0, 2.0],
                rel_error=[0.1, 0.1],
            )

    def test_has_data(self):
        tally = DetectorTally("D", [0.1], [0.2], [0.15], [0.0], [0.0])
        assert not tally.has_data
        assert tally.n_bins == 1


class TestReadDetectorFile:
    """Tests for _det*.m parsing."""

    def test_detector_names(self, detector_file):
        detectors = read_detector_file(detector_file)
        assert detectors.detector_names() == ["Room1Det", "FluxDet"]
        assert "FluxDet" in detectors
        assert "DETFluxDet" in detectors
        assert "Room2Det" not in detectors

    def test_grid_not_listed_as_detector(self, detector_file):
        detectors = read_detector_file(detector_file)
        assert "FluxDetE" not in detectors.detector_names()
        assert detectors.arrays["DETFluxDetE"].shape == (4, 3)

    def test_has_data(self, detector_file):
        detectors = read_detector_file(detector_file)
        assert detectors.has_data("FluxDet")
        assert not detectors.has_data("Room1Det")
        assert not detectors.has_data("Room2Det")

    def test_tally(self, detector_file):
        tally = read_detector_file(detector_file).tally("FluxDet")

        assert tally.name == "FluxDet"
        assert tally.n_bins == 4
        np.testing.assert_allclose(tally.raw_score, [0.2, 0.3, 0.1, 0.4])
        np.testing.assert_allclose(tally.rel_error, [0.05, 0.04, 0.10, 0.02])
        np.testing.assert_allclose(tally.lower, [0.1, 0.5, 0.7, 1.0])
        np.testing.assert_allclose(tally.upper, [0.2, 0.7, 1.0, 3.0])
        np.testing.assert_allclose(tally.mean_energy, [0.15, 0.6, 0.85, 2.0])

    def test_tally_missing_detector(self, detector_file):
        detectors = read_detector_file(detector_file)
        with pytest.raises(KeyError, match="Available: Room1Det, FluxDet"):
            detectors.tally("Room2Det")

    def test_tally_missing_grid(self, detector_file):
        detectors = read_detector_file(detector_file)
        with pytest.raises(KeyError, match="DETRoom1DetE"):
            detectors.tally("Room1Det")

    def test_tally_grid_row_mismatch(self):
        detectors = DetectorFile(arrays={
            "DETFluxDet": np.ones((3, 12)),
            "DETFluxDetE": np.ones((2, 3)),
        })
        with pytest.raises(ValueError, match="3 rows"):
            detectors.tally("FluxDet")

    def test_single_line_array(self, tmp_path):
        path = tmp_path / "one_det0.m"
        path.write_text(
            "DETPoint = [ 1 1 1 1 1 1 1 1 1 1 5.00000E-01 0.01000 ];\n"
            "DETPointE = [ 1.0E-01 2.0E-01 1.5E-01 ];\n"
        )
        detectors = read_detector_file(path)
        tally = detectors.tally("Point")
        np.testing.assert_allclose(tally.raw_score, [0.5])
        np.testing.assert_allclose(tally.mean_energy, [0.15])

    def test_unterminated_array(self, tmp_path):
        path = tmp_path / "broken_det0.m"
        path.write_text("DETBroken = [\n 1 2 3\n")
        with pytest.raises(ValueError, match="Unterminated"):
            read_detector_file(path)

    def test_ragged_rows(self, tmp_path):
        path = tmp_path / "ragged_det0.m"
        path.write_text("DETRagged = [\n 1 2 3\n 1 2\n];\n")
        with pytest.raises(ValueError, match="ragged"):
            read_detector_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Serpent detector file not found"):
            read_detector_file(tmp_path / "missing_det0.m")
