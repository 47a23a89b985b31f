"""
Tests for the generator parameter workbook.
"""

import numpy as np
import pandas as pd
import pytest
from openpyxl import Workbook

from logit_functions.parameters import (
    GeneratorParameters,
    default_parameters,
    read_parameter_workbook,
    write_parameter_workbook,
)
from logit_functions.survey_generator import (
    SURVEY_VARIABLES,
    InvalidParametersError,
    generate_survey_data,
)


class TestDefaults:
    """Tutorial default parameters"""

    def test_defaults_are_valid(self):
        params = default_parameters()
        corr, sd, mu = params.validate()
        assert params.variables == SURVEY_VARIABLES
        assert corr.shape == (3, 3)
        assert (sd > 0).all()
        assert np.linalg.eigvalsh(corr).min() > 0


class TestWorkbook:
    """Reading and writing the three-sheet workbook"""

    def test_written_workbook_reads_back(self, tmp_path):
        path = tmp_path / "params.xlsx"
        params = default_parameters()
        write_parameter_workbook(params, path)
        loaded = read_parameter_workbook(path)

        assert loaded.variables == SURVEY_VARIABLES
        np.testing.assert_allclose(loaded.correlations.values, params.correlations.values)
        np.testing.assert_allclose(loaded.stddevs.values, params.stddevs.values)
        np.testing.assert_allclose(loaded.means.values, params.means.values)

        a = generate_survey_data(params.correlations, params.stddevs, params.means, n=100, seed=8)
        b = generate_survey_data(loaded.correlations, loaded.stddevs, loaded.means, n=100, seed=8)
        pd.testing.assert_frame_equal(a, b)

    def test_lower_triangular_workbook(self, tmp_path):
        path = tmp_path / "lower.xlsx"
        corr = pd.DataFrame(
            [[1.0, np.nan, np.nan],
             [0.3, 1.0, np.nan],
             [-0.2, -0.4, 1.0]],
            index=SURVEY_VARIABLES, columns=SURVEY_VARIABLES
        )
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            corr.to_excel(writer, sheet_name="correlations")
            # Vector sheets listed in a different order from the matrix
            pd.Series({"turnover": 0.4, "jobsat": 1.0, "refer": 0.5}, name="sd") \
                .to_frame().to_excel(writer, sheet_name="stddevs")
            pd.Series({"jobsat": 3.5, "refer": 0.3, "turnover": 0.2}, name="mean") \
                .to_frame().to_excel(writer, sheet_name="means")

        params = read_parameter_workbook(path)
        assert list(params.stddevs.values) == [0.5, 1.0, 0.4]
        assert list(params.means.values) == [0.3, 3.5, 0.2]
        corr_arr, _, _ = params.validate()
        assert corr_arr[0, 1] == pytest.approx(0.3)
        assert corr_arr[1, 2] == pytest.approx(-0.4)

    def test_missing_sheet(self, tmp_path):
        path = tmp_path / "partial.xlsx"
        wb = Workbook()
        wb.active.title = "correlations"
        wb.save(path)
        with pytest.raises(InvalidParametersError, match="missing sheets"):
            read_parameter_workbook(path)

    def test_mismatched_variable_names(self, tmp_path):
        path = tmp_path / "mismatch.xlsx"
        params = default_parameters()
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            params.correlations.to_excel(writer, sheet_name="correlations")
            params.stddevs.to_frame().to_excel(writer, sheet_name="stddevs")
            pd.Series({"refer": 0.3, "jobsat": 3.5, "tenure": 2.0}, name="mean") \
                .to_frame().to_excel(writer, sheet_name="means")
        with pytest.raises(InvalidParametersError, match="do not match"):
            read_parameter_workbook(path)

    def test_dataclass_holds_pandas_objects(self):
        params = GeneratorParameters(
            correlations=pd.DataFrame(np.eye(3), index=SURVEY_VARIABLES, columns=SURVEY_VARIABLES),
            stddevs=pd.Series([1.0, 1.0, 1.0], index=SURVEY_VARIABLES),
            means=pd.Series([0.0, 0.0, 0.0], index=SURVEY_VARIABLES),
        )
        corr, sd, mu = params.validate()
        np.testing.assert_allclose(corr, np.eye(3))
