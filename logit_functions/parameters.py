"""
Generator parameters: the tutorial defaults and the three-table workbook.

A parameter workbook holds three sheets keyed by the same variable names:

- correlations: square correlation matrix (first column = variable names)
- stddevs:      one standard deviation per variable
- means:        one mean per variable
"""

from dataclasses import dataclass

import pandas as pd
from openpyxl import Workbook
from typing import List

from logit_functions.excel_report import (
    BOLD_FONT, TITLE_FONT, autofit_columns, write_dataframe, write_readme_sheet,
)
from logit_functions.survey_generator import (
    SURVEY_VARIABLES, InvalidParametersError, validate_parameters,
)

CORRELATION_SHEET = "correlations"
STDDEV_SHEET = "stddevs"
MEAN_SHEET = "means"


@dataclass
class GeneratorParameters:
    """Target correlation / sd / mean structure for the survey generator."""
    correlations: pd.DataFrame
    stddevs: pd.Series
    means: pd.Series

    @property
    def variables(self) -> List[str]:
        return list(self.correlations.columns)

    def validate(self):
        """Run the generator's parameter checks; returns (corr, sd, mu) arrays."""
        return validate_parameters(self.correlations, self.stddevs, self.means)


def default_parameters() -> GeneratorParameters:
    """
    Parameter set used by the tutorial dataset.

    Referred hires are somewhat more satisfied and less likely to leave;
    satisfied employees are less likely to leave.
    """
    correlations = pd.DataFrame(
        [[1.00, 0.20, -0.25],
         [0.20, 1.00, -0.35],
         [-0.25, -0.35, 1.00]],
        index=SURVEY_VARIABLES,
        columns=SURVEY_VARIABLES
    )
    stddevs = pd.Series([0.48, 0.90, 0.44], index=SURVEY_VARIABLES, name="sd")
    means = pd.Series([0.37, 3.60, 0.26], index=SURVEY_VARIABLES, name="mean")
    return GeneratorParameters(correlations, stddevs, means)


def _read_vector(path, sheet_name) -> pd.Series:
    df = pd.read_excel(path, sheet_name=sheet_name, index_col=0, engine="openpyxl")
    if df.shape[1] < 1:
        raise InvalidParametersError(f"Sheet '{sheet_name}' has no value column")
    series = df.iloc[:, 0]
    series.index = series.index.astype(str).str.strip()
    return series


def read_parameter_workbook(path) -> GeneratorParameters:
    """
    Load generator parameters from a workbook with three named sheets.

    Parameters
    ----------
    path : str or path-like
        Workbook written by ``write_parameter_workbook`` or by hand

    Returns
    -------
    GeneratorParameters

    Raises
    ------
    InvalidParametersError
        If a sheet is missing or the variable names do not line up
    """
    with pd.ExcelFile(path, engine="openpyxl") as xls:
        available = xls.sheet_names
    missing = [s for s in (CORRELATION_SHEET, STDDEV_SHEET, MEAN_SHEET) if s not in available]
    if missing:
        raise InvalidParametersError(f"Parameter workbook is missing sheets: {missing}")

    corr = pd.read_excel(path, sheet_name=CORRELATION_SHEET, index_col=0, engine="openpyxl")
    corr.index = corr.index.astype(str).str.strip()
    corr.columns = corr.columns.astype(str).str.strip()
    if list(corr.index) != list(corr.columns):
        raise InvalidParametersError(
            f"Correlation sheet rows {list(corr.index)} do not match columns {list(corr.columns)}"
        )

    stddevs = _read_vector(path, STDDEV_SHEET)
    means = _read_vector(path, MEAN_SHEET)
    for name, vec in (("stddevs", stddevs), ("means", means)):
        if set(vec.index) != set(corr.columns):
            raise InvalidParametersError(
                f"Variables in '{name}' {list(vec.index)} do not match the correlation "
                f"matrix {list(corr.columns)}"
            )

    return GeneratorParameters(
        correlations=corr.astype(float),
        stddevs=stddevs.reindex(corr.columns).astype(float),
        means=means.reindex(corr.columns).astype(float),
    )


def write_parameter_workbook(params: GeneratorParameters, path) -> None:
    """Write ``params`` as a formatted three-sheet workbook plus a README."""
    wb = Workbook()
    ws_readme = wb.active
    ws_readme.title = "README"
    write_readme_sheet(ws_readme, [
        ("Synthetic Turnover Data - Generator Parameters", TITLE_FONT),
        ("", None),
        ("Sheets", BOLD_FONT),
        (f"• {CORRELATION_SHEET} – target correlations (lower triangle is used)", None),
        (f"• {STDDEV_SHEET} – target standard deviations (must be > 0)", None),
        (f"• {MEAN_SHEET} – target means", None),
        ("", None),
        ("Variables", BOLD_FONT),
        ("• refer – referral hire (continuous score, cut into 0/1)", None),
        ("• jobsat – job satisfaction (skewed, cut into a 1-5 rating)", None),
        ("• turnover – turnover (continuous score, cut into 0/1)", None),
    ])

    tables = [
        (CORRELATION_SHEET, params.correlations),
        (STDDEV_SHEET, params.stddevs.rename("sd").to_frame()),
        (MEAN_SHEET, params.means.rename("mean").to_frame()),
    ]
    for sheet_name, df in tables:
        ws = wb.create_sheet(sheet_name)
        # Table starts on row 1 so pandas can read it back with index_col=0
        table = df.copy()
        table.index.name = "variable"
        write_dataframe(ws, table, start_row=1, index=True, decimals=4)
        autofit_columns(ws)
        ws.sheet_properties.tabColor = "1F3864"

    wb.save(path)
