"""
End-to-end runs of the two tutorial scripts.
"""

import os

import pandas as pd
import pytest
from openpyxl import load_workbook

import s1_generate_data
import s2_predicted_probabilities


@pytest.fixture(scope="module")
def generated_dir(tmp_path_factory):
    out = tmp_path_factory.mktemp("data")
    s1_generate_data.main(output_dir=str(out), seed=42, n=538)
    return out


def test_generate_script_outputs(generated_dir):
    df = pd.read_csv(generated_dir / s1_generate_data.DATA_FILE)
    assert list(df.columns) == ["refer", "jobsat", "turnover"]
    assert len(df) == 538

    wb = load_workbook(generated_dir / s1_generate_data.EXCEL_FILE)
    assert wb.sheetnames == ["README", "Descriptives", "Jobsat_Distribution",
                             "Correlations", "Turnover_by_Referral", "Raw_Data"]
    assert os.path.exists(generated_dir / s1_generate_data.PARAMETER_FILE)


def test_generate_script_reads_parameter_workbook(generated_dir, tmp_path):
    param_path = generated_dir / s1_generate_data.PARAMETER_FILE
    df = s1_generate_data.main(output_dir=str(tmp_path), seed=42, n=538,
                               parameter_path=str(param_path), write_excel=False)
    original = pd.read_csv(generated_dir / s1_generate_data.DATA_FILE)
    pd.testing.assert_frame_equal(df, original, check_dtype=False)


def test_descriptives_table():
    df = pd.DataFrame({"refer": [0, 1, 1], "jobsat": [3, 4, 5], "turnover": [1, 0, 0]})
    table = s1_generate_data.descriptives_table(df, ["jobsat"])
    assert table.loc[0, "Mean"] == 4.0
    assert table.loc[0, "Min"] == 3


def test_turnover_by_referral_rates():
    df = pd.DataFrame({"refer": [0, 0, 1, 1], "turnover": [1, 1, 0, 1], "jobsat": [1, 2, 3, 4]})
    table = s1_generate_data.turnover_by_referral(df).set_index("Group")
    assert table.loc["Not referred", "Turnover_Rate"] == 1.0
    assert table.loc["Referred", "Turnover_Rate"] == 0.5
    assert table.loc["Overall", "n"] == 4


def test_analysis_script(generated_dir, tmp_path):
    results = s2_predicted_probabilities.main(
        data_path=str(generated_dir / s1_generate_data.DATA_FILE),
        output_dir=str(tmp_path),
        show_plots=False,
    )
    assert set(results) == {"model", "odds_ratios", "confusion_matrix", "classification",
                            "predictions", "differences", "figures"}
    assert len(results["predictions"]) == 10
    assert results["confusion_matrix"].values.sum() == 538
    for name in ["probability_bars.png", "probability_ribbon.png", "odds_ratio_shift.png",
                 s2_predicted_probabilities.RESULTS_FILE]:
        assert (tmp_path / name).exists()


def test_analysis_script_requires_data(tmp_path):
    with pytest.raises(FileNotFoundError):
        s2_predicted_probabilities.main(data_path=str(tmp_path / "missing.csv"),
                                        output_dir=str(tmp_path), show_plots=False)
