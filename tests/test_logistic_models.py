"""
Tests for the logistic regression / predicted probability helpers.
"""

import numpy as np
import pandas as pd
import pytest
from openpyxl import load_workbook

from logit_functions.logistic_models import TurnoverLogitModel, odds_ratio_to_probability


@pytest.fixture(scope="module")
def fitted(logit_data):
    return TurnoverLogitModel().fit(logit_data)


class TestFit:
    """Model fitting and input checks"""

    def test_formula_terms(self, fitted):
        assert list(fitted.result.params.index) == ["Intercept", "refer", "jobsat"]
        assert fitted.outcome_var == "turnover"
        assert len(fitted.data) == 2000

    def test_recovers_effect_direction(self, fitted):
        assert fitted.result.params["refer"] < 0
        assert fitted.result.params["jobsat"] < 0

    def test_fits_generated_data(self, tutorial_data):
        model = TurnoverLogitModel().fit(tutorial_data)
        assert len(model.data) == len(tutorial_data)

    def test_non_binary_outcome(self, logit_data):
        df = logit_data.assign(turnover=logit_data["turnover"] * 2)
        with pytest.raises(ValueError, match="0/1"):
            TurnoverLogitModel().fit(df)

    def test_single_class_outcome(self, logit_data):
        df = logit_data.assign(turnover=0)
        with pytest.raises(ValueError, match="one class"):
            TurnoverLogitModel().fit(df)

    def test_missing_predictor(self, logit_data):
        with pytest.raises(ValueError, match="Missing required variables"):
            TurnoverLogitModel().fit(logit_data, predictors=["refer", "tenure"])

    def test_constant_predictor(self, logit_data):
        df = logit_data.assign(refer=1)
        with pytest.raises(ValueError, match="No variation"):
            TurnoverLogitModel().fit(df)

    def test_non_numeric_predictor(self, logit_data):
        df = logit_data.assign(refer=np.where(logit_data["refer"] == 1, "yes", "no"))
        with pytest.raises(ValueError, match="numeric"):
            TurnoverLogitModel().fit(df)

    def test_use_before_fit(self):
        with pytest.raises(RuntimeError):
            TurnoverLogitModel().predict_probabilities()


class TestOddsRatios:
    """Odds ratio table"""

    def test_columns_and_values(self, fitted):
        table = fitted.odds_ratio_table()
        assert list(table.columns) == ["Parameter", "Estimate", "Std_Error", "Odds_Ratio",
                                       "OR_CI_Lower", "OR_CI_Upper", "P_Value", "Sig"]
        np.testing.assert_allclose(table["Odds_Ratio"], np.exp(table["Estimate"]))
        assert (table["OR_CI_Lower"] < table["Odds_Ratio"]).all()
        assert (table["Odds_Ratio"] < table["OR_CI_Upper"]).all()

    def test_wider_interval_at_lower_alpha(self, fitted):
        t95 = fitted.odds_ratio_table(alpha=0.05).set_index("Parameter")
        t99 = fitted.odds_ratio_table(alpha=0.01).set_index("Parameter")
        assert (t99["OR_CI_Lower"] < t95["OR_CI_Lower"]).all()
        assert (t99["OR_CI_Upper"] > t95["OR_CI_Upper"]).all()

    def test_referral_is_significant(self, fitted):
        row = fitted.odds_ratio_table().set_index("Parameter").loc["refer"]
        assert row["Odds_Ratio"] < 1
        assert row["Sig"] == "***"

    @pytest.mark.parametrize("p, stars", [(0.0005, "***"), (0.005, "**"), (0.03, "*"), (0.2, "")])
    def test_significance_stars(self, p, stars):
        assert TurnoverLogitModel._significance_stars(p) == stars

    def test_odds_ratio_to_probability(self):
        shift = odds_ratio_to_probability(2.0, [0.5, 0.2])
        assert shift["New_Probability"].iloc[0] == pytest.approx(2 / 3)
        assert shift["New_Probability"].iloc[1] == pytest.approx(1 / 3)
        assert shift["Probability_Change"].iloc[0] > shift["Probability_Change"].iloc[1]

    def test_odds_ratio_of_one_changes_nothing(self):
        shift = odds_ratio_to_probability(1.0, np.linspace(0.1, 0.9, 9))
        np.testing.assert_allclose(shift["Probability_Change"], 0, atol=1e-12)

    @pytest.mark.parametrize("odds_ratio, baseline", [(0, 0.5), (-1, 0.5), (2, 0), (2, 1.2)])
    def test_odds_ratio_to_probability_invalid(self, odds_ratio, baseline):
        with pytest.raises(ValueError):
            odds_ratio_to_probability(odds_ratio, baseline)


class TestClassification:
    """Confusion matrix and summary metrics"""

    def test_confusion_matrix_shape(self, fitted):
        cm = fitted.confusion_matrix()
        assert cm.shape == (2, 2)
        assert cm.values.sum() == 2000
        assert list(cm.index) == [0, 1]
        assert list(cm.columns) == [0, 1]

    def test_threshold_moves_predictions(self, fitted):
        low = fitted.confusion_matrix(threshold=0.01)
        assert low[1].sum() == 2000

    def test_invalid_threshold(self, fitted):
        with pytest.raises(ValueError):
            fitted.confusion_matrix(threshold=1.5)

    def test_summary_metrics(self, fitted):
        summary = fitted.classification_summary()
        cm = fitted.confusion_matrix()
        assert summary["n"] == 2000
        assert summary["accuracy"] == pytest.approx((cm.loc[0, 0] + cm.loc[1, 1]) / 2000)
        assert summary["roc_auc"] > 0.5


class TestPredictedProbabilities:
    """Covariate grid predictions"""

    def test_default_grid(self):
        grid = TurnoverLogitModel.covariate_grid()
        assert len(grid) == 10
        assert list(grid.columns) == ["refer", "jobsat"]

    def test_custom_grid(self):
        grid = TurnoverLogitModel.covariate_grid(refer=[1], jobsat=[2, 4])
        assert grid.to_dict("list") == {"refer": [1, 1], "jobsat": [2, 4]}

    def test_probabilities_match_statsmodels(self, fitted):
        pred = fitted.predict_probabilities()
        grid = fitted.covariate_grid()
        np.testing.assert_allclose(pred["probability"], fitted.result.predict(grid))

    def test_intervals_bracket_estimate(self, fitted):
        pred = fitted.predict_probabilities()
        assert ((pred["ci_lower"] > 0) & (pred["ci_upper"] < 1)).all()
        assert (pred["ci_lower"] <= pred["probability"]).all()
        assert (pred["probability"] <= pred["ci_upper"]).all()

    def test_referred_employees_less_likely_to_leave(self, fitted):
        pred = fitted.predict_probabilities().pivot(index="jobsat", columns="refer",
                                                    values="probability")
        assert (pred[1] < pred[0]).all()
        assert pred[0].is_monotonic_decreasing

    def test_grid_missing_predictor(self, fitted):
        with pytest.raises(ValueError, match="missing predictors"):
            fitted.predict_probabilities(pd.DataFrame({"refer": [0, 1]}))

    def test_probability_differences(self, fitted):
        diffs = fitted.probability_differences()
        assert list(diffs["jobsat"]) == [1, 2, 3, 4, 5]
        np.testing.assert_allclose(diffs["Difference"],
                                   diffs["Probability_1"] - diffs["Probability_0"])
        assert (diffs["Difference"] < 0).all()
        assert (diffs["Diff_CI_Lower"] < diffs["Difference"]).all()
        assert (diffs["Difference"] < diffs["Diff_CI_Upper"]).all()

    def test_probability_differences_unknown_variable(self, fitted):
        with pytest.raises(ValueError):
            fitted.probability_differences(contrast_var="tenure")


class TestExport:
    """Excel results workbook"""

    def test_export_results(self, fitted, tmp_path):
        path = tmp_path / "results.xlsx"
        fitted.export_results(str(path))
        wb = load_workbook(path)
        assert wb.sheetnames == ["README", "Odds_Ratios", "Predicted_Probabilities",
                                 "Probability_Differences", "Confusion_Matrix",
                                 "Classification"]
        assert wb["Odds_Ratios"]["A3"].value == "Parameter"
