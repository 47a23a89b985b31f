"""
Logistic Regression Module

Fits the tutorial's logistic regression of turnover on referral status and job
satisfaction and reports it two ways:

1. the conventional way - odds ratios with confidence intervals
2. the recommended way - predicted probabilities for a small grid of
   covariate values, with confidence bounds on the probability scale

Classes:
    TurnoverLogitModel: fit / odds ratios / classification / predicted probabilities
"""

from itertools import product

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from openpyxl import Workbook
from scipy.special import expit, logit
from scipy.stats import norm
from sklearn.metrics import confusion_matrix, roc_auc_score
from statsmodels.genmod import families
from typing import Dict, Optional, Sequence, Union

from logit_functions.excel_report import BOLD_FONT, TITLE_FONT, add_table_sheet, write_readme_sheet

DEFAULT_GRID_LEVELS = {
    "refer": [0, 1],
    "jobsat": [1, 2, 3, 4, 5],
}


def odds_ratio_to_probability(
    odds_ratio: float,
    baseline_probability: Union[float, Sequence[float]]
) -> pd.DataFrame:
    """
    Translate one odds ratio into probability changes at several baselines.

    The same odds ratio implies a large change in probability for baselines
    near 0.5 and a small one near 0 or 1, which is why an odds ratio alone
    says little about how much an outcome actually moves.

    Parameters
    ----------
    odds_ratio : float
        Odds ratio (> 0)
    baseline_probability : float or sequence of float
        Baseline probabilities strictly between 0 and 1

    Returns
    -------
    pd.DataFrame
        Columns Baseline_Probability, New_Probability, Probability_Change
    """
    if odds_ratio <= 0:
        raise ValueError(f"odds_ratio must be positive, got {odds_ratio}")
    p0 = np.atleast_1d(np.asarray(baseline_probability, dtype=float))
    if ((p0 <= 0) | (p0 >= 1)).any():
        raise ValueError("baseline probabilities must lie strictly between 0 and 1")

    p1 = expit(logit(p0) + np.log(odds_ratio))
    return pd.DataFrame({
        "Baseline_Probability": p0,
        "New_Probability": p1,
        "Probability_Change": p1 - p0,
    })


class TurnoverLogitModel:
    """
    Logistic regression (Binomial GLM, logit link) with predicted-probability reporting.

    Attributes:
        outcome_var (str): Name of the binary outcome
        predictors (List[str]): Predictor names in formula order
        result: Fitted statsmodels GLM results (None until ``fit``)
        data (pd.DataFrame): Complete-case data used for fitting
    """

    def __init__(self):
        self.outcome_var = None
        self.predictors = []
        self.result = None
        self.data = None

    # ==================================================================
    # Fitting
    # ==================================================================

    def fit(
        self,
        data: pd.DataFrame,
        outcome_var: str = "turnover",
        predictors: Sequence[str] = ("refer", "jobsat"),
        verbose: bool = False
    ) -> "TurnoverLogitModel":
        """
        Fit ``outcome_var ~ predictors`` as a Binomial GLM.

        Parameters
        ----------
        data : pd.DataFrame
            Dataset with outcome and predictor columns
        outcome_var : str, default="turnover"
            Binary (0/1) outcome
        predictors : sequence of str, default=("refer", "jobsat")
            Numeric predictors
        verbose : bool, default=False
            If True, print the odds ratio table after fitting

        Returns
        -------
        TurnoverLogitModel
            self

        Raises
        ------
        ValueError
            If the data are unsuitable or the model fails to fit
        """
        predictors = list(predictors)
        if not predictors:
            raise ValueError("At least one predictor is required")

        required = [outcome_var] + predictors
        missing = [v for v in required if v not in data.columns]
        if missing:
            raise ValueError(f"Missing required variables: {missing}")

        df = data[required].dropna().copy()
        if len(df) < len(required) + 1:
            raise ValueError(f"Insufficient data after removing missing values: {len(df)} rows remaining")

        outcome_values = set(pd.Series(df[outcome_var]).unique().tolist())
        if not outcome_values.issubset({0, 1}):
            raise ValueError(
                f"Outcome '{outcome_var}' must be coded 0/1. Found values: {sorted(outcome_values)}"
            )
        if len(outcome_values) < 2:
            raise ValueError(f"Outcome '{outcome_var}' has only one class: {sorted(outcome_values)}")

        for var in predictors:
            if not pd.api.types.is_numeric_dtype(df[var]):
                raise ValueError(f"Predictor '{var}' must be numeric, got dtype {df[var].dtype}")
            if df[var].nunique() <= 1:
                raise ValueError(f"No variation in predictor variable: '{var}'")

        formula = f"{outcome_var} ~ " + " + ".join(predictors)
        try:
            result = smf.glm(formula=formula, data=df, family=families.Binomial()).fit()
        except Exception as e:
            raise ValueError(f"Logistic regression failed with formula '{formula}': {str(e)}")

        self.outcome_var = outcome_var
        self.predictors = predictors
        self.result = result
        self.data = df

        if verbose:
            print(f"  [OK] Fitted {formula} (n = {len(df)})")
            print(self.odds_ratio_table().round(3).to_string(index=False))
        return self

    def _require_fit(self):
        if self.result is None:
            raise RuntimeError("Model has not been fitted yet; call fit() first")

    @staticmethod
    def _significance_stars(p_value: float) -> str:
        """'***' if p < .001, '**' if p < .01, '*' if p < .05, '' otherwise."""
        if p_value < 0.001:
            return "***"
        elif p_value < 0.01:
            return "**"
        elif p_value < 0.05:
            return "*"
        return ""

    # ==================================================================
    # Odds ratios
    # ==================================================================

    def odds_ratio_table(self, alpha: float = 0.05) -> pd.DataFrame:
        """
        Coefficients, odds ratios and their (1 - alpha) confidence intervals.

        Returns
        -------
        pd.DataFrame
            Parameter, Estimate, Std_Error, Odds_Ratio, OR_CI_Lower,
            OR_CI_Upper, P_Value, Sig
        """
        self._require_fit()
        res = self.result
        ci = res.conf_int(alpha=alpha)
        return pd.DataFrame({
            "Parameter": res.params.index,
            "Estimate": res.params.values,
            "Std_Error": res.bse.values,
            "Odds_Ratio": np.exp(res.params.values),
            "OR_CI_Lower": np.exp(ci.iloc[:, 0].values),
            "OR_CI_Upper": np.exp(ci.iloc[:, 1].values),
            "P_Value": res.pvalues.values,
            "Sig": [self._significance_stars(p) for p in res.pvalues.values],
        })

    # ==================================================================
    # Classification
    # ==================================================================

    def fitted_probabilities(self) -> pd.Series:
        """Fitted probability of the outcome for every row used in fitting."""
        self._require_fit()
        return pd.Series(np.asarray(self.result.fittedvalues), index=self.data.index,
                         name="probability")

    def predicted_classes(self, threshold: float = 0.5) -> pd.Series:
        """1 where the fitted probability is at or above ``threshold``."""
        if not 0 < threshold < 1:
            raise ValueError(f"threshold must be between 0 and 1, got {threshold}")
        return (self.fitted_probabilities() >= threshold).astype(int).rename("predicted")

    def confusion_matrix(self, threshold: float = 0.5) -> pd.DataFrame:
        """
        2x2 confusion matrix of observed (rows) vs predicted (columns) outcome.
        """
        predicted = self.predicted_classes(threshold)
        observed = self.data[self.outcome_var].astype(int)
        cm = confusion_matrix(observed, predicted, labels=[0, 1])
        return pd.DataFrame(
            cm,
            index=pd.Index([0, 1], name="observed"),
            columns=pd.Index([0, 1], name="predicted")
        )

    def classification_summary(self, threshold: float = 0.5) -> Dict[str, float]:
        """
        Accuracy, sensitivity, specificity and ROC AUC at ``threshold``.

        Sensitivity or specificity is NaN when the corresponding observed
        class is empty.
        """
        cm = self.confusion_matrix(threshold)
        tn, fp = cm.loc[0, 0], cm.loc[0, 1]
        fn, tp = cm.loc[1, 0], cm.loc[1, 1]
        total = tn + fp + fn + tp
        return {
            "threshold": threshold,
            "n": int(total),
            "accuracy": (tn + tp) / total,
            "sensitivity": tp / (tp + fn) if (tp + fn) else np.nan,
            "specificity": tn / (tn + fp) if (tn + fp) else np.nan,
            "roc_auc": roc_auc_score(self.data[self.outcome_var].astype(int),
                                     self.fitted_probabilities()),
        }

    # ==================================================================
    # Predicted probabilities
    # ==================================================================

    @staticmethod
    def covariate_grid(**levels) -> pd.DataFrame:
        """
        Full factorial grid of covariate values.

        Without arguments the tutorial grid is returned (refer 0/1 by
        jobsat 1-5). Keyword arguments map a variable to its levels.
        """
        if not levels:
            levels = DEFAULT_GRID_LEVELS
        names = list(levels)
        rows = list(product(*[list(levels[name]) for name in names]))
        return pd.DataFrame(rows, columns=names)

    def _design_matrix(self, grid: pd.DataFrame) -> pd.DataFrame:
        missing = [p for p in self.predictors if p not in grid.columns]
        if missing:
            raise ValueError(f"Grid is missing predictors: {missing}")
        X = pd.DataFrame({"Intercept": 1.0}, index=grid.index)
        for p in self.predictors:
            X[p] = grid[p].astype(float)
        return X[list(self.result.params.index)]

    def predict_probabilities(
        self,
        grid: Optional[pd.DataFrame] = None,
        alpha: float = 0.05
    ) -> pd.DataFrame:
        """
        Predicted probability of the outcome for each grid row.

        The interval is built on the logit scale (linear predictor +/- z * SE)
        and mapped through the logistic function, so bounds stay in [0, 1].

        Parameters
        ----------
        grid : pd.DataFrame, optional
            Covariate combinations; defaults to ``covariate_grid()``
        alpha : float, default=0.05
            1 - confidence level

        Returns
        -------
        pd.DataFrame
            The grid plus logit, logit_se, probability, ci_lower, ci_upper
        """
        self._require_fit()
        if grid is None:
            grid = self.covariate_grid()

        X = self._design_matrix(grid)
        params = self.result.params.values
        cov = self.result.cov_params().values
        eta = X.values @ params
        se = np.sqrt(np.einsum("ij,jk,ik->i", X.values, cov, X.values))
        z = norm.ppf(1 - alpha / 2)

        out = grid.copy()
        out["logit"] = eta
        out["logit_se"] = se
        out["probability"] = expit(eta)
        out["ci_lower"] = expit(eta - z * se)
        out["ci_upper"] = expit(eta + z * se)
        return out

    def probability_differences(
        self,
        contrast_var: str = "refer",
        by_var: str = "jobsat",
        by_levels: Optional[Sequence] = None,
        alpha: float = 0.05
    ) -> pd.DataFrame:
        """
        Difference in predicted probability between ``contrast_var`` = 1 and 0.

        One row per level of ``by_var``; the standard error of each difference
        comes from the delta method.

        Returns
        -------
        pd.DataFrame
            by_var, Probability_0, Probability_1, Difference, Diff_CI_Lower,
            Diff_CI_Upper
        """
        self._require_fit()
        for var in (contrast_var, by_var):
            if var not in self.predictors:
                raise ValueError(f"'{var}' is not a predictor in the fitted model")
        if by_levels is None:
            by_levels = sorted(self.data[by_var].unique())

        other = [p for p in self.predictors if p not in (contrast_var, by_var)]
        base = {p: [self.data[p].mean()] for p in other}

        grid0 = self.covariate_grid(**{contrast_var: [0], by_var: list(by_levels), **base})
        grid1 = self.covariate_grid(**{contrast_var: [1], by_var: list(by_levels), **base})
        X0 = self._design_matrix(grid0).values
        X1 = self._design_matrix(grid1).values

        params = self.result.params.values
        cov = self.result.cov_params().values
        p0 = expit(X0 @ params)
        p1 = expit(X1 @ params)

        # d(p1 - p0)/d(beta)
        grad = (p1 * (1 - p1))[:, None] * X1 - (p0 * (1 - p0))[:, None] * X0
        se = np.sqrt(np.einsum("ij,jk,ik->i", grad, cov, grad))
        z = norm.ppf(1 - alpha / 2)
        diff = p1 - p0

        return pd.DataFrame({
            by_var: list(by_levels),
            "Probability_0": p0,
            "Probability_1": p1,
            "Difference": diff,
            "Diff_CI_Lower": diff - z * se,
            "Diff_CI_Upper": diff + z * se,
        })

    # ==================================================================
    # Export
    # ==================================================================

    def export_results(
        self,
        path: str,
        predictions: Optional[pd.DataFrame] = None,
        alpha: float = 0.05,
        threshold: float = 0.5
    ) -> None:
        """
        Save odds ratios, predicted probabilities and classification results to Excel.
        """
        self._require_fit()
        if predictions is None:
            predictions = self.predict_probabilities(alpha=alpha)

        wb = Workbook()
        ws_readme = wb.active
        ws_readme.title = "README"
        ci_pct = int(round((1 - alpha) * 100))
        write_readme_sheet(ws_readme, [
            ("Turnover Logistic Regression – Results", TITLE_FONT),
            ("", None),
            ("Model", BOLD_FONT),
            (f"{self.outcome_var} ~ {' + '.join(self.predictors)} (Binomial GLM, logit link)", None),
            (f"n = {len(self.data)}, {ci_pct}% confidence intervals", None),
            ("", None),
            ("Sheets", BOLD_FONT),
            ("• Odds_Ratios – coefficients and odds ratios", None),
            ("• Predicted_Probabilities – probabilities for the covariate grid", None),
            ("• Probability_Differences – referral vs non-referral difference by jobsat", None),
            ("• Confusion_Matrix / Classification – fit at the classification threshold", None),
            ("", None),
            ("Formatting Key", BOLD_FONT),
            ("• p-value cells: Green (p < .05), Yellow (.05 ≤ p < .10), Red (p ≥ .10)", None),
        ])

        add_table_sheet(wb, "Odds_Ratios", "Odds Ratios", self.odds_ratio_table(alpha),
                        pvalue_column="P_Value")
        add_table_sheet(wb, "Predicted_Probabilities", "Predicted Probabilities", predictions)
        if {"refer", "jobsat"}.issubset(self.predictors):
            add_table_sheet(wb, "Probability_Differences", "Difference in Predicted Probability",
                            self.probability_differences(alpha=alpha))
        add_table_sheet(wb, "Confusion_Matrix", f"Confusion Matrix (threshold = {threshold})",
                        self.confusion_matrix(threshold), index=True)
        add_table_sheet(wb, "Classification", "Classification Summary",
                        pd.DataFrame([self.classification_summary(threshold)]))
        wb.save(path)
