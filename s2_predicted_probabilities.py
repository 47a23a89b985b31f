"""
Predicted Probabilities Tutorial: Beyond Odds Ratios
====================================================

Walks through the analysis of the synthetic turnover data created by
``s1_generate_data.py``:

1. Fit a logistic regression of turnover on referral status and job satisfaction
2. Report odds ratios (the conventional summary)
3. Show why odds ratios are hard to read: one odds ratio, many probability changes
4. Check classification accuracy with a confusion matrix
5. Report predicted probabilities for a small covariate grid (the alternative)
6. Plot them as a bar chart and a ribbon plot
7. Export all tables to Excel

Run:
    python s1_generate_data.py
    python s2_predicted_probabilities.py
"""

import os
import warnings

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from logit_functions.logistic_models import TurnoverLogitModel, odds_ratio_to_probability
from logit_functions.plotting import (
    plot_odds_ratio_shift, plot_probability_bars, plot_probability_ribbon,
)

# ============================================================================
# SECTION 1: SETUP AND CONSTANTS
# ============================================================================

DATA_PATH = "./data/turnover_data.csv"
OUTPUT_DIR = "./output"
RESULTS_FILE = "turnover_logit_results.xlsx"

ALPHA = 0.05
THRESHOLD = 0.5

# Baselines used to show what one odds ratio means on the probability scale
ILLUSTRATION_BASELINES = [0.05, 0.10, 0.25, 0.50, 0.75, 0.90, 0.95]


def print_banner(title):
    print("\n" + "=" * 80)
    print(title)
    print("=" * 80)


def main(data_path=DATA_PATH, output_dir=OUTPUT_DIR, alpha=ALPHA, threshold=THRESHOLD,
         show_plots=True, save_plots=True):
    """
    Run the tutorial analysis end to end.

    Returns
    -------
    dict
        model, odds_ratios, confusion_matrix, classification, predictions,
        differences and the three figures
    """
    print_banner("PREDICTED PROBABILITIES TUTORIAL - LOGISTIC REGRESSION OF TURNOVER")

    if not os.path.exists(data_path):
        raise FileNotFoundError(
            f"Data file '{data_path}' not found. Run s1_generate_data.py first."
        )
    df = pd.read_csv(data_path)
    print(f"\n[OK] Loaded {len(df)} employees from {data_path}")
    print(f"  Turnover rate: {df['turnover'].mean():.1%}")
    print(f"  Referral rate: {df['refer'].mean():.1%}")
    print(f"  Mean job satisfaction: {df['jobsat'].mean():.2f}")

    # ========================================================================
    # SECTION 2: FIT THE MODEL
    # ========================================================================
    print_banner("FITTING LOGISTIC REGRESSION")

    model = TurnoverLogitModel().fit(df, outcome_var="turnover",
                                     predictors=["refer", "jobsat"])
    print(model.result.summary())

    # ========================================================================
    # SECTION 3: ODDS RATIOS
    # ========================================================================
    print_banner("ODDS RATIOS")

    ci_pct = int(round((1 - alpha) * 100))
    odds_ratios = model.odds_ratio_table(alpha=alpha)
    for _, row in odds_ratios.iterrows():
        if row['Parameter'] == 'Intercept':
            continue
        print(f"  {row['Parameter']}: OR = {row['Odds_Ratio']:.2f} "
              f"({ci_pct}% CI: [{row['OR_CI_Lower']:.2f}, {row['OR_CI_Upper']:.2f}]), "
              f"p = {row['P_Value']:.3f} {row['Sig']}")

    refer_or = float(odds_ratios.loc[odds_ratios['Parameter'] == 'refer', 'Odds_Ratio'].iloc[0])
    print(f"\nThe referral odds ratio of {refer_or:.2f} implies very different changes in")
    print("probability depending on the baseline probability of turnover:")
    shift = odds_ratio_to_probability(refer_or, ILLUSTRATION_BASELINES)
    print(shift.round(3).to_string(index=False))

    # ========================================================================
    # SECTION 4: CLASSIFICATION
    # ========================================================================
    print_banner("CONFUSION MATRIX")

    cm = model.confusion_matrix(threshold=threshold)
    classification = model.classification_summary(threshold=threshold)
    print(f"\nThreshold = {threshold}")
    print(cm)
    print(f"\n  Accuracy:    {classification['accuracy']:.1%}")
    print(f"  Sensitivity: {classification['sensitivity']:.1%}")
    print(f"  Specificity: {classification['specificity']:.1%}")
    print(f"  ROC AUC:     {classification['roc_auc']:.3f}")

    # ========================================================================
    # SECTION 5: PREDICTED PROBABILITIES
    # ========================================================================
    print_banner("PREDICTED PROBABILITIES")

    predictions = model.predict_probabilities(alpha=alpha)
    for _, row in predictions.iterrows():
        print(f"  refer = {int(row['refer'])}, jobsat = {int(row['jobsat'])}: "
              f"p = {row['probability']:.3f} "
              f"({ci_pct}% CI: [{row['ci_lower']:.3f}, {row['ci_upper']:.3f}])")

    differences = model.probability_differences(alpha=alpha)
    print("\nReferred minus not referred, by job satisfaction:")
    print(differences.round(3).to_string(index=False))

    # ========================================================================
    # SECTION 6: PLOTS
    # ========================================================================
    print_banner("PLOTTING")

    ribbon_grid = model.covariate_grid(refer=[0, 1], jobsat=np.linspace(1, 5, 41))
    ribbon_predictions = model.predict_probabilities(ribbon_grid, alpha=alpha)

    with warnings.catch_warnings():
        # Non-interactive backends warn on plt.show()
        warnings.simplefilter("ignore", UserWarning)
        bar_fig = plot_probability_bars(predictions, show=show_plots)
        ribbon_fig = plot_probability_ribbon(ribbon_predictions, show=show_plots)
        shift_fig = plot_odds_ratio_shift(refer_or, show=show_plots)

    os.makedirs(output_dir, exist_ok=True)
    if save_plots:
        for name, fig in [("probability_bars.png", bar_fig),
                          ("probability_ribbon.png", ribbon_fig),
                          ("odds_ratio_shift.png", shift_fig)]:
            fig.savefig(os.path.join(output_dir, name), dpi=150, bbox_inches="tight")
            print(f"  [OK] {name}")

    # ========================================================================
    # SECTION 7: EXPORT
    # ========================================================================
    print_banner("EXPORTING RESULTS")

    results_path = os.path.join(output_dir, RESULTS_FILE)
    model.export_results(results_path, predictions=predictions, alpha=alpha,
                         threshold=threshold)
    print(f"\n[DONE] Results saved to: {results_path}")

    figures = {"bars": bar_fig, "ribbon": ribbon_fig, "odds_ratio_shift": shift_fig}
    if not show_plots:
        for fig in figures.values():
            plt.close(fig)

    return {
        "model": model,
        "odds_ratios": odds_ratios,
        "confusion_matrix": cm,
        "classification": classification,
        "predictions": predictions,
        "differences": differences,
        "figures": figures,
    }


if __name__ == "__main__":
    main()
