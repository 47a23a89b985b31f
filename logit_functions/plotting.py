"""
Plots for presenting logistic regression results as probabilities.

All functions return the matplotlib Figure; pass ``show=False`` when the
figure is only being saved or tested.
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from typing import Dict, Optional, Sequence

from logit_functions.logistic_models import odds_ratio_to_probability

GROUP_COLORS = ["#3498db", "#e74c3c", "#2ecc71", "#9b59b6"]

DEFAULT_GROUP_LABELS = {0: "Not referred", 1: "Referred"}


def _check_columns(df: pd.DataFrame, columns: Sequence[str]):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"Predictions are missing columns: {missing}")


def _add_interpretation(fig, text):
    fig.text(0.5, 0.01, text, ha="center", va="bottom", fontsize=9, color="dimgray", wrap=True)
    plt.tight_layout(rect=[0, 0.07, 1, 1])


def plot_probability_bars(
    predictions: pd.DataFrame,
    x_var: str = "jobsat",
    group_var: str = "refer",
    group_labels: Optional[Dict] = None,
    x_label: str = "Job satisfaction",
    y_label: str = "Predicted probability of turnover",
    title: str = "Predicted Probability of Turnover",
    show: bool = True
) -> plt.Figure:
    """
    Grouped bar chart of predicted probabilities with confidence-interval whiskers.

    Parameters
    ----------
    predictions : pd.DataFrame
        Output of ``TurnoverLogitModel.predict_probabilities``; needs x_var,
        group_var, probability, ci_lower, ci_upper
    x_var : str, default="jobsat"
        Variable on the x axis
    group_var : str, default="refer"
        One bar colour per level
    group_labels : dict, optional
        Legend label per group level
    show : bool, default=True
        Call ``plt.show()`` before returning

    Returns
    -------
    matplotlib.figure.Figure
    """
    _check_columns(predictions, [x_var, group_var, "probability", "ci_lower", "ci_upper"])
    if group_labels is None:
        group_labels = DEFAULT_GROUP_LABELS

    x_levels = sorted(predictions[x_var].unique())
    groups = sorted(predictions[group_var].unique())
    width = 0.8 / len(groups)
    positions = np.arange(len(x_levels))

    fig, ax = plt.subplots(1, 1, figsize=(10, 6))
    for g_idx, group in enumerate(groups):
        sub = (predictions[predictions[group_var] == group]
               .set_index(x_var).reindex(x_levels))
        offsets = positions - 0.4 + width * (g_idx + 0.5)
        yerr = np.vstack([sub["probability"] - sub["ci_lower"],
                          sub["ci_upper"] - sub["probability"]])
        bars = ax.bar(offsets, sub["probability"], width=width,
                      color=GROUP_COLORS[g_idx % len(GROUP_COLORS)],
                      edgecolor="black", linewidth=0.5, alpha=0.85,
                      yerr=yerr, capsize=4,
                      label=group_labels.get(group, f"{group_var} = {group}"))
        for bar, p in zip(bars, sub["probability"]):
            if np.isfinite(p):
                ax.annotate(f"{p:.0%}", (bar.get_x() + bar.get_width() / 2, p),
                            xytext=(0, 3), textcoords="offset points",
                            ha="center", va="bottom", fontsize=8)

    ax.set_xticks(positions)
    ax.set_xticklabels([str(x) for x in x_levels])
    ax.set_ylim(0, 1)
    ax.set_xlabel(x_label, fontsize=12)
    ax.set_ylabel(y_label, fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.legend(fontsize=10)
    ax.grid(axis="y", alpha=0.3)

    _add_interpretation(
        fig,
        "Interpretation: bar height is the model-implied probability for that combination "
        "of predictors; whiskers show the confidence interval."
    )
    if show:
        plt.show()
    return fig


def plot_probability_ribbon(
    predictions: pd.DataFrame,
    x_var: str = "jobsat",
    group_var: str = "refer",
    group_labels: Optional[Dict] = None,
    x_label: str = "Job satisfaction",
    y_label: str = "Predicted probability of turnover",
    title: str = "Predicted Probability of Turnover",
    show: bool = True
) -> plt.Figure:
    """
    Line per group across ``x_var`` with a shaded confidence ribbon.

    Same inputs as ``plot_probability_bars``; works best with a fine grid of
    ``x_var`` values.
    """
    _check_columns(predictions, [x_var, group_var, "probability", "ci_lower", "ci_upper"])
    if group_labels is None:
        group_labels = DEFAULT_GROUP_LABELS

    fig, ax = plt.subplots(1, 1, figsize=(10, 6))
    for g_idx, (group, sub) in enumerate(predictions.groupby(group_var)):
        sub = sub.sort_values(x_var)
        color = GROUP_COLORS[g_idx % len(GROUP_COLORS)]
        ax.plot(sub[x_var], sub["probability"], color=color, linewidth=2,
                label=group_labels.get(group, f"{group_var} = {group}"))
        ax.fill_between(sub[x_var], sub["ci_lower"], sub["ci_upper"],
                        color=color, alpha=0.2)

    ax.set_ylim(0, 1)
    ax.set_xlabel(x_label, fontsize=12)
    ax.set_ylabel(y_label, fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.legend(fontsize=10)
    ax.grid(True, alpha=0.3)

    _add_interpretation(
        fig,
        "Interpretation: the gap between the lines is the difference in probability "
        "between groups; shaded ribbons show the confidence interval."
    )
    if show:
        plt.show()
    return fig


def plot_odds_ratio_shift(
    odds_ratio: float,
    baseline_probabilities: Optional[np.ndarray] = None,
    title: Optional[str] = None,
    show: bool = True
) -> plt.Figure:
    """
    Probability change implied by one odds ratio across baseline probabilities.
    """
    if baseline_probabilities is None:
        baseline_probabilities = np.linspace(0.01, 0.99, 197)
    shift = odds_ratio_to_probability(odds_ratio, baseline_probabilities)

    fig, ax = plt.subplots(1, 1, figsize=(10, 6))
    ax.plot(shift["Baseline_Probability"], shift["Probability_Change"],
            color=GROUP_COLORS[0], linewidth=2)
    ax.axhline(0, color="black", linewidth=0.8)
    peak = shift.loc[shift["Probability_Change"].abs().idxmax()]
    ax.axvline(peak["Baseline_Probability"], color="orange", linestyle="--",
               label=f"Largest change = {peak['Probability_Change']:+.3f} "
                     f"at p = {peak['Baseline_Probability']:.2f}")
    ax.set_xlabel("Baseline probability", fontsize=12)
    ax.set_ylabel("Change in probability", fontsize=12)
    ax.set_title(title if title is not None else f"What an Odds Ratio of {odds_ratio:.2f} Means",
                 fontsize=14, fontweight="bold")
    ax.legend(fontsize=10)
    ax.grid(True, alpha=0.3)

    _add_interpretation(
        fig,
        "Interpretation: the same odds ratio moves the probability most near 0.5 and "
        "very little near 0 or 1."
    )
    if show:
        plt.show()
    return fig
