"""
Synthetic Survey Data Generator

Generates a plausible employee-turnover survey dataset from a target
correlation / mean / standard-deviation structure. Continuous scores are drawn
from a multivariate normal distribution and then discretized into the
survey-like responses used throughout the tutorial:

- refer:    1 = hired through an employee referral, 0 = other source
- jobsat:   1-5 job satisfaction rating (skewed toward the upper bins)
- turnover: 1 = left the organisation, 0 = stayed

Usage:
    from logit_functions.survey_generator import generate_survey_data
    df = generate_survey_data(corr, sds, means, n=538, seed=42)
"""

import os
import warnings

import numpy as np
import pandas as pd
from scipy import stats
from typing import Dict, Optional, Sequence, TextIO, Tuple, Union

# Variable order expected by the discretization step
SURVEY_VARIABLES = ["refer", "jobsat", "turnover"]

# Additive diagonal loading applied to the covariance matrix before sampling
DIAGONAL_LOADING = 0.1

# Referral cut point sits slightly above the column mean
REFERRAL_OFFSET = 0.05

JOBSAT_BINS = 5
JOBSAT_LABELS = [1, 2, 3, 4, 5]

ArrayLike = Union[np.ndarray, pd.DataFrame, pd.Series, Sequence]


class InvalidParametersError(ValueError):
    """Generator inputs are malformed (shape, length or value range)."""


class DegenerateDistributionError(ValueError):
    """The regularized covariance matrix cannot be sampled from."""


# ============================================================================
# PARAMETER PREPARATION
# ============================================================================

def symmetrize_correlation_matrix(corr: ArrayLike) -> np.ndarray:
    """
    Mirror the lower triangle of a correlation matrix onto its upper triangle.

    Parameter workbooks are often filled in as a lower-triangular table, so the
    upper triangle may be blank or disagree with the lower one. The lower
    triangle is treated as authoritative.

    Parameters
    ----------
    corr : array-like
        Square correlation matrix (upper triangle may contain NaN)

    Returns
    -------
    np.ndarray
        Symmetric copy of ``corr``

    Raises
    ------
    InvalidParametersError
        If ``corr`` is not a square 2-D matrix
    """
    mat = np.array(corr, dtype=float)
    if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
        raise InvalidParametersError(
            f"Correlation matrix must be square, got shape {mat.shape}"
        )

    upper = np.triu_indices_from(mat, k=1)
    mirrored = mat.T[upper]
    current = mat[upper]
    differs = ~np.isclose(current, mirrored) & ~np.isnan(current) & ~np.isnan(mirrored)
    if differs.any():
        warnings.warn(
            "Correlation matrix is not symmetric; mirroring the lower triangle "
            "onto the upper triangle.",
            UserWarning,
            stacklevel=2
        )
    mat[upper] = mirrored
    return mat


def _as_vector(values: ArrayLike, name: str,
               variables: Optional[Sequence[str]] = None) -> np.ndarray:
    """Convert a mean / sd input to a float vector, aligned by name when possible."""
    if isinstance(values, pd.DataFrame):
        if values.shape[1] != 1:
            raise InvalidParametersError(
                f"'{name}' must be a single column, got {values.shape[1]} columns"
            )
        values = values.iloc[:, 0]

    if isinstance(values, pd.Series) and variables is not None:
        missing = [v for v in variables if v not in values.index]
        if missing:
            if len(values) != len(variables):
                raise InvalidParametersError(
                    f"'{name}' has {len(values)} entries but the correlation "
                    f"matrix has {len(variables)} variables"
                )
            raise InvalidParametersError(f"'{name}' is missing variables: {missing}")
        values = values.reindex(list(variables))

    vec = np.asarray(values, dtype=float).ravel()
    return vec


def validate_parameters(
    correlation_matrix: ArrayLike,
    stddevs: ArrayLike,
    means: ArrayLike,
    n: int = 1
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Check and normalise the generator inputs.

    The correlation matrix is symmetrized (lower triangle mirrored) before the
    value checks. When the matrix is a DataFrame, its column order defines the
    variable order and pandas Series inputs are aligned to it by name.

    Parameters
    ----------
    correlation_matrix : array-like
        3x3 correlation matrix over (refer, jobsat, turnover)
    stddevs : array-like
        Standard deviation per variable (strictly positive)
    means : array-like
        Mean per variable
    n : int, default=1
        Number of respondents to generate

    Returns
    -------
    tuple
        (corr, sd, mu) as float numpy arrays

    Raises
    ------
    InvalidParametersError
        On any malformed input
    """
    variables = None
    if isinstance(correlation_matrix, pd.DataFrame):
        variables = list(correlation_matrix.columns)
        if list(correlation_matrix.index) != variables and \
                set(correlation_matrix.index) == set(variables):
            correlation_matrix = correlation_matrix.loc[variables, variables]

    corr = symmetrize_correlation_matrix(correlation_matrix)
    k = corr.shape[0]
    if k != len(SURVEY_VARIABLES):
        raise InvalidParametersError(
            f"Correlation matrix must be {len(SURVEY_VARIABLES)}x{len(SURVEY_VARIABLES)} "
            f"(refer, jobsat, turnover), got {k}x{k}"
        )
    if not np.isfinite(corr).all():
        raise InvalidParametersError("Correlation matrix contains missing or non-finite values")
    if (np.abs(corr) > 1).any():
        raise InvalidParametersError("Correlation matrix entries must lie in [-1, 1]")
    if not np.allclose(np.diag(corr), 1.0):
        raise InvalidParametersError(
            f"Correlation matrix must have a unit diagonal, got {np.diag(corr).tolist()}"
        )

    sd = _as_vector(stddevs, "stddevs", variables)
    mu = _as_vector(means, "means", variables)
    if len(sd) != k:
        raise InvalidParametersError(
            f"'stddevs' has {len(sd)} entries but the correlation matrix has {k} variables"
        )
    if len(mu) != k:
        raise InvalidParametersError(
            f"'means' has {len(mu)} entries but the correlation matrix has {k} variables"
        )
    if not np.isfinite(sd).all() or (sd <= 0).any():
        raise InvalidParametersError(
            f"Standard deviations must be finite and strictly positive, got {sd.tolist()}"
        )
    if not np.isfinite(mu).all():
        raise InvalidParametersError(f"Means must be finite, got {mu.tolist()}")

    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 1:
        raise InvalidParametersError(f"n must be a positive integer, got {n!r}")

    return corr, sd, mu


def build_covariance_matrix(
    corr: np.ndarray,
    sd: np.ndarray,
    diagonal_loading: float = DIAGONAL_LOADING
) -> np.ndarray:
    """
    Convert a correlation matrix and standard deviations into a covariance matrix.

    cov[i, j] = corr[i, j] * sd[i] * sd[j], then ``diagonal_loading`` is added
    to every diagonal element.
    """
    cov = np.asarray(corr, dtype=float) * np.outer(sd, sd)
    return cov + diagonal_loading * np.eye(cov.shape[0])


# ============================================================================
# SAMPLING AND DISCRETIZATION
# ============================================================================

def draw_multivariate_sample(
    mu: np.ndarray,
    cov: np.ndarray,
    n: int,
    seed: Optional[int] = None
) -> pd.DataFrame:
    """
    Draw ``n`` continuous records from MVN(mu, cov).

    Parameters
    ----------
    mu : np.ndarray
        Mean vector
    cov : np.ndarray
        Regularized covariance matrix
    n : int
        Number of draws
    seed : int, optional
        Seed for ``numpy.random.default_rng``

    Returns
    -------
    pd.DataFrame
        Continuous sample with one column per survey variable

    Raises
    ------
    DegenerateDistributionError
        If ``cov`` is not positive-definite or the draws are not finite
    """
    try:
        np.linalg.cholesky(cov)
    except np.linalg.LinAlgError as e:
        eigvals = np.linalg.eigvalsh((cov + cov.T) / 2)
        raise DegenerateDistributionError(
            "Covariance matrix is not positive-definite after regularization "
            f"(smallest eigenvalue {eigvals.min():.4g})"
        ) from e

    rng = np.random.default_rng(seed)
    draws = rng.multivariate_normal(mu, cov, size=n, method="cholesky")
    if not np.isfinite(draws).all():
        raise DegenerateDistributionError("Multivariate normal sample contains non-finite values")

    return pd.DataFrame(draws, columns=SURVEY_VARIABLES)


def _binary_at_threshold(values: pd.Series, threshold: float) -> pd.Series:
    # Lower bin -> 1, upper bin -> 0
    return (values <= threshold).astype(int)


def discretize_referral(values: pd.Series) -> pd.Series:
    """Referral code: 1 at or below (mean + 0.05), 0 above."""
    return _binary_at_threshold(values, values.mean() + REFERRAL_OFFSET)


def discretize_turnover(values: pd.Series) -> pd.Series:
    """Turnover code: 1 at or below the sample mean, 0 above."""
    return _binary_at_threshold(values, values.mean())


def skew_job_satisfaction(values: pd.Series) -> pd.Series:
    """Reflect-then-root transform: sqrt(max + 1 - value)."""
    return np.sqrt(values.max() + 1 - values)


def discretize_job_satisfaction(values: pd.Series) -> pd.Series:
    """
    Skew the continuous job-satisfaction scores and cut them into a 1-5 rating.

    The skewed column is cut into five equal-width bins; the label follows the
    skewed value, so a higher raw score never receives a higher label.
    """
    skewed = skew_job_satisfaction(values)
    if skewed.nunique() == 1:
        return pd.Series(JOBSAT_LABELS[0], index=values.index, dtype=int)
    binned = pd.cut(skewed, bins=JOBSAT_BINS, labels=JOBSAT_LABELS, include_lowest=True)
    return binned.astype(int)


def discretize_sample(sample: pd.DataFrame) -> pd.DataFrame:
    """
    Turn a continuous sample into the final survey records.

    Parameters
    ----------
    sample : pd.DataFrame
        Continuous draws with columns refer, jobsat, turnover

    Returns
    -------
    pd.DataFrame
        Integer columns refer (0/1), jobsat (1-5), turnover (0/1)
    """
    missing = [v for v in SURVEY_VARIABLES if v not in sample.columns]
    if missing:
        raise InvalidParametersError(f"Sample is missing columns: {missing}")

    records = pd.DataFrame({
        "refer": discretize_referral(sample["refer"]),
        "jobsat": discretize_job_satisfaction(sample["jobsat"]),
        "turnover": discretize_turnover(sample["turnover"]),
    }, index=sample.index)
    return records.astype(int)


# ============================================================================
# PUBLIC API
# ============================================================================

def generate_survey_data(
    correlation_matrix: ArrayLike,
    stddevs: ArrayLike,
    means: ArrayLike,
    n: int,
    seed: Optional[int] = None,
    verbose: bool = False
) -> pd.DataFrame:
    """
    Generate ``n`` synthetic survey respondents.

    Pipeline: validate -> covariance -> diagonal loading -> MVN sample ->
    discretize. Nothing is written to disk.

    Parameters
    ----------
    correlation_matrix : array-like
        Target 3x3 correlation matrix over (refer, jobsat, turnover)
    stddevs : array-like
        Target standard deviations
    means : array-like
        Target means
    n : int
        Number of respondents
    seed : int, optional
        Seed; identical seed and parameters give identical records
    verbose : bool, default=False
        If True, print the regularized covariance matrix and base rates

    Returns
    -------
    pd.DataFrame
        n rows, integer columns refer, jobsat, turnover

    Raises
    ------
    InvalidParametersError
        Malformed inputs
    DegenerateDistributionError
        Covariance still unusable after regularization
    """
    corr, sd, mu = validate_parameters(correlation_matrix, stddevs, means, n)
    cov = build_covariance_matrix(corr, sd)
    sample = draw_multivariate_sample(mu, cov, n, seed=seed)
    records = discretize_sample(sample).reset_index(drop=True)

    if verbose:
        print("  Regularized covariance matrix:")
        print(pd.DataFrame(cov, index=SURVEY_VARIABLES, columns=SURVEY_VARIABLES).round(3))
        print(f"  [OK] Generated {len(records)} respondents "
              f"(refer = {records['refer'].mean():.1%}, "
              f"turnover = {records['turnover'].mean():.1%})")

    return records


generate = generate_survey_data


def write_survey_csv(records: pd.DataFrame, destination: Union[str, os.PathLike, TextIO]) -> None:
    """Write survey records as CSV (header row, no index) to a path or open text handle."""
    records[SURVEY_VARIABLES].to_csv(destination, index=False, lineterminator="\n")


def generate_survey_file(
    destination: Union[str, os.PathLike, TextIO],
    correlation_matrix: ArrayLike,
    stddevs: ArrayLike,
    means: ArrayLike,
    n: int,
    seed: Optional[int] = None,
    verbose: bool = False
) -> pd.DataFrame:
    """
    Generate the dataset and write it to ``destination``.

    Generation runs to completion before the destination is touched, so a
    failure leaves no partial file behind.
    """
    records = generate_survey_data(correlation_matrix, stddevs, means, n,
                                   seed=seed, verbose=verbose)
    write_survey_csv(records, destination)
    return records


# ============================================================================
# VERIFICATION
# ============================================================================

def summarize_survey_data(
    records: pd.DataFrame,
    target_correlations: Optional[ArrayLike] = None
) -> Dict[str, object]:
    """
    Summarise a generated dataset for a quick sanity check.

    Parameters
    ----------
    records : pd.DataFrame
        Output of ``generate_survey_data``
    target_correlations : array-like, optional
        Target correlation matrix to compare the achieved correlations with

    Returns
    -------
    dict
        - n: number of respondents
        - refer_rate / turnover_rate: proportion coded 1
        - jobsat_distribution: proportion per rating 1-5
        - jobsat_mean / jobsat_skewness
        - correlations: long DataFrame with Pair, Achieved (and Target, Difference)
    """
    missing = [v for v in SURVEY_VARIABLES if v not in records.columns]
    if missing:
        raise ValueError(f"Records are missing columns: {missing}")

    jobsat_dist = (
        records["jobsat"].value_counts(normalize=True)
        .reindex(JOBSAT_LABELS, fill_value=0.0)
    )
    achieved = records[SURVEY_VARIABLES].corr()

    target = None
    if target_correlations is not None:
        target = symmetrize_correlation_matrix(target_correlations)

    rows = []
    for i in range(len(SURVEY_VARIABLES)):
        for j in range(i + 1, len(SURVEY_VARIABLES)):
            row = {
                "Pair": f"{SURVEY_VARIABLES[i]} - {SURVEY_VARIABLES[j]}",
                "Achieved": achieved.iloc[i, j],
            }
            if target is not None:
                row["Target"] = target[i, j]
                row["Difference"] = row["Achieved"] - target[i, j]
            rows.append(row)

    return {
        "n": len(records),
        "refer_rate": records["refer"].mean(),
        "turnover_rate": records["turnover"].mean(),
        "jobsat_distribution": jobsat_dist,
        "jobsat_mean": records["jobsat"].mean(),
        "jobsat_skewness": float(stats.skew(records["jobsat"])),
        "correlations": pd.DataFrame(rows),
    }
