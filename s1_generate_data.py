"""
Synthetic Turnover Data Generator for the Predicted Probabilities Tutorial
==========================================================================

This script generates a deterministic employee-turnover dataset for a
statistics tutorial on presenting logistic regression results as predicted
probabilities instead of odds ratios.

Variables (one row per simulated employee):
- refer:    1 = hired through an employee referral, 0 = other source
- jobsat:   job satisfaction rating, 1-5 (skewed toward satisfied)
- turnover: 1 = left the organisation, 0 = stayed

Continuous scores are drawn from a multivariate normal distribution with the
target correlations / means / SDs, then cut into the survey-style codes above.

Run:
    python s1_generate_data.py
"""

import os

import pandas as pd
from openpyxl import Workbook
from scipy import stats

from logit_functions.excel_report import (
    BOLD_FONT, TITLE_FONT, add_table_sheet, write_readme_sheet,
)
from logit_functions.parameters import (
    default_parameters, read_parameter_workbook, write_parameter_workbook,
)
from logit_functions.survey_generator import (
    SURVEY_VARIABLES, generate_survey_data, summarize_survey_data, write_survey_csv,
)

# ============================================================================
# SECTION 1: SETUP AND CONSTANTS
# ============================================================================

SEED = 42
N_RESPONDENTS = 538

DATA_DIR = "./data"
DATA_FILE = "turnover_data.csv"
PARAMETER_FILE = "generator_parameters.xlsx"
EXCEL_FILE = "turnover_data_descriptives.xlsx"


def print_banner(title):
    print("\n" + "=" * 80)
    print(title)
    print("=" * 80)


def descriptives_table(df, variables):
    """Descriptive statistics per variable."""
    rows = []
    for var in variables:
        s = df[var].dropna()
        rows.append({
            'Variable': var,
            'n': len(s),
            'Mean': round(s.mean(), 3),
            'SD': round(s.std(), 3),
            'Min': s.min(),
            'Max': s.max(),
            'Median': s.median(),
            'Skewness': round(s.skew(), 3),
        })
    return pd.DataFrame(rows)


def turnover_by_referral(df):
    """Turnover rate by referral status with a chi-square test."""
    table = pd.crosstab(df['refer'], df['turnover'])
    rows = []
    for refer_value, label in [(0, 'Not referred'), (1, 'Referred')]:
        subset = df[df['refer'] == refer_value]
        rows.append({
            'Group': label,
            'n': len(subset),
            'Turnover_n': int(subset['turnover'].sum()),
            'Turnover_Rate': subset['turnover'].mean() if len(subset) else float('nan'),
        })
    rows.append({
        'Group': 'Overall',
        'n': len(df),
        'Turnover_n': int(df['turnover'].sum()),
        'Turnover_Rate': df['turnover'].mean(),
    })
    result = pd.DataFrame(rows)

    if table.shape == (2, 2):
        chi2, p_value, _, _ = stats.chi2_contingency(table)
    else:
        chi2, p_value = float('nan'), float('nan')
    result['Chi2'] = chi2
    result['P_Value'] = p_value
    return result


def main(output_dir=DATA_DIR, seed=SEED, n=N_RESPONDENTS, parameter_path=None,
         write_excel=True):
    """
    Generate, verify and export the tutorial dataset.

    Parameters
    ----------
    output_dir : str, default="./data"
        Directory for the CSV, parameter workbook and Excel descriptives
    seed : int, default=42
        Seed for the multivariate normal draw
    n : int, default=538
        Number of simulated employees
    parameter_path : str, optional
        Parameter workbook to read; the tutorial defaults are used otherwise
    write_excel : bool, default=True
        If True, also write the parameter workbook and the descriptives report

    Returns
    -------
    pd.DataFrame
        The generated dataset
    """
    print_banner("PREDICTED PROBABILITIES TUTORIAL - SYNTHETIC TURNOVER DATA GENERATOR")
    print(f"\nSeed: {seed}")
    print(f"Respondents: {n}")

    # ========================================================================
    # SECTION 2: GENERATOR PARAMETERS
    # ========================================================================
    print_banner("LOADING GENERATOR PARAMETERS")

    if parameter_path:
        params = read_parameter_workbook(parameter_path)
        print(f"[OK] Parameters read from {parameter_path}")
    else:
        params = default_parameters()
        print("[OK] Using tutorial default parameters")

    print("\nTarget correlations:")
    print(params.correlations.round(2))
    print("\nTarget means / SDs:")
    print(pd.DataFrame({'mean': params.means, 'sd': params.stddevs}).round(2))

    # ========================================================================
    # SECTION 3: GENERATE DATA
    # ========================================================================
    print_banner("GENERATING SURVEY DATA")

    df = generate_survey_data(params.correlations, params.stddevs, params.means,
                              n=n, seed=seed, verbose=True)

    # ========================================================================
    # SECTION 4: VERIFICATION
    # ========================================================================
    print_banner("VERIFICATION: DESCRIPTIVE STATISTICS")

    summary = summarize_survey_data(df, target_correlations=params.correlations)
    print(f"\nReferral rate: {summary['refer_rate']:.1%}")
    print(f"Turnover rate: {summary['turnover_rate']:.1%}")
    print(f"\nJob satisfaction distribution (skewness = {summary['jobsat_skewness']:.2f}):")
    for rating, share in summary['jobsat_distribution'].items():
        print(f"  {rating}: {share:6.1%}  {'#' * int(round(share * 50))}")

    print("\nCorrelations (achieved vs target):")
    print(summary['correlations'].round(3).to_string(index=False))

    by_referral = turnover_by_referral(df)
    print("\nTurnover by referral status:")
    print(by_referral[['Group', 'n', 'Turnover_Rate']].to_string(index=False,
          formatters={'Turnover_Rate': '{:.1%}'.format}))
    print(f"Chi-square test: chi2 = {by_referral['Chi2'].iloc[0]:.2f}, "
          f"p = {by_referral['P_Value'].iloc[0]:.3f}")

    # ========================================================================
    # SECTION 5: EXPORT DATA
    # ========================================================================
    print_banner("EXPORTING DATA")

    os.makedirs(output_dir, exist_ok=True)
    csv_path = os.path.join(output_dir, DATA_FILE)
    write_survey_csv(df, csv_path)
    print("\n[OK] Data exported to:")
    print(f"  - {csv_path}")

    if not write_excel:
        return df

    param_path = os.path.join(output_dir, PARAMETER_FILE)
    write_parameter_workbook(params, param_path)
    print(f"  - {param_path}")

    # ========================================================================
    # SECTION 6: EXCEL DESCRIPTIVES REPORT
    # ========================================================================
    print_banner("GENERATING EXCEL DESCRIPTIVES REPORT")

    excel_path = os.path.join(output_dir, EXCEL_FILE)
    wb = Workbook()
    ws_readme = wb.active
    ws_readme.title = "README"
    write_readme_sheet(ws_readme, [
        ("Synthetic Turnover Data – Descriptive Report", TITLE_FONT),
        ("", None),
        ("Dataset Overview", BOLD_FONT),
        (f"• {len(df)} simulated employees, seed {seed}", None),
        ("• refer – referral hire (0/1); jobsat – satisfaction (1-5); turnover – left (0/1)", None),
        ("", None),
        ("Sheets in This Workbook", BOLD_FONT),
        ("• Descriptives – mean, SD, range and skewness per variable", None),
        ("• Jobsat_Distribution – share of employees at each satisfaction rating", None),
        ("• Correlations – achieved vs target correlations", None),
        ("• Turnover_by_Referral – turnover rate by referral status with chi-square test", None),
        ("• Raw_Data – full dataset", None),
        ("", None),
        ("Formatting Key", BOLD_FONT),
        ("• p-value cells: Green (p < .05), Yellow (.05 ≤ p < .10), Red (p ≥ .10)", None),
        ("• Bold rows indicate 'Overall' summaries", None),
    ])

    add_table_sheet(wb, "Descriptives", "Descriptive Statistics",
                    descriptives_table(df, SURVEY_VARIABLES))
    print("  [OK] Descriptives")

    jobsat_dist = summary['jobsat_distribution'].rename('Proportion').to_frame()
    jobsat_dist.index.name = 'jobsat'
    add_table_sheet(wb, "Jobsat_Distribution", "Job Satisfaction Distribution",
                    jobsat_dist, index=True)
    print("  [OK] Jobsat_Distribution")

    add_table_sheet(wb, "Correlations", "Achieved vs Target Correlations",
                    summary['correlations'])
    print("  [OK] Correlations")

    add_table_sheet(wb, "Turnover_by_Referral", "Turnover Rate by Referral Status",
                    by_referral, pvalue_column='P_Value')
    print("  [OK] Turnover_by_Referral")

    add_table_sheet(wb, "Raw_Data", "Generated Dataset", df)
    print("  [OK] Raw_Data")

    wb.save(excel_path)
    print(f"\n[DONE] Excel report saved to: {excel_path}")

    return df


if __name__ == "__main__":
    main()
