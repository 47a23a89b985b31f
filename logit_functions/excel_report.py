"""
Excel formatting helpers shared by the tutorial scripts.

Every workbook produced by the tutorial (parameter template, data
descriptives, model results) uses the same dark-blue header / banded-row
layout so the sheets read consistently when opened side by side.
"""

import numpy as np
import pandas as pd
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter

# ---------------------------------------------------------------------------
# Formatting constants
# ---------------------------------------------------------------------------
HEADER_FILL = PatternFill(start_color="1F3864", end_color="1F3864", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
ALT_ROW_FILL = PatternFill(start_color="DCE6F1", end_color="DCE6F1", fill_type="solid")
WHITE_FILL = PatternFill(start_color="FFFFFF", end_color="FFFFFF", fill_type="solid")
BOLD_FONT = Font(bold=True, size=11)
TITLE_FONT = Font(bold=True, size=13, color="1F3864")
THIN_BORDER = Border(
    bottom=Side(style='thin', color='B0B0B0')
)

# p-value fills
GREEN_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
YELLOW_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
RED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")


def format_header_row(ws, row, first_col, last_col):
    """Dark-blue bold header across ``first_col``..``last_col``."""
    for col in range(first_col, last_col + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)


def band_rows(ws, start_row, end_row, first_col, last_col, bold_keywords=None):
    """Alternate row shading; rows mentioning a keyword (e.g. 'Overall') are bolded."""
    if bold_keywords is None:
        bold_keywords = ['Overall', 'Total']
    for r in range(start_row, end_row + 1):
        fill = ALT_ROW_FILL if (r - start_row) % 2 == 0 else WHITE_FILL
        cells = [ws.cell(row=r, column=c) for c in range(first_col, last_col + 1)]
        for cell in cells:
            cell.fill = fill
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal='center', vertical='center')
        if any(c.value is not None and any(kw in str(c.value) for kw in bold_keywords)
               for c in cells):
            for cell in cells:
                cell.font = BOLD_FONT


def autofit_columns(ws, min_width=10, max_width=40):
    """Size each column to its longest value, within [min_width, max_width]."""
    for col_cells in ws.columns:
        longest = max((len(str(c.value)) for c in col_cells if c.value is not None), default=0)
        ws.column_dimensions[get_column_letter(col_cells[0].column)].width = \
            min(max(longest + 3, min_width), max_width)


def write_title(ws, row, title_text, span=1):
    """Title cell, merged across ``span`` columns."""
    cell = ws.cell(row=row, column=1, value=title_text)
    cell.font = TITLE_FONT
    cell.alignment = Alignment(horizontal='left')
    if span > 1:
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=span)


def _cell_value(value, decimals):
    # openpyxl only accepts native Python scalars
    if isinstance(value, (np.bool_, bool)):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, (np.floating, float)):
        if np.isnan(value):
            return None
        return round(float(value), decimals)
    if isinstance(value, pd.Interval):
        return str(value)
    return value


def write_dataframe(ws, df, start_row, start_col=1, index=False, decimals=3):
    """
    Write a DataFrame as a formatted table.

    Parameters
    ----------
    ws : openpyxl worksheet
    df : pd.DataFrame
    start_row : int
        Row of the header
    start_col : int, default=1
    index : bool, default=False
        If True, the index is written as the first column
    decimals : int, default=3
        Rounding applied to float cells

    Returns
    -------
    int
        Row number of the last data row
    """
    table = df.reset_index() if index else df

    for c_idx, col_name in enumerate(table.columns, start=start_col):
        ws.cell(row=start_row, column=c_idx, value=str(col_name))
    last_col = start_col + len(table.columns) - 1
    format_header_row(ws, start_row, start_col, last_col)

    for r_idx, row_data in enumerate(table.itertuples(index=False), start=start_row + 1):
        for c_idx, value in enumerate(row_data, start=start_col):
            ws.cell(row=r_idx, column=c_idx, value=_cell_value(value, decimals))

    end_row = start_row + len(table)
    band_rows(ws, start_row + 1, end_row, start_col, last_col)
    return end_row


def highlight_pvalues(ws, col_letter, start_row, end_row):
    """Green (p < .05), yellow (p < .10) or red fill on a p-value column."""
    for r in range(start_row, end_row + 1):
        cell = ws[f"{col_letter}{r}"]
        try:
            val = float(cell.value)
        except (TypeError, ValueError):
            continue
        if val < 0.05:
            cell.fill = GREEN_FILL
        elif val < 0.10:
            cell.fill = YELLOW_FILL
        else:
            cell.fill = RED_FILL


def write_readme_sheet(ws, lines, width=90):
    """Fill a README sheet from (text, font) pairs; font may be None."""
    for r_idx, (text, font) in enumerate(lines, start=1):
        cell = ws.cell(row=r_idx, column=1, value=text)
        if font:
            cell.font = font
    ws.column_dimensions['A'].width = width


def add_table_sheet(wb, sheet_name, title, df, index=False, pvalue_column=None):
    """
    Create a sheet holding one titled table.

    When ``pvalue_column`` names a column of ``df`` its cells receive the
    green / yellow / red p-value fill.
    """
    ws = wb.create_sheet(sheet_name)
    n_cols = len(df.columns) + (1 if index else 0)
    write_title(ws, 1, title, span=max(n_cols, 1))
    end_row = write_dataframe(ws, df, start_row=3, index=index)

    if pvalue_column is not None and pvalue_column in df.columns:
        offset = 1 if index else 0
        col_letter = get_column_letter(list(df.columns).index(pvalue_column) + 1 + offset)
        highlight_pvalues(ws, col_letter, 4, end_row)

    autofit_columns(ws)
    return ws
