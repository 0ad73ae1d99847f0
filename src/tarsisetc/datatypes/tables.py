import logging
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)


def _delimiter_for(path: Path):
    return ',' if path.suffix.lower() == '.csv' else None


def _to_float(cell: str) -> float:
    try:
        return float(cell)
    except ValueError:
        return np.nan


def _read_rows(filepath: Path) -> np.ndarray:
    '''
    Reads every non-empty, non-comment line of a delimited table into a 2D
    array. Short rows are padded with NaN so that row and column indices
    always match the file.
    '''
    delimiter = _delimiter_for(filepath)
    rows = []
    with open(filepath) as f:
        for line in f:
            line = line.split('#', 1)[0].strip()
            if not line:
                continue
            rows.append([_to_float(cell) for cell in line.split(delimiter)])

    n_columns = max((len(row) for row in rows), default=0)
    table = np.full((len(rows), n_columns), np.nan)
    for i, row in enumerate(rows):
        table[i, :len(row)] = row
    return table


def read_curve_table(filepath, transpose: bool = False, x_col: int = 0, y_col: int = 1) -> tuple[np.ndarray, np.ndarray]:
    '''
    Reads (x, y) pairs from a delimited text table.

    CSV files are split on commas, anything else on whitespace. Lines
    starting with '#' are ignored. With transpose=True the table is read
    with rows and columns swapped: x_col and y_col select rows and every
    column becomes a point.

    Cells that are missing or not numeric, including those of rows shorter
    than the rest of the table, are reported and the affected point is
    skipped; the rest of the table is still returned.
    '''
    filepath = Path(filepath)

    raw_data = _read_rows(filepath)
    if transpose:
        raw_data = raw_data.T

    n_columns = raw_data.shape[1]
    for col in (x_col, y_col):
        if col >= n_columns:
            raise ValueError(
                f"Column {col} is out of range ({filepath} has {n_columns} data columns)")

    x = raw_data[:, x_col]
    y = raw_data[:, y_col]

    valid = np.isfinite(x) & np.isfinite(y)
    for row in np.flatnonzero(~valid):
        bad_col = x_col if not np.isfinite(x[row]) else y_col
        if transpose:
            logger.warning("%s: row %d: col %d: invalid or missing value, skipped",
                           filepath, bad_col + 1, row + 1)
        else:
            logger.warning("%s: row %d: col %d: invalid or missing value, skipped",
                           filepath, row + 1, bad_col + 1)

    logger.debug("Loaded %d points from %s", np.count_nonzero(valid), filepath)
    return x[valid], y[valid]


def save_curve_table(filepath, x: np.ndarray, y: np.ndarray):
    '''Writes (x, y) pairs as comma separated rows.'''
    data = np.column_stack((np.asarray(x, dtype=float), np.asarray(y, dtype=float)))
    np.savetxt(filepath, data, delimiter=', ', fmt='%.15e')
