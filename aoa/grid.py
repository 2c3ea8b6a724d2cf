"""
Adapters between grid-structured predictors (rows x cols x bands) and the
one-observation-per-row tables the core works on. Cells are flattened in
C order, so results reshape straight back onto the grid.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from .domain import AOAEvaluator


def grid_to_table(grid: np.ndarray, band_names: Sequence[str], nodata: float | None = None) -> pd.DataFrame:
    grid = np.asarray(grid, dtype=float)
    if grid.ndim != 3:
        raise ValueError(f"Expected a (rows, cols, bands) array, got shape {grid.shape}")
    if grid.shape[2] != len(band_names):
        raise ValueError(f"Grid has {grid.shape[2]} bands but {len(band_names)} band names were given")
    table = grid.reshape(-1, grid.shape[2])
    if nodata is not None:
        table = np.where(table == nodata, np.nan, table)
    return pd.DataFrame(table, columns=list(band_names))


def table_to_grid(values: np.ndarray, shape: tuple[int, int]) -> np.ndarray:
    return np.asarray(values).reshape(shape)


def evaluate_grid(
    evaluator: AOAEvaluator,
    grid: np.ndarray,
    band_names: Sequence[str],
    nodata: float | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """DI and AOA (first threshold) grids; nodata cells get DI NaN, AOA 0."""
    table = grid_to_table(grid, band_names, nodata)
    result = evaluator.evaluate(table)
    shape = np.asarray(grid).shape[:2]
    return table_to_grid(result.di, shape), table_to_grid(result.inside, shape)
