"""
Immutable value objects passed into the DI/AOA core.

These replace direct access to a fitted model: the predictor schema, the
per-column weights and the cross-validation fold of every training row are
all handed over explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from .errors import ConfigurationConflict, InvalidWeight


@dataclass(frozen=True)
class PredictorSchema:
    """Selected predictor columns and which of them are categorical."""

    variables: tuple[str, ...]
    categorical: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, variables: Sequence[str] | None = None) -> "PredictorSchema":
        cols = list(variables) if variables is not None else list(df.columns)
        cat = {c for c in cols if c in df.columns and is_categorical(df[c])}
        return cls(variables=tuple(cols), categorical=frozenset(cat))


def is_categorical(s: pd.Series) -> bool:
    return (
        isinstance(s.dtype, pd.CategoricalDtype)
        or pd.api.types.is_object_dtype(s)
        or pd.api.types.is_bool_dtype(s)
        or pd.api.types.is_string_dtype(s)
    )


@dataclass(frozen=True)
class FoldAssignment:
    """
    Fold id of every training row, ``None`` meaning "no fold constraint".
    Rows in the same fold are never used as each other's nearest neighbour.
    """

    folds: tuple[Hashable | None, ...]

    def __len__(self) -> int:
        return len(self.folds)

    @classmethod
    def none(cls, n_rows: int) -> "FoldAssignment":
        return cls(folds=(None,) * n_rows)

    @classmethod
    def from_labels(cls, labels: Iterable) -> "FoldAssignment":
        out = []
        for lab in labels:
            if lab is None or (pd.api.types.is_scalar(lab) and pd.isna(lab)):
                out.append(None)
            elif isinstance(lab, np.generic):
                out.append(lab.item())
            else:
                out.append(lab)
        return cls(folds=tuple(out))

    @classmethod
    def from_splits(cls, splits: Iterable, n_rows: int) -> "FoldAssignment":
        """
        Build from CV splits as yielded by an sklearn splitter: an iterable of
        ``(train_idx, test_idx)`` pairs, or of bare held-out index arrays.
        A row's fold is the index of the split holding it out.
        """
        folds: list[int | None] = [None] * n_rows
        for k, split in enumerate(splits):
            held_out = split[1] if isinstance(split, tuple) and len(split) == 2 else split
            for i in np.asarray(held_out, dtype=int).ravel():
                if folds[i] is not None and folds[i] != k:
                    raise ConfigurationConflict(f"Training row {i} is held out in more than one CV split")
                folds[i] = k
        return cls(folds=tuple(folds))

    def subset(self, mask: np.ndarray) -> "FoldAssignment":
        return FoldAssignment(folds=tuple(f for f, keep in zip(self.folds, mask) if keep))

    def codes(self) -> np.ndarray:
        """Integer code per row; -1 for rows without a fold."""
        lookup: dict = {}
        codes = np.full(len(self.folds), -1, dtype=np.int64)
        for i, f in enumerate(self.folds):
            if f is not None:
                codes[i] = lookup.setdefault(f, len(lookup))
        return codes


@dataclass(frozen=True)
class WeightVector:
    """Non-negative weight per predictor column name."""

    weights: Mapping[str, float]

    def __post_init__(self):
        for name, w in self.weights.items():
            if w is None or not np.isfinite(w):
                raise InvalidWeight(f"Weight for '{name}' is not finite: {w}")
            if w < 0:
                raise InvalidWeight(f"Weight for '{name}' is negative: {w}")
        if self.weights and not any(w > 0 for w in self.weights.values()):
            raise InvalidWeight("At least one predictor weight must be non-zero")

    @classmethod
    def uniform(cls, columns: Iterable[str]) -> "WeightVector":
        return cls(weights={c: 1.0 for c in columns})

    def as_array(self, columns: Sequence[str]) -> np.ndarray:
        missing = [c for c in columns if c not in self.weights]
        if missing:
            raise InvalidWeight(f"No weight for columns: {missing}")
        return np.asarray([float(self.weights[c]) for c in columns], dtype=float)
