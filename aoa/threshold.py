from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .distance import DistanceEngine, FoldExclusion
from .errors import ConfigurationConflict, InsufficientTrainingDiversity
from .logging import get_logger
from .schema import FoldAssignment

logger = get_logger(__name__)

# Boxplot upper whisker: Q3 + WHISKER_RANGE * IQR
WHISKER_RANGE = 1.5


@dataclass(frozen=True)
class TrainDI:
    """
    Leave-fold-out nearest-neighbour statistics of the training set.

    Attributes:
        min_distance: nearest eligible distance per training row, NaN when the
            row has no eligible partner
        mean_distance: mean of the finite minima; normalises every DI
        di: min_distance / mean_distance
        thresholds: DI thresholds, one per label
        labels: name of each threshold ("0.95" for quantiles, "whisker")
    """

    min_distance: np.ndarray
    mean_distance: float
    di: np.ndarray
    thresholds: np.ndarray
    labels: tuple[str, ...]
    method: str
    q1: float
    median: float
    q3: float
    iqr: float
    mean: float

    @property
    def threshold(self) -> float:
        return float(self.thresholds[0])

    def summary(self) -> dict:
        return {
            "mean_distance": self.mean_distance,
            "thresholds": dict(zip(self.labels, (float(t) for t in self.thresholds))),
            "method": self.method,
            "q1": self.q1,
            "median": self.median,
            "q3": self.q3,
            "iqr": self.iqr,
            "mean": self.mean,
            "n_missing": int(np.isnan(self.di).sum()),
        }


def estimate_threshold(
    Xtrain: np.ndarray,
    engine: DistanceEngine,
    folds: Optional[FoldAssignment] = None,
    probabilities: Sequence[float] = (0.95,),
    method: str = "quantile",
) -> TrainDI:
    """
    Nearest eligible neighbour of every training row (never itself, never a
    row of its own fold), normalised by the mean of those distances and
    thresholded at the requested quantile(s) or at the boxplot upper whisker.
    """
    n = len(Xtrain)
    if folds is None:
        folds = FoldAssignment.none(n)
    if len(folds) != n:
        raise ConfigurationConflict(f"Fold assignment has {len(folds)} rows, training data has {n}")
    probabilities = _check_probabilities(probabilities)

    dmin, _ = engine.nearest(Xtrain, Xtrain, exclude=FoldExclusion(folds.codes()))
    dmin = np.where(np.isfinite(dmin), dmin, np.nan)
    valid = ~np.isnan(dmin)
    if not valid.any():
        raise InsufficientTrainingDiversity(
            "No training row has an eligible neighbour outside its own fold"
        )
    mean_distance = float(dmin[valid].mean())
    if mean_distance == 0.0:
        raise InsufficientTrainingDiversity(
            "Every training row coincides with an eligible neighbour; DI cannot be normalised"
        )
    di = dmin / mean_distance
    values = di[valid]

    q1, median, q3 = (float(q) for q in np.quantile(values, [0.25, 0.5, 0.75]))
    iqr = q3 - q1
    if method == "quantile":
        thresholds = np.atleast_1d(np.quantile(values, probabilities)).astype(float)
        labels = tuple(repr(p) for p in probabilities)
    elif method == "whisker":
        upper = q3 + WHISKER_RANGE * iqr
        thresholds = np.array([values[values <= upper].max()], dtype=float)
        labels = ("whisker",)
    else:
        raise ConfigurationConflict(f"Unknown threshold method: {method}")

    result = TrainDI(
        min_distance=dmin,
        mean_distance=mean_distance,
        di=di,
        thresholds=thresholds,
        labels=labels,
        method=method,
        q1=q1,
        median=median,
        q3=q3,
        iqr=iqr,
        mean=float(values.mean()),
    )
    logger.info(
        "train_di_estimated",
        n_train=n,
        n_missing=int((~valid).sum()),
        mean_distance=mean_distance,
        thresholds=[float(t) for t in thresholds],
        method=method,
    )
    return result


def _check_probabilities(probabilities) -> list[float]:
    probs = [float(p) for p in np.atleast_1d(probabilities)]
    if not probs:
        raise ConfigurationConflict("At least one threshold probability is required")
    bad = [p for p in probs if not 0.0 <= p <= 1.0]
    if bad:
        raise ConfigurationConflict(f"Threshold probabilities outside [0, 1]: {bad}")
    if len(set(probs)) != len(probs):
        raise ConfigurationConflict(f"Duplicate threshold probabilities: {probs}")
    return probs
