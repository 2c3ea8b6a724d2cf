"""
Per-column importance weights for the predictor space.

Weights come from exactly one source: explicit caller weights, the variable
importance of a fitted model, or uniform 1. Per-predictor values are
repeated across the dummy columns of categorical predictors.
"""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np

from .encoder import PredictorEncoder
from .errors import InvalidWeight
from .logging import get_logger
from .schema import WeightVector

logger = get_logger(__name__)


def uniform_weights(columns: Sequence[str]) -> WeightVector:
    return WeightVector.uniform(columns)


def explicit_weights(
    weights: Mapping[str, float],
    encoder: PredictorEncoder,
    columns: Sequence[str],
) -> WeightVector:
    """
    Validate caller weights against the retained encoded columns.

    ``weights`` is keyed by source predictor name; a key naming an encoded
    dummy column (``"col=level"``) overrides the parent weight for that dummy.
    """
    out = {}
    missing = []
    for col in columns:
        if col in weights:
            w = weights[col]
        elif encoder.source[col] in weights:
            w = weights[encoder.source[col]]
        else:
            missing.append(encoder.source[col])
            continue
        out[col] = _as_weight(col, w)
    if missing:
        raise InvalidWeight(f"No weight supplied for predictors: {sorted(set(missing))}")
    return WeightVector(weights=out)


def has_importance(model) -> bool:
    return hasattr(model, "feature_importances_") or hasattr(model, "coef_")


def model_importance(model, variables: Sequence[str] | None = None) -> dict[str, float]:
    """
    Per-variable importance of a fitted scikit-learn style model:
    ``feature_importances_`` if present, otherwise absolute ``coef_`` averaged
    over outputs. Names come from ``feature_names_in_`` unless given.
    """
    if hasattr(model, "feature_importances_"):
        imp = np.asarray(model.feature_importances_, dtype=float).ravel()
    elif hasattr(model, "coef_"):
        coef = np.abs(np.atleast_2d(np.asarray(model.coef_, dtype=float)))
        imp = coef.mean(axis=0)
    else:
        raise InvalidWeight(f"Model {type(model).__name__} exposes no variable importance")

    if variables is None:
        if not hasattr(model, "feature_names_in_"):
            raise InvalidWeight("Model has no feature_names_in_; pass the variable names explicitly")
        variables = list(model.feature_names_in_)
    if len(variables) != len(imp):
        raise InvalidWeight(f"Model reports {len(imp)} importances for {len(variables)} variables")
    return {str(v): float(i) for v, i in zip(variables, imp)}


def weights_from_importance(
    importance: Mapping[str, float],
    encoder: PredictorEncoder,
    columns: Sequence[str],
) -> WeightVector:
    """Importance scores as weights; negative importances count as zero."""
    clipped = {}
    for name, imp in importance.items():
        imp = _as_weight(name, imp, allow_negative=True)
        if imp < 0:
            logger.debug("negative_importance_clipped", variable=name, importance=imp)
        clipped[name] = max(imp, 0.0)
    return explicit_weights(clipped, encoder, columns)


def resolve_weights(
    encoder: PredictorEncoder,
    columns: Sequence[str],
    weights: Mapping[str, float] | None = None,
    importance: Mapping[str, float] | None = None,
) -> WeightVector:
    """Explicit weights win over model importance; uniform otherwise."""
    if weights is not None:
        source = "explicit"
        wv = explicit_weights(weights, encoder, columns)
    elif importance is not None:
        source = "model_importance"
        wv = weights_from_importance(importance, encoder, columns)
    else:
        source = "uniform"
        wv = uniform_weights(columns)
    logger.debug("weights_resolved", source=source, n_columns=len(columns))
    return wv


def _as_weight(name: str, w, allow_negative: bool = False) -> float:
    try:
        w = float(w)
    except (TypeError, ValueError) as e:
        raise InvalidWeight(f"Weight for '{name}' is not a number: {w!r}") from e
    if not np.isfinite(w):
        raise InvalidWeight(f"Weight for '{name}' is not finite: {w}")
    if w < 0 and not allow_negative:
        raise InvalidWeight(f"Weight for '{name}' is negative: {w}")
    return w
