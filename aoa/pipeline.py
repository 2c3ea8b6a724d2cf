from __future__ import annotations

from typing import Mapping, Optional, Sequence

import pandas as pd

from .config import AOASettings, get_settings
from .domain import AOAEvaluator, FoldsLike
from .errors import ConfigurationConflict
from .logging import get_logger
from .model_loader import ModelBundle
from .scorer import AOAResult
from .weights import has_importance

logger = get_logger(__name__)


def build_evaluator(
    model: Optional[ModelBundle] = None,
    train: Optional[pd.DataFrame] = None,
    *,
    variables: Optional[Sequence[str]] = None,
    weights: Optional[Mapping[str, float]] = None,
    use_weight: bool = True,
    folds: FoldsLike = None,
    probabilities: Optional[Sequence[float]] = None,
    method: Optional[str] = None,
    response: Optional[str] = None,
    chunk_size: Optional[int] = None,
    executor=None,
    settings: Optional[AOASettings] = None,
) -> AOAEvaluator:
    """
    Fit an evaluator from exactly one source of training data: a model bundle
    (training table, importance and stored CV folds) or an explicit table.
    Explicit ``weights`` and ``folds`` override what the bundle provides.
    """
    if model is None and train is None:
        raise ConfigurationConflict("Supply either a trained model bundle or a training table")
    if model is not None and train is not None:
        raise ConfigurationConflict("Supply a trained model bundle or a training table, not both")
    if not use_weight and weights is not None:
        raise ConfigurationConflict("Explicit weights were given with use_weight=False")

    importance = None
    if model is not None:
        train = model.train
        if variables is None:
            variables = model.variables
        if folds is None:
            folds = model.folds()
        if weights is None and use_weight:
            if has_importance(model.model):
                importance = model.importance()
            else:
                logger.warning("model_has_no_importance", model=model.name)

    return AOAEvaluator(
        train,
        variables=variables,
        weights=weights if use_weight else None,
        importance=importance,
        folds=folds,
        probabilities=probabilities,
        method=method,
        response=response,
        chunk_size=chunk_size,
        executor=executor,
        settings=settings,
    )


def aoa(
    newdata: pd.DataFrame,
    model: Optional[ModelBundle] = None,
    train: Optional[pd.DataFrame] = None,
    *,
    lpd: Optional[bool] = None,
    settings: Optional[AOASettings] = None,
    **options,
) -> AOAResult:
    """
    Dissimilarity Index and Area of Applicability of ``newdata``.
    ``options`` are passed to ``build_evaluator``.
    """
    evaluator = build_evaluator(model, train, settings=settings, **options)
    if lpd is None:
        lpd = (settings or get_settings()).compute_lpd
    return evaluator.evaluate(newdata, lpd=lpd)


def aoa_from_bundle(bundle: ModelBundle, df: pd.DataFrame, **options) -> pd.DataFrame:
    """
    Score an uploaded table containing all required predictor columns.
    Output is the input table with DI and AOA columns appended.
    """
    result = aoa(df, model=bundle, **options)
    out = df.copy()
    for col, values in result.to_frame().items():
        out[col] = values.to_numpy()
    return out
