"""
Property-based tests using Hypothesis for the distance engine and the
DI/AOA pipeline.
"""

import hypothesis.strategies as st
import numpy as np
import pandas as pd
from hypothesis import HealthCheck, assume, given, settings
from hypothesis.extra.numpy import arrays

from aoa.config import AOASettings
from aoa.distance import DistanceEngine, FoldExclusion
from aoa.domain import AOAEvaluator

finite = st.floats(min_value=-1e3, max_value=1e3, allow_nan=False, allow_infinity=False)
weight = st.floats(min_value=0.0, max_value=10.0, allow_nan=False, allow_infinity=False)


def matrices(n_rows, n_cols):
    return arrays(np.float64, (n_rows, n_cols), elements=finite)


@st.composite
def training_sets(draw, min_rows=3, max_rows=12, n_cols=2):
    n = draw(st.integers(min_value=min_rows, max_value=max_rows))
    X = draw(matrices(n, n_cols))
    folds = draw(st.lists(st.integers(min_value=-1, max_value=3), min_size=n, max_size=n))
    w = draw(arrays(np.float64, (n_cols,), elements=weight))
    return X, np.asarray(folds), w


FAST = AOASettings(_env_file=None, probabilities=[0.95], chunk_size=5)


@given(training_sets())
@settings(max_examples=100)
def test_prop_training_minimum_is_non_negative(case):
    """Nearest eligible distance is >= 0, and 0 only for a coincident eligible row."""
    X, codes, w = case
    engine = DistanceEngine(w)
    dmin, _ = engine.nearest(X, X, exclude=FoldExclusion(codes))
    full = engine.pairwise(X, X, exclude=FoldExclusion(codes))
    for i, d in enumerate(dmin):
        if np.isinf(d):
            continue
        assert d >= 0.0
        if d == 0.0:
            j = int(np.argmin(full[i]))
            assert j != i
            assert codes[i] < 0 or codes[j] != codes[i]


@given(training_sets())
@settings(max_examples=100)
def test_prop_nearest_never_in_own_fold(case):
    """Minimum is attained by an eligible row even when a same-fold row is closer."""
    X, codes, w = case
    engine = DistanceEngine(w)
    dmin, _ = engine.nearest(X, X, exclude=FoldExclusion(codes))
    raw = engine.pairwise(X, X)
    for i in range(len(X)):
        eligible = [j for j in range(len(X)) if j != i and (codes[i] < 0 or codes[j] != codes[i])]
        if not eligible:
            assert np.isinf(dmin[i])
        else:
            assert dmin[i] == raw[i, eligible].min()


@given(
    a=arrays(np.float64, (3,), elements=finite),
    b=arrays(np.float64, (3,), elements=finite),
    w=arrays(np.float64, (3,), elements=weight),
    k=st.integers(min_value=0, max_value=2),
    bump=st.floats(min_value=0.0, max_value=10.0, allow_nan=False),
)
@settings(max_examples=200)
def test_prop_weight_monotonicity(a, b, w, k, bump):
    """Raising one weight never decreases the distance between two points."""
    w2 = w.copy()
    w2[k] += bump
    d1 = DistanceEngine(w).pairwise(a[None, :], b[None, :])[0, 0]
    d2 = DistanceEngine(w2).pairwise(a[None, :], b[None, :])[0, 0]
    assert d2 >= d1


@given(
    A=matrices(15, 3),
    B=matrices(10, 3),
    w=arrays(np.float64, (3,), elements=weight),
    chunk=st.integers(min_value=1, max_value=20),
)
@settings(max_examples=50)
def test_prop_chunking_is_bit_identical(A, B, w, chunk):
    reference, _ = DistanceEngine(w, chunk_size=15).nearest(A, B)
    got, _ = DistanceEngine(w, chunk_size=chunk).nearest(A, B)
    np.testing.assert_array_equal(got, reference)


@given(
    values=st.lists(st.floats(min_value=-100, max_value=100, allow_nan=False), min_size=4, max_size=15, unique=True),
    query=st.lists(st.floats(min_value=-500, max_value=500, allow_nan=False), min_size=1, max_size=5),
    factor=st.floats(min_value=1e-3, max_value=1e3, allow_nan=False),
)
@settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
def test_prop_di_is_scale_invariant(values, query, factor):
    """Multiplying a raw predictor by a positive constant leaves DI unchanged."""
    values = np.asarray(values)
    assume(np.ptp(values) > 1e-3)
    aux = np.arange(len(values), dtype=float)
    train = pd.DataFrame({"x": values, "aux": aux})
    new = pd.DataFrame({"x": np.asarray(query), "aux": np.zeros(len(query))})

    plain = AOAEvaluator(train, settings=FAST).evaluate(new)
    scaled = AOAEvaluator(train.assign(x=values * factor), settings=FAST).evaluate(new.assign(x=new["x"] * factor))
    np.testing.assert_allclose(scaled.di, plain.di, rtol=1e-6, atol=1e-9)


@given(
    values=st.lists(st.floats(min_value=-100, max_value=100, allow_nan=False), min_size=3, max_size=12, unique=True),
    query=st.lists(st.floats(min_value=-500, max_value=500, allow_nan=False), min_size=1, max_size=5),
)
@settings(max_examples=50)
def test_prop_di_non_negative_and_flags_consistent(values, query):
    assume(np.ptp(values) > 1e-3)
    ev = AOAEvaluator(pd.DataFrame({"x": values}), settings=FAST)
    result = ev.evaluate(pd.DataFrame({"x": query}))
    assert (result.di >= 0.0).all()
    np.testing.assert_array_equal(result.inside, (result.di <= ev.train_di.threshold).astype(np.int8))
