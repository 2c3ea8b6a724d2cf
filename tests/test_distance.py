from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from aoa.distance import CallableExclusion, DistanceEngine, FoldExclusion, SelfExclusion


class TestWeightedDistance:
    def test_weighted_euclidean_formula(self):
        engine = DistanceEngine(np.array([4.0, 1.0]))
        d = engine.pairwise(np.array([[0.0, 0.0]]), np.array([[1.0, 1.0], [0.0, 2.0]]))
        np.testing.assert_allclose(d, [[np.sqrt(5.0), 2.0]])

    def test_zero_weight_column_is_ignored(self):
        engine = DistanceEngine(np.array([1.0, 0.0]))
        d = engine.pairwise(np.array([[0.0, 0.0]]), np.array([[3.0, 100.0]]))
        assert d[0, 0] == pytest.approx(3.0)

    def test_column_mismatch_raises(self):
        engine = DistanceEngine(np.ones(2))
        with pytest.raises(ValueError):
            engine.nearest(np.zeros((1, 2)), np.zeros((1, 3)))

    def test_invalid_chunk_size_raises(self):
        with pytest.raises(ValueError):
            DistanceEngine(np.ones(1), chunk_size=0)


class TestExclusion:
    def test_self_exclusion_never_matches_itself(self):
        X = np.array([[0.0], [1.0], [3.0]])
        dmin, _ = DistanceEngine(np.ones(1)).nearest(X, X, exclude=SelfExclusion())
        np.testing.assert_allclose(dmin, [1.0, 1.0, 2.0])

    def test_fold_exclusion_skips_closer_same_fold_rows(self):
        X = np.array([[0.0], [0.1], [5.0], [5.2]])
        dmin, _ = DistanceEngine(np.ones(1)).nearest(X, X, exclude=FoldExclusion(np.array([0, 0, 1, 1])))
        np.testing.assert_allclose(dmin, [5.0, 4.9, 4.9, 5.1])

    def test_rows_without_fold_only_exclude_themselves(self):
        X = np.array([[0.0], [0.1], [5.0]])
        dmin, _ = DistanceEngine(np.ones(1)).nearest(X, X, exclude=FoldExclusion(np.array([-1, -1, -1])))
        np.testing.assert_allclose(dmin, [0.1, 0.1, 4.9])

    def test_fully_excluded_row_is_infinite(self):
        X = np.array([[0.0], [1.0]])
        dmin, _ = DistanceEngine(np.ones(1)).nearest(X, X, exclude=FoldExclusion(np.array([0, 0])))
        assert np.isinf(dmin).all()

    def test_callable_exclusion_matches_fold_rule(self, rng):
        X = rng.normal(size=(12, 3))
        codes = np.repeat(np.arange(3), 4)
        engine = DistanceEngine(np.array([1.0, 2.0, 0.5]))
        expected, _ = engine.nearest(X, X, exclude=FoldExclusion(codes))
        got, _ = engine.nearest(
            X, X, exclude=CallableExclusion(lambda i, j: codes[i] == codes[j], self_match=True)
        )
        np.testing.assert_array_equal(got, expected)


    def test_callable_exclusion_skips_self_by_default(self):
        X = np.array([[0.0], [1.0], [3.0]])
        engine = DistanceEngine(np.ones(1))
        dmin, _ = engine.nearest(X, X, exclude=CallableExclusion(lambda i, j: False))
        np.testing.assert_allclose(dmin, [1.0, 1.0, 2.0])

    def test_callable_exclusion_without_self_match(self):
        X = np.array([[0.0], [1.0], [3.0]])
        engine = DistanceEngine(np.ones(1))
        dmin, _ = engine.nearest(X, X, exclude=CallableExclusion(lambda i, j: False, self_match=False))
        np.testing.assert_array_equal(dmin, [0.0, 0.0, 0.0])

class TestChunking:
    @pytest.mark.parametrize("chunk_size", [1, 3, 7, 1000])
    def test_results_identical_for_any_chunk_size(self, rng, chunk_size):
        A = rng.normal(size=(23, 4))
        B = rng.normal(size=(31, 4))
        w = np.array([0.3, 1.0, 2.5, 0.0])
        reference, _ = DistanceEngine(w, chunk_size=23).nearest(A, B)
        got, _ = DistanceEngine(w, chunk_size=chunk_size).nearest(A, B)
        np.testing.assert_array_equal(got, reference)

    def test_executor_results_identical_to_serial(self, rng):
        A = rng.normal(size=(50, 3))
        B = rng.normal(size=(40, 3))
        w = np.ones(3)
        serial, _ = DistanceEngine(w, chunk_size=50).nearest(A, B)
        with ThreadPoolExecutor(max_workers=4) as pool:
            parallel, _ = DistanceEngine(w, chunk_size=4, executor=pool).nearest(A, B)
        np.testing.assert_array_equal(parallel, serial)

    def test_nearest_agrees_with_pairwise_minimum(self, rng):
        A = rng.normal(size=(9, 2))
        B = rng.normal(size=(6, 2))
        engine = DistanceEngine(np.array([1.0, 3.0]), chunk_size=2)
        dmin, _ = engine.nearest(A, B)
        np.testing.assert_array_equal(dmin, engine.pairwise(A, B).min(axis=1))

    def test_empty_query_returns_empty(self):
        dmin, counts = DistanceEngine(np.ones(2)).nearest(np.zeros((0, 2)), np.zeros((3, 2)), radius=1.0)
        assert dmin.shape == (0,)
        assert counts.shape == (0,)


class TestRadiusCount:
    def test_counts_neighbours_within_scaled_radius(self):
        A = np.array([[0.0]])
        B = np.array([[0.5], [1.0], [3.0]])
        _, counts = DistanceEngine(np.ones(1)).nearest(A, B, radius=0.5, scale=2.0)
        assert counts.tolist() == [2]

    def test_excluded_pairs_are_not_counted(self):
        X = np.array([[0.0], [0.0], [0.1]])
        _, counts = DistanceEngine(np.ones(1)).nearest(X, X, exclude=SelfExclusion(), radius=1.0)
        assert counts.tolist() == [2, 2, 2]
