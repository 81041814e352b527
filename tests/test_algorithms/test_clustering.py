"""
Tests for clustering algorithms.
"""

import asyncio

import numpy as np
import pytest

from style_space.algorithms.clustering import (
    adjusted_rand_index,
    co_membership_matrix,
    find_optimal_k,
    find_optimal_k_scores,
    kmeans,
    silhouette_samples,
    silhouette_score,
)


def _blobs(rng, centers, n_per, scale=0.2):
    centers = np.asarray(centers, dtype=float)
    points = np.vstack([c + rng.standard_normal((n_per, centers.shape[1])) * scale for c in centers])
    truth = np.repeat(np.arange(len(centers)), n_per)
    return points, truth


# ------------------------------------------------------------------
# kmeans
# ------------------------------------------------------------------


def test_kmeans_label_range(rng):
    X = rng.standard_normal((40, 2))

    result = kmeans(X, 4, rng=rng)

    assert result.labels.shape == (40,)
    assert set(result.labels.tolist()) <= {0, 1, 2, 3}
    assert result.centroids.shape == (4, 2)
    assert result.inertia >= 0
    assert 1 <= result.n_iter <= 100


def test_kmeans_recovers_separated_blobs(rng):
    """The lowest-inertia run over a few seeds finds the true partition."""
    X, truth = _blobs(rng, [[0, 0], [10, 0], [0, 10]], n_per=10)

    runs = [kmeans(X, 3, rng=np.random.default_rng(seed)) for seed in range(10)]
    best = min(runs, key=lambda r: r.inertia)

    assert adjusted_rand_index(best.labels, truth) == pytest.approx(1.0)


def test_kmeans_two_groups_on_1d_projection(rng):
    """Groups separated along a single coordinate land in different clusters."""
    Z = [[-1.22], [-1.22], [1.22], [1.22]]

    result = kmeans(Z, 2, rng=rng)

    assert result.labels[0] == result.labels[1]
    assert result.labels[2] == result.labels[3]
    assert result.labels[0] != result.labels[2]


def test_kmeans_k1_inertia_is_total_sum_of_squares(rng):
    X = rng.uniform(1, 10, size=(25, 3))

    result = kmeans(X, 1, rng=rng)

    expected = np.sum((X - X.mean(axis=0)) ** 2)
    assert result.inertia == pytest.approx(expected)
    np.testing.assert_array_equal(result.labels, 0)
    np.testing.assert_allclose(result.centroids[0], X.mean(axis=0))


def test_kmeans_inertia_not_worse_than_random_assignment(rng):
    X, _ = _blobs(rng, [[0, 0], [5, 5], [0, 5]], n_per=8, scale=0.5)
    k = 3

    result = kmeans(X, k, rng=rng)

    random_labels = np.arange(len(X)) % k
    baseline = sum(
        np.sum((X[random_labels == j] - X[random_labels == j].mean(axis=0)) ** 2)
        for j in range(k)
    )
    assert result.inertia <= baseline


def test_kmeans_inertia_matches_centroids(rng):
    X = rng.standard_normal((30, 2))

    result = kmeans(X, 3, rng=rng)

    expected = np.sum((X - result.centroids[result.labels]) ** 2)
    assert result.inertia == pytest.approx(expected)


def test_kmeans_identical_points_fallback():
    """Fewer distinct points than k: one cluster, no centroids, no exception."""
    result = kmeans([[2, 2], [2, 2], [2, 2]], 2)

    np.testing.assert_array_equal(result.labels, [0, 0, 0])
    assert len(result.centroids) == 0
    assert result.inertia == 0.0


def test_kmeans_more_clusters_than_points_fallback():
    result = kmeans([[1.0], [2.0]], 3)
    np.testing.assert_array_equal(result.labels, [0, 0])
    assert len(result.centroids) == 0


def test_kmeans_non_positive_k_fallback():
    result = kmeans([[1.0, 2.0], [3.0, 4.0]], 0)
    np.testing.assert_array_equal(result.labels, [0, 0])


def test_kmeans_duplicates_still_cluster(rng):
    """Duplicates do not count twice when seeding: two distinct values, k=2."""
    X = [[1.0], [1.0], [1.0], [9.0]]

    result = kmeans(X, 2, rng=rng)

    assert result.labels[0] == result.labels[1] == result.labels[2]
    assert result.labels[3] != result.labels[0]


def test_kmeans_seeded_runs_are_reproducible():
    X = np.random.default_rng(0).standard_normal((30, 3))

    a = kmeans(X, 4, rng=np.random.default_rng(123))
    b = kmeans(X, 4, rng=np.random.default_rng(123))

    np.testing.assert_array_equal(a.labels, b.labels)
    assert a.inertia == b.inertia


def test_kmeans_does_not_mutate_input(rng):
    X = [[1.0, 2.0], [1.5, 2.5], [8.0, 9.0], [8.5, 9.5]]
    copy = [row[:] for row in X]
    kmeans(X, 2, rng=rng)
    assert X == copy


def test_kmeans_max_iterations_respected(rng):
    X = rng.standard_normal((50, 2))
    result = kmeans(X, 5, max_iterations=1, rng=rng)
    assert result.n_iter == 1


# ------------------------------------------------------------------
# silhouette
# ------------------------------------------------------------------


def test_silhouette_hand_computed():
    X = [[0.0], [1.0], [10.0], [11.0]]
    labels = [0, 0, 1, 1]

    sil = silhouette_samples(X, labels)

    # point 0: a = 1, b = mean(10, 11) = 10.5
    assert sil[0] == pytest.approx((10.5 - 1.0) / 10.5)
    # point 1: a = 1, b = mean(9, 10) = 9.5
    assert sil[1] == pytest.approx((9.5 - 1.0) / 9.5)


def test_silhouette_singleton_cluster():
    """A point alone in its cluster has a = 0, so its silhouette is 1."""
    sil = silhouette_samples([[0.0], [5.0], [6.0]], [0, 1, 1])
    assert sil[0] == pytest.approx(1.0)


def test_silhouette_single_cluster_undefined():
    sil = silhouette_samples([[0.0], [1.0], [2.0]], [0, 0, 0])
    assert np.all(np.isnan(sil))
    assert silhouette_score([[0.0], [1.0], [2.0]], [0, 0, 0]) is None


def test_silhouette_ignores_unassigned():
    sil = silhouette_samples([[0.0], [1.0], [10.0], [50.0]], [0, 0, 1, -1])
    assert np.isnan(sil[3])
    assert np.all(np.isfinite(sil[:3]))


def test_silhouette_range(rng):
    X = rng.standard_normal((30, 2))
    labels = rng.integers(0, 4, size=30)

    sil = silhouette_samples(X, labels)

    valid = sil[~np.isnan(sil)]
    assert np.all(valid >= -1.0)
    assert np.all(valid <= 1.0)


def test_silhouette_label_length_mismatch():
    with pytest.raises(ValueError, match="labels"):
        silhouette_samples([[0.0], [1.0]], [0])


# ------------------------------------------------------------------
# optimal k
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_find_optimal_k_three_locations(rng):
    """Three distinct locations: k=3 puts each in its own cluster."""
    X = [[0.0, 0.0]] * 4 + [[20.0, 0.0]] * 4 + [[0.0, 20.0]] * 4

    k = await find_optimal_k(X, 2, 6, rng=rng)

    assert k == 3


@pytest.mark.asyncio
async def test_find_optimal_k_within_range(rng):
    X = rng.standard_normal((15, 2))

    k = await find_optimal_k(X, 2, 5, rng=rng)

    assert 2 <= k <= 5


@pytest.mark.asyncio
async def test_find_optimal_k_too_few_points():
    assert await find_optimal_k([[1.0, 1.0]], 3, 8) == 3
    assert await find_optimal_k([], 2, 4) == 2


@pytest.mark.asyncio
async def test_find_optimal_k_skips_k_above_n(rng):
    X = [[0.0], [0.1], [10.0], [10.1]]

    scores = await find_optimal_k_scores(X, 2, 10, rng=rng)

    assert set(scores) == {2, 3, 4}


@pytest.mark.asyncio
async def test_find_optimal_k_no_defined_score_returns_min_k():
    """Identical points never form two clusters, so no k can be scored."""
    k = await find_optimal_k([[1.0], [1.0], [1.0]], 2, 3)
    assert k == 2


@pytest.mark.asyncio
async def test_find_optimal_k_tie_keeps_smallest_k(monkeypatch):
    """Equal scores keep the earliest (smallest) k."""
    from style_space.algorithms import clustering

    monkeypatch.setattr(clustering, "silhouette_score", lambda points, labels: 0.5)

    k = await find_optimal_k([[0.0], [1.0], [2.0], [3.0], [4.0]], 2, 4)

    assert k == 2


@pytest.mark.asyncio
async def test_find_optimal_k_invalid_range():
    with pytest.raises(ValueError, match="min_k"):
        await find_optimal_k([[0.0], [1.0]], 5, 2)
    with pytest.raises(ValueError, match="min_k must be >= 1"):
        await find_optimal_k_scores([[0.0], [1.0]], 0, 2)


@pytest.mark.asyncio
async def test_find_optimal_k_yields_between_candidates(rng):
    """Other tasks get to run while the search is in progress."""
    X, _ = _blobs(rng, [[0, 0], [10, 10]], n_per=6)
    ticks = []

    async def ticker():
        for _ in range(50):
            ticks.append(1)
            await asyncio.sleep(0)

    tick_task = asyncio.create_task(ticker())
    await find_optimal_k(X, 2, 6, rng=rng)
    ticks_during_search = len(ticks)
    await tick_task

    assert ticks_during_search > 0


# ------------------------------------------------------------------
# Structure comparison helpers
# ------------------------------------------------------------------


def test_co_membership_ignores_label_values():
    a = co_membership_matrix([0, 0, 1, 1])
    b = co_membership_matrix([1, 1, 0, 0])
    np.testing.assert_array_equal(a, b)
    assert a[0, 1] and not a[0, 2]


def test_adjusted_rand_index():
    labels_a = np.array([0, 0, 1, 1, 2, 2])
    labels_b = np.array([2, 2, 0, 0, 1, 1])

    assert adjusted_rand_index(labels_a, labels_b) == pytest.approx(1.0)

    labels_c = np.array([0, 1, 0, 1, 0, 1])
    assert -1.0 <= adjusted_rand_index(labels_a, labels_c) <= 1.0
