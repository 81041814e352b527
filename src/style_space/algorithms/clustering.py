"""
Clustering of projected style points.

Provides Lloyd's k-means with distinct-point seeding, silhouette scores,
a cooperative optimal-k search and label-permutation-independent
comparison helpers.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Union

import numpy as np

from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Array2D = np.ndarray
PointsIn = Union[np.ndarray, Sequence[Sequence[float]]]


@dataclass
class KMeansResult:
    """Result of a single k-means run."""

    labels: np.ndarray
    centroids: Array2D
    inertia: float
    n_iter: int = 0


def _as_points(points: PointsIn) -> Array2D:
    """Copy *points* into a float (n, d) array; an empty input becomes (0, 0)."""
    X = np.array(points, dtype=np.float64)
    if X.size == 0:
        return X.reshape(0, X.shape[1] if X.ndim == 2 else 0)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    return X


def _total_sum_of_squares(X: Array2D) -> float:
    if X.shape[0] == 0:
        return 0.0
    return float(np.sum((X - X.mean(axis=0)) ** 2))


def _single_cluster(X: Array2D) -> KMeansResult:
    return KMeansResult(
        labels=np.zeros(X.shape[0], dtype=int),
        centroids=np.empty((0, X.shape[1])),
        inertia=_total_sum_of_squares(X),
        n_iter=0,
    )


def _assign(X: Array2D, centroids: Array2D) -> np.ndarray:
    """Nearest centroid per row; ties go to the lowest centroid index."""
    diffs = X[:, None, :] - centroids[None, :, :]  # (n, k, d)
    dists = np.sum(diffs ** 2, axis=2)  # (n, k)
    return np.argmin(dists, axis=1)


def kmeans(
    points: PointsIn,
    k: int,
    max_iterations: int = 100,
    *,
    rng: Optional[np.random.Generator] = None,
) -> KMeansResult:
    """
    Lloyd's k-means with random distinct-point initialization.

    Initial centroids are k distinct points drawn without replacement. A
    cluster that loses all its members is reseeded at a random distinct
    point, so k centroids exist on every iteration.

    When fewer than k distinct points exist (or k < 1, or there are fewer
    points than k) the result is a single cluster: every label 0, no
    centroids, inertia equal to the total sum of squares.

    Args:
        points: Data of shape (n_samples, n_dims); not modified
        k: Number of clusters
        max_iterations: Iteration cap
        rng: Random generator for seeding (fresh entropy when None)

    Returns:
        KMeansResult with labels, centroids (k, n_dims), inertia and n_iter
    """
    X = _as_points(points)
    n = X.shape[0]
    if k < 1 or n < k:
        return _single_cluster(X)

    distinct = np.unique(X, axis=0)
    if distinct.shape[0] < k:
        logger.debug(
            "k-means fallback: %d distinct points for k=%d", distinct.shape[0], k
        )
        return _single_cluster(X)

    rng = rng if rng is not None else np.random.default_rng()
    seeds = rng.choice(distinct.shape[0], size=k, replace=False)
    centroids = distinct[seeds].copy()
    labels = np.full(n, -1, dtype=int)

    n_iter = 0
    for _ in range(max_iterations):
        n_iter += 1
        new_labels = _assign(X, centroids)
        changed = not np.array_equal(new_labels, labels)
        labels = new_labels

        for j in range(k):
            members = labels == j
            if members.any():
                centroids[j] = X[members].mean(axis=0)
            else:
                centroids[j] = distinct[int(rng.integers(0, distinct.shape[0]))]

        if not changed:
            break

    inertia = float(np.sum((X - centroids[labels]) ** 2))
    logger.debug("k-means k=%d finished after %d iterations (inertia %.4f)", k, n_iter, inertia)
    return KMeansResult(labels=labels.astype(int), centroids=centroids, inertia=inertia, n_iter=n_iter)


def silhouette_samples(points: PointsIn, labels: Sequence[int]) -> np.ndarray:
    """
    Silhouette coefficient of every point.

    a(i) is the mean distance to the other members of i's cluster (0 when i
    is alone); b(i) is the smallest mean distance to the members of any other
    cluster. Points labeled -1, and points with no other non-empty cluster to
    compare against, get NaN.

    Args:
        points: Data of shape (n_samples, n_dims)
        labels: Cluster label per point

    Returns:
        Array of shape (n_samples,) with values in [-1, 1] or NaN
    """
    X = _as_points(points)
    labels = np.asarray(labels, dtype=int)
    n = X.shape[0]
    if labels.shape[0] != n:
        raise ValueError(f"labels has {labels.shape[0]} entries for {n} points")

    sil = np.full(n, np.nan, dtype=np.float64)
    clusters = [c for c in np.unique(labels) if c >= 0]
    if len(clusters) < 2:
        return sil

    diffs = X[:, None, :] - X[None, :, :]
    dist = np.sqrt(np.sum(diffs ** 2, axis=2))
    masks = {c: labels == c for c in clusters}

    for i in range(n):
        c = labels[i]
        if c < 0:
            continue
        own = masks[c]
        own_count = int(own.sum())
        a = float(dist[i, own].sum()) / (own_count - 1) if own_count > 1 else 0.0
        b = min(float(dist[i, masks[other]].mean()) for other in clusters if other != c)
        denom = max(a, b)
        sil[i] = (b - a) / denom if denom > 0 else 0.0
    return sil


def silhouette_score(points: PointsIn, labels: Sequence[int]) -> Optional[float]:
    """
    Mean silhouette coefficient over points where it is defined.

    Returns:
        Mean silhouette in [-1, 1], or None when no point has one
    """
    sil = silhouette_samples(points, labels)
    valid = sil[~np.isnan(sil)]
    if valid.size == 0:
        return None
    return float(valid.mean())


async def find_optimal_k_scores(
    points: PointsIn,
    min_k: int,
    max_k: int,
    *,
    max_iterations: int = 100,
    rng: Optional[np.random.Generator] = None,
) -> Dict[int, Optional[float]]:
    """
    Silhouette score for each candidate k, evaluated in ascending order.

    Each k gets a single k-means run. Candidates larger than the number of
    points are skipped. The coroutine suspends before every candidate.

    Args:
        points: Data of shape (n_samples, n_dims)
        min_k: Smallest k to try (>= 1)
        max_k: Largest k to try
        max_iterations: k-means iteration cap
        rng: Random generator shared by all k-means runs

    Returns:
        Mapping k -> mean silhouette (None when undefined). Empty when there
        are fewer than 2 points.

    Raises:
        ValueError: If min_k < 1 or min_k > max_k
    """
    if min_k < 1:
        raise ValueError(f"min_k must be >= 1, got {min_k}")
    if min_k > max_k:
        raise ValueError(f"min_k ({min_k}) must be <= max_k ({max_k})")

    X = _as_points(points)
    n = X.shape[0]
    scores: Dict[int, Optional[float]] = {}
    if n < 2:
        return scores

    rng = rng if rng is not None else np.random.default_rng()
    for k in range(min_k, max_k + 1):
        if k > n:
            break
        await asyncio.sleep(0)
        result = kmeans(X, k, max_iterations, rng=rng)
        scores[k] = silhouette_score(X, result.labels)
        logger.debug("Silhouette for k=%d: %s", k, scores[k])
    return scores


async def find_optimal_k(
    points: PointsIn,
    min_k: int,
    max_k: int,
    *,
    max_iterations: int = 100,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """
    Cluster count in [min_k, max_k] with the highest mean silhouette.

    Ties keep the smallest k. Returns min_k immediately for fewer than 2
    points, and also when no candidate produced a defined score.

    Raises:
        ValueError: If min_k < 1 or min_k > max_k
    """
    if min_k > max_k:
        raise ValueError(f"min_k ({min_k}) must be <= max_k ({max_k})")
    if _as_points(points).shape[0] < 2:
        return min_k

    scores = await find_optimal_k_scores(
        points, min_k, max_k, max_iterations=max_iterations, rng=rng
    )
    best_k = min_k
    best_score = -np.inf
    for k, score in scores.items():
        if score is not None and score > best_score:
            best_k, best_score = k, score
    logger.info("Optimal k=%d (silhouette %s)", best_k, scores.get(best_k))
    return best_k


def co_membership_matrix(labels: Sequence[int]) -> np.ndarray:
    """
    Boolean (n, n) matrix: True where two points share a cluster.

    Independent of label values, so two partitions are the same exactly when
    their co-membership matrices are equal.
    """
    labels = np.asarray(labels)
    return labels[:, None] == labels[None, :]


def adjusted_rand_index(labels_a: Sequence[int], labels_b: Sequence[int]) -> float:
    """
    Compute Adjusted Rand Index between two clusterings.

    ARI measures agreement between two clusterings, adjusted for chance.
    It compares partitions independent of label values, so two k-means runs
    over the same styles can be compared even when their labels are permuted.
    Returns 1.0 for identical clusterings (up to label permutation),
    ~0.0 for random agreement.

    Args:
        labels_a: First clustering labels
        labels_b: Second clustering labels

    Returns:
        ARI score in [-1, 1], typically in [0, 1]
    """
    labels_a = np.asarray(labels_a)
    labels_b = np.asarray(labels_b)
    if labels_a.shape != labels_b.shape:
        raise ValueError("label arrays must have the same length")
    n = len(labels_a)
    if n == 0:
        return 1.0
    _, a = np.unique(labels_a, return_inverse=True)
    _, b = np.unique(labels_b, return_inverse=True)

    contingency = np.zeros((a.max() + 1, b.max() + 1), dtype=np.int64)
    np.add.at(contingency, (a, b), 1)

    sum_comb = (contingency * (contingency - 1) / 2.0).sum()
    rows = contingency.sum(axis=1)
    cols = contingency.sum(axis=0)
    sum_comb_c = (rows * (rows - 1) / 2.0).sum()
    sum_comb_k = (cols * (cols - 1) / 2.0).sum()
    comb_n = n * (n - 1) / 2.0

    if comb_n == 0:
        return 1.0

    expected_index = (sum_comb_c * sum_comb_k) / comb_n
    max_index = 0.5 * (sum_comb_c + sum_comb_k)
    denom = max_index - expected_index
    if denom == 0:
        return 1.0
    return float((sum_comb - expected_index) / denom)
