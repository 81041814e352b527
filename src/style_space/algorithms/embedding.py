"""
Non-linear embedding of score matrices (UMAP-like).

The embedding engine is a strategy behind the ``BaseEmbedder`` interface so it can
be swapped for another implementation. The bundled ``UmapLikeEmbedder``
follows the UMAP recipe on dense numpy arrays, which is adequate for the
small matrices a style space produces (tens to a few hundred rows):

1. Brute-force k-nearest-neighbour graph
2. Fuzzy membership strengths (local connectivity rho, bandwidth sigma)
3. Symmetrization by probabilistic OR
4. Spectral initialization from the normalized graph Laplacian
5. SGD with edge sampling and negative sampling

Embedding coroutines suspend periodically so a caller's event loop stays
responsive.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Array2D = np.ndarray
MatrixIn = Union[np.ndarray, Sequence[Sequence[float]]]

MIN_ROWS = 3
MIN_COLUMNS = 2
SUPPORTED_DIMENSIONS = (1, 2, 3)


@dataclass(frozen=True)
class EmbeddingParams:
    """Hyperparameters of the UMAP-like embedding."""

    n_neighbors: int = 15
    min_dist: float = 0.1
    spread: float = 1.0
    n_epochs: int = 200
    learning_rate: float = 1.0
    negative_sample_rate: int = 5
    yield_every: int = 10  # epochs between event-loop suspensions

    def __post_init__(self):
        """Validate hyperparameter ranges."""
        if self.n_neighbors < 2:
            raise ValueError(f"n_neighbors must be >= 2, got {self.n_neighbors}")
        if self.min_dist < 0:
            raise ValueError(f"min_dist must be >= 0, got {self.min_dist}")
        if self.spread <= 0:
            raise ValueError(f"spread must be > 0, got {self.spread}")
        if self.min_dist > self.spread:
            raise ValueError(
                f"min_dist ({self.min_dist}) must not exceed spread ({self.spread})"
            )
        if self.n_epochs < 1:
            raise ValueError(f"n_epochs must be >= 1, got {self.n_epochs}")
        if self.yield_every < 1:
            raise ValueError(f"yield_every must be >= 1, got {self.yield_every}")


class BaseEmbedder(ABC):
    """
    Abstract base class for embedding strategies.

    Implementations must accept any row-major matrix, leave it unmodified,
    and return None (not raise) when the input is too small to embed.
    """

    @abstractmethod
    async def embed(
        self,
        X: MatrixIn,
        dimensions: int,
        params: EmbeddingParams,
        rng: Optional[np.random.Generator] = None,
    ) -> Optional[Array2D]:
        """
        Embed the rows of *X* into *dimensions* coordinates.

        Returns:
            Array of shape (n_samples, dimensions), or None on insufficient data
        """

    @abstractmethod
    def get_embedder_name(self) -> str:
        """Return a short identifier for this strategy (e.g. ``'umap'``)."""


def is_embeddable(X: np.ndarray, dimensions: int) -> bool:
    """Whether *X* is large enough for a meaningful embedding into *dimensions*."""
    return (
        X.ndim == 2
        and X.shape[0] >= MIN_ROWS
        and X.shape[1] >= MIN_COLUMNS
        and dimensions in SUPPORTED_DIMENSIONS
    )


def find_ab_params(spread: float, min_dist: float) -> Tuple[float, float]:
    """
    Fit the low-dimensional kernel ``1 / (1 + a * d^(2b))``.

    The target curve is 1 up to *min_dist* and decays as
    ``exp(-(d - min_dist) / spread)`` beyond it. The fit is a Gauss-Newton
    least-squares solve over a grid of distances.
    """
    xv = np.linspace(0.0, spread * 3.0, 300)[1:]
    yv = np.where(xv < min_dist, 1.0, np.exp(-(xv - min_dist) / spread))

    a, b = 1.6, 0.9
    log_x = np.log(xv)
    for _ in range(100):
        xb = np.power(xv, 2.0 * b)
        denom = 1.0 + a * xb
        resid = 1.0 / denom - yv
        # partial derivatives of the kernel w.r.t. a and b
        da = -xb / denom ** 2
        db = -a * xb * 2.0 * log_x / denom ** 2
        J = np.column_stack([da, db])
        step, *_ = np.linalg.lstsq(J, -resid, rcond=None)
        if not np.all(np.isfinite(step)):
            break
        a = min(max(a + step[0], 1e-3), 1e3)
        b = min(max(b + step[1], 1e-3), 10.0)
        if np.max(np.abs(step)) < 1e-8:
            break
    return float(a), float(b)


def pairwise_distances(X: Array2D) -> Array2D:
    """Euclidean distance matrix of the rows of *X*."""
    sq = np.sum(X ** 2, axis=1)
    d2 = sq[:, None] + sq[None, :] - 2.0 * (X @ X.T)
    np.fill_diagonal(d2, 0.0)
    return np.sqrt(np.maximum(d2, 0.0))


class UmapLikeEmbedder(BaseEmbedder):
    """
    UMAP-style embedding on dense arrays.

    Neighbouring rows in the input space end up close together in the
    embedding; distances between far-apart groups carry no meaning.
    """

    def get_embedder_name(self) -> str:
        return "umap"

    def _knn(self, X: Array2D, n_neighbors: int) -> Tuple[np.ndarray, np.ndarray]:
        """Return (indices, distances) of the k nearest neighbours of every row."""
        n = X.shape[0]
        k = min(n_neighbors, n - 1)
        dists = pairwise_distances(X)
        np.fill_diagonal(dists, np.inf)
        indices = np.argsort(dists, axis=1, kind="stable")[:, :k]
        return indices, np.take_along_axis(dists, indices, axis=1)

    def _fuzzy_graph(self, knn_indices: np.ndarray, knn_dists: np.ndarray) -> Array2D:
        """Symmetric fuzzy membership matrix built from the kNN graph."""
        n, k = knn_indices.shape
        target = np.log2(k) if k > 1 else 1.0
        rho = knn_dists[:, 0]

        graph = np.zeros((n, n), dtype=np.float64)
        for i in range(n):
            shifted = np.maximum(knn_dists[i] - rho[i], 0.0)
            lo, hi = 1e-6, np.inf
            sigma = 1.0
            for _ in range(64):
                total = float(np.sum(np.exp(-shifted / sigma)))
                if abs(total - target) < 1e-5:
                    break
                if total > target:
                    hi = sigma
                    sigma = (lo + hi) / 2.0
                else:
                    lo = sigma
                    sigma = sigma * 2.0 if hi == np.inf else (lo + hi) / 2.0
            graph[i, knn_indices[i]] = np.exp(-shifted / sigma)

        return graph + graph.T - graph * graph.T

    def _spectral_init(
        self, graph: Array2D, dimensions: int, rng: np.random.Generator
    ) -> Array2D:
        """Initial layout from the smallest non-trivial Laplacian eigenvectors."""
        n = graph.shape[0]
        degrees = graph.sum(axis=1)
        if np.any(degrees <= 0) or n <= dimensions + 1:
            return rng.uniform(-10.0, 10.0, size=(n, dimensions))

        d_inv_sqrt = 1.0 / np.sqrt(degrees)
        laplacian = np.eye(n) - d_inv_sqrt[:, None] * graph * d_inv_sqrt[None, :]
        _, vectors = np.linalg.eigh(laplacian)
        init = vectors[:, 1:dimensions + 1]

        spread = np.max(np.abs(init))
        if not np.isfinite(spread) or spread == 0:
            return rng.uniform(-10.0, 10.0, size=(n, dimensions))
        init = init * (10.0 / spread)
        # small jitter separates points that share a spectral position
        return init + rng.normal(scale=1e-4, size=init.shape)

    @staticmethod
    def _attraction(
        Y: Array2D, heads: np.ndarray, tails: np.ndarray, a: float, b: float
    ) -> Array2D:
        """Gradient pulling each sampled edge's head towards its tail."""
        diff = Y[heads] - Y[tails]
        dist_sq = np.sum(diff ** 2, axis=1)
        positive = dist_sq > 0.0
        safe = np.where(positive, dist_sq, 1.0)
        coeff = (-2.0 * a * b * safe ** (b - 1.0)) / (1.0 + a * safe ** b)
        coeff = np.where(positive, coeff, 0.0)
        return np.clip(coeff[:, None] * diff, -4.0, 4.0)

    @staticmethod
    def _repulsion(
        Y: Array2D, heads: np.ndarray, tails: np.ndarray, a: float, b: float
    ) -> Array2D:
        """Gradient pushing each head away from its negative sample."""
        diff = Y[heads] - Y[tails]
        dist_sq = np.sum(diff ** 2, axis=1)
        coeff = (2.0 * b) / ((0.001 + dist_sq) * (1.0 + a * dist_sq ** b))
        grad = np.clip(coeff[:, None] * diff, -4.0, 4.0)
        # coincident points get a fixed push
        grad[dist_sq == 0.0] = 4.0
        return grad

    def _sgd_epoch(
        self,
        Y: Array2D,
        heads: np.ndarray,
        tails: np.ndarray,
        neg_heads: np.ndarray,
        neg_tails: np.ndarray,
        a: float,
        b: float,
        alpha: float,
    ) -> None:
        """
        Apply one epoch of edge and negative-sample updates to *Y* in place.

        Gradients are accumulated per point and averaged over the number of
        contributions, so each point moves at most ``4 * alpha`` per axis.
        """
        n = Y.shape[0]
        delta = np.zeros_like(Y)
        attract = self._attraction(Y, heads, tails, a, b)
        np.add.at(delta, heads, attract)
        np.add.at(delta, tails, -attract)
        np.add.at(delta, neg_heads, self._repulsion(Y, neg_heads, neg_tails, a, b))

        counts = np.bincount(np.concatenate([heads, tails, neg_heads]), minlength=n)
        Y += alpha * delta / np.maximum(counts, 1)[:, None]

    async def embed(
        self,
        X: MatrixIn,
        dimensions: int,
        params: EmbeddingParams,
        rng: Optional[np.random.Generator] = None,
    ) -> Optional[Array2D]:
        """
        Embed the rows of *X* into *dimensions* coordinates.

        Each epoch updates all sampled edges and negative samples in one
        vectorised pass.

        Args:
            X: Input data of shape (n_samples, n_features); not modified
            dimensions: Output dimensionality (1, 2 or 3)
            params: Embedding hyperparameters
            rng: Random generator (fresh entropy when None)

        Returns:
            Embedding of shape (n_samples, dimensions), or None when there are
            fewer than 3 rows, fewer than 2 columns, or an unsupported
            dimensionality.
        """
        data = np.array(X, dtype=np.float64)
        if not is_embeddable(data, dimensions):
            logger.debug(
                "Embedding skipped: insufficient data (shape %s, dimensions %s)",
                data.shape,
                dimensions,
            )
            return None
        rng = rng if rng is not None else np.random.default_rng()

        await asyncio.sleep(0)

        n = data.shape[0]
        a, b = find_ab_params(params.spread, params.min_dist)
        knn_indices, knn_dists = self._knn(data, params.n_neighbors)
        graph = self._fuzzy_graph(knn_indices, knn_dists)
        Y = self._spectral_init(graph, dimensions, rng)

        rows, cols = np.nonzero(np.triu(graph, k=1))
        weights = graph[rows, cols]
        if len(rows) == 0:
            return Y

        # Edges are sampled in proportion to their membership strength
        probs = weights / weights.sum()
        samples_per_epoch = max(len(rows), n * min(params.n_neighbors, n - 1))

        for epoch in range(params.n_epochs):
            alpha = params.learning_rate * (1.0 - epoch / params.n_epochs)
            picks = rng.choice(len(rows), size=samples_per_epoch, p=probs)
            heads, tails = rows[picks], cols[picks]
            neg_heads = np.repeat(heads, params.negative_sample_rate)
            neg_tails = rng.integers(0, n, size=neg_heads.shape[0])
            keep = neg_heads != neg_tails
            self._sgd_epoch(
                Y, heads, tails, neg_heads[keep], neg_tails[keep], a, b, alpha
            )

            if (epoch + 1) % params.yield_every == 0:
                await asyncio.sleep(0)

        logger.debug(
            "Embedded %d rows into %d dimensions (%d epochs, %d edges)",
            n,
            dimensions,
            params.n_epochs,
            len(rows),
        )
        return Y


async def embed(
    X: MatrixIn,
    dimensions: int,
    params: Optional[EmbeddingParams] = None,
    *,
    embedder: Optional[BaseEmbedder] = None,
    rng: Optional[np.random.Generator] = None,
) -> Optional[Array2D]:
    """
    Non-linear embedding of *X* through the given (or default) strategy.

    Args:
        X: Input data of shape (n_samples, n_features)
        dimensions: Output dimensionality (1, 2 or 3)
        params: Hyperparameters (defaults to EmbeddingParams())
        embedder: Strategy implementing BaseEmbedder (defaults to UmapLikeEmbedder)
        rng: Random generator for initialization and sampling

    Returns:
        Array of shape (n_samples, dimensions), or None on insufficient data
    """
    strategy = embedder if embedder is not None else UmapLikeEmbedder()
    return await strategy.embed(X, dimensions, params or EmbeddingParams(), rng=rng)
