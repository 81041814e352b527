"""
Projection Service - builds score matrices, projects them and clusters the result.

This is the orchestration layer between the style store and the numeric
engines. It decides whether there is enough input to run an engine and
reports "select axes first" / "insufficient data" conditions as a status
instead of raising.

Usage:
    from style_space.models import ProjectionMode
    from style_space.services import ProjectionRequest, ProjectionService

    service = ProjectionService()
    request = ProjectionRequest(
        mode=ProjectionMode.PCA,
        axis_ids=["complexity", "saturation", "lighting"],
        dimension=2,
        cluster=True,
        auto_k=True,
    )
    result = await service.project(styles, request)
    print(result.points, result.labels, result.suggested_k)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..algorithms.clustering import find_optimal_k, kmeans
from ..algorithms.dimensionality_reduction import pca
from ..algorithms.embedding import BaseEmbedder, EmbeddingParams, UmapLikeEmbedder
from ..config import config
from ..models import (
    UNASSIGNED,
    ProjectedPoint,
    ProjectionMode,
    ScoreBounds,
    ScoreFilter,
    Style,
)
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


class ProjectionStatus(str, Enum):
    """Outcome of a projection run."""

    OK = "ok"
    NO_AXES = "no_axes"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass
class ProjectionRequest:
    """What to project and whether to cluster it."""

    mode: ProjectionMode
    axis_ids: Sequence[str]
    dimension: int = 2
    cluster: bool = False
    n_clusters: int = 3
    auto_k: bool = False
    min_k: int = 2
    max_k: int = 10
    filters: Sequence[ScoreFilter] = ()
    calculate_on_filtered: bool = False
    embedding_params: Optional[EmbeddingParams] = None

    def __post_init__(self):
        """Validate caller input."""
        self.mode = ProjectionMode(self.mode)
        if self.dimension not in (1, 2, 3):
            raise ValueError(f"dimension must be 1, 2 or 3, got {self.dimension}")
        if self.n_clusters < 1:
            raise ValueError(f"n_clusters must be >= 1, got {self.n_clusters}")
        if self.min_k < 1:
            raise ValueError(f"min_k must be >= 1, got {self.min_k}")
        if self.min_k > self.max_k:
            raise ValueError(f"min_k ({self.min_k}) must be <= max_k ({self.max_k})")


@dataclass
class ProjectionResult:
    """Coordinates and cluster labels keyed by style id."""

    status: ProjectionStatus
    points: Dict[str, Tuple[float, ...]] = field(default_factory=dict)
    labels: Dict[str, int] = field(default_factory=dict)
    suggested_k: Optional[int] = None
    centroids: Optional[np.ndarray] = None
    inertia: Optional[float] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == ProjectionStatus.OK

    def projected_points(self) -> List[ProjectedPoint]:
        return [ProjectedPoint(style_id, coords) for style_id, coords in self.points.items()]


def build_score_matrix(
    styles: Sequence[Style], axis_ids: Sequence[str], bounds: ScoreBounds
) -> np.ndarray:
    """
    Dense (styles x axes) score matrix.

    Rows follow *styles*, columns follow *axis_ids*. Missing scores become
    the interval midpoint; present scores are clamped into the interval.
    """
    matrix = np.empty((len(styles), len(axis_ids)), dtype=np.float64)
    for i, style in enumerate(styles):
        for j, axis_id in enumerate(axis_ids):
            value = style.score(axis_id)
            matrix[i, j] = bounds.midpoint if value is None else bounds.clamp(value)
    return matrix


def filter_styles(styles: Sequence[Style], filters: Sequence[ScoreFilter]) -> List[str]:
    """Ids of the styles passing every filter (all styles when there are none)."""
    return [s.id for s in styles if all(f.matches(s) for f in filters)]


def manual_projection(
    styles: Sequence[Style], axis_ids: Sequence[str], bounds: ScoreBounds
) -> np.ndarray:
    """Raw scores on the given axes used directly as coordinates."""
    return build_score_matrix(styles, axis_ids, bounds)


class ProjectionService:
    """
    Runs projection and clustering requests over a set of styles.

    Every run builds its own working matrices, so concurrent runs on the
    same service do not interfere.
    """

    def __init__(
        self,
        bounds: Optional[ScoreBounds] = None,
        embedder: Optional[BaseEmbedder] = None,
        rng: Optional[np.random.Generator] = None,
        kmeans_max_iter: Optional[int] = None,
        jacobi_max_iter: Optional[int] = None,
    ):
        """
        Initialize the projection service.

        Args:
            bounds: Scoring interval (default: from configuration)
            embedder: Non-linear embedding strategy (default: UmapLikeEmbedder)
            rng: Parent random generator; every run derives its own child
                (default: from configuration, seeded by STYLE_SPACE_SEED)
            kmeans_max_iter: k-means iteration cap (default: from configuration)
            jacobi_max_iter: Jacobi rotation cap (default: from configuration)
        """
        self.bounds = bounds or config.bounds
        self.embedder = embedder or UmapLikeEmbedder()
        self.rng = rng if rng is not None else config.make_rng()
        self.kmeans_max_iter = kmeans_max_iter or config.algorithms.kmeans_max_iter
        self.jacobi_max_iter = jacobi_max_iter or config.algorithms.jacobi_max_iter

    async def _project_matrix(
        self,
        working: Sequence[Style],
        request: ProjectionRequest,
        rng: np.random.Generator,
    ) -> Optional[np.ndarray]:
        axis_ids = list(request.axis_ids)
        if request.mode == ProjectionMode.MANUAL:
            return manual_projection(working, axis_ids[: request.dimension], self.bounds)

        matrix = build_score_matrix(working, axis_ids, self.bounds)
        if request.mode == ProjectionMode.PCA:
            return pca(
                matrix,
                request.dimension,
                max_iterations=self.jacobi_max_iter,
                tolerance=config.algorithms.jacobi_tolerance,
            )
        params = request.embedding_params or config.embedding_params()
        return await self.embedder.embed(matrix, request.dimension, params, rng=rng)

    async def project(
        self, styles: Sequence[Style], request: ProjectionRequest
    ) -> ProjectionResult:
        """
        Project *styles* according to *request* and optionally cluster them.

        Args:
            styles: All styles in the space, in display order
            request: Projection mode, axis selection and clustering options

        Returns:
            ProjectionResult. Status NO_AXES when no (or, for manual mode, too
            few) axes are selected; INSUFFICIENT_DATA when the engine cannot
            run on the working set.
        """
        if not request.axis_ids:
            return ProjectionResult(
                status=ProjectionStatus.NO_AXES,
                message=f"Select source axes for {request.mode.value.upper()} projection.",
            )
        if request.mode == ProjectionMode.MANUAL and len(request.axis_ids) < request.dimension:
            return ProjectionResult(
                status=ProjectionStatus.NO_AXES,
                message=f"Select {request.dimension} axes for a {request.dimension}D view.",
            )

        # Each run draws from its own child generator
        rng = np.random.default_rng(self.rng.integers(2**63))

        passing = set(filter_styles(styles, request.filters))
        working = [s for s in styles if s.id in passing] if request.calculate_on_filtered else list(styles)
        if not working:
            return ProjectionResult(
                status=ProjectionStatus.INSUFFICIENT_DATA,
                message="No styles to project.",
            )

        logger.info(
            "Projecting %d styles on %d axes (mode=%s, dimension=%d)",
            len(working),
            len(request.axis_ids),
            request.mode.value,
            request.dimension,
        )
        await asyncio.sleep(0)
        coords = await self._project_matrix(working, request, rng)
        if coords is None:
            return ProjectionResult(
                status=ProjectionStatus.INSUFFICIENT_DATA,
                message=f"Not enough data for {request.mode.value.upper()} projection.",
            )

        result = ProjectionResult(
            status=ProjectionStatus.OK,
            points={s.id: tuple(float(v) for v in coords[i]) for i, s in enumerate(working)},
        )
        if request.cluster:
            await self._cluster(styles, working, coords, passing, request, result, rng)
        return result

    async def _cluster(
        self,
        styles: Sequence[Style],
        working: Sequence[Style],
        coords: np.ndarray,
        passing: set,
        request: ProjectionRequest,
        result: ProjectionResult,
        rng: np.random.Generator,
    ) -> None:
        """Fill *result* with cluster labels for the filter-passing working styles."""
        member_rows = [i for i, s in enumerate(working) if s.id in passing]
        points = coords[member_rows]

        k = request.n_clusters
        if request.auto_k:
            # k = N makes every point a singleton, so only k < N is searched
            max_k = min(request.max_k, len(member_rows) - 1)
            if max_k < request.min_k:
                result.message = (
                    f"Clustering skipped: {len(member_rows)} styles for at least "
                    f"{request.min_k} clusters."
                )
                logger.info(result.message)
                return
            k = await find_optimal_k(
                points,
                request.min_k,
                max_k,
                max_iterations=self.kmeans_max_iter,
                rng=rng,
            )
            result.suggested_k = k

        if len(member_rows) <= k:
            result.message = (
                f"Clustering skipped: {len(member_rows)} styles for {k} clusters."
            )
            logger.info(result.message)
            return

        clustering = kmeans(points, k, self.kmeans_max_iter, rng=rng)
        labels = {s.id: UNASSIGNED for s in styles}
        for row, label in zip(member_rows, clustering.labels):
            labels[working[row].id] = int(label)
        result.labels = labels
        result.centroids = clustering.centroids
        result.inertia = clustering.inertia


async def compute_projection(
    styles: Sequence[Style],
    request: ProjectionRequest,
    *,
    bounds: Optional[ScoreBounds] = None,
    embedder: Optional[BaseEmbedder] = None,
    rng: Optional[np.random.Generator] = None,
) -> ProjectionResult:
    """One-shot projection with a throwaway ProjectionService."""
    service = ProjectionService(bounds=bounds, embedder=embedder, rng=rng)
    return await service.project(styles, request)
