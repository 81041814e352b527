"""Service layer for Style Space."""

from .projection_service import (
    ProjectionRequest,
    ProjectionResult,
    ProjectionService,
    ProjectionStatus,
    build_score_matrix,
    compute_projection,
    filter_styles,
    manual_projection,
)

__all__ = [
    "ProjectionRequest",
    "ProjectionResult",
    "ProjectionService",
    "ProjectionStatus",
    "build_score_matrix",
    "compute_projection",
    "filter_styles",
    "manual_projection",
]
