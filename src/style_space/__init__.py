"""
Style Space - Core Package

Projection and clustering pipeline for a user-defined style space: styles
scored on numeric axes, mapped to 1-3 display coordinates and grouped into
clusters.

This package provides:
- Algorithm layer (statistics, PCA, UMAP-like embedding, k-means, silhouette)
- Service layer orchestrating projection runs
- Data model and configuration
"""

__version__ = "0.1.0"

from .models import (
    UNASSIGNED,
    Axis,
    ProjectedPoint,
    ProjectionMode,
    ScoreBounds,
    ScoreFilter,
    Style,
)

# Explicitly import subpackages to ensure they're discoverable
from . import algorithms
from . import services
from . import utils

__all__ = [
    "UNASSIGNED",
    "Axis",
    "ProjectedPoint",
    "ProjectionMode",
    "ScoreBounds",
    "ScoreFilter",
    "Style",
    "algorithms",
    "services",
    "utils",
]
