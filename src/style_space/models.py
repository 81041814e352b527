"""
Data model for the style space.

Styles are scored on axes inside a closed interval (ScoreBounds). These
dataclasses are the shapes the store collaborator hands to the projection
pipeline; nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

# Cluster label for styles excluded from clustering (e.g. filtered out)
UNASSIGNED = -1


@dataclass(frozen=True)
class ScoreBounds:
    """Closed scoring interval shared by every axis."""

    min_score: float = 1.0
    max_score: float = 10.0

    def __post_init__(self):
        """Validate that the interval is not inverted."""
        if self.min_score > self.max_score:
            raise ValueError(
                f"min_score ({self.min_score}) must be <= max_score ({self.max_score})"
            )

    @property
    def midpoint(self) -> float:
        """Score substituted for a missing style/axis value."""
        return (self.min_score + self.max_score) / 2.0

    def clamp(self, value: float) -> float:
        return min(max(float(value), self.min_score), self.max_score)


@dataclass
class Axis:
    """A user-defined numeric dimension styles are scored on."""

    id: str
    name: str
    description: str = ""
    color: str = "#FFFFFF"


@dataclass
class Style:
    """A named entity scored along axes; unscored axes are absent from *scores*."""

    id: str
    name: str
    scores: Dict[str, float] = field(default_factory=dict)
    description: str = ""

    def score(self, axis_id: str) -> Optional[float]:
        return self.scores.get(axis_id)


@dataclass(frozen=True)
class ScoreFilter:
    """Inclusive score range a style must fall in on one axis."""

    axis_id: str
    min_score: float
    max_score: float

    def matches(self, style: Style) -> bool:
        value = style.score(self.axis_id)
        if value is None:
            return False
        return self.min_score <= value <= self.max_score


class ProjectionMode(str, Enum):
    """How score vectors are mapped to display coordinates."""

    MANUAL = "manual"
    PCA = "pca"
    UMAP = "umap"


@dataclass(frozen=True)
class ProjectedPoint:
    """A style id paired with its 1-3 dimensional coordinates for one run."""

    style_id: str
    coordinates: Tuple[float, ...]
