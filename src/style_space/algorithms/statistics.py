"""
Correlation statistics over axis scores.

Provides the pairwise Pearson correlation (on partially observed data) and
the axis x axis correlation matrix.
"""

from __future__ import annotations

import math
from typing import Dict, Optional, Sequence

import numpy as np

from ..models import Axis, Style

CorrelationMatrix = Dict[str, Dict[str, Optional[float]]]


def _is_missing(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def pearson_correlation(
    x: Sequence[Optional[float]], y: Sequence[Optional[float]]
) -> Optional[float]:
    """
    Pearson correlation coefficient over positions where both values exist.

    Args:
        x: Scores of the first axis, aligned by style (None = unscored)
        y: Scores of the second axis, aligned by style

    Returns:
        Coefficient in [-1, 1]; 0.0 when either variable has no variation;
        None when fewer than 2 valid pairs exist.

    Raises:
        ValueError: If x and y differ in length
    """
    if len(x) != len(y):
        raise ValueError(f"x and y must have equal length, got {len(x)} and {len(y)}")

    pairs = [(a, b) for a, b in zip(x, y) if not _is_missing(a) and not _is_missing(b)]
    if len(pairs) < 2:
        return None

    data = np.asarray(pairs, dtype=np.float64)
    dev = data - data.mean(axis=0)
    numerator = float(np.sum(dev[:, 0] * dev[:, 1]))
    denominator = math.sqrt(float(np.sum(dev[:, 0] ** 2)) * float(np.sum(dev[:, 1] ** 2)))
    if denominator == 0:
        return 0.0
    return float(np.clip(numerator / denominator, -1.0, 1.0))


def correlation_matrix(
    axes: Sequence[Axis], styles: Sequence[Style]
) -> CorrelationMatrix:
    """
    Correlation of every axis against every other, based on style scores.

    The diagonal is 1.0 by definition and is never computed.

    Args:
        axes: Axes to correlate (order defines iteration order of the result)
        styles: Styles providing the scores

    Returns:
        Nested mapping axis_id -> axis_id -> coefficient or None
    """
    columns = {axis.id: [style.score(axis.id) for style in styles] for axis in axes}

    matrix: CorrelationMatrix = {}
    for i, a in enumerate(axes):
        matrix[a.id] = {}
        for j, b in enumerate(axes):
            if i == j:
                matrix[a.id][b.id] = 1.0
            elif j < i:
                # symmetric: reuse the value computed for (b, a)
                matrix[a.id][b.id] = matrix[b.id][a.id]
            else:
                matrix[a.id][b.id] = pearson_correlation(columns[a.id], columns[b.id])
    return matrix
