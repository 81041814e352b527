"""
Pytest configuration and shared fixtures.

This file is automatically discovered by pytest and provides fixtures
available to all test modules.
"""

import numpy as np
import pytest

from style_space.models import Axis, ScoreBounds, Style


@pytest.fixture
def rng():
    """Seeded generator so randomized engines are reproducible in tests."""
    return np.random.default_rng(42)


@pytest.fixture
def bounds():
    """The default 1..10 scoring interval (midpoint 5.5)."""
    return ScoreBounds(min_score=1.0, max_score=10.0)


@pytest.fixture
def axes():
    """Three axes: A and B move together, C is unrelated."""
    return [
        Axis(id="A", name="Fine Details"),
        Axis(id="B", name="Number of Colors"),
        Axis(id="C", name="Lighting Level"),
    ]


@pytest.fixture
def two_group_styles():
    """
    Two tight groups: s1/s2 at the low corner, s3/s4 at the high corner.

    Returned in a fixed order so projected rows can be matched back.
    """
    return [
        Style(id="s1", name="ASCII art", scores={"A": 1, "B": 1}),
        Style(id="s2", name="Pixel art", scores={"A": 1, "B": 1}),
        Style(id="s3", name="Photorealism", scores={"A": 10, "B": 10}),
        Style(id="s4", name="Hyperrealism", scores={"A": 10, "B": 10}),
    ]


@pytest.fixture
def clustered_styles():
    """Twelve styles in three tight groups on axes A, B and C."""
    centers = {"low": (2, 2, 2), "mid": (5, 8, 5), "high": (9, 3, 9)}
    offsets = [(0, 0, 0), (0.3, -0.2, 0.1), (-0.2, 0.3, -0.1), (0.1, 0.1, 0.3)]
    styles = []
    for group, (a, b, c) in centers.items():
        for i, (da, db, dc) in enumerate(offsets):
            styles.append(
                Style(
                    id=f"{group}-{i}",
                    name=f"{group} {i}",
                    scores={"A": a + da, "B": b + db, "C": c + dc},
                )
            )
    return styles
