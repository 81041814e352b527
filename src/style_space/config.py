"""
Configuration management for Style Space.

Loads configuration from environment variables (typically from a .env file).
Uses python-dotenv to load .env automatically.

Usage:
    from style_space.config import config

    bounds = config.bounds
    params = config.embedding_params()
    rng = config.make_rng()
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
from dotenv import load_dotenv

from .algorithms.embedding import EmbeddingParams
from .models import ScoreBounds

# Look for .env in project root (parent of src/)
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class AlgorithmConfig:
    """Iteration caps and hyperparameter defaults for the numeric engines."""

    kmeans_max_iter: int = 100
    jacobi_max_iter: int = 100
    jacobi_tolerance: float = 1e-10
    umap_n_neighbors: int = 15
    umap_min_dist: float = 0.1
    umap_n_epochs: int = 200
    seed: Optional[int] = None

    def __post_init__(self):
        """Validate ranges."""
        if self.kmeans_max_iter < 1:
            raise ValueError(f"kmeans_max_iter must be >= 1, got {self.kmeans_max_iter}")
        if self.jacobi_max_iter < 1:
            raise ValueError(f"jacobi_max_iter must be >= 1, got {self.jacobi_max_iter}")
        if self.jacobi_tolerance <= 0:
            raise ValueError(f"jacobi_tolerance must be > 0, got {self.jacobi_tolerance}")
        if self.umap_n_neighbors < 2:
            raise ValueError(f"umap_n_neighbors must be >= 2, got {self.umap_n_neighbors}")
        if self.umap_n_epochs < 1:
            raise ValueError(f"umap_n_epochs must be >= 1, got {self.umap_n_epochs}")


class Config:
    """
    Application configuration loaded from environment variables.

    Environment variables can be set:
    1. In a .env file in the project root
    2. In the system environment
    3. In a container/deployment environment
    """

    def __init__(self):
        """Load configuration from environment."""
        self.bounds = ScoreBounds(
            min_score=_env_float("STYLE_SPACE_MIN_SCORE", 1.0),
            max_score=_env_float("STYLE_SPACE_MAX_SCORE", 10.0),
        )
        seed_raw = os.getenv("STYLE_SPACE_SEED")
        self.algorithms = AlgorithmConfig(
            kmeans_max_iter=_env_int("STYLE_SPACE_KMEANS_MAX_ITER", 100),
            jacobi_max_iter=_env_int("STYLE_SPACE_JACOBI_MAX_ITER", 100),
            jacobi_tolerance=_env_float("STYLE_SPACE_JACOBI_TOLERANCE", 1e-10),
            umap_n_neighbors=_env_int("STYLE_SPACE_UMAP_NEIGHBORS", 15),
            umap_min_dist=_env_float("STYLE_SPACE_UMAP_MIN_DIST", 0.1),
            umap_n_epochs=_env_int("STYLE_SPACE_UMAP_EPOCHS", 200),
            seed=_env_int("STYLE_SPACE_SEED", 0) if seed_raw else None,
        )
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

    def embedding_params(self) -> EmbeddingParams:
        """
        Build default embedding hyperparameters from the environment.

        Returns:
            EmbeddingParams with n_neighbors, min_dist and n_epochs overridden
        """
        return EmbeddingParams(
            n_neighbors=self.algorithms.umap_n_neighbors,
            min_dist=self.algorithms.umap_min_dist,
            n_epochs=self.algorithms.umap_n_epochs,
        )

    def make_rng(self) -> np.random.Generator:
        """Return a generator seeded from STYLE_SPACE_SEED (fresh entropy if unset)."""
        return np.random.default_rng(self.algorithms.seed)


# Global config instance
config = Config()
