"""
Algorithm Core Library - projection and clustering of style score matrices.

This module provides the numeric engines (statistics, PCA, UMAP-like
embedding, k-means, silhouette search) with no dependency on the service
layer, so they can be reused and tested in isolation.
"""

from .statistics import CorrelationMatrix, correlation_matrix, pearson_correlation
from .dimensionality_reduction import (
    JacobiResult,
    covariance_matrix,
    jacobi_eigen,
    pca,
    pca_project,
    standardize,
)
from .embedding import BaseEmbedder, EmbeddingParams, UmapLikeEmbedder, embed
from .clustering import (
    KMeansResult,
    adjusted_rand_index,
    co_membership_matrix,
    find_optimal_k,
    find_optimal_k_scores,
    kmeans,
    silhouette_samples,
    silhouette_score,
)

__all__ = [
    # Statistics
    "CorrelationMatrix",
    "correlation_matrix",
    "pearson_correlation",
    # Dimensionality reduction
    "JacobiResult",
    "covariance_matrix",
    "jacobi_eigen",
    "pca",
    "pca_project",
    "standardize",
    # Embedding
    "BaseEmbedder",
    "EmbeddingParams",
    "UmapLikeEmbedder",
    "embed",
    # Clustering
    "KMeansResult",
    "adjusted_rand_index",
    "co_membership_matrix",
    "find_optimal_k",
    "find_optimal_k_scores",
    "kmeans",
    "silhouette_samples",
    "silhouette_score",
]
