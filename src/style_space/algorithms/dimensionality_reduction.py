"""
Dimensionality reduction for style score matrices.

Provides standardization, covariance, Jacobi eigendecomposition and PCA
projection. Insufficient input yields None instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Array2D = np.ndarray
MatrixIn = Union[np.ndarray, Sequence[Sequence[float]]]


@dataclass
class JacobiResult:
    """Eigenpairs of a real symmetric matrix (eigenvectors are columns)."""

    eigenvalues: np.ndarray
    eigenvectors: Array2D
    n_iter: int
    converged: bool


def standardize(X: MatrixIn) -> Tuple[Array2D, np.ndarray, np.ndarray]:
    """
    Standardize each column to zero mean and unit sample standard deviation.

    Constant columns (std == 0) are divided by 1 instead, so they come out
    as all zeros.

    Args:
        X: Data of shape (n_samples, n_features), n_samples >= 2

    Returns:
        Tuple of (standardized data, column means, column stds used as divisors)
    """
    X = np.array(X, dtype=np.float64)
    means = X.mean(axis=0)
    stds = X.std(axis=0, ddof=1)
    stds = np.where(stds == 0, 1.0, stds)
    return (X - means) / stds, means, stds


def covariance_matrix(Z: MatrixIn) -> Array2D:
    """
    Unbiased (N-1) covariance matrix of mean-centered data.

    Only the upper triangle is computed; the lower one is mirrored so the
    result is exactly symmetric.
    """
    Z = np.asarray(Z, dtype=np.float64)
    n, p = Z.shape
    cov = np.zeros((p, p), dtype=np.float64)
    for i in range(p):
        for j in range(i, p):
            value = float(Z[:, i] @ Z[:, j]) / (n - 1)
            cov[i, j] = value
            cov[j, i] = value
    return cov


def jacobi_eigen(
    A: MatrixIn, max_iterations: int = 100, tolerance: float = 1e-10
) -> JacobiResult:
    """
    Eigendecomposition of a real symmetric matrix with the classic Jacobi method.

    Each iteration zeroes the largest-magnitude off-diagonal element with a
    plane rotation and accumulates the rotation into the eigenvector matrix.
    Stops when that element drops below *tolerance* or after
    *max_iterations* rotations. Hitting the cap is not an error: the best
    values so far are returned with ``converged=False``.

    Args:
        A: Symmetric matrix of shape (p, p)
        max_iterations: Rotation cap
        tolerance: Off-diagonal magnitude treated as zero

    Returns:
        JacobiResult with unsorted eigenvalues and column eigenvectors
    """
    A = np.array(A, dtype=np.float64)
    n = A.shape[0]
    V = np.eye(n)
    off_mask = np.triu(np.ones((n, n), dtype=bool), k=1)

    n_iter = 0
    converged = n < 2
    for _ in range(max_iterations if n >= 2 else 0):
        off = np.where(off_mask, np.abs(A), 0.0)
        flat = int(np.argmax(off))
        p, q = divmod(flat, n)
        if off[p, q] < tolerance:
            converged = True
            break
        n_iter += 1

        app, aqq, apq = A[p, p], A[q, q], A[p, q]
        phi = 0.5 * np.arctan2(2.0 * apq, aqq - app)
        c, s = np.cos(phi), np.sin(phi)

        col_p = A[:, p].copy()
        col_q = A[:, q].copy()
        A[:, p] = c * col_p - s * col_q
        A[:, q] = s * col_p + c * col_q
        A[p, :] = A[:, p]
        A[q, :] = A[:, q]
        A[p, p] = c * c * app + s * s * aqq - 2.0 * s * c * apq
        A[q, q] = s * s * app + c * c * aqq + 2.0 * s * c * apq
        A[p, q] = 0.0
        A[q, p] = 0.0

        v_p = V[:, p].copy()
        v_q = V[:, q].copy()
        V[:, p] = c * v_p - s * v_q
        V[:, q] = s * v_p + c * v_q
    else:
        if n >= 2:
            # Cap reached; check whether the final rotation converged
            converged = float(np.max(np.abs(A[off_mask]))) < tolerance

    if not converged:
        logger.warning(
            "Jacobi eigendecomposition did not converge after %d iterations "
            "(max off-diagonal %.3e)",
            n_iter,
            float(np.max(np.abs(A[off_mask]))),
        )
    return JacobiResult(
        eigenvalues=np.diag(A).copy(),
        eigenvectors=V,
        n_iter=n_iter,
        converged=converged,
    )


def pca_project(
    X: MatrixIn,
    n_components: int,
    *,
    max_iterations: int = 100,
    tolerance: float = 1e-10,
) -> Optional[Tuple[Array2D, Dict[str, Any]]]:
    """
    Project data onto its top principal components.

    Standardizes the columns, builds the covariance matrix, diagonalizes it
    with the Jacobi method and projects the standardized data onto the
    eigenvectors with the largest eigenvalues.

    Args:
        X: Input data of shape (n_samples, n_features)
        n_components: Number of principal components to keep
        max_iterations: Jacobi rotation cap
        tolerance: Jacobi convergence tolerance

    Returns:
        None if the data is insufficient (fewer than 2 rows, no columns, or
        fewer columns than n_components). Otherwise a tuple of:
        - Z: Projected data of shape (n_samples, n_components)
        - meta: Dictionary with PCA metadata:
            - eigenvalues: All eigenvalues, sorted descending
            - explained_variance_ratio: Share of total variance per component kept
            - components: (n_components, n_features) eigenvectors as rows
            - means / stds: Standardization parameters
            - n_iter / converged: Jacobi diagnostics
    """
    data = np.asarray(X, dtype=np.float64)
    if data.ndim != 2 or data.shape[0] < 2 or data.shape[1] == 0:
        logger.debug("PCA skipped: insufficient data (shape %s)", data.shape)
        return None
    if n_components < 1 or data.shape[1] < n_components:
        logger.debug(
            "PCA skipped: %d components requested from %d columns",
            n_components,
            data.shape[1],
        )
        return None

    standardized, means, stds = standardize(data)
    cov = covariance_matrix(standardized)
    eig = jacobi_eigen(cov, max_iterations=max_iterations, tolerance=tolerance)

    order = np.argsort(-eig.eigenvalues, kind="stable")
    eigenvalues = eig.eigenvalues[order]
    top = eig.eigenvectors[:, order[:n_components]]  # (p, n_components)
    Z = standardized @ top

    total = float(np.sum(eigenvalues))
    ratio = eigenvalues[:n_components] / total if total > 0 else np.zeros(n_components)
    meta = {
        "eigenvalues": eigenvalues.tolist(),
        "explained_variance_ratio": ratio.tolist(),
        "components": top.T,
        "means": means.tolist(),
        "stds": stds.tolist(),
        "n_iter": eig.n_iter,
        "converged": eig.converged,
    }
    return Z, meta


def pca(
    X: MatrixIn,
    n_components: int,
    *,
    max_iterations: int = 100,
    tolerance: float = 1e-10,
) -> Optional[Array2D]:
    """
    PCA projection without metadata.

    Returns:
        Array of shape (n_samples, n_components), or None on insufficient data
    """
    result = pca_project(X, n_components, max_iterations=max_iterations, tolerance=tolerance)
    if result is None:
        return None
    return result[0]
