"""
Gaussian Process Surrogate

Squared-exponential (RBF) Gaussian-process regression used by the Bayesian
optimizer. The Cholesky factorization is written out explicitly so that a
non positive-definite kernel matrix is reported as ``None`` instead of raising.
"""

from typing import NamedTuple, Optional, Sequence
import numpy as np
import structlog

logger = structlog.get_logger()

# Lower bound on predictive variance
MIN_VARIANCE = 1e-10

class Prediction(NamedTuple):
    mean: float
    variance: float

    @property
    def std(self) -> float:
        return float(np.sqrt(self.variance))

def rbf_kernel(
    x1: Sequence[float],
    x2: Sequence[float],
    length_scale: float,
    variance: float = 1.0
) -> float:
    """k(x, x') = variance * exp(-||x - x'||^2 / (2 * length_scale^2))"""
    diff = np.asarray(x1, dtype=float) - np.asarray(x2, dtype=float)
    sq_dist = float(np.dot(diff, diff))
    return variance * float(np.exp(-sq_dist / (2 * length_scale * length_scale)))

def kernel_matrix(
    X: Sequence[Sequence[float]],
    length_scale: float,
    variance: float,
    noise: float
) -> np.ndarray:
    """Symmetric kernel matrix with ``noise`` added to the diagonal"""
    n = len(X)
    K = np.zeros((n, n))

    for i in range(n):
        for j in range(i, n):
            kij = rbf_kernel(X[i], X[j], length_scale, variance)
            K[i, j] = kij
            K[j, i] = kij
        K[i, i] += noise

    return K

def cholesky_factor(K: np.ndarray) -> Optional[np.ndarray]:
    """
    Lower-triangular L with K = L L^T.

    Returns None when a diagonal term is not strictly positive, i.e. K is not
    positive definite.
    """
    K = np.asarray(K, dtype=float)
    n = K.shape[0]
    L = np.zeros((n, n))

    for i in range(n):
        for j in range(i + 1):
            s = float(np.dot(L[i, :j], L[j, :j]))

            if i == j:
                diag = K[i, i] - s
                # NaN fails the comparison as well
                if not diag > 0:
                    return None
                L[i, j] = np.sqrt(diag)
            else:
                L[i, j] = (K[i, j] - s) / L[j, j]

    return L

def solve_with_factor(L: np.ndarray, y) -> np.ndarray:
    """
    Solve (L L^T) alpha = y by forward then back substitution.

    ``y`` may be a vector or a matrix with one right-hand side per column.
    """
    y = np.asarray(y, dtype=float)
    n = L.shape[0]

    # Forward substitution: L z = y
    z = np.zeros_like(y)
    for i in range(n):
        z[i] = (y[i] - L[i, :i] @ z[:i]) / L[i, i]

    # Back substitution: L^T alpha = z
    alpha = np.zeros_like(y)
    for i in range(n - 1, -1, -1):
        alpha[i] = (z[i] - L[i + 1:, i] @ alpha[i + 1:]) / L[i, i]

    return alpha

def cholesky_solve(K: np.ndarray, y: Sequence[float]) -> Optional[np.ndarray]:
    """
    Solve K alpha = y via Cholesky decomposition.

    Returns:
        alpha, or None if K is not positive definite
    """
    L = cholesky_factor(K)
    if L is None:
        return None
    return solve_with_factor(L, y)

def predict(
    x_star: Sequence[float],
    X: Sequence[Sequence[float]],
    alpha: Sequence[float],
    length_scale: float,
    variance: float = 1.0,
    noise: float = 1e-4
) -> Prediction:
    """
    Predictive mean and variance at ``x_star``.

    The kernel matrix is rebuilt and refactored on every call;
    :class:`GaussianProcessModel` caches the factor instead.
    """
    k_star = np.array([rbf_kernel(x_star, xi, length_scale, variance) for xi in X])
    mean = float(np.dot(k_star, alpha)) if len(X) else 0.0

    k_self = rbf_kernel(x_star, x_star, length_scale, variance) + noise

    K = kernel_matrix(X, length_scale, variance, noise)
    v = cholesky_solve(K, k_star)
    reduction = float(np.dot(k_star, v)) if v is not None and len(X) else 0.0

    return Prediction(mean, max(k_self - reduction, MIN_VARIANCE))

class GaussianProcessModel:
    """
    RBF Gaussian process with a fixed length scale.

    ``fit`` factors the kernel matrix once; ``predict`` reuses that factor for
    every query point.
    """

    def __init__(self, length_scale: float = 0.5, variance: float = 1.0, noise: float = 1e-4):
        if length_scale <= 0:
            raise ValueError("length_scale must be positive")
        self.length_scale = length_scale
        self.variance = variance
        self.noise = noise

        self.X: Optional[np.ndarray] = None
        self.alpha: Optional[np.ndarray] = None
        self._L: Optional[np.ndarray] = None

    @property
    def is_fitted(self) -> bool:
        return self.alpha is not None

    def fit(self, X: Sequence[Sequence[float]], y: Sequence[float]) -> bool:
        """
        Fit the model to observations.

        Returns:
            False if the kernel matrix could not be factored (the model is left
            unfitted), True otherwise
        """
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float)
        if len(X) != len(y):
            raise ValueError(f"X has {len(X)} rows but y has {len(y)} values")

        self.X, self.alpha, self._L = None, None, None

        if len(X) == 0 or not np.all(np.isfinite(y)):
            return False

        K = kernel_matrix(X, self.length_scale, self.variance, self.noise)
        L = cholesky_factor(K)
        if L is None:
            logger.debug("Kernel matrix not positive definite",
                        points=len(X), length_scale=self.length_scale)
            return False

        self.X = X
        self._L = L
        self.alpha = solve_with_factor(L, y)
        return True

    def predict(self, x_star: Sequence[float]) -> Prediction:
        """Predictive mean and variance using the cached factor"""
        means, variances = self.predict_batch(np.atleast_2d(np.asarray(x_star, dtype=float)))
        return Prediction(float(means[0]), float(variances[0]))

    def predict_batch(self, X_star: np.ndarray):
        """
        Predictive means and variances for every row of ``X_star``.

        Returns:
            Tuple of (means, variances) arrays
        """
        if not self.is_fitted:
            raise RuntimeError("GaussianProcessModel.predict called before a successful fit")

        X_star = np.asarray(X_star, dtype=float)
        diff = X_star[:, None, :] - self.X[None, :, :]
        sq_dist = np.sum(diff * diff, axis=-1)
        k_star = self.variance * np.exp(-sq_dist / (2 * self.length_scale ** 2))

        means = k_star @ self.alpha

        # One right-hand side per query point
        v = solve_with_factor(self._L, k_star.T)
        reduction = np.sum(k_star.T * v, axis=0)
        variances = np.maximum(self.variance + self.noise - reduction, MIN_VARIANCE)

        return means, variances
