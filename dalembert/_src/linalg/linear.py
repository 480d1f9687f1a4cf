# SPDX-FileCopyrightText: Copyright (c) 2025 The Newton Developers
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""dalembert: Linear Algebra: Dense linear system solver classes"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any

import numpy as np
import scipy.linalg

from ..core.types import override
from . import factorize
from .matrix import (
    _make_tolerance,
    assert_is_square_matrix,
    assert_is_symmetric_matrix,
    default_rank_threshold,
)

###
# Module interface
###

__all__ = [
    "ColPivHouseholderQRSolver",
    "DirectSolver",
    "FullPivHouseholderQRSolver",
    "HouseholderQRSolver",
    "LLTSolver",
    "LinearSolver",
    "LinearSolverMethod",
    "LinearSolverType",
    "PartialPivLUSolver",
    "RankRevealingSolver",
    "linsys_error_inf",
    "make_linear_solver",
]


###
# Types
###


class LinearSolverMethod(IntEnum):
    """Selects the dense factorization used to solve square linear systems."""

    PARTIAL_PIV_LU = 0
    """LU decomposition with partial (row) pivoting. Requires an invertible matrix."""

    HOUSEHOLDER_QR = 1
    """Householder QR without pivoting. Requires an invertible matrix."""

    COL_PIV_HOUSEHOLDER_QR = 2
    """Householder QR with column pivoting. Rank revealing, tolerates singular matrices."""

    FULL_PIV_HOUSEHOLDER_QR = 3
    """Householder QR with complete pivoting. Rank revealing, the most robust and slowest option."""

    LLT = 4
    """Cholesky factorization. Requires a symmetric positive-definite matrix."""


###
# Utilities
###


def _check_system_compatibility(A: np.ndarray, b: np.ndarray) -> None:
    if A is None:
        raise ValueError("No matrix has been provided to the solver, call `compute()` first.")
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"Matrix A must be square (n x n) but has shape {A.shape}.")
    if b.ndim != 1 or b.shape[0] != A.shape[0]:
        raise ValueError(f"Vector b ({b.shape}) must have compatible dimensions with A ({A.shape}).")


def linsys_error_inf(A: np.ndarray, b: np.ndarray, x: np.ndarray) -> float:
    return np.max(np.abs(A @ x - b), initial=0.0)


###
# Solver Interfaces
###


class LinearSolver(ABC):
    def __init__(
        self,
        A: np.ndarray | None = None,
        dtype: np.dtype = np.float64,
        **kwargs: dict[str, Any],
    ):
        # Override dtype if matrix A is provided
        if A is not None:
            dtype = A.dtype.type

        # Initialize internal meta-data
        self._dtype: np.dtype = np.dtype(dtype)
        self._error_abs: float | None = None
        self._error_rel: float | None = None

        # Declare internal solver data
        self._matrix: np.ndarray | None = None
        self._rhs: np.ndarray | None = None

        # If a matrix is provided, proceed with its pre-computation
        if A is not None:
            self.compute(A, **kwargs)

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def solve_error_abs(self) -> float | None:
        """The L∞ residual of the last solve, if it was requested."""
        return self._error_abs

    @property
    def solve_error_rel(self) -> float | None:
        """The L∞ residual of the last solve relative to the magnitudes of `A`, `x` and `b`."""
        return self._error_rel

    @property
    def matrix(self) -> np.ndarray | None:
        return self._matrix

    ###
    # Internals
    ###

    def _compute_solve_error(self, A: np.ndarray, b: np.ndarray, x: np.ndarray):
        """Computes the absolute and relative solution error."""
        eps = np.finfo(A.dtype).eps
        norm_x = np.linalg.norm(x, ord=np.inf)
        norm_b = np.linalg.norm(b, ord=np.inf)
        norm_A = np.linalg.norm(A, ord=np.inf)
        denom = max(norm_A * norm_x, norm_b, eps)
        self._error_abs = linsys_error_inf(A, b, x)
        self._error_rel = self._error_abs / denom

    ###
    # Implementation API
    ###

    @abstractmethod
    def _compute_impl(self, A: np.ndarray, **kwargs) -> None:
        raise NotImplementedError("Compute operation is not implemented.")

    @abstractmethod
    def _solve_inplace_impl(self, x: np.ndarray, **kwargs) -> None:
        raise NotImplementedError("Solve in-place operation is not implemented.")

    ###
    # Public API
    ###

    def compute(self, A: np.ndarray, **kwargs):
        """Ingest matrix and precompute rhs-independent intermediate."""
        self._matrix = A
        self._dtype = A.dtype
        self._compute_impl(A, **kwargs)
        return self

    def solve_inplace(self, x: np.ndarray, compute_error: bool = False, **kwargs):
        """Solves the linear system `A@x = b` in-place, where `x` is initialized with the system rhs."""
        _check_system_compatibility(self._matrix, x)
        if compute_error:
            self._rhs = x.copy()
        self._solve_inplace_impl(x, **kwargs)
        if compute_error:
            self._compute_solve_error(self._matrix, self._rhs, x)
        else:
            self._error_abs = None
            self._error_rel = None

    def solve(self, b: np.ndarray, compute_error: bool = False, **kwargs) -> np.ndarray:
        """Solves the linear system `A@x = b`"""
        x = np.array(b, dtype=self._dtype)
        self.solve_inplace(x, compute_error=compute_error, **kwargs)
        return x


class DirectSolver(LinearSolver):
    def __init__(
        self,
        A: np.ndarray | None = None,
        ftol: float | None = None,
        dtype: np.dtype = np.float64,
        compute_error: bool = False,
        check_error: bool = False,
        check_symmetry: bool = False,
        **kwargs: dict[str, Any],
    ):
        # Check for unused kwargs
        if kwargs:
            raise TypeError(f"Unused kwargs: {list(kwargs)}")

        # Default factorization tolerance to machine epsilon if not provided
        dtype = np.dtype(A.dtype if A is not None else dtype)
        self._ftol: float = _make_tolerance(ftol, dtype=dtype)
        self._has_factors: bool = False

        # Declare additional internal data
        self._factorization_error_abs: float | None = None
        self._factorization_error_rel: float | None = None

        # Initialize base class members
        super().__init__(
            A=A,
            dtype=dtype,
            compute_error=compute_error,
            check_error=check_error,
            check_symmetry=check_symmetry,
        )

    @property
    def compute_error_abs(self) -> float | None:
        return self._factorization_error_abs

    @property
    def compute_error_rel(self) -> float | None:
        return self._factorization_error_rel

    ###
    # Internals
    ###

    def _check_has_factorization(self):
        """Checks if the factorization has been computed, otherwise raises error."""
        if not self._has_factors:
            raise ValueError("A factorization has not been computed!")

    def _compute_factorization_errors(self, A: np.ndarray):
        """Computes the matrix factorization error."""
        A_rec = self.reconstructed()
        norm_A = np.linalg.norm(A, ord=np.inf)
        self._factorization_error_abs = np.linalg.norm(A - A_rec, ord=np.inf)
        self._factorization_error_rel = self._factorization_error_abs / norm_A if norm_A > 0 else 0.0

    ###
    # Implementation API
    ###

    @abstractmethod
    def _factorize_impl(self, A: np.ndarray) -> None:
        raise NotImplementedError("Factorization implementation is not provided.")

    @abstractmethod
    def _reconstruct_impl(self) -> np.ndarray:
        raise NotImplementedError("Reconstruction implementation is not provided.")

    @override
    def _compute_impl(self, A: np.ndarray, **kwargs):
        self._factorize(A, **kwargs)

    def _factorize(
        self,
        A: np.ndarray,
        ftol: float | None = None,
        compute_error: bool = False,
        check_error: bool = False,
        check_symmetry: bool = False,
        **kwargs: dict[str, Any],
    ):
        # Check for unused kwargs
        if kwargs:
            raise TypeError(f"Unused kwargs: {list(kwargs)}")

        # Perform basic checks on the input matrix
        assert_is_square_matrix(A)
        if check_symmetry:
            assert_is_symmetric_matrix(A)
        if ftol is not None:
            self._ftol = _make_tolerance(ftol, dtype=self._dtype)

        # Factorize the specified matrix
        self._has_factors = False
        self._factorize_impl(A)
        self._has_factors = True

        # Optionally compute the matrix factorization error
        if compute_error or check_error:
            self._compute_factorization_errors(A)
            if check_error and self._factorization_error_rel > self._ftol:
                raise ValueError(
                    f"L∞ matrix factorization error {self._factorization_error_rel} exceeds tolerance {self._ftol}."
                )
        else:
            self._factorization_error_abs = None
            self._factorization_error_rel = None

    ###
    # Public API
    ###

    def reconstructed(self) -> np.ndarray:
        """Reconstructs the original matrix from the factorization."""
        self._check_has_factorization()
        return self._reconstruct_impl()


class RankRevealingSolver(DirectSolver):
    """
    A direct solver whose factorization exposes the numerical rank of the
    matrix. Singular systems are solved in the least-squares sense, returning
    the basic solution whose components past the rank are zero.
    """

    def __init__(self, A: np.ndarray | None = None, threshold: float | None = None, **kwargs: dict[str, Any]):
        self._threshold: float | None = threshold
        self._rank: int = 0
        super().__init__(A=A, **kwargs)

    @property
    def threshold(self) -> float | None:
        """Relative pivot threshold, defaults to `eps * n` when `None`."""
        return self._threshold

    @property
    def rank(self) -> int:
        self._check_has_factorization()
        return self._rank

    def _count_rank(self, R: np.ndarray) -> int:
        threshold = self._threshold
        if threshold is None:
            threshold = default_rank_threshold(R.shape, R.dtype)
        return factorize.qr_fullpiv_rank(R, threshold)


###
# Solvers
###


class PartialPivLUSolver(DirectSolver):
    """LU decomposition with partial pivoting via `scipy.linalg.lu_factor` (LAPACK _getrf)."""

    def __init__(self, A: np.ndarray | None = None, **kwargs: dict[str, Any]):
        self._lu: np.ndarray | None = None
        self._piv: np.ndarray | None = None
        super().__init__(A=A, **kwargs)

    @override
    def _factorize_impl(self, A: np.ndarray) -> None:
        self._lu, self._piv = scipy.linalg.lu_factor(A, check_finite=False)

    @override
    def _reconstruct_impl(self) -> np.ndarray:
        P, L, U = scipy.linalg.lu(self._matrix)
        return P @ L @ U

    @override
    def _solve_inplace_impl(self, x: np.ndarray) -> None:
        x[:] = scipy.linalg.lu_solve((self._lu, self._piv), x, check_finite=False)


class HouseholderQRSolver(DirectSolver):
    """Householder QR without pivoting via `scipy.linalg.qr` (LAPACK _geqrf)."""

    def __init__(self, A: np.ndarray | None = None, **kwargs: dict[str, Any]):
        self._Q: np.ndarray | None = None
        self._R: np.ndarray | None = None
        super().__init__(A=A, **kwargs)

    @override
    def _factorize_impl(self, A: np.ndarray) -> None:
        self._Q, self._R = scipy.linalg.qr(A, check_finite=False)

    @override
    def _reconstruct_impl(self) -> np.ndarray:
        return self._Q @ self._R

    @override
    def _solve_inplace_impl(self, x: np.ndarray) -> None:
        x[:] = scipy.linalg.solve_triangular(self._R, self._Q.T @ x, lower=False, check_finite=False)


class ColPivHouseholderQRSolver(RankRevealingSolver):
    """Householder QR with column pivoting via `scipy.linalg.qr(pivoting=True)` (LAPACK _geqp3)."""

    def __init__(self, A: np.ndarray | None = None, **kwargs: dict[str, Any]):
        self._Q: np.ndarray | None = None
        self._R: np.ndarray | None = None
        self._p: np.ndarray | None = None
        super().__init__(A=A, **kwargs)

    @override
    def _factorize_impl(self, A: np.ndarray) -> None:
        self._Q, self._R, self._p = scipy.linalg.qr(A, pivoting=True, check_finite=False)
        self._rank = self._count_rank(self._R)

    @override
    def _reconstruct_impl(self) -> np.ndarray:
        A = np.empty_like(self._R)
        A[:, self._p] = self._Q @ self._R
        return A

    @override
    def _solve_inplace_impl(self, x: np.ndarray) -> None:
        r = self._rank
        c = self._Q.T @ x
        y = np.zeros_like(x)
        if r > 0:
            y[:r] = scipy.linalg.solve_triangular(self._R[:r, :r], c[:r], lower=False, check_finite=False)
        x[self._p] = y


class FullPivHouseholderQRSolver(RankRevealingSolver):
    """Householder QR with complete pivoting."""

    def __init__(self, A: np.ndarray | None = None, **kwargs: dict[str, Any]):
        self._Q: np.ndarray | None = None
        self._R: np.ndarray | None = None
        self._p: np.ndarray | None = None
        super().__init__(A=A, **kwargs)

    @override
    def _factorize_impl(self, A: np.ndarray) -> None:
        self._Q, self._R, self._p = factorize.qr_fullpiv(A)
        self._rank = self._count_rank(self._R)

    @override
    def _reconstruct_impl(self) -> np.ndarray:
        return factorize.qr_fullpiv_reconstruct(self._Q, self._R, self._p)

    @override
    def _solve_inplace_impl(self, x: np.ndarray) -> None:
        x[:] = factorize.qr_fullpiv_solve(self._Q, self._R, self._p, x, rank=self._rank)


class LLTSolver(DirectSolver):
    """Cholesky factorization via `scipy.linalg.cholesky` (LAPACK _potrf)."""

    def __init__(self, A: np.ndarray | None = None, **kwargs: dict[str, Any]):
        self._L: np.ndarray | None = None
        super().__init__(A=A, **kwargs)

    @override
    def _factorize_impl(self, A: np.ndarray) -> None:
        try:
            self._L = scipy.linalg.cholesky(A, lower=True, check_finite=False)
        except np.linalg.LinAlgError as e:
            raise ValueError(f"LLT factorization failed, matrix is not positive definite: {e}") from e

    @override
    def _reconstruct_impl(self) -> np.ndarray:
        return self._L @ self._L.T

    @override
    def _solve_inplace_impl(self, x: np.ndarray) -> None:
        x[:] = scipy.linalg.cho_solve((self._L, True), x, check_finite=False)


###
# Factory
###


LinearSolverType = (
    PartialPivLUSolver | HouseholderQRSolver | ColPivHouseholderQRSolver | FullPivHouseholderQRSolver | LLTSolver
)
"""Type alias over all dense linear solvers."""


_SOLVER_TYPES: dict[LinearSolverMethod, type[DirectSolver]] = {
    LinearSolverMethod.PARTIAL_PIV_LU: PartialPivLUSolver,
    LinearSolverMethod.HOUSEHOLDER_QR: HouseholderQRSolver,
    LinearSolverMethod.COL_PIV_HOUSEHOLDER_QR: ColPivHouseholderQRSolver,
    LinearSolverMethod.FULL_PIV_HOUSEHOLDER_QR: FullPivHouseholderQRSolver,
    LinearSolverMethod.LLT: LLTSolver,
}


def make_linear_solver(method: LinearSolverMethod, A: np.ndarray | None = None, **kwargs) -> LinearSolverType:
    """Creates the dense solver selected by `method`, factorizing `A` if given."""
    return _SOLVER_TYPES[LinearSolverMethod(method)](A=A, **kwargs)
