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

"""dalembert: Linear Algebra: Matrix properties and checks"""

import numpy as np

###
# Module interface
###

__all__ = [
    "DEFAULT_MATRIX_SYMMETRY_EPS",
    "assert_is_matrix",
    "assert_is_square_matrix",
    "assert_is_symmetric_matrix",
    "default_rank_threshold",
    "is_square_matrix",
    "is_symmetric_matrix",
    "symmetry_error_max_abs",
]


###
# Constants
###

DEFAULT_MATRIX_SYMMETRY_EPS = 1e-10
"""A global constant to configure the tolerance on matrix symmetry checks."""


###
# Utilities
###


def _make_tolerance(tol: float | None = None, dtype: np.dtype = np.float64):
    dtype = np.dtype(dtype)
    eps = np.finfo(dtype).eps
    if tol is None:
        tol = dtype.type(eps)
    elif not isinstance(tol, float | np.float32 | np.float64):
        raise ValueError("tolerance 'tol' must be a `float`, `np.float32`, or `np.float64` value.")
    return dtype.type(max(tol, eps))


def default_rank_threshold(shape: tuple[int, int], dtype: np.dtype = np.float64) -> float:
    """Relative pivot threshold below which a rank-revealing factorization treats a pivot as zero."""
    return float(np.finfo(dtype).eps * max(max(shape), 1))


def is_square_matrix(A: np.ndarray) -> bool:
    return A.ndim == 2 and A.shape[0] == A.shape[1]


def is_symmetric_matrix(A: np.ndarray, tol: float | None = None) -> bool:
    tol = _make_tolerance(tol=tol, dtype=A.dtype)
    return np.allclose(A, A.T, atol=tol, rtol=0.0)


def symmetry_error_max_abs(A: np.ndarray) -> float:
    """Largest entry-wise deviation `max |A - A^T|`, the quantity bounded by `is_symmetric_matrix`."""
    return float(np.max(np.abs(A - A.T), initial=0.0))


def assert_is_matrix(A: np.ndarray) -> None:
    if not isinstance(A, np.ndarray) or A.ndim != 2:
        raise ValueError(f"Expected a 2D matrix but got {type(A).__name__} with shape {np.shape(A)}.")


def assert_is_square_matrix(A: np.ndarray) -> None:
    if not is_square_matrix(A):
        raise ValueError(f"Matrix is not square, has shape {A.shape}.")


def assert_is_symmetric_matrix(A: np.ndarray) -> None:
    eps = max(_make_tolerance(dtype=A.dtype), A.dtype.type(DEFAULT_MATRIX_SYMMETRY_EPS))
    if not is_symmetric_matrix(A, tol=eps):
        error = symmetry_error_max_abs(A)
        raise ValueError(f"Matrix is not symmetric within tolerance {eps}, with max |A - A^T| = {error}")
