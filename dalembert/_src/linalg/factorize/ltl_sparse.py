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

"""
dalembert: Linear Algebra: Branch-induced sparse LTL factorization

Factorizes the joint-space inertia matrix of a kinematic tree as
`H = L^T L`, with `L` lower triangular. The factorization is performed in
reverse DoF order and only visits entries `(k, i)` where `i` is an ancestor
of `k`, so `L` retains the sparsity pattern of `H`. The tree structure is
given by `parent`, holding for every DoF its parent DoF or `-1`, with
`parent[k] < k`.
"""

import numpy as np

from ..matrix import assert_is_square_matrix

###
# Module interface
###

__all__ = [
    "ltl_sparse",
    "ltl_sparse_inplace",
    "ltl_sparse_solve",
    "ltl_sparse_solve_lx",
    "ltl_sparse_solve_ltx",
]


###
# Factorize
###


def _check_parents(H: np.ndarray, parent: np.ndarray) -> None:
    assert_is_square_matrix(H)
    if len(parent) != H.shape[0]:
        raise ValueError(f"Parent array ({len(parent)}) must have one entry per row of H {H.shape}.")
    for k, p in enumerate(parent):
        if p >= k:
            raise ValueError(f"DoF {k} has parent {p}, parents must precede their children.")


def ltl_sparse_inplace(H: np.ndarray, parent: np.ndarray) -> np.ndarray:
    """Overwrites the lower triangle of `H` with `L`. The strictly upper triangle is zeroed."""
    _check_parents(H, parent)
    n = H.shape[0]
    for k in range(n - 1, -1, -1):
        if H[k, k] <= 0.0:
            raise ValueError(f"Matrix is not positive definite: non-positive pivot at index {k}: {H[k, k]}")
        H[k, k] = np.sqrt(H[k, k])
        i = parent[k]
        while i != -1:
            H[k, i] /= H[k, k]
            i = parent[i]
        i = parent[k]
        while i != -1:
            j = i
            while j != -1:
                H[i, j] -= H[k, i] * H[k, j]
                j = parent[j]
            i = parent[i]
    H[np.triu_indices(n, 1)] = 0.0
    return H


def ltl_sparse(H: np.ndarray, parent: np.ndarray) -> np.ndarray:
    """Returns `L` such that `H == L.T @ L`."""
    return ltl_sparse_inplace(np.array(H, dtype=np.float64), parent)


###
# Solve
###


def ltl_sparse_solve_lx(L: np.ndarray, parent: np.ndarray, x: np.ndarray) -> np.ndarray:
    """Solves `L x = b` in place, with `x` holding `b` on entry. Also accepts a matrix of right-hand sides."""
    for i in range(L.shape[0]):
        j = parent[i]
        while j != -1:
            x[i] -= L[i, j] * x[j]
            j = parent[j]
        x[i] /= L[i, i]
    return x


def ltl_sparse_solve_ltx(L: np.ndarray, parent: np.ndarray, x: np.ndarray) -> np.ndarray:
    """Solves `L^T x = b` in place, with `x` holding `b` on entry. Also accepts a matrix of right-hand sides."""
    for i in range(L.shape[0] - 1, -1, -1):
        x[i] /= L[i, i]
        j = parent[i]
        while j != -1:
            x[j] -= L[i, j] * x[i]
            j = parent[j]
    return x


def ltl_sparse_solve(L: np.ndarray, parent: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solves `H x = b` given the factor `L` of `H = L^T L`."""
    x = np.array(b, dtype=np.float64)
    ltl_sparse_solve_ltx(L, parent, x)
    ltl_sparse_solve_lx(L, parent, x)
    return x
