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

"""dalembert: Linear Algebra: Householder QR with complete pivoting"""

import numpy as np
import scipy.linalg

from ..matrix import assert_is_matrix, default_rank_threshold

###
# Module interface
###

__all__ = [
    "qr_fullpiv",
    "qr_fullpiv_rank",
    "qr_fullpiv_reconstruct",
    "qr_fullpiv_solve",
]


###
# Factorize
###


def qr_fullpiv(A: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Computes `A P = Q R` using Householder reflections, selecting at
    every step the entry of largest magnitude in the remaining block as pivot.

    Returns:
        tuple: `(Q, R, cols)` where `Q` is `m x m` orthogonal and absorbs the
        row interchanges, `R` is `m x n` upper triangular and `cols` is the
        column permutation such that `A[:, cols] == Q @ R`.
    """
    assert_is_matrix(A)
    m, n = A.shape
    R = np.array(A, dtype=np.float64)
    Qt = np.eye(m)
    cols = np.arange(n)

    for k in range(min(m, n)):
        block = np.abs(R[k:, k:])
        i, j = np.unravel_index(np.argmax(block), block.shape)
        if block[i, j] == 0.0:
            break
        i += k
        j += k
        if j != k:
            R[:, [k, j]] = R[:, [j, k]]
            cols[[k, j]] = cols[[j, k]]
        if i != k:
            R[[k, i], :] = R[[i, k], :]
            Qt[[k, i], :] = Qt[[i, k], :]

        x = R[k:, k]
        alpha = -np.copysign(np.linalg.norm(x), x[0])
        v = x.copy()
        v[0] -= alpha
        vnorm = np.linalg.norm(v)
        if vnorm == 0.0:
            continue
        v /= vnorm
        R[k:, k:] -= 2.0 * np.outer(v, v @ R[k:, k:])
        Qt[k:, :] -= 2.0 * np.outer(v, v @ Qt[k:, :])
        R[k + 1 :, k] = 0.0

    return Qt.T, R, cols


def qr_fullpiv_rank(R: np.ndarray, threshold: float | None = None) -> int:
    """Counts the diagonal entries of `R` above `threshold` times the largest one."""
    diag = np.abs(np.diag(R))
    if diag.size == 0 or diag[0] == 0.0:
        return 0
    if threshold is None:
        threshold = default_rank_threshold(R.shape, R.dtype)
    return int(np.count_nonzero(diag > threshold * diag.max()))


def qr_fullpiv_reconstruct(Q: np.ndarray, R: np.ndarray, cols: np.ndarray) -> np.ndarray:
    A = np.empty((Q.shape[0], R.shape[1]))
    A[:, cols] = Q @ R
    return A


def qr_fullpiv_solve(
    Q: np.ndarray, R: np.ndarray, cols: np.ndarray, b: np.ndarray, rank: int | None = None
) -> np.ndarray:
    """
    Solves `A x = b` in the least-squares sense, returning the basic solution
    where the components past the numerical rank are zero.
    """
    if rank is None:
        rank = qr_fullpiv_rank(R)
    y = np.zeros(R.shape[1])
    c = Q.T @ b
    if rank > 0:
        y[:rank] = scipy.linalg.solve_triangular(R[:rank, :rank], c[:rank], lower=False)
    x = np.zeros(R.shape[1])
    x[cols] = y
    return x
