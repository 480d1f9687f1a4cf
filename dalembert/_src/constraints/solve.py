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
dalembert: Constraints: Solution strategies of the constrained equations of motion

Every strategy solves the saddle-point system

    [ H  G^T ] [  qddot  ]   [   c   ]
    [ G   0  ] [ -lambda ] = [ gamma ]

i.e. `H qddot = c + G^T lambda` subject to `G qddot = gamma`, writing the
solution into the caller-provided `qddot` and `lam` vectors. The same
systems, with `c = H qdot^-` and `gamma = v^+`, resolve impacts.

- Direct: factorizes the full `(n+m) x (n+m)` matrix with a dense solver.
- Range-space sparse: factorizes `H = L^T L` preserving the branch-induced
  sparsity of kinematic trees and solves the `m x m` operator `G H^-1 G^T`.
- Null-space: splits `qddot` using a QR decomposition of `G^T` into a part
  fixed by the constraints and a part in the null space of `G`.
"""

from __future__ import annotations

from enum import IntEnum

import numpy as np
import scipy.linalg

from ..linalg import LinearSolverMethod, factorize, make_linear_solver
from ..sim.model import Model

###
# Module interface
###

__all__ = [
    "ConstrainedSystemMethod",
    "solve_constrained_system",
    "solve_constrained_system_direct",
    "solve_constrained_system_null_space",
    "solve_constrained_system_range_space_sparse",
]


###
# Types
###


class ConstrainedSystemMethod(IntEnum):
    """Selects the strategy used to solve the constrained equations of motion."""

    DIRECT = 0
    RANGE_SPACE_SPARSE = 1
    NULL_SPACE = 2


###
# Internals
###


def _check_system(H: np.ndarray, G: np.ndarray, c: np.ndarray, gamma: np.ndarray, qddot: np.ndarray, lam: np.ndarray):
    n = H.shape[0]
    m = G.shape[0]
    if H.shape != (n, n) or G.shape != (m, n):
        raise ValueError(f"Incompatible shapes of H {H.shape} and G {G.shape}.")
    if c.shape != (n,) or qddot.shape != (n,):
        raise ValueError(f"Vectors c {c.shape} and qddot {qddot.shape} must have shape ({n},).")
    if gamma.shape != (m,) or lam.shape != (m,):
        raise ValueError(f"Vectors gamma {gamma.shape} and lam {lam.shape} must have shape ({m},).")


def _least_squares_basic(M: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """Basic least-squares solution of a possibly rectangular or rank-deficient system."""
    Q, R, cols = factorize.qr_fullpiv(M)
    return factorize.qr_fullpiv_solve(Q, R, cols, rhs)


###
# Strategies
###


def solve_constrained_system_direct(
    H: np.ndarray,
    G: np.ndarray,
    c: np.ndarray,
    gamma: np.ndarray,
    qddot: np.ndarray,
    lam: np.ndarray,
    A: np.ndarray | None = None,
    b: np.ndarray | None = None,
    x: np.ndarray | None = None,
    linear_solver: LinearSolverMethod = LinearSolverMethod.COL_PIV_HOUSEHOLDER_QR,
) -> None:
    """
    Assembles the full KKT matrix into `A` and the right-hand side into `b`,
    solves for `x = [qddot; -lambda]` with the selected dense solver.
    """
    _check_system(H, G, c, gamma, qddot, lam)
    n = H.shape[0]
    m = G.shape[0]
    if A is None:
        A = np.zeros((n + m, n + m))
    if b is None:
        b = np.zeros(n + m)
    if x is None:
        x = np.zeros(n + m)

    A[:n, :n] = H
    A[:n, n:] = G.T
    A[n:, :n] = G
    A[n:, n:] = 0.0
    b[:n] = c
    b[n:] = gamma

    x[:] = make_linear_solver(linear_solver, A).solve(b)
    qddot[:] = x[:n]
    lam[:] = -x[n:]


def solve_constrained_system_range_space_sparse(
    model: Model,
    H: np.ndarray,
    G: np.ndarray,
    c: np.ndarray,
    gamma: np.ndarray,
    qddot: np.ndarray,
    lam: np.ndarray,
    K: np.ndarray | None = None,
    a: np.ndarray | None = None,
    linear_solver: LinearSolverMethod = LinearSolverMethod.COL_PIV_HOUSEHOLDER_QR,
) -> None:
    """
    Solves the system through the operator `K = G H^-1 G^T`:

        K lambda = gamma - G H^-1 c
        qddot = H^-1 (c + G^T lambda)

    with `H^-1` applied through the sparse factorization `H = L^T L`. `H` is
    left intact.
    """
    _check_system(H, G, c, gamma, qddot, lam)
    m = G.shape[0]
    parent = model.dof_parent
    L = factorize.ltl_sparse(H, parent)

    if m > 0:
        # Y = L^-T G^T, z = L^-T c
        Y = factorize.ltl_sparse_solve_ltx(L, parent, np.array(G.T))
        z = factorize.ltl_sparse_solve_ltx(L, parent, np.array(c, dtype=np.float64))
        if K is None:
            K = np.zeros((m, m))
        if a is None:
            a = np.zeros(m)
        K[:] = Y.T @ Y
        a[:] = gamma - Y.T @ z
        lam[:] = make_linear_solver(linear_solver, K).solve(a)

    qddot[:] = c + G.T @ lam
    factorize.ltl_sparse_solve_ltx(L, parent, qddot)
    factorize.ltl_sparse_solve_lx(L, parent, qddot)


def solve_constrained_system_null_space(
    H: np.ndarray,
    G: np.ndarray,
    c: np.ndarray,
    gamma: np.ndarray,
    qddot: np.ndarray,
    lam: np.ndarray,
    Y: np.ndarray | None = None,
    Z: np.ndarray | None = None,
    qddot_y: np.ndarray | None = None,
    qddot_z: np.ndarray | None = None,
    linear_solver: LinearSolverMethod = LinearSolverMethod.COL_PIV_HOUSEHOLDER_QR,
) -> None:
    """
    Solves the system with the orthonormal bases `Y` (range of `G^T`) and
    `Z` (null space of `G`) from the Householder QR `G^T = [Y Z] [R; 0]`:

        (G Y) qddot_y = gamma
        (Z^T H Z) qddot_z = Z^T (c - H Y qddot_y)
        qddot = Y qddot_y + Z qddot_z
        (G Y)^T lambda = Y^T (H qddot - c)

    The systems in `G Y` are solved with a full-pivoting QR, which keeps the
    solution defined when `G` is rank deficient.
    """
    _check_system(H, G, c, gamma, qddot, lam)
    n = H.shape[0]
    m = G.shape[0]
    r = min(n, m)

    if m > 0:
        Q, _ = scipy.linalg.qr(G.T, mode="full", check_finite=False)
    else:
        Q = np.eye(n)
    Y_ = Q[:, :r]
    Z_ = Q[:, r:]
    GY = G @ Y_

    q_y = _least_squares_basic(GY, gamma) if m > 0 else np.zeros(0)
    qddot[:] = Y_ @ q_y
    if n > r:
        ZT = Z_.T
        q_z = make_linear_solver(linear_solver, ZT @ H @ Z_).solve(ZT @ (c - H @ qddot))
        qddot += Z_ @ q_z
    else:
        q_z = np.zeros(0)
    if m > 0:
        lam[:] = _least_squares_basic(GY.T, Y_.T @ (H @ qddot - c))

    for out, value in ((Y, Y_), (Z, Z_), (qddot_y, q_y), (qddot_z, q_z)):
        if out is not None:
            out[...] = value


def solve_constrained_system(
    method: ConstrainedSystemMethod,
    model: Model,
    H: np.ndarray,
    G: np.ndarray,
    c: np.ndarray,
    gamma: np.ndarray,
    qddot: np.ndarray,
    lam: np.ndarray,
    linear_solver: LinearSolverMethod = LinearSolverMethod.COL_PIV_HOUSEHOLDER_QR,
) -> None:
    """Solves the constrained system with the strategy selected by `method`, allocating temporary workspace."""
    method = ConstrainedSystemMethod(method)
    if method == ConstrainedSystemMethod.DIRECT:
        solve_constrained_system_direct(H, G, c, gamma, qddot, lam, linear_solver=linear_solver)
    elif method == ConstrainedSystemMethod.RANGE_SPACE_SPARSE:
        solve_constrained_system_range_space_sparse(model, H, G, c, gamma, qddot, lam, linear_solver=linear_solver)
    else:
        solve_constrained_system_null_space(H, G, c, gamma, qddot, lam, linear_solver=linear_solver)
