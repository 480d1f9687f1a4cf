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
dalembert: Constraints: Inverse dynamics of constrained, underactuated systems

The DoFs are partitioned by the actuation map of the constraint set into
actuated ones, selected by `S`, and unactuated ones, selected by `P`. The
generalized forces returned by both operators only act on actuated DoFs,
`tau = S^T tau_a`, and together with the constraint forces satisfy

    H qddot + C = S^T tau_a + G^T lambda
    G qddot = gamma
"""

from __future__ import annotations

import numpy as np
import scipy.linalg

from ..linalg import factorize, make_linear_solver
from ..sim.kinematics import check_state_vector
from ..sim.model import Model
from .kinematics import calc_constrained_system_variables
from .set import ConstraintSet
from .solve import _least_squares_basic

###
# Module interface
###

__all__ = [
    "inverse_dynamics_constraints",
    "inverse_dynamics_constraints_relaxed",
    "is_constrained_system_fully_actuated",
]


###
# Internals
###


def _outputs(model: Model, qddot: np.ndarray | None, tau: np.ndarray | None) -> tuple[np.ndarray, np.ndarray]:
    n = model.dof_count
    if qddot is None:
        qddot = np.zeros(n)
    if tau is None:
        tau = np.zeros(n)
    if qddot.shape != (n,) or tau.shape != (n,):
        raise ValueError(f"Outputs 'qddot' {qddot.shape} and 'tau' {tau.shape} must have shape ({n},).")
    return qddot, tau


def _prepare(model: Model, q: np.ndarray, qdot: np.ndarray, cs: ConstraintSet, f_ext: np.ndarray | None):
    cs.check_bound(model)
    cs.check_actuation_map(model)
    calc_constrained_system_variables(model, q, qdot, np.zeros(model.dof_count), cs, f_ext=f_ext)


###
# Operators
###


def is_constrained_system_fully_actuated(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    cs: ConstraintSet,
    f_ext: np.ndarray | None = None,
) -> bool:
    """
    Checks whether the constraints determine the accelerations of all
    unactuated DoFs, i.e. whether `rank(G P^T)` equals their number. Only
    then is `inverse_dynamics_constraints` well defined.

    The rank is computed with a Householder QR with complete pivoting,
    which is accurate but slow, and not meant to run every time step.
    """
    _prepare(model, q, qdot, cs, f_ext)
    cs.GPT[:] = cs.G @ cs.P.T
    _, R, _ = factorize.qr_fullpiv(cs.GPT)
    rank = factorize.qr_fullpiv_rank(R, cs.config.rank_threshold)
    return rank == cs.n_unactuated


def inverse_dynamics_constraints(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    qddot_desired: np.ndarray,
    cs: ConstraintSet,
    qddot: np.ndarray | None = None,
    tau: np.ndarray | None = None,
    f_ext: np.ndarray | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Computes actuated generalized forces that track `qddot_desired` exactly
    on the actuated DoFs, by solving

        [ H  G^T  S^T ] [  qddot   ]   [       -C        ]
        [ G   0    0  ] [ -lambda  ] = [      gamma      ]
        [ S   0    0  ] [ -tau_a   ]   [ S qddot_desired ]

    The result is undefined unless `is_constrained_system_fully_actuated`
    holds. The constraint forces are written into `cs.force`.

    Returns:
        tuple: The accelerations `qddot` and the generalized forces `tau`.
    """
    check_state_vector(model, qddot_desired, "qddot_desired")
    qddot, tau = _outputs(model, qddot, tau)
    _prepare(model, q, qdot, cs, f_ext)

    n = model.dof_count
    m = cs.size()
    S = cs.S
    A, b = cs.A_id, cs.b_id
    A.fill(0.0)
    A[:n, :n] = cs.H
    A[:n, n : n + m] = cs.G.T
    A[:n, n + m :] = S.T
    A[n : n + m, :n] = cs.G
    A[n + m :, :n] = S
    b[:n] = -cs.C
    b[n : n + m] = cs.gamma
    b[n + m :] = S @ qddot_desired

    cs.x_id[:] = make_linear_solver(cs.linear_solver, A).solve(b)
    qddot[:] = cs.x_id[:n]
    cs.force[:] = -cs.x_id[n : n + m]
    tau[:] = S.T @ (-cs.x_id[n + m :])
    return qddot, tau


def inverse_dynamics_constraints_relaxed(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    qddot_controls: np.ndarray,
    cs: ConstraintSet,
    qddot: np.ndarray | None = None,
    tau: np.ndarray | None = None,
    f_ext: np.ndarray | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Computes actuated generalized forces that track `qddot_controls` on the
    actuated DoFs as closely as the constraints allow, after Koch et al.

    With `p = [u; v] = [S; P] qddot`, the operator solves the quadratic program

        min 1/2 p^T F p + g^T p   s.t.   J p = gamma

        F = [ S H S^T + W   S H P^T ]     g = [ -W u* + S C ]     J = G [S^T  P^T]
            [ P H S^T       P H P^T ]         [     P C     ]

    with `u* = S qddot_controls + W^-1 S C` and the tracking weight
    `W = w max(|H|) I`, by projection onto the null space of `J`. The
    actuated forces follow as `tau_a = W (u* - u)`. Unlike the exact operator
    it yields a constraint-consistent result when `G P^T` is rank deficient.

    Returns:
        tuple: The accelerations `qddot` and the generalized forces `tau`.
    """
    check_state_vector(model, qddot_controls, "qddot_controls")
    qddot, tau = _outputs(model, qddot, tau)
    _prepare(model, q, qdot, cs, f_ext)

    n = model.dof_count
    m = cs.size()
    n_a = cs.n_actuated
    S, P = cs.S, cs.P
    T = np.vstack((S, P))

    # Tracking weight scaled to the magnitude of the inertia matrix
    w = cs.config.relaxed_weight_scale * max(np.max(np.abs(cs.H), initial=0.0), np.finfo(np.float64).eps)
    cs.W[:] = w * np.eye(n_a)
    cs.Winv[:] = np.eye(n_a) / w

    cs.F[:] = T @ cs.H @ T.T
    cs.F[:n_a, :n_a] += cs.W
    cs.u_star[:] = S @ qddot_controls + cs.Winv @ (S @ cs.C)
    cs.g[:n_a] = -cs.W @ cs.u_star + S @ cs.C
    cs.g[n_a:] = P @ cs.C
    J = cs.G @ T.T
    cs.GT[:] = J.T

    # Null-space projection of the equality-constrained program
    r = min(n, m)
    if m > 0:
        Q, _ = scipy.linalg.qr(cs.GT, mode="full", check_finite=False)
    else:
        Q = np.eye(n)
    Y, Z = Q[:, :r], Q[:, r:]
    JY = J @ Y
    p = Y @ _least_squares_basic(JY, cs.gamma) if m > 0 else np.zeros(n)
    if n > r:
        ZT = Z.T
        p += Z @ make_linear_solver(cs.linear_solver, ZT @ cs.F @ Z).solve(-ZT @ (cs.F @ p + cs.g))
    if m > 0:
        cs.force[:] = _least_squares_basic(JY.T, Y.T @ (cs.F @ p + cs.g))

    qddot[:] = T.T @ p
    tau[:] = S.T @ (cs.W @ (cs.u_star - S @ qddot))
    return qddot, tau
