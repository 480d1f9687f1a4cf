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
dalembert: Unconstrained dynamics of articulated rigid-body models

Implements the Recursive Newton-Euler Algorithm (RNEA), the Composite
Rigid Body Algorithm (CRBA) and the Articulated Body Algorithm (ABA), with
the equations of motion written as:

    H(q) qddot + C(q, qdot) = tau

External forces `f_ext` are given per body as spatial forces `[n; f]` in
base coordinates, i.e. acting at the base origin.
"""

from __future__ import annotations

import numpy as np

from ..math.spatial import crossf
from .kinematics import check_state_vector, update_kinematics_custom
from .model import Model

###
# Module interface
###

__all__ = [
    "composite_rigid_body_algorithm",
    "forward_dynamics",
    "forward_dynamics_acceleration_deltas",
    "inverse_dynamics",
    "nonlinear_effects",
]


###
# Internals
###


def _spatial_gravity(model: Model) -> np.ndarray:
    a0 = np.zeros(6)
    a0[3:] = -model.gravity
    return a0


def _check_external_forces(model: Model, f_ext: np.ndarray | None) -> None:
    if f_ext is not None and np.shape(f_ext) != (model.body_count, 6):
        raise ValueError(
            f"External forces must have shape ({model.body_count}, 6) but have shape {np.shape(f_ext)}."
        )


###
# Inverse dynamics
###


def inverse_dynamics(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    qddot: np.ndarray,
    tau: np.ndarray | None = None,
    f_ext: np.ndarray | None = None,
) -> np.ndarray:
    """
    Computes the generalized forces that produce `qddot` using the RNEA.

    Updates the body transforms and velocities stored in the model. The
    gravity-offset accelerations are kept local, the stored body
    accelerations are left untouched.
    """
    check_state_vector(model, qddot, "qddot")
    _check_external_forces(model, f_ext)
    update_kinematics_custom(model, q, qdot)

    nb = model.body_count
    a = np.zeros((nb, 6))
    f = np.zeros((nb, 6))
    a[0] = _spatial_gravity(model)
    for i in range(1, nb):
        lam = model.parent[i]
        a[i] = model.X_lambda[i].apply(a[lam]) + model.c[i] + model.S[i] * qddot[i - 1]
        Iv = model.I[i] @ model.v[i]
        f[i] = model.I[i] @ a[i] + crossf(model.v[i]) @ Iv
        if f_ext is not None:
            f[i] -= model.X_base[i].apply_adjoint(f_ext[i])

    if tau is None:
        tau = np.zeros(model.dof_count)
    for i in range(nb - 1, 0, -1):
        tau[i - 1] = model.S[i] @ f[i]
        lam = model.parent[i]
        if lam != 0:
            f[lam] += model.X_lambda[i].apply_transpose(f[i])
    return tau


def nonlinear_effects(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    C: np.ndarray | None = None,
    f_ext: np.ndarray | None = None,
) -> np.ndarray:
    """Computes the Coriolis, centrifugal, gravity and external-force terms `C(q, qdot)`."""
    return inverse_dynamics(model, q, qdot, np.zeros(model.dof_count), tau=C, f_ext=f_ext)


def composite_rigid_body_algorithm(
    model: Model, q: np.ndarray, H: np.ndarray | None = None, update_kinematics: bool = True
) -> np.ndarray:
    """Computes the joint-space inertia matrix `H(q)`. If `H` is given it is overwritten in place."""
    if update_kinematics:
        update_kinematics_custom(model, q)
    n = model.dof_count
    if H is None:
        H = np.zeros((n, n))
    else:
        H[:] = 0.0

    Ic = [I.copy() for I in model.I]
    for i in range(model.body_count - 1, 0, -1):
        lam = model.parent[i]
        if lam != 0:
            X = model.X_lambda[i].to_matrix()
            Ic[lam] += X.T @ Ic[i] @ X

        F = Ic[i] @ model.S[i]
        H[i - 1, i - 1] = model.S[i] @ F
        j = i
        while model.parent[j] != 0:
            F = model.X_lambda[j].apply_transpose(F)
            j = model.parent[j]
            H[i - 1, j - 1] = F @ model.S[j]
            H[j - 1, i - 1] = H[i - 1, j - 1]
    return H


###
# Forward dynamics
###


def forward_dynamics(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    tau: np.ndarray,
    qddot: np.ndarray | None = None,
    f_ext: np.ndarray | None = None,
) -> np.ndarray:
    """
    Computes the joint accelerations using the ABA.

    The articulated-body inertias `IA` and the projections `U`, `d` and `u`
    are left in the model, where `forward_dynamics_acceleration_deltas`
    reuses them.
    """
    check_state_vector(model, tau, "tau")
    _check_external_forces(model, f_ext)
    update_kinematics_custom(model, q, qdot)

    nb = model.body_count
    for i in range(1, nb):
        model.IA[i] = model.I[i].copy()
        model.pA[i] = crossf(model.v[i]) @ (model.I[i] @ model.v[i])
        if f_ext is not None:
            model.pA[i] -= model.X_base[i].apply_adjoint(f_ext[i])

    for i in range(nb - 1, 0, -1):
        S = model.S[i]
        model.U[i] = model.IA[i] @ S
        model.d[i] = S @ model.U[i]
        model.u[i] = tau[i - 1] - S @ model.pA[i]
        lam = model.parent[i]
        if lam != 0:
            Ia = model.IA[i] - np.outer(model.U[i], model.U[i]) / model.d[i]
            pa = model.pA[i] + Ia @ model.c[i] + model.U[i] * model.u[i] / model.d[i]
            X = model.X_lambda[i].to_matrix()
            model.IA[lam] += X.T @ Ia @ X
            model.pA[lam] += model.X_lambda[i].apply_transpose(pa)

    if qddot is None:
        qddot = np.zeros(model.dof_count)
    a = np.zeros((nb, 6))
    a[0] = _spatial_gravity(model)
    for i in range(1, nb):
        a_i = model.X_lambda[i].apply(a[model.parent[i]]) + model.c[i]
        qddot[i - 1] = (model.u[i] - model.U[i] @ a_i) / model.d[i]
        a[i] = a_i + model.S[i] * qddot[i - 1]
    return qddot


def forward_dynamics_acceleration_deltas(
    model: Model, f_t: np.ndarray, qddot_t: np.ndarray | None = None
) -> np.ndarray:
    """
    Computes the change of joint accelerations caused by the spatial forces
    `f_t` (one per body, base coordinates), i.e. `H^{-1} J^T f_t`.

    Requires a preceding call to `forward_dynamics` at the same state, whose
    articulated-body quantities are reused.
    """
    _check_external_forces(model, f_t)
    nb = model.body_count
    d_pA = np.zeros((nb, 6))
    d_u = np.zeros(nb)
    for i in range(1, nb):
        d_pA[i] = -model.X_base[i].apply_adjoint(f_t[i])

    for i in range(nb - 1, 0, -1):
        d_u[i] = -model.S[i] @ d_pA[i]
        lam = model.parent[i]
        if lam != 0:
            pa = d_pA[i] + model.U[i] * d_u[i] / model.d[i]
            d_pA[lam] += model.X_lambda[i].apply_transpose(pa)

    if qddot_t is None:
        qddot_t = np.zeros(model.dof_count)
    d_a = np.zeros((nb, 6))
    for i in range(1, nb):
        a = model.X_lambda[i].apply(d_a[model.parent[i]])
        qddot_t[i - 1] = (d_u[i] - model.U[i] @ a) / model.d[i]
        d_a[i] = a + model.S[i] * qddot_t[i - 1]
    return qddot_t
