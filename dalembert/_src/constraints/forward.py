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
dalembert: Constraints: Constrained forward dynamics

Every driver assembles the constrained system at the given state, solves
it with one strategy, writes the constraint forces into `cs.force` and
returns the joint accelerations.
"""

from __future__ import annotations

import numpy as np

from ..linalg import make_linear_solver
from ..sim.dynamics import forward_dynamics, forward_dynamics_acceleration_deltas
from ..sim.kinematics import (
    calc_body_to_base_coordinates,
    calc_point_acceleration,
    calc_point_jacobian,
    update_kinematics_custom,
)
from ..sim.model import Model
from .kinematics import calc_constrained_system_variables
from .set import ConstraintSet, ConstraintType
from .solve import (
    solve_constrained_system_direct,
    solve_constrained_system_null_space,
    solve_constrained_system_range_space_sparse,
)

###
# Module interface
###

__all__ = [
    "forward_dynamics_constraints_direct",
    "forward_dynamics_constraints_null_space",
    "forward_dynamics_constraints_range_space_sparse",
    "forward_dynamics_contacts_kokkevis",
]


###
# Internals
###


def _output(model: Model, qddot: np.ndarray | None) -> np.ndarray:
    if qddot is None:
        return np.zeros(model.dof_count)
    if qddot.shape != (model.dof_count,):
        raise ValueError(f"Output 'qddot' must have shape ({model.dof_count},) but has shape {qddot.shape}.")
    return qddot


###
# Drivers
###


def forward_dynamics_constraints_direct(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    tau: np.ndarray,
    cs: ConstraintSet,
    qddot: np.ndarray | None = None,
    f_ext: np.ndarray | None = None,
) -> np.ndarray:
    """Constrained forward dynamics by a dense factorization of the full KKT matrix."""
    qddot = _output(model, qddot)
    calc_constrained_system_variables(model, q, qdot, tau, cs, f_ext=f_ext)
    solve_constrained_system_direct(
        cs.H, cs.G, tau - cs.C, cs.gamma, qddot, cs.force, cs.A, cs.b, cs.x, linear_solver=cs.linear_solver
    )
    return qddot


def forward_dynamics_constraints_range_space_sparse(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    tau: np.ndarray,
    cs: ConstraintSet,
    qddot: np.ndarray | None = None,
    f_ext: np.ndarray | None = None,
) -> np.ndarray:
    """Constrained forward dynamics through the sparse range-space operator `G H^-1 G^T`."""
    qddot = _output(model, qddot)
    calc_constrained_system_variables(model, q, qdot, tau, cs, f_ext=f_ext)
    solve_constrained_system_range_space_sparse(
        model, cs.H, cs.G, tau - cs.C, cs.gamma, qddot, cs.force, cs.K, cs.a, linear_solver=cs.linear_solver
    )
    return qddot


def forward_dynamics_constraints_null_space(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    tau: np.ndarray,
    cs: ConstraintSet,
    qddot: np.ndarray | None = None,
    f_ext: np.ndarray | None = None,
) -> np.ndarray:
    """Constrained forward dynamics by projection onto the null space of `G`."""
    qddot = _output(model, qddot)
    calc_constrained_system_variables(model, q, qdot, tau, cs, f_ext=f_ext)
    solve_constrained_system_null_space(
        cs.H,
        cs.G,
        tau - cs.C,
        cs.gamma,
        qddot,
        cs.force,
        cs.Y,
        cs.Z,
        cs.qddot_y,
        cs.qddot_z,
        linear_solver=cs.linear_solver,
    )
    return qddot


def forward_dynamics_contacts_kokkevis(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    tau: np.ndarray,
    cs: ConstraintSet,
    qddot: np.ndarray | None = None,
) -> np.ndarray:
    """
    Contact forward dynamics using the articulated-body inertias, after
    Kokkevis (2004).

    The unconstrained accelerations `qddot_0` are computed with the ABA.
    For every contact `i`, a unit force along its normal yields the
    acceleration response `qddot_t[i] = H^-1 J_i^T n_i` through the stored
    articulated-body quantities. The contact forces `f` then solve the
    `m x m` system `K f = acceleration - a`, where `K[j, i]` is the normal
    acceleration of contact `j` caused by the unit force at contact `i` and
    `a` holds the normal accelerations at `qddot_0`. Only contact rows are
    supported.
    """
    cs.check_bound(model)
    for kind in cs.constraint_type:
        if kind != ConstraintType.CONTACT:
            raise ValueError("The Kokkevis method only supports constraint sets made of contact rows.")
    qddot = _output(model, qddot)
    m = cs.size()

    # Unconstrained accelerations and the articulated-body quantities
    forward_dynamics(model, q, qdot, tau, qddot=cs.qddot_0)
    update_kinematics_custom(model, qddot=cs.qddot_0)

    jacobians = []
    for k, row in enumerate(cs.contact_constraint_indices):
        body_id, point, normal = cs.contact_body[k], cs.contact_point[k], cs.contact_normal[k]
        jacobians.append(normal @ calc_point_jacobian(model, q, body_id, point, update_kinematics=False))
        a_point = calc_point_acceleration(model, q, qdot, cs.qddot_0, body_id, point, update_kinematics=False)
        cs.point_accel_0[row] = normal @ a_point

    # Responses to unit normal forces at each contact point
    for k, row in enumerate(cs.contact_constraint_indices):
        point_base = calc_body_to_base_coordinates(
            model, q, cs.contact_body[k], cs.contact_point[k], update_kinematics=False
        )
        normal = cs.contact_normal[k]
        cs.f_t.fill(0.0)
        cs.f_t[cs.contact_body[k], :3] = np.cross(point_base, normal)
        cs.f_t[cs.contact_body[k], 3:] = normal
        forward_dynamics_acceleration_deltas(model, cs.f_t, qddot_t=cs.qddot_t[row])

    for k, row in enumerate(cs.contact_constraint_indices):
        cs.K[row] = cs.qddot_t @ jacobians[k]
        cs.a[row] = cs.acceleration[row] - cs.point_accel_0[row]

    if m > 0:
        cs.force[:] = make_linear_solver(cs.linear_solver, cs.K).solve(cs.a)
    qddot[:] = cs.qddot_0 + cs.qddot_t.T @ cs.force
    return qddot
