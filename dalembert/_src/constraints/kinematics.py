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
dalembert: Constraints: Constraint kinematics and system assembly

Computes the position errors, velocity errors and Jacobians of the rows
of a `ConstraintSet`, and assembles the terms of the constrained equations
of motion:

    H qddot + C = tau + G^T lambda
    G qddot = gamma

Loop rows are evaluated on the predecessor and successor constraint
frames, whose spatial velocities and accelerations are taken at the frame
origins with axes aligned to the base frame.
"""

from __future__ import annotations

import numpy as np

from ..math.spatial import SpatialTransform
from ..sim.dynamics import composite_rigid_body_algorithm, nonlinear_effects
from ..sim.kinematics import (
    calc_point_acceleration,
    calc_point_acceleration_6d,
    calc_point_jacobian,
    calc_point_jacobian_6d,
    calc_point_velocity_6d,
    check_state_vector,
    update_kinematics_custom,
)
from ..sim.model import Model
from .set import ConstraintSet

###
# Module interface
###

__all__ = [
    "calc_assembly_position_error",
    "calc_assembly_position_error_jacobian",
    "calc_assembly_velocity_error",
    "calc_assembly_velocity_error_jacobian",
    "calc_constrained_system_variables",
    "calc_constraints_jacobian",
    "calc_constraints_position_error",
    "calc_constraints_velocity_error",
]


###
# Frames
###


def _frame_base_transform(model: Model, body_id: int, X: SpatialTransform) -> SpatialTransform:
    """Transform from the base frame to a constraint frame attached to `body_id`."""
    return X * model.X_base[body_id]


def _loop_axis_in_base(model: Model, cs: ConstraintSet, k: int) -> np.ndarray:
    """Rotates the axis of loop entry `k` from the predecessor constraint frame into base orientation."""
    R_p = _frame_base_transform(model, cs.loop_body_p[k], cs.loop_X_p[k]).E.T
    axis = cs.loop_axis[k]
    return np.concatenate((R_p @ axis[:3], R_p @ axis[3:]))


def _loop_pose_error(model: Model, body_p: int, body_s: int, X_p: SpatialTransform, X_s: SpatialTransform) -> np.ndarray:
    """
    Orientation and position error `[theta; d]` of the successor constraint
    frame relative to the predecessor one, in predecessor frame coordinates.
    `theta` equals `u sin(angle)` for the axis-angle `(u, angle)` of the
    relative rotation.
    """
    X0p = _frame_base_transform(model, body_p, X_p)
    X0s = _frame_base_transform(model, body_s, X_s)
    R_ps = X0p.E @ X0s.E.T
    theta = 0.5 * np.array([R_ps[2, 1] - R_ps[1, 2], R_ps[0, 2] - R_ps[2, 0], R_ps[1, 0] - R_ps[0, 1]])
    return np.concatenate((theta, X0p.E @ (X0s.r - X0p.r)))


###
# Internals
###


def _prepare_output(out: np.ndarray | None, shape: tuple[int, ...], name: str) -> np.ndarray:
    if out is None:
        return np.zeros(shape)
    if out.shape != shape:
        raise ValueError(f"Output '{name}' must have shape {shape} but has shape {out.shape}.")
    out.fill(0.0)
    return out


def _contact_and_loop_jacobian(model: Model, q: np.ndarray, cs: ConstraintSet, G: np.ndarray) -> None:
    for k, row in enumerate(cs.contact_constraint_indices):
        J = calc_point_jacobian(model, q, cs.contact_body[k], cs.contact_point[k], update_kinematics=False)
        G[row] = cs.contact_normal[k] @ J

    for k, row in enumerate(cs.loop_constraint_indices):
        J_p = calc_point_jacobian_6d(model, q, cs.loop_body_p[k], cs.loop_X_p[k].r, update_kinematics=False)
        J_s = calc_point_jacobian_6d(model, q, cs.loop_body_s[k], cs.loop_X_s[k].r, update_kinematics=False)
        G[row] = _loop_axis_in_base(model, cs, k) @ (J_s - J_p)


def _contact_and_loop_position_error(model: Model, cs: ConstraintSet, err: np.ndarray) -> None:
    for row in cs.contact_constraint_indices:
        err[row] = 0.0
    for k, row in enumerate(cs.loop_constraint_indices):
        d = _loop_pose_error(model, cs.loop_body_p[k], cs.loop_body_s[k], cs.loop_X_p[k], cs.loop_X_s[k])
        err[row] = cs.loop_axis[k] @ d


def _custom_rows(cs: ConstraintSet, k: int) -> slice:
    start = cs.custom_constraint_indices[k]
    return slice(start, start + cs.custom_constraints[k].constraint_count)


###
# Constraint kinematics
###


def calc_constraints_position_error(
    model: Model,
    q: np.ndarray,
    cs: ConstraintSet,
    err: np.ndarray | None = None,
    update_kinematics: bool = True,
) -> np.ndarray:
    """
    Computes the position error of every row. Contact rows have no position
    error, loop rows project the pose error of the successor frame onto the
    constraint axis.
    """
    if update_kinematics:
        update_kinematics_custom(model, q)
    err = _prepare_output(err, (cs.size(),), "err")
    _contact_and_loop_position_error(model, cs, err)
    for k, custom in enumerate(cs.custom_constraints):
        custom.calc_position_error(model, k, q, cs, err, cs.custom_constraint_indices[k])
    return err


def calc_constraints_jacobian(
    model: Model,
    q: np.ndarray,
    cs: ConstraintSet,
    G: np.ndarray | None = None,
    update_kinematics: bool = True,
) -> np.ndarray:
    """Computes the `m x n` constraint Jacobian `G`."""
    if update_kinematics:
        update_kinematics_custom(model, q)
    G = _prepare_output(G, (cs.size(), model.dof_count), "G")
    _contact_and_loop_jacobian(model, q, cs, G)
    for k, custom in enumerate(cs.custom_constraints):
        custom.calc_constraints_jacobian_and_axis(model, k, q, cs, G, cs.custom_constraint_indices[k], 0)
    return G


def calc_constraints_velocity_error(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    cs: ConstraintSet,
    err: np.ndarray | None = None,
    update_kinematics: bool = True,
) -> np.ndarray:
    """Computes `G qdot` for contact and loop rows, custom rows provide their own velocity error."""
    check_state_vector(model, qdot, "qdot")
    if update_kinematics:
        update_kinematics_custom(model, q, qdot)
    G = calc_constraints_jacobian(model, q, cs, update_kinematics=False)
    err = _prepare_output(err, (cs.size(),), "err")
    err[:] = G @ qdot
    for k, custom in enumerate(cs.custom_constraints):
        rows = _custom_rows(cs, k)
        custom.calc_velocity_error(model, k, q, qdot, cs, G[rows], err, rows.start)
    return err


###
# Assembly kinematics
###


def calc_assembly_position_error(
    model: Model,
    q: np.ndarray,
    cs: ConstraintSet,
    err: np.ndarray | None = None,
    update_kinematics: bool = True,
) -> np.ndarray:
    """Position error driven to zero by `calc_assembly_q`."""
    if update_kinematics:
        update_kinematics_custom(model, q)
    err = _prepare_output(err, (cs.size(),), "err")
    _contact_and_loop_position_error(model, cs, err)
    for k, custom in enumerate(cs.custom_constraints):
        custom.calc_assembly_position_error(model, k, q, cs, err, cs.custom_constraint_indices[k])
    return err


def calc_assembly_position_error_jacobian(
    model: Model,
    q: np.ndarray,
    cs: ConstraintSet,
    G: np.ndarray | None = None,
    update_kinematics: bool = True,
) -> np.ndarray:
    if update_kinematics:
        update_kinematics_custom(model, q)
    G = _prepare_output(G, (cs.size(), model.dof_count), "G")
    _contact_and_loop_jacobian(model, q, cs, G)
    for k, custom in enumerate(cs.custom_constraints):
        custom.calc_assembly_position_error_jacobian(model, k, q, cs, G, cs.custom_constraint_indices[k], 0)
    return G


def calc_assembly_velocity_error_jacobian(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    cs: ConstraintSet,
    G: np.ndarray | None = None,
    update_kinematics: bool = True,
) -> np.ndarray:
    if update_kinematics:
        update_kinematics_custom(model, q, qdot)
    G = _prepare_output(G, (cs.size(), model.dof_count), "G")
    _contact_and_loop_jacobian(model, q, cs, G)
    for k, custom in enumerate(cs.custom_constraints):
        custom.calc_assembly_velocity_error_jacobian(model, k, q, qdot, cs, G, cs.custom_constraint_indices[k], 0)
    return G


def calc_assembly_velocity_error(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    cs: ConstraintSet,
    err: np.ndarray | None = None,
    update_kinematics: bool = True,
) -> np.ndarray:
    """Velocity error driven to zero by `calc_assembly_qdot`."""
    check_state_vector(model, qdot, "qdot")
    if update_kinematics:
        update_kinematics_custom(model, q, qdot)
    G = calc_assembly_velocity_error_jacobian(model, q, qdot, cs, update_kinematics=False)
    err = _prepare_output(err, (cs.size(),), "err")
    err[:] = G @ qdot
    for k, custom in enumerate(cs.custom_constraints):
        rows = _custom_rows(cs, k)
        custom.calc_assembly_velocity_error(model, k, q, qdot, cs, G[rows], err, rows.start)
    return err


###
# System assembly
###


def calc_constrained_system_variables(
    model: Model,
    q: np.ndarray,
    qdot: np.ndarray,
    tau: np.ndarray,
    cs: ConstraintSet,
    f_ext: np.ndarray | None = None,
) -> None:
    """
    Fills the workspace of a bound constraint set with the joint-space
    inertia `H`, the bias forces `C`, the Jacobian `G`, the errors `err` and
    `errd`, and the acceleration-level right-hand side `gamma`, including
    the Baumgarte terms of stabilized loop and custom rows.
    """
    cs.check_bound(model)
    check_state_vector(model, tau, "tau")

    # Bias forces first, they update the transforms and velocities
    nonlinear_effects(model, q, qdot, C=cs.C, f_ext=f_ext)
    composite_rigid_body_algorithm(model, q, H=cs.H, update_kinematics=False)

    # Body accelerations at qddot = 0 give the velocity-product terms
    update_kinematics_custom(model, qddot=np.zeros(model.dof_count))

    calc_constraints_jacobian(model, q, cs, G=cs.G, update_kinematics=False)
    calc_constraints_position_error(model, q, cs, err=cs.err, update_kinematics=False)
    cs.errd[:] = cs.G @ qdot
    for k, custom in enumerate(cs.custom_constraints):
        rows = _custom_rows(cs, k)
        custom.calc_velocity_error(model, k, q, qdot, cs, cs.G[rows], cs.errd, rows.start)

    zeros = np.zeros(model.dof_count)
    for k, row in enumerate(cs.contact_constraint_indices):
        a_bias = calc_point_acceleration(
            model, q, qdot, zeros, cs.contact_body[k], cs.contact_point[k], update_kinematics=False
        )
        cs.gamma[row] = cs.acceleration[row] - cs.contact_normal[k] @ a_bias

    for k, row in enumerate(cs.loop_constraint_indices):
        body_p, body_s = cs.loop_body_p[k], cs.loop_body_s[k]
        r_p, r_s = cs.loop_X_p[k].r, cs.loop_X_s[k].r
        V_p = calc_point_velocity_6d(model, q, qdot, body_p, r_p, update_kinematics=False)
        V_s = calc_point_velocity_6d(model, q, qdot, body_s, r_s, update_kinematics=False)
        A_p = calc_point_acceleration_6d(model, q, qdot, zeros, body_p, r_p, update_kinematics=False)
        A_s = calc_point_acceleration_6d(model, q, qdot, zeros, body_s, r_s, update_kinematics=False)

        # The axis is fixed in the predecessor frame and rotates with it
        axis = _loop_axis_in_base(model, cs, k)
        axis_dot = np.concatenate((np.cross(V_p[:3], axis[:3]), np.cross(V_p[:3], axis[3:])))
        cs.gamma[row] = -axis @ (A_s - A_p) - axis_dot @ (V_s - V_p)

        if cs.loop_baumgarte_enabled[k]:
            alpha, beta = cs.loop_baumgarte_parameters[k]
            cs.gamma[row] -= 2.0 * alpha * cs.errd[row] + beta * beta * cs.err[row]

    for k, custom in enumerate(cs.custom_constraints):
        rows = _custom_rows(cs, k)
        custom.calc_gamma(model, k, q, qdot, cs, cs.G[rows], cs.gamma, rows.start)
        if cs.custom_baumgarte_enabled[k]:
            alpha, beta = cs.custom_baumgarte_parameters[k]
            cs.gamma[rows] -= 2.0 * alpha * cs.errd[rows] + beta * beta * cs.err[rows]

