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
dalembert: Constraints: Assembly of constraint-consistent initial states

Finds positions and velocities close to a user guess that satisfy the
position-level and velocity-level constraints, e.g. to initialize a
simulation of a closed-loop mechanism.
"""

from __future__ import annotations

import numpy as np

from ..sim.kinematics import check_state_vector
from ..sim.model import Model
from ..utils import logger as msg
from .kinematics import (
    calc_assembly_position_error,
    calc_assembly_position_error_jacobian,
    calc_assembly_velocity_error,
    calc_assembly_velocity_error_jacobian,
)
from .set import ConstraintSet
from .solve import solve_constrained_system_direct

###
# Module interface
###

__all__ = [
    "calc_assembly_q",
    "calc_assembly_qdot",
]


###
# Internals
###


def _weight_matrix(model: Model, weights: np.ndarray) -> np.ndarray:
    weights = np.asarray(weights, dtype=np.float64)
    check_state_vector(model, weights, "weights")
    if np.any(weights < 0.0):
        raise ValueError("Assembly weights must be non-negative.")
    return np.diag(weights)


###
# Assembly
###


def calc_assembly_q(
    model: Model,
    q_init: np.ndarray,
    cs: ConstraintSet,
    weights: np.ndarray,
    tolerance: float | None = None,
    max_iter: int | None = None,
    q: np.ndarray | None = None,
) -> tuple[np.ndarray, bool]:
    """
    Computes positions `q` satisfying the position-level constraints,
    starting from `q_init`. Each Gauss-Newton iterate takes the step of
    smallest weighted norm `dq^T W dq` that zeroes the linearized error:

        [ W  G^T ] [  dq ]   [  0 ]
        [ G   0  ] [ -mu ] = [ -e ]

    A zero weight leaves the corresponding coordinate free. As `W` may be
    singular, the default rank-revealing solver of the set should be kept.

    Args:
        tolerance (float, optional): Constraint-error norm at which to stop.
            Defaults to `cs.config.assembly_tolerance`.
        max_iter (int, optional): Iteration limit. Defaults to `cs.config.assembly_max_iter`.

    Returns:
        tuple: The last iterate `q` and whether the error dropped below `tolerance`.
    """
    cs.check_bound(model)
    check_state_vector(model, q_init, "q_init")
    tolerance = cs.config.assembly_tolerance if tolerance is None else tolerance
    max_iter = cs.config.assembly_max_iter if max_iter is None else max_iter
    W = _weight_matrix(model, weights)
    if q is None:
        q = np.zeros(model.dof_count)
    q[:] = q_init

    dq = np.zeros(model.dof_count)
    zeros = np.zeros(model.dof_count)
    mu = np.zeros(cs.size())
    for it in range(max_iter):
        calc_assembly_position_error(model, q, cs, err=cs.err)
        error = np.linalg.norm(cs.err)
        if error < tolerance:
            msg.debug(f"Assembly converged after {it} iterations with error {error}.")
            return q, True
        calc_assembly_position_error_jacobian(model, q, cs, G=cs.G, update_kinematics=False)
        solve_constrained_system_direct(
            W, cs.G, zeros, -cs.err, dq, mu, cs.A, cs.b, cs.x, linear_solver=cs.linear_solver
        )
        q += dq

    calc_assembly_position_error(model, q, cs, err=cs.err)
    error = np.linalg.norm(cs.err)
    if error < tolerance:
        return q, True
    msg.warning(f"Assembly did not converge after {max_iter} iterations, remaining error is {error}.")
    return q, False


def calc_assembly_qdot(
    model: Model,
    q: np.ndarray,
    qdot_init: np.ndarray,
    cs: ConstraintSet,
    weights: np.ndarray,
    qdot: np.ndarray | None = None,
) -> np.ndarray:
    """
    Computes velocities satisfying the velocity-level constraints while
    staying close to `qdot_init`, by a single solve of

        [ W  G^T ] [  qdot ]   [ W qdot_init ]
        [ G   0  ] [  -mu  ] = [   -phi_t    ]

    where `phi_t` is the part of the velocity error that does not depend on
    `qdot`, zero for contact and loop rows.
    """
    cs.check_bound(model)
    check_state_vector(model, q, "q")
    check_state_vector(model, qdot_init, "qdot_init")
    W = _weight_matrix(model, weights)
    if qdot is None:
        qdot = np.zeros(model.dof_count)

    zeros = np.zeros(model.dof_count)
    calc_assembly_velocity_error_jacobian(model, q, zeros, cs, G=cs.G)
    phi_t = calc_assembly_velocity_error(model, q, zeros, cs, update_kinematics=False)
    mu = np.zeros(cs.size())
    solve_constrained_system_direct(
        W, cs.G, W @ qdot_init, -phi_t, qdot, mu, cs.A, cs.b, cs.x, linear_solver=cs.linear_solver
    )
    return qdot
