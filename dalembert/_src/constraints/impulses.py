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
dalembert: Constraints: Impulse resolution

Computes the post-impact generalized velocities `qdot^+` and the
constraint impulses `Lambda` of an instantaneous collision from

    H qdot^+ = H qdot^- + G^T Lambda
    G qdot^+ = v^+

where `v^+` holds the desired post-impact velocity of every row, stored in
`cs.v_plus`. The impulses are written into `cs.impulse`.
"""

from __future__ import annotations

import numpy as np

from ..sim.model import Model
from .kinematics import calc_constrained_system_variables
from .set import ConstraintSet
from .solve import (
    solve_constrained_system_direct,
    solve_constrained_system_null_space,
    solve_constrained_system_range_space_sparse,
)

###
# Module interface
###

__all__ = [
    "compute_constraint_impulses_direct",
    "compute_constraint_impulses_null_space",
    "compute_constraint_impulses_range_space_sparse",
]


###
# Internals
###


def _prepare(model: Model, q: np.ndarray, qdot_minus: np.ndarray, cs: ConstraintSet, qdot_plus: np.ndarray | None):
    if qdot_plus is None:
        qdot_plus = np.zeros(model.dof_count)
    elif qdot_plus.shape != (model.dof_count,):
        raise ValueError(f"Output 'qdot_plus' must have shape ({model.dof_count},) but has shape {qdot_plus.shape}.")
    calc_constrained_system_variables(model, q, qdot_minus, np.zeros(model.dof_count), cs)
    return qdot_plus, cs.H @ qdot_minus


###
# Impulses
###


def compute_constraint_impulses_direct(
    model: Model,
    q: np.ndarray,
    qdot_minus: np.ndarray,
    cs: ConstraintSet,
    qdot_plus: np.ndarray | None = None,
) -> np.ndarray:
    qdot_plus, c = _prepare(model, q, qdot_minus, cs, qdot_plus)
    solve_constrained_system_direct(
        cs.H, cs.G, c, cs.v_plus, qdot_plus, cs.impulse, cs.A, cs.b, cs.x, linear_solver=cs.linear_solver
    )
    return qdot_plus


def compute_constraint_impulses_range_space_sparse(
    model: Model,
    q: np.ndarray,
    qdot_minus: np.ndarray,
    cs: ConstraintSet,
    qdot_plus: np.ndarray | None = None,
) -> np.ndarray:
    qdot_plus, c = _prepare(model, q, qdot_minus, cs, qdot_plus)
    solve_constrained_system_range_space_sparse(
        model, cs.H, cs.G, c, cs.v_plus, qdot_plus, cs.impulse, cs.K, cs.a, linear_solver=cs.linear_solver
    )
    return qdot_plus


def compute_constraint_impulses_null_space(
    model: Model,
    q: np.ndarray,
    qdot_minus: np.ndarray,
    cs: ConstraintSet,
    qdot_plus: np.ndarray | None = None,
) -> np.ndarray:
    qdot_plus, c = _prepare(model, q, qdot_minus, cs, qdot_plus)
    solve_constrained_system_null_space(
        cs.H,
        cs.G,
        c,
        cs.v_plus,
        qdot_plus,
        cs.impulse,
        cs.Y,
        cs.Z,
        cs.qddot_y,
        cs.qddot_z,
        linear_solver=cs.linear_solver,
    )
    return qdot_plus
