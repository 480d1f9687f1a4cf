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

"""User-defined constraints used as fixtures by the unit tests."""

import numpy as np

from dalembert import (
    ConstraintSet,
    CustomConstraint,
    Model,
    calc_body_to_base_coordinates,
    calc_body_world_orientation,
    calc_point_acceleration_6d,
    calc_point_jacobian,
    calc_point_velocity_6d,
)
from dalembert._src.core.types import override

###
# Module interface
###

__all__ = [
    "JointRateConstraint",
    "PointCoincidenceConstraint",
]


###
# Constraints
###


class PointCoincidenceConstraint(CustomConstraint):
    """
    Keeps the origins of the predecessor and successor constraint frames
    together along a set of linear axes fixed in the predecessor frame.
    """

    def __init__(self, axes):
        self.axes = np.array(axes, dtype=np.float64).reshape(-1, 3)
        super().__init__(self.axes.shape[0])

    def _rows(self, row_start: int) -> slice:
        return slice(row_start, row_start + self.constraint_count)

    def _axes_in_base(self, model: Model, q: np.ndarray, k: int, cs: ConstraintSet) -> np.ndarray:
        E_body = calc_body_world_orientation(model, q, cs.custom_body_p[k], update_kinematics=False)
        R = (cs.custom_X_p[k].E @ E_body).T
        return self.axes @ R.T

    @override
    def calc_constraints_jacobian_and_axis(self, model, custom_constraint_id, q, cs, G, row_start, col_start=0):
        k = custom_constraint_id
        J_p = calc_point_jacobian(model, q, cs.custom_body_p[k], cs.custom_X_p[k].r, update_kinematics=False)
        J_s = calc_point_jacobian(model, q, cs.custom_body_s[k], cs.custom_X_s[k].r, update_kinematics=False)
        n = model.dof_count
        G[self._rows(row_start), col_start : col_start + n] = self._axes_in_base(model, q, k, cs) @ (J_s - J_p)

    @override
    def calc_gamma(self, model, custom_constraint_id, q, qdot, cs, G_block, gamma, row_start):
        k = custom_constraint_id
        zeros = np.zeros(model.dof_count)
        body_p, body_s = cs.custom_body_p[k], cs.custom_body_s[k]
        r_p, r_s = cs.custom_X_p[k].r, cs.custom_X_s[k].r
        V_p = calc_point_velocity_6d(model, q, qdot, body_p, r_p, update_kinematics=False)
        V_s = calc_point_velocity_6d(model, q, qdot, body_s, r_s, update_kinematics=False)
        A_p = calc_point_acceleration_6d(model, q, qdot, zeros, body_p, r_p, update_kinematics=False)
        A_s = calc_point_acceleration_6d(model, q, qdot, zeros, body_s, r_s, update_kinematics=False)
        axes = self._axes_in_base(model, q, k, cs)
        axes_dot = np.cross(V_p[:3], axes)
        gamma[self._rows(row_start)] = -axes @ (A_s[3:] - A_p[3:]) - axes_dot @ (V_s[3:] - V_p[3:])

    @override
    def calc_position_error(self, model, custom_constraint_id, q, cs, err, row_start):
        k = custom_constraint_id
        p_p = calc_body_to_base_coordinates(model, q, cs.custom_body_p[k], cs.custom_X_p[k].r, update_kinematics=False)
        p_s = calc_body_to_base_coordinates(model, q, cs.custom_body_s[k], cs.custom_X_s[k].r, update_kinematics=False)
        err[self._rows(row_start)] = self._axes_in_base(model, q, k, cs) @ (p_s - p_p)

    @override
    def calc_velocity_error(self, model, custom_constraint_id, q, qdot, cs, G_block, err, row_start):
        err[self._rows(row_start)] = G_block @ qdot


class JointRateConstraint(CustomConstraint):
    """
    Locks the rate of a single DoF. The constraint acts on velocities only;
    for assembly it pins the DoF to a target position instead.
    """

    def __init__(self, dof: int, target: float = 0.0):
        super().__init__(1)
        self.dof = dof
        self.target = target

    @override
    def calc_constraints_jacobian_and_axis(self, model, custom_constraint_id, q, cs, G, row_start, col_start=0):
        G[row_start, col_start + self.dof] = 1.0

    @override
    def calc_gamma(self, model, custom_constraint_id, q, qdot, cs, G_block, gamma, row_start):
        gamma[row_start] = 0.0

    @override
    def calc_position_error(self, model, custom_constraint_id, q, cs, err, row_start):
        err[row_start] = 0.0

    @override
    def calc_velocity_error(self, model, custom_constraint_id, q, qdot, cs, G_block, err, row_start):
        err[row_start] = qdot[self.dof]

    @override
    def calc_assembly_position_error(self, model, custom_constraint_id, q, cs, err, row_start):
        err[row_start] = q[self.dof] - self.target
