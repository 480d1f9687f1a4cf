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
dalembert: Constraints: Constraint registry and workspace

A `ConstraintSet` holds an ordered list of constraint rows of three kinds:

- contact rows: a body point whose acceleration along a fixed world normal
  is prescribed, usually zero,
- loop rows: one spatial axis of the relative motion between a frame on a
  predecessor body and a frame on a successor body,
- custom rows: rows contributed by a user-defined `CustomConstraint`.

Rows are registered first, then `bind` sizes the workspace for a model.
The row layout is frozen from then on, while per-row scalar values such as
the desired contact accelerations and post-impact velocities may change
between solves.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import IntEnum

import numpy as np

from ..core.types import Vec3Like, Vec6Like, as_vec3, as_vec6
from ..linalg import LinearSolverMethod
from ..math.spatial import SpatialTransform
from ..sim.model import Model
from ..utils import logger as msg
from .config import ConstraintSetConfig
from .custom import CustomConstraint

###
# Module interface
###

__all__ = [
    "ConstraintSet",
    "ConstraintType",
]


###
# Types
###


class ConstraintType(IntEnum):
    CONTACT = 0
    LOOP = 1
    CUSTOM = 2


###
# Containers
###


class ConstraintSet:
    """
    Registry of constraint rows together with the workspace used to
    assemble and solve the constrained equations of motion.
    """

    _ROW_ARRAYS = ("err", "errd", "acceleration", "force", "impulse", "v_plus")
    _WORKSPACE_ARRAYS = (
        "H",
        "C",
        "gamma",
        "G",
        "A",
        "b",
        "x",
        "K",
        "a",
        "qddot_0",
        "qddot_t",
        "qddot_y",
        "qddot_z",
        "Y",
        "Z",
        "point_accel_0",
        "f_t",
    )
    _ACTUATION_ARRAYS = ("W", "Winv", "GT", "GPT", "F", "g", "u_star", "A_id", "b_id", "x_id")

    def __init__(self, config: ConstraintSetConfig | None = None):
        """
        Creates an empty, unbound constraint set.

        Args:
            config (ConstraintSetConfig, optional): Solver and default-parameter
                configurations. Defaults to `ConstraintSetConfig()`.
        """
        self.config: ConstraintSetConfig = config if config is not None else ConstraintSetConfig()
        self.linear_solver: LinearSolverMethod = self.config.linear_solver
        """The dense solver used by the direct, range-space and inverse-dynamics paths."""

        self.bound: bool = False
        """Whether the workspace has been sized for a model."""
        self._bind_allowed: bool = True
        self._dof_count: int = 0

        # Per-row data
        self.constraint_type: list[ConstraintType] = []
        self.name: list[str | None] = []
        self.err: np.ndarray = np.zeros(0)
        """Position error of every row."""
        self.errd: np.ndarray = np.zeros(0)
        """Velocity error of every row."""
        self.acceleration: np.ndarray = np.zeros(0)
        """Desired normal acceleration of contact rows."""
        self.force: np.ndarray = np.zeros(0)
        """Constraint forces (Lagrange multipliers) of the last forward or inverse dynamics solve."""
        self.impulse: np.ndarray = np.zeros(0)
        """Constraint impulses of the last impulse solve."""
        self.v_plus: np.ndarray = np.zeros(0)
        """Desired post-impact constraint velocities."""

        # Contact constraints
        self.contact_constraint_indices: list[int] = []
        self.contact_body: list[int] = []
        self.contact_point: list[np.ndarray] = []
        self.contact_normal: list[np.ndarray] = []

        # Loop constraints
        self.loop_constraint_indices: list[int] = []
        self.loop_body_p: list[int] = []
        self.loop_body_s: list[int] = []
        self.loop_X_p: list[SpatialTransform] = []
        self.loop_X_s: list[SpatialTransform] = []
        self.loop_axis: list[np.ndarray] = []
        self.loop_baumgarte_enabled: list[bool] = []
        self.loop_baumgarte_parameters: list[tuple[float, float]] = []

        # Custom constraints, one entry per constraint object
        self.custom_constraint_indices: list[int] = []
        self.custom_constraints: list[CustomConstraint] = []
        self.custom_body_p: list[int] = []
        self.custom_body_s: list[int] = []
        self.custom_X_p: list[SpatialTransform] = []
        self.custom_X_s: list[SpatialTransform] = []
        self.custom_baumgarte_enabled: list[bool] = []
        self.custom_baumgarte_parameters: list[tuple[float, float]] = []

        # Workspace, allocated by `bind` and `set_actuation_map`
        for attr in self._WORKSPACE_ARRAYS + self._ACTUATION_ARRAYS:
            setattr(self, attr, None)
        self.S: np.ndarray | None = None
        """Selection matrix of the actuated DoFs."""
        self.P: np.ndarray | None = None
        """Selection matrix of the unactuated DoFs."""
        self.actuated_dof: np.ndarray | None = None
        self.actuation_map_set: bool = False

    ###
    # Properties
    ###

    def size(self) -> int:
        """The number of constraint rows."""
        return len(self.constraint_type)

    def __len__(self) -> int:
        return len(self.constraint_type)

    @property
    def dof_count(self) -> int:
        """The number of generalized coordinates of the bound model."""
        return self._dof_count

    @property
    def n_actuated(self) -> int:
        return 0 if self.S is None else self.S.shape[0]

    @property
    def n_unactuated(self) -> int:
        return 0 if self.P is None else self.P.shape[0]

    ###
    # Internals
    ###

    def _check_not_bound(self):
        if self.bound:
            raise RuntimeError("Cannot add constraints to a constraint set that is already bound to a model.")

    def check_bound(self, model: Model | None = None):
        """Raises a `RuntimeError` if the set is not bound, or a `ValueError` if `model` does not match it."""
        if not self.bound:
            raise RuntimeError("Constraint set must be bound to a model with `bind()` before solving.")
        if model is not None and model.dof_count != self._dof_count:
            raise ValueError(
                f"Constraint set is bound to a model with {self._dof_count} DoFs, got one with {model.dof_count}."
            )

    def _append_rows(self, kind: ConstraintType, count: int, name: str | None) -> int:
        row = self.size()
        for k in range(count):
            self.constraint_type.append(kind)
            self.name.append(name if count == 1 or name is None else f"{name}[{k}]")
        for attr in self._ROW_ARRAYS:
            setattr(self, attr, np.concatenate((getattr(self, attr), np.zeros(count))))
        return row

    def _baumgarte_parameters(self, stabilization_param: float | None) -> tuple[float, float]:
        T_stab = self.config.default_stabilization_param if stabilization_param is None else stabilization_param
        if T_stab <= 0.0:
            raise ValueError(f"Invalid stabilization parameter: {T_stab}. Must be positive.")
        return 1.0 / T_stab, 1.0 / T_stab

    ###
    # Registration
    ###

    def add_contact_constraint(
        self,
        body_id: int,
        body_point: Vec3Like,
        world_normal: Vec3Like,
        name: str | None = None,
        normal_acceleration: float = 0.0,
    ) -> int:
        """
        Adds a contact row constraining the acceleration of a body point along a world normal.

        Args:
            body_id (int): The index of the body in contact.
            body_point (Vec3Like): The contact point in body coordinates.
            world_normal (Vec3Like): The contact normal in base coordinates. It is normalized.
            name (str, optional): A name for the row.
            normal_acceleration (float): The desired acceleration along the normal.

        Returns:
            int: The index of the new row.
        """
        self._check_not_bound()
        normal = as_vec3(world_normal)
        norm = np.linalg.norm(normal)
        if norm == 0.0:
            raise ValueError("Contact normal must be non-zero.")

        row = self._append_rows(ConstraintType.CONTACT, 1, name)
        self.acceleration[row] = normal_acceleration
        self.contact_constraint_indices.append(row)
        self.contact_body.append(int(body_id))
        self.contact_point.append(as_vec3(body_point))
        self.contact_normal.append(normal / norm)
        return row

    def add_loop_constraint(
        self,
        id_predecessor: int,
        id_successor: int,
        X_predecessor: SpatialTransform,
        X_successor: SpatialTransform,
        axis: Vec6Like,
        enable_stabilization: bool = False,
        stabilization_param: float | None = None,
        name: str | None = None,
    ) -> int:
        """
        Adds a loop row constraining the relative motion of two body frames along a spatial axis.

        Args:
            id_predecessor (int): The index of the predecessor body.
            id_successor (int): The index of the successor body.
            X_predecessor (SpatialTransform): Transform from the predecessor body frame to its constraint frame.
            X_successor (SpatialTransform): Transform from the successor body frame to its constraint frame.
            axis (Vec6Like): The constrained spatial axis `[angular; linear]` in the predecessor constraint frame.
            enable_stabilization (bool): Whether to add Baumgarte stabilization terms.
            stabilization_param (float, optional): The Baumgarte time constant `T_stab`.
                Defaults to `config.default_stabilization_param`.
            name (str, optional): A name for the row.

        Returns:
            int: The index of the new row.
        """
        self._check_not_bound()
        axis = as_vec6(axis)
        if not np.any(axis):
            raise ValueError("Loop constraint axis must be non-zero.")
        params = self._baumgarte_parameters(stabilization_param)

        row = self._append_rows(ConstraintType.LOOP, 1, name)
        self.loop_constraint_indices.append(row)
        self.loop_body_p.append(int(id_predecessor))
        self.loop_body_s.append(int(id_successor))
        self.loop_X_p.append(X_predecessor.copy())
        self.loop_X_s.append(X_successor.copy())
        self.loop_axis.append(axis)
        self.loop_baumgarte_enabled.append(bool(enable_stabilization))
        self.loop_baumgarte_parameters.append(params)
        return row

    def add_custom_constraint(
        self,
        custom_constraint: CustomConstraint,
        id_predecessor: int,
        id_successor: int,
        X_predecessor: SpatialTransform,
        X_successor: SpatialTransform,
        enable_stabilization: bool = False,
        stabilization_param: float | None = None,
        name: str | None = None,
    ) -> int:
        """
        Adds the rows of a user-defined constraint. The set keeps a reference
        to `custom_constraint` and never copies it.

        Returns:
            int: The index of the first row of the constraint.
        """
        self._check_not_bound()
        if not isinstance(custom_constraint, CustomConstraint):
            raise TypeError(f"Expected a CustomConstraint but got {type(custom_constraint).__name__}.")
        params = self._baumgarte_parameters(stabilization_param)

        row = self._append_rows(ConstraintType.CUSTOM, custom_constraint.constraint_count, name)
        self.custom_constraint_indices.append(row)
        self.custom_constraints.append(custom_constraint)
        self.custom_body_p.append(int(id_predecessor))
        self.custom_body_s.append(int(id_successor))
        self.custom_X_p.append(X_predecessor.copy())
        self.custom_X_s.append(X_successor.copy())
        self.custom_baumgarte_enabled.append(bool(enable_stabilization))
        self.custom_baumgarte_parameters.append(params)
        return row

    def set_solver(self, linear_solver: LinearSolverMethod):
        """Selects the dense solver used by subsequent solves."""
        self.linear_solver = LinearSolverMethod(linear_solver)

    ###
    # Workspace
    ###

    def _referenced_bodies(self) -> list[int]:
        return self.contact_body + self.loop_body_p + self.loop_body_s + self.custom_body_p + self.custom_body_s

    def bind(self, model: Model) -> bool:
        """
        Sizes the workspace for `model` and freezes the row layout.

        Returns:
            bool: `False` if the set is already bound and has not been cleared
            since, or if a row references a body the model does not have.
        """
        if self.bound and not self._bind_allowed:
            msg.error("Constraint set is already bound to a model, call `clear()` before binding it again.")
            return False
        for body_id in self._referenced_bodies():
            if body_id < 0 or body_id >= model.body_count:
                msg.error(f"Constraint references body {body_id} but the model has {model.body_count} bodies.")
                return False

        n = model.dof_count
        m = self.size()
        r = min(n, m)
        self._dof_count = n

        self.H = np.zeros((n, n))
        self.C = np.zeros(n)
        self.gamma = np.zeros(m)
        self.G = np.zeros((m, n))
        self.A = np.zeros((n + m, n + m))
        self.b = np.zeros(n + m)
        self.x = np.zeros(n + m)
        self.K = np.zeros((m, m))
        self.a = np.zeros(m)
        self.qddot_0 = np.zeros(n)
        self.qddot_t = np.zeros((m, n))
        self.qddot_y = np.zeros(r)
        self.qddot_z = np.zeros(n - r)
        self.Y = np.zeros((n, r))
        self.Z = np.zeros((n, n - r))
        self.point_accel_0 = np.zeros(m)
        self.f_t = np.zeros((model.body_count, 6))
        if self.actuation_map_set and self.S.shape[1] == n:
            self._allocate_actuation_workspace()

        self.bound = True
        self._bind_allowed = False
        n_contact = len(self.contact_constraint_indices)
        n_loop = len(self.loop_constraint_indices)
        msg.debug(
            f"Bound constraint set with {m} rows ({n_contact} contact, {n_loop} loop, "
            f"{m - n_contact - n_loop} custom) to a model with {n} DoFs."
        )
        return True

    def set_actuation_map(self, model: Model, actuated_dof: Sequence[bool]):
        """
        Partitions the DoFs into actuated and unactuated ones, building the
        selection matrices `S` (actuated rows of the identity) and `P`
        (unactuated rows), as used by the inverse dynamics operators.
        May be called before or after `bind`; both must precede inverse dynamics.
        """
        actuated = np.asarray(actuated_dof, dtype=bool).reshape(-1)
        n = model.dof_count
        if actuated.shape != (n,):
            raise ValueError(f"Actuation map must have one entry per DoF ({n}) but has {actuated.shape[0]}.")
        self._build_actuation_map(actuated)
        if self.bound and self._dof_count == n:
            self._allocate_actuation_workspace()
        msg.debug(f"Actuation map set: {self.n_actuated} actuated and {self.n_unactuated} unactuated DoFs.")

    def _build_actuation_map(self, actuated: np.ndarray):
        n = actuated.shape[0]
        identity = np.eye(n)
        self.actuated_dof = actuated.copy()
        self.S = identity[np.flatnonzero(actuated)]
        self.P = identity[np.flatnonzero(~actuated)]
        n_a = self.S.shape[0]
        self.W = np.zeros((n_a, n_a))
        self.Winv = np.zeros((n_a, n_a))
        self.F = np.zeros((n, n))
        self.g = np.zeros(n)
        self.u_star = np.zeros(n_a)
        self.GT = self.GPT = self.A_id = self.b_id = self.x_id = None
        self.actuation_map_set = True

    def _allocate_actuation_workspace(self):
        # Blocks depending on both the rows and the actuation map
        n, n_a, n_u = self.S.shape[1], self.S.shape[0], self.P.shape[0]
        m = self.size()
        self.GT = np.zeros((n, m))
        self.GPT = np.zeros((m, n_u))
        self.A_id = np.zeros((n + m + n_a, n + m + n_a))
        self.b_id = np.zeros(n + m + n_a)
        self.x_id = np.zeros(n + m + n_a)

    def check_actuation_map(self, model: Model | None = None):
        """
        Raises a `RuntimeError` if no actuation map was set, or a `ValueError`
        if the map does not match the bound model.
        """
        if not self.actuation_map_set:
            raise RuntimeError("The actuation map must be set with `set_actuation_map()` before inverse dynamics.")
        n = self._dof_count if model is None else model.dof_count
        if self.S.shape[1] != n or self.A_id is None:
            raise ValueError(
                f"Actuation map was set for {self.S.shape[1]} DoFs but the constraint set is bound to {n} DoFs."
            )

    def clear(self):
        """
        Zeroes every per-row value and the workspace. The rows and the bound
        state are kept, and the set may be bound again afterwards.
        """
        for attr in self._ROW_ARRAYS + self._WORKSPACE_ARRAYS + self._ACTUATION_ARRAYS:
            value = getattr(self, attr)
            if value is not None:
                value.fill(0.0)
        self._bind_allowed = True

    def copy(self) -> ConstraintSet:
        """
        Returns an unbound copy holding the same rows and actuation map.
        Custom constraint objects are shared with the copy.
        """
        other = ConstraintSet(self.config)
        other.linear_solver = self.linear_solver
        other.constraint_type = list(self.constraint_type)
        other.name = list(self.name)
        for attr in self._ROW_ARRAYS:
            setattr(other, attr, getattr(self, attr).copy())

        other.contact_constraint_indices = list(self.contact_constraint_indices)
        other.contact_body = list(self.contact_body)
        other.contact_point = [p.copy() for p in self.contact_point]
        other.contact_normal = [n.copy() for n in self.contact_normal]

        other.loop_constraint_indices = list(self.loop_constraint_indices)
        other.loop_body_p = list(self.loop_body_p)
        other.loop_body_s = list(self.loop_body_s)
        other.loop_X_p = [X.copy() for X in self.loop_X_p]
        other.loop_X_s = [X.copy() for X in self.loop_X_s]
        other.loop_axis = [a.copy() for a in self.loop_axis]
        other.loop_baumgarte_enabled = list(self.loop_baumgarte_enabled)
        other.loop_baumgarte_parameters = list(self.loop_baumgarte_parameters)

        other.custom_constraint_indices = list(self.custom_constraint_indices)
        other.custom_constraints = list(self.custom_constraints)
        other.custom_body_p = list(self.custom_body_p)
        other.custom_body_s = list(self.custom_body_s)
        other.custom_X_p = [X.copy() for X in self.custom_X_p]
        other.custom_X_s = [X.copy() for X in self.custom_X_s]
        other.custom_baumgarte_enabled = list(self.custom_baumgarte_enabled)
        other.custom_baumgarte_parameters = list(self.custom_baumgarte_parameters)
        if self.actuation_map_set:
            other._build_actuation_map(self.actuated_dof)
        return other

    __copy__ = copy
