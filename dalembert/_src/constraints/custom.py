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
dalembert: Constraints: User-defined constraints

A `CustomConstraint` contributes `constraint_count` consecutive rows to a
`ConstraintSet`. Every method writes into a row range of a workspace array
owned by the constraint set, starting at `row_start`, and must leave all
other rows untouched.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from ..sim.model import Model
    from .set import ConstraintSet

###
# Module interface
###

__all__ = ["CustomConstraint"]


###
# Interfaces
###


class CustomConstraint(ABC):
    """
    Base class of user-defined constraints.

    The constraint set only stores a reference to the object, a single
    instance may therefore be shared by several constraint sets but must
    outlive all of them.

    The `custom_constraint_id` passed to every method is the index of the
    constraint in the per-custom-constraint data of the set, e.g.
    `cs.custom_body_p[custom_constraint_id]`.
    """

    def __init__(self, constraint_count: int):
        if constraint_count < 1:
            raise ValueError(f"A custom constraint must define at least one row, got {constraint_count}.")
        self._constraint_count: int = int(constraint_count)

    @property
    def constraint_count(self) -> int:
        """The number of constraint rows contributed by this constraint."""
        return self._constraint_count

    ###
    # Interface
    ###

    @abstractmethod
    def calc_constraints_jacobian_and_axis(
        self,
        model: Model,
        custom_constraint_id: int,
        q: np.ndarray,
        cs: ConstraintSet,
        G: np.ndarray,
        row_start: int,
        col_start: int = 0,
    ) -> None:
        """Writes the Jacobian rows into `G[row_start:row_start + constraint_count, col_start:]`."""
        raise NotImplementedError

    @abstractmethod
    def calc_gamma(
        self,
        model: Model,
        custom_constraint_id: int,
        q: np.ndarray,
        qdot: np.ndarray,
        cs: ConstraintSet,
        G_block: np.ndarray,
        gamma: np.ndarray,
        row_start: int,
    ) -> None:
        """
        Writes `-Gdot @ qdot` of this constraint into `gamma[row_start:]`.

        `G_block` holds this constraint's rows of the Jacobian. The body
        accelerations stored in the model correspond to `qddot = 0`.
        """
        raise NotImplementedError

    @abstractmethod
    def calc_position_error(
        self,
        model: Model,
        custom_constraint_id: int,
        q: np.ndarray,
        cs: ConstraintSet,
        err: np.ndarray,
        row_start: int,
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def calc_velocity_error(
        self,
        model: Model,
        custom_constraint_id: int,
        q: np.ndarray,
        qdot: np.ndarray,
        cs: ConstraintSet,
        G_block: np.ndarray,
        err: np.ndarray,
        row_start: int,
    ) -> None:
        raise NotImplementedError

    ###
    # Assembly
    ###

    def calc_assembly_position_error(
        self,
        model: Model,
        custom_constraint_id: int,
        q: np.ndarray,
        cs: ConstraintSet,
        err: np.ndarray,
        row_start: int,
    ) -> None:
        """
        Position error driven to zero by `calc_assembly_q`. Defaults to
        `calc_position_error`; velocity-level constraints override it to
        define a position-level assembly target.
        """
        self.calc_position_error(model, custom_constraint_id, q, cs, err, row_start)

    def calc_assembly_position_error_jacobian(
        self,
        model: Model,
        custom_constraint_id: int,
        q: np.ndarray,
        cs: ConstraintSet,
        G: np.ndarray,
        row_start: int,
        col_start: int = 0,
    ) -> None:
        """Jacobian of `calc_assembly_position_error`. Defaults to `calc_constraints_jacobian_and_axis`."""
        self.calc_constraints_jacobian_and_axis(model, custom_constraint_id, q, cs, G, row_start, col_start)

    def calc_assembly_velocity_error(
        self,
        model: Model,
        custom_constraint_id: int,
        q: np.ndarray,
        qdot: np.ndarray,
        cs: ConstraintSet,
        G_block: np.ndarray,
        err: np.ndarray,
        row_start: int,
    ) -> None:
        """Velocity error driven to zero by `calc_assembly_qdot`. Defaults to `calc_velocity_error`."""
        self.calc_velocity_error(model, custom_constraint_id, q, qdot, cs, G_block, err, row_start)

    def calc_assembly_velocity_error_jacobian(
        self,
        model: Model,
        custom_constraint_id: int,
        q: np.ndarray,
        qdot: np.ndarray,
        cs: ConstraintSet,
        G: np.ndarray,
        row_start: int,
        col_start: int = 0,
    ) -> None:
        """Jacobian of `calc_assembly_velocity_error` with respect to `qdot`."""
        self.calc_constraints_jacobian_and_axis(model, custom_constraint_id, q, cs, G, row_start, col_start)
