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
Provides types for holding configurations of constraint sets.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..linalg import LinearSolverMethod

###
# Module interface
###

__all__ = ["ConstraintSetConfig"]


###
# Types
###


@dataclass
class ConstraintSetConfig:
    """
    A data container to hold the configurations of a constraint set.
    """

    linear_solver: LinearSolverMethod = LinearSolverMethod.COL_PIV_HOUSEHOLDER_QR
    """
    Dense solver used for the direct KKT system, the range-space operator, the
    inverse-dynamics systems and the assembly systems.\n
    Defaults to `COL_PIV_HOUSEHOLDER_QR`, which tolerates rank-deficient systems.
    """

    default_stabilization_param: float = 0.1
    """
    Default Baumgarte time constant `T_stab` of loop and custom constraints,
    used when none is given at registration. The Baumgarte gains are set to
    `alpha = beta = 1 / T_stab`.\n
    Must be positive.\n
    Defaults to `0.1`.
    """

    rank_threshold: float | None = None
    """
    Relative pivot threshold of the full-pivoting QR that computes the rank
    of `G P^T` in `is_constrained_system_fully_actuated`.\n
    Must be non-negative. `None` selects `eps * max(rows, cols)`.\n
    Defaults to `None`.
    """

    relaxed_weight_scale: float = 100.0
    """
    Scale of the actuation tracking weight of the relaxed inverse dynamics,
    `W = relaxed_weight_scale * max(|H|) * I`.\n
    Must be positive.\n
    Defaults to `100.0`.
    """

    assembly_tolerance: float = 1.0e-12
    """
    Default constraint-error norm below which `calc_assembly_q` terminates.\n
    Must be positive.\n
    Defaults to `1.0e-12`.
    """

    assembly_max_iter: int = 100
    """
    Default iteration limit of `calc_assembly_q`.\n
    Must be positive.\n
    Defaults to `100`.
    """

    def __post_init__(self) -> None:
        """
        Performs validation checks on the configuration values after initialization.
        """
        self.linear_solver = LinearSolverMethod(self.linear_solver)
        self.check_values()

    def check_values(self) -> None:
        """
        Validates configuration values.
        """
        if self.default_stabilization_param <= 0.0:
            raise ValueError(
                f"Invalid default_stabilization_param: {self.default_stabilization_param}. Must be positive."
            )
        if self.rank_threshold is not None and self.rank_threshold < 0.0:
            raise ValueError(f"Invalid rank_threshold: {self.rank_threshold}. Must be non-negative.")
        if self.relaxed_weight_scale <= 0.0:
            raise ValueError(f"Invalid relaxed_weight_scale: {self.relaxed_weight_scale}. Must be positive.")
        if self.assembly_tolerance <= 0.0:
            raise ValueError(f"Invalid assembly_tolerance: {self.assembly_tolerance}. Must be positive.")
        if self.assembly_max_iter < 1:
            raise ValueError(f"Invalid assembly_max_iter: {self.assembly_max_iter}. Must be positive.")
