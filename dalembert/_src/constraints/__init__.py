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

"""Constraint sets and the constrained dynamics operators acting on them."""

from .assembly import calc_assembly_q, calc_assembly_qdot
from .config import ConstraintSetConfig
from .custom import CustomConstraint
from .forward import (
    forward_dynamics_constraints_direct,
    forward_dynamics_constraints_null_space,
    forward_dynamics_constraints_range_space_sparse,
    forward_dynamics_contacts_kokkevis,
)
from .impulses import (
    compute_constraint_impulses_direct,
    compute_constraint_impulses_null_space,
    compute_constraint_impulses_range_space_sparse,
)
from .inverse import (
    inverse_dynamics_constraints,
    inverse_dynamics_constraints_relaxed,
    is_constrained_system_fully_actuated,
)
from .kinematics import (
    calc_assembly_position_error,
    calc_assembly_position_error_jacobian,
    calc_assembly_velocity_error,
    calc_assembly_velocity_error_jacobian,
    calc_constrained_system_variables,
    calc_constraints_jacobian,
    calc_constraints_position_error,
    calc_constraints_velocity_error,
)
from .set import ConstraintSet, ConstraintType
from .solve import (
    ConstrainedSystemMethod,
    solve_constrained_system,
    solve_constrained_system_direct,
    solve_constrained_system_null_space,
    solve_constrained_system_range_space_sparse,
)

###
# Module interface
###

__all__ = [
    "ConstrainedSystemMethod",
    "ConstraintSet",
    "ConstraintSetConfig",
    "ConstraintType",
    "CustomConstraint",
    "calc_assembly_position_error",
    "calc_assembly_position_error_jacobian",
    "calc_assembly_q",
    "calc_assembly_qdot",
    "calc_assembly_velocity_error",
    "calc_assembly_velocity_error_jacobian",
    "calc_constrained_system_variables",
    "calc_constraints_jacobian",
    "calc_constraints_position_error",
    "calc_constraints_velocity_error",
    "compute_constraint_impulses_direct",
    "compute_constraint_impulses_null_space",
    "compute_constraint_impulses_range_space_sparse",
    "forward_dynamics_constraints_direct",
    "forward_dynamics_constraints_null_space",
    "forward_dynamics_constraints_range_space_sparse",
    "forward_dynamics_contacts_kokkevis",
    "inverse_dynamics_constraints",
    "inverse_dynamics_constraints_relaxed",
    "is_constrained_system_fully_actuated",
    "solve_constrained_system",
    "solve_constrained_system_direct",
    "solve_constrained_system_null_space",
    "solve_constrained_system_range_space_sparse",
]
