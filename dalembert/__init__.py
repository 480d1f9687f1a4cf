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

# ==================================================================================
# core
# ==================================================================================
from ._version import __version__

__all__ = [
    "__version__",
]

# ==================================================================================
# math
# ==================================================================================
from ._src.math import SpatialTransform  # noqa: E402

__all__ += [
    "SpatialTransform",
]

# ==================================================================================
# sim
# ==================================================================================
from ._src.sim import (  # noqa: E402
    Body,
    Joint,
    JointType,
    Model,
    ModelBuilder,
    calc_base_to_body_coordinates,
    calc_body_to_base_coordinates,
    calc_body_world_orientation,
    calc_point_acceleration,
    calc_point_acceleration_6d,
    calc_point_jacobian,
    calc_point_jacobian_6d,
    calc_point_velocity,
    calc_point_velocity_6d,
    composite_rigid_body_algorithm,
    forward_dynamics,
    forward_dynamics_acceleration_deltas,
    inverse_dynamics,
    nonlinear_effects,
    update_kinematics,
    update_kinematics_custom,
)

__all__ += [
    "Body",
    "Joint",
    "JointType",
    "Model",
    "ModelBuilder",
    "calc_base_to_body_coordinates",
    "calc_body_to_base_coordinates",
    "calc_body_world_orientation",
    "calc_point_acceleration",
    "calc_point_acceleration_6d",
    "calc_point_jacobian",
    "calc_point_jacobian_6d",
    "calc_point_velocity",
    "calc_point_velocity_6d",
    "composite_rigid_body_algorithm",
    "forward_dynamics",
    "forward_dynamics_acceleration_deltas",
    "inverse_dynamics",
    "nonlinear_effects",
    "update_kinematics",
    "update_kinematics_custom",
]

# ==================================================================================
# constraints
# ==================================================================================
from ._src.constraints import (  # noqa: E402
    ConstrainedSystemMethod,
    ConstraintSet,
    ConstraintSetConfig,
    ConstraintType,
    CustomConstraint,
    calc_assembly_position_error,
    calc_assembly_position_error_jacobian,
    calc_assembly_q,
    calc_assembly_qdot,
    calc_assembly_velocity_error,
    calc_assembly_velocity_error_jacobian,
    calc_constrained_system_variables,
    calc_constraints_jacobian,
    calc_constraints_position_error,
    calc_constraints_velocity_error,
    compute_constraint_impulses_direct,
    compute_constraint_impulses_null_space,
    compute_constraint_impulses_range_space_sparse,
    forward_dynamics_constraints_direct,
    forward_dynamics_constraints_null_space,
    forward_dynamics_constraints_range_space_sparse,
    forward_dynamics_contacts_kokkevis,
    inverse_dynamics_constraints,
    inverse_dynamics_constraints_relaxed,
    is_constrained_system_fully_actuated,
    solve_constrained_system,
    solve_constrained_system_direct,
    solve_constrained_system_null_space,
    solve_constrained_system_range_space_sparse,
)

__all__ += [
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

# ==================================================================================
# submodule APIs
# ==================================================================================
from . import linalg, math, utils  # noqa: E402

__all__ += [
    "linalg",
    "math",
    "utils",
]
