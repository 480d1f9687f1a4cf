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

from .dynamics import (
    composite_rigid_body_algorithm,
    forward_dynamics,
    forward_dynamics_acceleration_deltas,
    inverse_dynamics,
    nonlinear_effects,
)
from .kinematics import (
    calc_base_to_body_coordinates,
    calc_body_to_base_coordinates,
    calc_body_world_orientation,
    calc_point_acceleration,
    calc_point_acceleration_6d,
    calc_point_jacobian,
    calc_point_jacobian_6d,
    calc_point_velocity,
    calc_point_velocity_6d,
    update_kinematics,
    update_kinematics_custom,
)
from .model import Body, Joint, JointType, Model, ModelBuilder

__all__ = [
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
