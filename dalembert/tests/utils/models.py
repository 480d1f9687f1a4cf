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

"""Model and constraint-set fixtures shared by the unit tests."""

import numpy as np
import warp as wp

from dalembert import (
    Body,
    ConstraintSet,
    ConstraintSetConfig,
    Joint,
    Model,
    ModelBuilder,
    SpatialTransform,
)

###
# Module interface
###

__all__ = [
    "BOX_CONTACT_POINTS",
    "BOX_MASS",
    "FOUR_BAR_Q",
    "make_floating_box",
    "make_floating_box_contacts",
    "make_four_bar",
    "make_four_bar_loop",
    "make_planar_chain",
    "make_two_slider",
]


###
# Constants
###

FOUR_BAR_Q = np.array([0.5 * np.pi, -0.5 * np.pi, -0.5 * np.pi])
"""An assembled configuration of the four-bar: the links form a unit square."""

BOX_MASS = 2.0

BOX_CONTACT_POINTS = np.array([[-0.5, -0.5, -0.5], [0.5, -0.5, -0.5], [0.0, -0.5, 0.5]])
"""Three non-collinear points on the bottom face of the box, in body coordinates."""


###
# Bodies
###


def _link(mass: float, length: float) -> Body:
    """A slender link along the local x-axis."""
    inertia = np.diag([1.0e-3, mass * length**2 / 12.0, mass * length**2 / 12.0])
    return Body(mass=mass, com=(0.5 * length, 0.0, 0.0), inertia=inertia)


###
# Models
###


def make_planar_chain(n_links: int = 3, length: float = 1.0, mass: float = 1.0, use_warp_frames: bool = False) -> Model:
    """
    A chain of links rotating about the z-axis in the xy-plane, with gravity
    along -y. At `q = 0` the chain is stretched along the x-axis.
    """
    builder = ModelBuilder()
    parent = 0
    for i in range(n_links):
        offset = (0.0 if i == 0 else length, 0.0, 0.0)
        if use_warp_frames:
            frame = wp.transform(wp.vec3(*offset), wp.quat_identity())
        else:
            frame = SpatialTransform.from_translation(offset)
        parent = builder.add_body(parent, frame, Joint.revolute((0.0, 0.0, 1.0)), _link(mass, length), name=f"link{i}")
    return builder.finalize()


def make_four_bar() -> Model:
    """A three-link planar chain, closed into a four-bar by `make_four_bar_loop`."""
    return make_planar_chain(n_links=3)


def make_four_bar_loop(
    enable_stabilization: bool = False,
    stabilization_param: float | None = None,
    config: ConstraintSetConfig | None = None,
) -> ConstraintSet:
    """
    Pins the tip of the last link of `make_four_bar` to the ground point
    `(1, 0, 0)` with two translational loop rows.
    """
    cs = ConstraintSet(config)
    X_ground = SpatialTransform.from_translation((1.0, 0.0, 0.0))
    X_tip = SpatialTransform.from_translation((1.0, 0.0, 0.0))
    for k, axis in enumerate(((0, 0, 0, 1, 0, 0), (0, 0, 0, 0, 1, 0))):
        cs.add_loop_constraint(
            0,
            3,
            X_ground,
            X_tip,
            axis,
            enable_stabilization=enable_stabilization,
            stabilization_param=stabilization_param,
            name=f"loop_{'xy'[k]}",
        )
    return cs


def make_two_slider(mass_x: float = 1.0, mass_y: float = 2.0) -> Model:
    """
    A body sliding along x carrying a second body sliding along y. The
    inertia matrix is `diag(mass_x + mass_y, mass_y)`.
    """
    builder = ModelBuilder()
    inertia = 0.1 * np.eye(3)
    slider_x = builder.add_body(0, SpatialTransform(), Joint.prismatic((1, 0, 0)), Body(mass_x, (0, 0, 0), inertia), "x")
    builder.add_body(slider_x, SpatialTransform(), Joint.prismatic((0, 1, 0)), Body(mass_y, (0, 0, 0), inertia), "y")
    return builder.finalize()


def make_floating_box() -> Model:
    """A unit cube of mass `BOX_MASS` attached to the root through a floating base."""
    builder = ModelBuilder()
    inertia = BOX_MASS / 6.0 * np.eye(3)
    builder.set_floating_base_body(Body(BOX_MASS, (0.0, 0.0, 0.0), inertia), name="box")
    return builder.finalize()


def make_floating_box_contacts(model: Model, config: ConstraintSetConfig | None = None) -> ConstraintSet:
    """Ground contacts along +y at `BOX_CONTACT_POINTS`."""
    cs = ConstraintSet(config)
    box = model.get_body_id("box")
    for k, point in enumerate(BOX_CONTACT_POINTS):
        cs.add_contact_constraint(box, point, (0.0, 1.0, 0.0), name=f"contact_{k}")
    return cs
