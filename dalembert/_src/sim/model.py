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
dalembert: Articulated rigid-body model and model builder

Bodies are indexed `0..N` where body `0` is the fixed root. Every body
`i > 0` is attached to `parent[i] < i` through exactly one 1-DoF joint whose
generalized coordinate lives at index `i - 1` of the state vectors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np
import warp as wp

from ..core.types import Vec3Like, as_vec3
from ..math.spatial import SpatialTransform, rotation_about_axis, spatial_inertia

###
# Module interface
###

__all__ = [
    "Body",
    "Joint",
    "JointType",
    "Model",
    "ModelBuilder",
]


###
# Constants
###

DEFAULT_GRAVITY = (0.0, -9.81, 0.0)
"""Default gravity vector, pointing along the negative y-axis."""


###
# Types
###


class JointType(IntEnum):
    """The supported single degree-of-freedom joint types."""

    REVOLUTE = 0
    PRISMATIC = 1


@dataclass
class Joint:
    """A 1-DoF joint rotating about, or sliding along, a unit axis of the joint frame."""

    type: JointType = JointType.REVOLUTE
    axis: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))

    def __post_init__(self):
        self.type = JointType(self.type)
        axis = as_vec3(self.axis)
        norm = np.linalg.norm(axis)
        if norm == 0.0:
            raise ValueError("Joint axis must be non-zero.")
        self.axis = axis / norm

    @classmethod
    def revolute(cls, axis: Vec3Like) -> Joint:
        return cls(JointType.REVOLUTE, axis)

    @classmethod
    def prismatic(cls, axis: Vec3Like) -> Joint:
        return cls(JointType.PRISMATIC, axis)

    @property
    def motion_subspace(self) -> np.ndarray:
        """The spatial motion subspace `S` of the joint, as a `(6,)` vector."""
        S = np.zeros(6)
        if self.type == JointType.REVOLUTE:
            S[:3] = self.axis
        else:
            S[3:] = self.axis
        return S

    def transform(self, q: float) -> SpatialTransform:
        """Returns the joint transform `X_J(q)` from the joint frame to the child body frame."""
        if self.type == JointType.REVOLUTE:
            return SpatialTransform.from_rotation(rotation_about_axis(self.axis, q))
        return SpatialTransform.from_translation(self.axis * q)


@dataclass
class Body:
    """Inertial properties of a rigid body."""

    mass: float = 0.0
    """The body mass."""

    com: np.ndarray = field(default_factory=lambda: np.zeros(3))
    """Center of mass in body coordinates."""

    inertia: np.ndarray = field(default_factory=lambda: np.zeros((3, 3)))
    """Rotational inertia about the center of mass, in body coordinates."""

    def __post_init__(self):
        if self.mass < 0.0:
            raise ValueError(f"Body mass must be non-negative but is {self.mass}.")
        self.com = as_vec3(self.com)
        self.inertia = np.array(self.inertia, dtype=np.float64).reshape(3, 3)

    @property
    def spatial_inertia(self) -> np.ndarray:
        return spatial_inertia(self.mass, self.com, self.inertia)


###
# Containers
###


class Model:
    """
    An articulated rigid-body model together with the per-body kinematic and
    dynamic scratch that the algorithms update in place.
    """

    def __init__(self, body_count: int, gravity: Vec3Like = DEFAULT_GRAVITY):
        nb = int(body_count)
        n = nb - 1

        self.gravity: np.ndarray = as_vec3(gravity)
        """The gravity acceleration vector in base coordinates."""

        # Structure
        self.parent: list[int] = [0] * nb
        """The parent body index `lambda(i)` of every body. The root is its own parent."""
        self.children: list[list[int]] = [[] for _ in range(nb)]
        """The child body indices `mu(i)` of every body."""
        self.joints: list[Joint | None] = [None] * nb
        self.S: np.ndarray = np.zeros((nb, 6))
        """Joint motion subspaces, one row per body."""
        self.X_T: list[SpatialTransform] = [SpatialTransform() for _ in range(nb)]
        """Fixed transforms from the parent body frame to each joint frame."""
        self.I: list[np.ndarray] = [np.zeros((6, 6)) for _ in range(nb)]
        """Spatial inertias of the bodies, in body coordinates."""
        self.mass: np.ndarray = np.zeros(nb)
        self.body_names: dict[str, int] = {}

        # Kinematic scratch
        self.X_J: list[SpatialTransform] = [SpatialTransform() for _ in range(nb)]
        self.X_lambda: list[SpatialTransform] = [SpatialTransform() for _ in range(nb)]
        """Transforms from the parent body frame to each body frame."""
        self.X_base: list[SpatialTransform] = [SpatialTransform() for _ in range(nb)]
        """Transforms from the base frame to each body frame."""
        self.v: np.ndarray = np.zeros((nb, 6))
        self.a: np.ndarray = np.zeros((nb, 6))
        self.c: np.ndarray = np.zeros((nb, 6))

        # Articulated-body scratch
        self.IA: list[np.ndarray] = [np.zeros((6, 6)) for _ in range(nb)]
        self.pA: np.ndarray = np.zeros((nb, 6))
        self.U: np.ndarray = np.zeros((nb, 6))
        self.d: np.ndarray = np.zeros(nb)
        self.u: np.ndarray = np.zeros(nb)

        # Generalized state
        self.q: np.ndarray = np.zeros(n)
        self.qdot: np.ndarray = np.zeros(n)
        self.qddot: np.ndarray = np.zeros(n)
        self.tau: np.ndarray = np.zeros(n)

    @property
    def body_count(self) -> int:
        """The number of bodies including the fixed root."""
        return len(self.parent)

    @property
    def dof_count(self) -> int:
        """The number of generalized coordinates."""
        return len(self.parent) - 1

    @property
    def dof_parent(self) -> np.ndarray:
        """The parent DoF index of every DoF, or `-1` for DoFs attached to the root."""
        return np.array([self.parent[i] - 1 for i in range(1, self.body_count)], dtype=np.int32)

    def get_body_id(self, name: str) -> int:
        """Returns the index of the body registered under `name`."""
        if name not in self.body_names:
            raise KeyError(f"Model has no body named '{name}'.")
        return self.body_names[name]

    def is_ancestor(self, ancestor_id: int, body_id: int) -> bool:
        """Checks whether `ancestor_id` lies on the path from the root to `body_id` (inclusive)."""
        while body_id != 0:
            if body_id == ancestor_id:
                return True
            body_id = self.parent[body_id]
        return ancestor_id == 0


###
# Builder
###


class ModelBuilder:
    """
    A class to facilitate the construction of articulated rigid-body models.
    """

    def __init__(self, gravity: Vec3Like = DEFAULT_GRAVITY):
        """
        Initializes a new model builder holding only the fixed root body.

        Args:
            gravity (Vec3Like): The gravity vector in base coordinates.
                Defaults to `(0, -9.81, 0)`.
        """
        self._gravity: np.ndarray = as_vec3(gravity)
        self._parents: list[int] = [0]
        self._joint_frames: list[SpatialTransform] = [SpatialTransform()]
        self._joints: list[Joint | None] = [None]
        self._bodies: list[Body] = [Body()]
        self._names: dict[str, int] = {"ROOT": 0}

    @property
    def body_count(self) -> int:
        """The number of bodies added so far, including the root."""
        return len(self._parents)

    @property
    def dof_count(self) -> int:
        """The number of generalized coordinates added so far."""
        return len(self._parents) - 1

    def add_body(
        self,
        parent_id: int,
        joint_frame: SpatialTransform | wp.transform,
        joint: Joint,
        body: Body,
        name: str | None = None,
    ) -> int:
        """
        Adds a body connected to an existing body through a 1-DoF joint.

        Args:
            parent_id (int): The index of the parent body.
            joint_frame (SpatialTransform | wp.transform): Placement of the joint frame in
                the parent body frame, either as a parent-to-joint spatial transform or as
                a warp transform holding the joint frame pose in parent coordinates.
            joint (Joint): The joint connecting the new body to its parent.
            body (Body): The inertial properties of the new body.
            name (str, optional): A unique name for body lookups.

        Returns:
            int: The index of the new body.
        """
        if parent_id < 0 or parent_id >= self.body_count:
            raise ValueError(f"Invalid parent body index {parent_id} for a model with {self.body_count} bodies.")
        if name is not None and name in self._names:
            raise ValueError(f"A body named '{name}' already exists.")
        if isinstance(joint_frame, SpatialTransform):
            X_T = joint_frame.copy()
        else:
            X_T = SpatialTransform.from_warp(joint_frame)

        body_id = self.body_count
        self._parents.append(int(parent_id))
        self._joint_frames.append(X_T)
        self._joints.append(joint)
        self._bodies.append(body)
        if name is not None:
            self._names[name] = body_id
        return body_id

    def set_floating_base_body(self, body: Body, name: str | None = None) -> int:
        """
        Attaches `body` to the root through a chain of six 1-DoF joints, translations
        along x, y, z followed by rotations about z, y, x, using massless links.

        Returns:
            int: The index of the floating body, i.e. the last body of the chain.
        """
        if self.body_count != 1:
            raise RuntimeError("The floating base body must be the first body added to the model.")
        ex, ey, ez = np.eye(3)
        parent_id = 0
        for joint in (Joint.prismatic(ex), Joint.prismatic(ey), Joint.prismatic(ez), Joint.revolute(ez), Joint.revolute(ey)):
            parent_id = self.add_body(parent_id, SpatialTransform(), joint, Body())
        return self.add_body(parent_id, SpatialTransform(), Joint.revolute(ex), body, name=name)

    def finalize(self) -> Model:
        """Constructs the model from the accumulated bodies."""
        model = Model(self.body_count, gravity=self._gravity)
        for i in range(1, self.body_count):
            model.parent[i] = self._parents[i]
            model.children[self._parents[i]].append(i)
            model.joints[i] = self._joints[i]
            model.S[i] = self._joints[i].motion_subspace
            model.X_T[i] = self._joint_frames[i].copy()
            model.I[i] = self._bodies[i].spatial_inertia
            model.mass[i] = self._bodies[i].mass
        model.body_names = dict(self._names)
        return model
